# File: app/core/errors.py
"""
Error taxonomy shared by services and routers.

Every error is an HTTPException so FastAPI can render it directly; the
handlers in app.main add the machine-readable ``code`` to the response body.
"""
from typing import Optional

from fastapi import HTTPException, status


class AppError(HTTPException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "error"
    message = "Internal server error"

    def __init__(self, message: Optional[str] = None, errors: Optional[list] = None):
        super().__init__(status_code=self.status_code, detail=message or self.message)
        self.errors = errors


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "validation_error"
    message = "Validation error"


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"
    message = "Not found"


class AuthorizationError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"
    message = "Access denied"


class AuthenticationError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "unauthenticated"
    message = "Authentication required. Please login."


class ConflictError(AppError):
    # duplicates are reported as plain bad requests
    status_code = status.HTTP_400_BAD_REQUEST
    code = "conflict"
    message = "Resource already exists"


# ---- lifecycle ----

class InvalidStatus(ValidationError):
    code = "invalid_status"
    message = "Invalid status"


class MissingRejectionReason(ValidationError):
    code = "missing_rejection_reason"
    message = "Rejection reason is required"


class InvalidPriority(ValidationError):
    code = "invalid_priority"
    message = "Invalid priority"


class AssigneeNotFound(NotFoundError):
    code = "assignee_not_found"
    message = "Assigned user not found or is not an admin"


# ---- lookups ----

class InvalidTrackingIdFormat(ValidationError):
    code = "invalid_tracking_id_format"
    message = "Invalid tracking ID format. Please enter a valid tracking ID (e.g. IJW-2025-12345)"


class ComplaintNotFound(NotFoundError):
    message = "Complaint not found"


class CategoryNotFound(NotFoundError):
    code = "category_not_found"
    message = "Category not found"


class SubcategoryNotFound(NotFoundError):
    code = "subcategory_not_found"
    message = "Subcategory not found"


class SubcategoryCategoryMismatch(NotFoundError):
    code = "subcategory_category_mismatch"
    message = "Subcategory not found or does not belong to the selected category"


# ---- uniqueness ----

class DuplicateCategory(ConflictError):
    message = "Category with this name already exists"


class DuplicateSubcategory(ConflictError):
    message = "Subcategory with this name already exists in this category"


class EmailAlreadyRegistered(ConflictError):
    message = "User with this email already exists"


def field_errors(raw: list) -> list:
    """Flatten pydantic error dicts into [{field, message}]."""
    out = []
    for e in raw:
        loc = [str(p) for p in e.get("loc", ()) if p not in ("body", "query", "path", "form")]
        msg = e.get("msg", "")
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, "):]
        out.append({"field": ".".join(loc), "message": msg})
    return out

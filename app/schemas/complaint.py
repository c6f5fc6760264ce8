# File: app/schemas/complaint.py
import re
from pydantic import BaseModel, EmailStr, Field, ValidationInfo, field_validator, model_validator
from typing import Optional, Literal, Union, Annotated
from app.schemas.auth import PHONE_PATTERN

Status = Literal["pending", "under_review", "in_progress", "resolved", "rejected", "closed"]


class AuthenticatedSubmitter(BaseModel):
    kind: Literal["authenticated"] = "authenticated"
    user_id: int


class AnonymousSubmitter(BaseModel):
    """Contact details typed into the form. All optional for anonymous reports."""
    kind: Literal["anonymous"] = "anonymous"
    full_name: Optional[str] = None
    phone_number: Optional[str] = None
    email: Optional[str] = None


Submitter = Annotated[Union[AuthenticatedSubmitter, AnonymousSubmitter], Field(discriminator="kind")]


class ComplaintSubmit(BaseModel):
    title: Optional[str] = Field(default=None, max_length=255)
    description: str = Field(min_length=10, max_length=5000)
    location: str = Field(min_length=3, max_length=255)
    category_id: int
    subcategory_id: int
    is_anonymous: bool = False
    full_name: Optional[str] = Field(default=None, max_length=100)
    phone_number: Optional[str] = None
    email: Optional[EmailStr] = None

    @field_validator("title", "full_name", "phone_number", "email", mode="before")
    @classmethod
    def _blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @model_validator(mode="after")
    def _contact_required(self, info: ValidationInfo):
        # a signed-in user is identified by the token, everyone else by name + phone
        authenticated = bool((info.context or {}).get("authenticated"))
        if self.is_anonymous or authenticated:
            return self
        if not self.full_name or len(self.full_name.strip()) < 3:
            raise ValueError("Full name is required and must be at least 3 characters")
        if not self.phone_number:
            raise ValueError("Phone number is required")
        return self

    @field_validator("phone_number")
    @classmethod
    def _phone_format(cls, v):
        if v is not None and not re.fullmatch(PHONE_PATTERN, v):
            raise ValueError("Please provide a valid phone number")
        return v


class StatusUpdateIn(BaseModel):
    # kept as plain strings so unknown values reach the lifecycle checks
    status: str
    comment: Optional[str] = Field(default=None, max_length=1000)
    rejection_reason: Optional[str] = Field(default=None, max_length=1000)


class AssignIn(BaseModel):
    assigned_to: Optional[int] = None


class PriorityIn(BaseModel):
    priority: str


class CommentIn(BaseModel):
    content: str = Field(min_length=1, max_length=1000)
    is_internal: bool = False

    @field_validator("content")
    @classmethod
    def _not_blank(cls, v: str):
        if not v.strip():
            raise ValueError("Comment content must not be empty")
        return v.strip()


class TrackingIdIn(BaseModel):
    tracking_id: str = ""


class FailedAttachment(BaseModel):
    file_name: str
    error: str


class AttachmentOut(BaseModel):
    id: int
    file_name: str
    file_type: str
    file_size: int
    file_url: str


class SubmissionOut(BaseModel):
    id: int
    tracking_id: str
    status: Status
    created_at: Optional[str] = None
    attachments: list[AttachmentOut] = []
    failed_attachments: list[FailedAttachment] = []

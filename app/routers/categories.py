# File: app/routers/categories.py

from datetime import datetime, timezone
from fastapi import APIRouter, Depends
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.errors import CategoryNotFound, DuplicateCategory, DuplicateSubcategory, SubcategoryNotFound
from app.core.security import require_role
from app.db.session import get_db
from app.models.category import Category, Subcategory
from app.schemas.category import CategoryIn, CategoryPatch, SubcategoryIn, SubcategoryPatch

router = APIRouter(prefix="/categories", tags=["categories"])
admin_only = [Depends(require_role("admin"))]


def _category_out(c: Category) -> dict:
    return {
        "id": c.id,
        "name": c.name,
        "description": c.description,
        "is_active": c.is_active,
    }


def _subcategory_out(s: Subcategory) -> dict:
    return {
        "id": s.id,
        "name": s.name,
        "description": s.description,
        "category_id": s.category_id,
        "is_active": s.is_active,
    }


def _name_taken(db: Session, model, name: str, exclude_id: int | None = None, **scope) -> bool:
    q = db.query(model).filter(func.lower(model.name) == name.strip().lower())
    for col, value in scope.items():
        q = q.filter(getattr(model, col) == value)
    if exclude_id is not None:
        q = q.filter(model.id != exclude_id)
    return db.query(q.exists()).scalar()


@router.get("")
def list_categories(db: Session = Depends(get_db)):
    rows = db.query(Category).filter(Category.is_active.is_(True)).order_by(Category.name).all()
    return [_category_out(c) for c in rows]


@router.get("/with-subcategories")
def list_with_subcategories(db: Session = Depends(get_db)):
    rows = db.query(Category).filter(Category.is_active.is_(True)).order_by(Category.name).all()
    return [
        {**_category_out(c), "subcategories": [_subcategory_out(s) for s in c.subcategories if s.is_active]}
        for c in rows
    ]


@router.get("/{category_id}/subcategories")
def list_subcategories(category_id: int, db: Session = Depends(get_db)):
    if not db.get(Category, category_id):
        raise CategoryNotFound()
    rows = (
        db.query(Subcategory)
        .filter(Subcategory.category_id == category_id, Subcategory.is_active.is_(True))
        .order_by(Subcategory.name)
        .all()
    )
    return [_subcategory_out(s) for s in rows]


@router.post("", status_code=201, dependencies=admin_only)
def create_category(body: CategoryIn, db: Session = Depends(get_db)):
    if _name_taken(db, Category, body.name):
        raise DuplicateCategory()
    c = Category(name=body.name.strip(), description=body.description, is_active=body.is_active)
    db.add(c)
    db.commit()
    db.refresh(c)
    return _category_out(c)


@router.post("/subcategories", status_code=201, dependencies=admin_only)
def create_subcategory(body: SubcategoryIn, db: Session = Depends(get_db)):
    if not db.get(Category, body.category_id):
        raise CategoryNotFound()
    if _name_taken(db, Subcategory, body.name, category_id=body.category_id):
        raise DuplicateSubcategory()
    s = Subcategory(
        name=body.name.strip(),
        description=body.description,
        category_id=body.category_id,
        is_active=body.is_active,
    )
    db.add(s)
    db.commit()
    db.refresh(s)
    return _subcategory_out(s)


@router.patch("/subcategories/{subcategory_id}", dependencies=admin_only)
def update_subcategory(subcategory_id: int, body: SubcategoryPatch, db: Session = Depends(get_db)):
    s = db.get(Subcategory, subcategory_id)
    if not s:
        raise SubcategoryNotFound()
    category_id = body.category_id if body.category_id is not None else s.category_id
    if body.category_id is not None and not db.get(Category, body.category_id):
        raise CategoryNotFound()
    name = body.name if body.name is not None else s.name
    if (body.name is not None or body.category_id is not None) and _name_taken(
        db, Subcategory, name, exclude_id=s.id, category_id=category_id
    ):
        raise DuplicateSubcategory()

    s.name = name.strip()
    s.category_id = category_id
    if body.description is not None:
        s.description = body.description
    if body.is_active is not None:
        s.is_active = body.is_active
    s.updated_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(s)
    return _subcategory_out(s)


@router.patch("/{category_id}", dependencies=admin_only)
def update_category(category_id: int, body: CategoryPatch, db: Session = Depends(get_db)):
    c = db.get(Category, category_id)
    if not c:
        raise CategoryNotFound()
    if body.name is not None:
        if _name_taken(db, Category, body.name, exclude_id=c.id):
            raise DuplicateCategory()
        c.name = body.name.strip()
    if body.description is not None:
        c.description = body.description
    if body.is_active is not None:
        c.is_active = body.is_active
    c.updated_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(c)
    return _category_out(c)

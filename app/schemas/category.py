# File: app/schemas/category.py
from pydantic import BaseModel, Field
from typing import Optional


class CategoryIn(BaseModel):
    name: str = Field(min_length=2, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    is_active: bool = True


class CategoryPatch(BaseModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    is_active: Optional[bool] = None


class SubcategoryIn(CategoryIn):
    category_id: int


class SubcategoryPatch(CategoryPatch):
    category_id: Optional[int] = None

# File: app/schemas/auth.py

from typing import Literal
from pydantic import BaseModel, EmailStr, Field

PHONE_PATTERN = r"^\+?[0-9]{10,15}$"

class Actor(BaseModel):
    """Identity of the caller, handed to services explicitly."""
    id: int
    role: Literal["citizen", "admin"]
    is_verified: bool = False

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

class RegisterIn(BaseModel):
    first_name: str = Field(min_length=2, max_length=50)
    last_name: str = Field(min_length=2, max_length=50)
    email: EmailStr
    password: str = Field(min_length=8, max_length=512)
    phone_number: str | None = Field(default=None, pattern=PHONE_PATTERN)

class LoginIn(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1, max_length=512)

class TokenOut(BaseModel):
    access_token: str
    token_type: str
    expires_in: int

class EmailOnly(BaseModel):
    email: EmailStr

class ResetIn(BaseModel):
    token: str
    password: str = Field(min_length=8)

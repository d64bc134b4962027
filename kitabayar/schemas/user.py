from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from kitabayar.models.enums import UserRole
from kitabayar.schemas.base import CamelModel, blank_to_none
from kitabayar.schemas.resident import validate_email


class UserBase(CamelModel):
    email: str
    username: Optional[str] = None
    role: UserRole = UserRole.RESIDENT
    is_active: bool = True

    @field_validator("email", "username", mode="before")
    @classmethod
    def strip_blank(cls, v):
        return blank_to_none(v)

    @field_validator("email")
    @classmethod
    def email_format(cls, v):
        if v is None:
            raise ValueError("email is required")
        return validate_email(v.lower())


class UserCreate(UserBase):
    password: str = Field(min_length=6)


class UserUpdate(UserBase):
    """Full replacement; the password only changes when one is given."""
    password: Optional[str] = Field(default=None, min_length=6)


class UserOut(CamelModel):
    id: int
    email: str
    username: Optional[str] = None
    role: UserRole
    is_active: bool
    resident_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime

from typing import Optional

from pydantic import Field, field_validator, model_validator

from kitabayar.schemas.base import CamelModel
from kitabayar.schemas.resident import ResidentBase, ResidentOut, validate_email
from kitabayar.schemas.user import UserOut


class LoginRequest(CamelModel):
    """Log in with either email or username."""
    email: Optional[str] = None
    username: Optional[str] = None
    password: str

    @model_validator(mode="after")
    def require_identifier(self):
        if not (self.email or self.username):
            raise ValueError("email or username is required")
        return self


class TokenOut(CamelModel):
    access_token: str
    token_type: str = "bearer"
    user: UserOut


class RegisterRequest(ResidentBase):
    """A new RESIDENT account together with its resident profile."""
    email: str
    username: Optional[str] = None
    password: str = Field(min_length=6)

    @field_validator("email")
    @classmethod
    def lower_email(cls, v):
        return validate_email(v.lower())


class RegisterOut(CamelModel):
    user: UserOut
    resident: ResidentOut

import re
from datetime import datetime, date
from typing import Optional

from pydantic import field_validator, model_validator

from kitabayar.schemas.base import CamelModel, blank_to_none

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_RE = re.compile(r"^\+?\d{10,15}$")
IDENTITY_CARD_RE = re.compile(r"^\d{16}$")  # NIK
POSTAL_CODE_RE = re.compile(r"^\d{5}$")

_OPTIONAL_TEXT = (
    "email",
    "phone_number",
    "address",
    "house_number",
    "identity_card",
    "rt_rw",
    "kelurahan",
    "kecamatan",
    "city",
    "postal_code",
)


def validate_email(v: Optional[str]) -> Optional[str]:
    if v is not None and not EMAIL_RE.match(v):
        raise ValueError("email must look like name@domain.tld")
    return v


def validate_phone(v: Optional[str]) -> Optional[str]:
    """Spaces and hyphens are dropped; the digits are what gets stored."""
    if v is None:
        return v
    v = re.sub(r"[\s-]", "", v)
    if not PHONE_RE.match(v):
        raise ValueError("phoneNumber must be 10-15 digits, optionally starting with +")
    return v


class ResidentBase(CamelModel):
    """
    Every field except fullName is optional. Blank strings are stored as null.
    Format checks mirror the admin form: email, phone (10-15 digits),
    identity card (16 digits) and postal code (5 digits).
    """
    full_name: Optional[str] = None
    email: Optional[str] = None
    phone_number: Optional[str] = None
    address: Optional[str] = None
    house_number: Optional[str] = None
    identity_card: Optional[str] = None
    rt_rw: Optional[str] = None
    kelurahan: Optional[str] = None
    kecamatan: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None
    is_active: bool = True

    @field_validator("full_name", *_OPTIONAL_TEXT, mode="before")
    @classmethod
    def strip_blank(cls, v):
        return blank_to_none(v)

    @field_validator("is_active", mode="before")
    @classmethod
    def default_active(cls, v):
        # null means "use the default"
        return True if v is None else v

    @field_validator("email")
    @classmethod
    def email_format(cls, v):
        return validate_email(v)

    @field_validator("phone_number")
    @classmethod
    def phone_format(cls, v):
        return validate_phone(v)

    @field_validator("identity_card")
    @classmethod
    def identity_card_format(cls, v):
        if v is not None and not IDENTITY_CARD_RE.match(v):
            raise ValueError("identityCard must be exactly 16 digits")
        return v

    @field_validator("postal_code")
    @classmethod
    def postal_code_format(cls, v):
        if v is not None and not POSTAL_CODE_RE.match(v):
            raise ValueError("postalCode must be exactly 5 digits")
        return v

    @model_validator(mode="after")
    def require_full_name(self):
        if not self.full_name:
            raise ValueError("fullName is required")
        return self


class ResidentCreate(ResidentBase):
    user_id: Optional[int] = None


class ResidentUpdate(ResidentBase):
    """PUT body: the full object including id. Replaces every mutable field."""
    id: int


class ResidentDelete(CamelModel):
    id: int


class ResidentOut(CamelModel):
    id: int
    user_id: Optional[int] = None
    full_name: str
    email: str = ""
    phone_number: str = ""
    address: str = ""
    house_number: str = ""
    identity_card: str = ""
    rt_rw: str = ""
    kelurahan: str = ""
    kecamatan: str = ""
    city: str = ""
    postal_code: str = ""
    is_active: bool
    created_at: str  # YYYY-MM-DD

    @field_validator(*_OPTIONAL_TEXT, mode="before")
    @classmethod
    def none_to_empty(cls, v):
        return "" if v is None else v

    @field_validator("created_at", mode="before")
    @classmethod
    def date_only(cls, v):
        if isinstance(v, (datetime, date)):
            return v.strftime("%Y-%m-%d")
        return v


class ResidentSummaryOut(CamelModel):
    """Short form embedded in bills and payments."""
    id: int
    full_name: str
    house_number: Optional[str] = None
    rt_rw: Optional[str] = None


class SuccessOut(CamelModel):
    success: bool = True


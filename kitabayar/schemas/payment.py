from pydantic import Field, field_validator
from datetime import datetime
from typing import Optional

from kitabayar.models.enums import PaymentMethod, PaymentStatus
from kitabayar.schemas.base import CamelModel, Money, blank_to_none


class PaymentBase(CamelModel):
    resident_id: int
    bill_id: int
    amount: Money = Field(gt=0)
    payment_method: PaymentMethod
    status: PaymentStatus = PaymentStatus.PENDING
    installment_number: Optional[int] = Field(default=None, ge=1)
    paid_at: Optional[datetime] = None  # set to now for COMPLETED payments when missing
    receipt_number: Optional[str] = None  # generated for COMPLETED payments when missing
    notes: Optional[str] = None

    @field_validator("receipt_number", "notes", mode="before")
    @classmethod
    def strip_blank(cls, v):
        return blank_to_none(v)


class PaymentCreate(PaymentBase):
    pass


class PaymentUpdate(PaymentBase):
    pass


class PaymentOut(PaymentBase):
    id: int
    bill_type_name: Optional[str] = None
    period: Optional[str] = None
    resident_name: Optional[str] = None
    created_at: datetime
    updated_at: datetime

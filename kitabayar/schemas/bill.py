from pydantic import Field, field_validator, model_validator
from datetime import datetime, date, timezone
from typing import Optional, List

from kitabayar.core.config import settings
from kitabayar.core.reconciliation import due_state, days_left, summarize_bill
from kitabayar.models.enums import BillStatus
from kitabayar.schemas.base import CamelModel, Money, blank_to_none
from kitabayar.schemas.resident import ResidentSummaryOut, ResidentOut
from kitabayar.schemas.payment import PaymentOut


class BillCreate(CamelModel):
    resident_id: int
    bill_type_id: int
    period: str
    amount: Optional[Money] = Field(default=None, ge=0)  # defaults to the bill type's base amount
    due_date: datetime
    status: BillStatus = BillStatus.PENDING
    description: Optional[str] = None
    installments: int = Field(default=1, ge=1)

    @field_validator("period", "description", mode="before")
    @classmethod
    def strip_blank(cls, v):
        return blank_to_none(v)


class BillUpdate(CamelModel):
    """Full replacement of the mutable fields."""
    resident_id: int
    bill_type_id: int
    period: str
    amount: Money = Field(ge=0)
    due_date: datetime
    status: BillStatus = BillStatus.PENDING
    description: Optional[str] = None
    installments: int = Field(default=1, ge=1)

    @field_validator("period", "description", mode="before")
    @classmethod
    def strip_blank(cls, v):
        return blank_to_none(v)


class BillGenerateRequest(CamelModel):
    """Issue one bill per active resident for a bill type and period."""
    bill_type_id: int
    period: str
    due_date: datetime
    amount: Optional[Money] = Field(default=None, ge=0)
    installments: int = Field(default=1, ge=1)
    description: Optional[str] = None
    resident_ids: Optional[List[int]] = None  # limit to these residents

    @field_validator("period", "description", mode="before")
    @classmethod
    def strip_blank(cls, v):
        return blank_to_none(v)


class BillGenerateOut(CamelModel):
    created: int
    skipped: int
    bill_ids: List[int] = []


class ProgressOut(CamelModel):
    installments: int
    completed_payments: int
    paid_amount: Money
    remaining_amount: Money
    completion_percentage: int
    amount_percentage: int
    status: str  # Lunas / Sebagian / Belum Bayar
    last_payment_date: Optional[date] = None


class BillOut(CamelModel):
    id: int
    resident_id: int
    bill_type_id: int
    bill_type_name: Optional[str] = None
    resident: Optional[ResidentSummaryOut] = None
    period: str
    amount: Money
    due_date: datetime
    status: BillStatus
    description: Optional[str] = None
    installments: int
    due_state: str = "upcoming"  # Computed: settled / overdue / due_soon / upcoming
    days_left: Optional[int] = None  # Computed: days until due_date (negative when late)
    created_at: datetime
    updated_at: datetime

    @model_validator(mode="after")
    def set_computed_due(self) -> "BillOut":
        today = datetime.now(timezone.utc).date()
        self.days_left = days_left(self.due_date, today)
        self.due_state = due_state(self.due_date, self.status, today, settings.DUE_SOON_DAYS)
        return self


class BillDetailOut(BillOut):
    payments: List[PaymentOut] = []
    progress: Optional[ProgressOut] = None


class ResidentBillsOut(CamelModel):
    resident: ResidentOut
    bills: List[BillDetailOut] = []


def progress_out(summary) -> ProgressOut:
    return ProgressOut(
        installments=summary.installments,
        completed_payments=summary.completed_payments,
        paid_amount=summary.paid_amount,
        remaining_amount=summary.remaining_amount,
        completion_percentage=summary.completion_percentage,
        amount_percentage=summary.amount_percentage,
        status=summary.status,
        last_payment_date=summary.last_payment_date,
    )


def bill_detail_out(bill) -> BillDetailOut:
    """Bill with its payments and installment progress."""
    out = BillDetailOut.model_validate(bill)
    out.progress = progress_out(summarize_bill(bill))
    return out

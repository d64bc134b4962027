from datetime import datetime, date
from typing import Optional, List

from pydantic import Field, field_validator, model_validator

from kitabayar.schemas.base import CamelModel, Money, blank_to_none


class BillPeriodBase(CamelModel):
    category_id: int
    name: str
    description: Optional[str] = None
    start_date: date
    end_date: date
    installments: int = Field(default=1, ge=1)
    is_active: bool = True

    @field_validator("name", "description", mode="before")
    @classmethod
    def strip_blank(cls, v):
        return blank_to_none(v)

    @model_validator(mode="after")
    def validate_range(self):
        if self.end_date < self.start_date:
            raise ValueError("endDate cannot be before startDate")
        return self


class BillPeriodCreate(BillPeriodBase):
    pass


class BillPeriodUpdate(BillPeriodBase):
    pass


class BillPeriodOut(BillPeriodBase):
    id: int
    created_at: datetime
    updated_at: datetime




# --- Installment progress ---

class PaymentDotOut(CamelModel):
    """One filled circle in the installment row."""
    installment: Optional[int] = None
    paid_on: Optional[date] = None
    amount: Money


class ResidentProgressOut(CamelModel):
    resident_id: int
    full_name: str
    house_number: Optional[str] = None
    rt_rw: Optional[str] = None
    installments: int
    completed_payments: int
    total_amount: Money
    paid_amount: Money
    remaining_amount: Money
    completion_percentage: int
    amount_percentage: int
    status: str  # Lunas / Sebagian / Belum Bayar
    last_payment_date: Optional[date] = None
    payments: List[PaymentDotOut] = []


class HealthOut(CamelModel):
    label: str  # Baik / Sedang / Perlu Perhatian
    color: str


class GroupSummaryOut(CamelModel):
    total: int
    lunas_count: int
    sebagian_count: int
    belum_bayar_count: int
    total_amount: Money
    paid_amount: Money
    completion_percentage: int
    amount_percentage: int
    health: HealthOut


class BillPeriodProgressOut(CamelModel):
    period: BillPeriodOut
    summary: GroupSummaryOut
    residents: List[ResidentProgressOut] = []


class CalendarPaymentOut(CamelModel):
    payment_id: int
    resident_id: int
    resident_name: str
    amount: Money
    installment: Optional[int] = None
    receipt_number: Optional[str] = None


class CalendarDayOut(CamelModel):
    day: date
    total_amount: Money
    payments: List[CalendarPaymentOut] = []


class BillPeriodCalendarOut(CamelModel):
    period: BillPeriodOut
    month: str  # YYYY-MM
    days: List[CalendarDayOut] = []

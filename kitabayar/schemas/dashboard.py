from datetime import datetime
from typing import List, Optional

from kitabayar.models.enums import BillStatus
from kitabayar.schemas.base import CamelModel, Money
from kitabayar.schemas.bill import BillOut
from kitabayar.schemas.bill_period import HealthOut
from kitabayar.schemas.payment import PaymentOut
from kitabayar.schemas.resident import ResidentOut


class RecentPaymentOut(CamelModel):
    id: int
    resident_name: str
    amount: Money
    paid_at: Optional[datetime] = None
    bill_type_name: Optional[str] = None


class UpcomingDueOut(CamelModel):
    bill_id: int
    resident_name: str
    amount: Money
    due_date: datetime
    days_left: int
    bill_type_name: Optional[str] = None
    status: BillStatus


class AdminDashboardOut(CamelModel):
    total_residents: int
    active_residents: int
    total_revenue: Money
    pending_bills: int
    overdue_bills: int
    recent_payments: List[RecentPaymentOut] = []
    upcoming_due_dates: List[UpcomingDueOut] = []


class BillTypeStatsOut(CamelModel):
    bill_type_id: int
    name: str
    category_id: int
    base_amount: Money
    is_active: bool
    total_bills: int
    paid_bills: int
    total_amount: Money
    paid_amount: Money
    completion_percentage: int  # paid bills / total bills
    amount_percentage: int  # paid amount / total amount
    health: HealthOut


class ResidentDashboardOut(CamelModel):
    resident: ResidentOut
    unpaid_bills: List[BillOut] = []
    total_outstanding: Money
    overdue_count: int
    total_paid: Money
    payment_history: List[PaymentOut] = []

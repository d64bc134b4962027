"""
Bill bookkeeping that runs after payments change: bill status sync,
installment numbering and receipt numbers.
"""
from datetime import date, datetime, timezone
from typing import Optional

from kitabayar.core.config import settings
from kitabayar.core.reconciliation import is_fully_paid, days_left
from kitabayar.models.bill import Bill
from kitabayar.models.enums import BillStatus, PaymentStatus
from kitabayar.models.payment import Payment


def today_utc() -> date:
    return datetime.now(timezone.utc).date()


def sync_bill_status(bill: Bill, today: Optional[date] = None) -> BillStatus:
    """
    PAID once fully paid, otherwise PENDING/OVERDUE by due date.
    CANCELLED bills are left alone.
    """
    if bill.status == BillStatus.CANCELLED:
        return bill.status

    if is_fully_paid(bill):
        bill.status = BillStatus.PAID
    else:
        remaining = days_left(bill.due_date, today or today_utc())
        bill.status = BillStatus.OVERDUE if remaining is not None and remaining < 0 else BillStatus.PENDING
    return bill.status


def next_installment_number(bill: Bill, exclude: Optional[Payment] = None) -> int:
    """Next number after the bill's completed installments, not counting `exclude`."""
    completed = [
        p for p in bill.payments
        if p.status == PaymentStatus.COMPLETED and p is not exclude
    ]
    numbers = [p.installment_number for p in completed if p.installment_number]
    return max(numbers, default=len(completed)) + 1


def build_receipt_number(payment: Payment) -> str:
    """KBR-2025-001 style; the payment must already have an id (flush first)."""
    paid_at = payment.paid_at or datetime.now(timezone.utc)
    return f"{settings.RECEIPT_PREFIX}-{paid_at.year}-{payment.id:03d}"


def finalize_payment(payment: Payment) -> None:
    """Stamp paid_at and a receipt number on COMPLETED payments."""
    if payment.status != PaymentStatus.COMPLETED:
        return
    if payment.paid_at is None:
        payment.paid_at = datetime.now(timezone.utc)
    if not payment.receipt_number:
        payment.receipt_number = build_receipt_number(payment)

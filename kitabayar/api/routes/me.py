"""Resident self-service: a resident's own bills and payment history."""
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session, selectinload

from kitabayar.api.deps import get_db
from kitabayar.core.auth import require_resident
from kitabayar.core.billing import today_utc
from kitabayar.core.reconciliation import ZERO, days_left, summarize_bill
from kitabayar.models.bill import Bill
from kitabayar.models.enums import BillStatus, PaymentStatus
from kitabayar.models.payment import Payment
from kitabayar.models.resident import Resident
from kitabayar.models.user import User
from kitabayar.schemas.bill import BillOut, BillDetailOut, bill_detail_out
from kitabayar.schemas.dashboard import ResidentDashboardOut
from kitabayar.schemas.payment import PaymentOut
from kitabayar.schemas.resident import ResidentOut

router = APIRouter(prefix="/api/me", tags=["me"])


def _my_resident(db: Session, user: User) -> Resident:
    resident = db.query(Resident).filter(Resident.user_id == user.id).first()
    if not resident:
        raise HTTPException(status_code=404, detail="No resident profile is linked to this account")
    return resident


def _my_bills(db: Session, resident: Resident) -> List[Bill]:
    return (
        db.query(Bill)
        .options(selectinload(Bill.payments), selectinload(Bill.bill_type))
        .filter(Bill.resident_id == resident.id, Bill.status != BillStatus.CANCELLED)
        .order_by(Bill.due_date.asc(), Bill.id.asc())
        .all()
    )


def _my_payments(db: Session, resident: Resident) -> List[Payment]:
    return (
        db.query(Payment)
        .options(selectinload(Payment.bill).selectinload(Bill.bill_type))
        .filter(Payment.resident_id == resident.id)
        .order_by(Payment.paid_at.desc(), Payment.id.desc())
        .all()
    )


@router.get("/bills", response_model=List[BillDetailOut])
def my_bills(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_resident),
):
    resident = _my_resident(db, current_user)
    return [bill_detail_out(b) for b in _my_bills(db, resident)]


@router.get("/payments", response_model=List[PaymentOut])
def my_payments(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_resident),
):
    resident = _my_resident(db, current_user)
    return _my_payments(db, resident)


@router.get("/dashboard", response_model=ResidentDashboardOut)
def my_dashboard(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_resident),
):
    """
    The resident portal: unpaid bills (nearest due first, with days left),
    the outstanding total and the completed payment history with receipts.
    """
    resident = _my_resident(db, current_user)
    today = today_utc()

    unpaid = [b for b in _my_bills(db, resident) if b.status != BillStatus.PAID]
    outstanding = sum((summarize_bill(b).remaining_amount for b in unpaid), ZERO)
    overdue_count = sum(1 for b in unpaid if days_left(b.due_date, today) < 0)

    history = [p for p in _my_payments(db, resident) if p.status == PaymentStatus.COMPLETED]
    total_paid = sum((p.amount for p in history), ZERO)

    return ResidentDashboardOut(
        resident=ResidentOut.model_validate(resident),
        unpaid_bills=[BillOut.model_validate(b) for b in unpaid],
        total_outstanding=outstanding,
        overdue_count=overdue_count,
        total_paid=total_paid,
        payment_history=[PaymentOut.model_validate(p) for p in history],
    )

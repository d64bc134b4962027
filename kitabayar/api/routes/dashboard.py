"""
Dashboard endpoints.
Aggregated numbers for the admin home page and the bills overview.
"""
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy import case, func
from sqlalchemy.orm import Session, selectinload

from kitabayar.api.deps import get_db
from kitabayar.core.auth import require_staff
from kitabayar.core.billing import today_utc
from kitabayar.core.reconciliation import ZERO, amount_percentage, days_left, health_band, round_percentage
from kitabayar.models.bill import Bill
from kitabayar.models.bill_type import BillType
from kitabayar.models.enums import BillStatus, PaymentStatus
from kitabayar.models.payment import Payment
from kitabayar.models.resident import Resident
from kitabayar.models.user import User
from kitabayar.schemas.bill_period import HealthOut
from kitabayar.schemas.dashboard import (
    AdminDashboardOut,
    BillTypeStatsOut,
    RecentPaymentOut,
    UpcomingDueOut,
)

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])

OPEN_STATUSES = (BillStatus.PENDING, BillStatus.OVERDUE)


@router.get("/admin", response_model=AdminDashboardOut)
def admin_dashboard(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
    recent: int = Query(5, ge=1, le=50),
):
    """
    For the top cards and the two lists on the admin home page:
    - Total / active residents
    - Total revenue (completed payments)
    - Pending and overdue bills
    - Most recent payments
    - Nearest unpaid due dates
    """
    today = today_utc()

    total_residents = db.query(func.count(Resident.id)).scalar() or 0
    active_residents = (
        db.query(func.count(Resident.id)).filter(Resident.is_active == True).scalar() or 0  # noqa: E712
    )

    total_revenue = (
        db.query(func.coalesce(func.sum(Payment.amount), 0))
        .filter(Payment.status == PaymentStatus.COMPLETED)
        .scalar()
    )

    # OVERDUE is derived from the due date, so count open bills by date instead of stored status
    open_bills = (
        db.query(Bill)
        .options(selectinload(Bill.resident), selectinload(Bill.bill_type))
        .filter(Bill.status.in_(OPEN_STATUSES))
        .order_by(Bill.due_date.asc(), Bill.id.asc())
        .all()
    )
    overdue = [b for b in open_bills if days_left(b.due_date, today) < 0]
    upcoming = [b for b in open_bills if days_left(b.due_date, today) >= 0][:recent]

    recent_payments = (
        db.query(Payment)
        .options(selectinload(Payment.resident), selectinload(Payment.bill).selectinload(Bill.bill_type))
        .filter(Payment.status == PaymentStatus.COMPLETED)
        .order_by(Payment.paid_at.desc(), Payment.id.desc())
        .limit(recent)
        .all()
    )

    return AdminDashboardOut(
        total_residents=total_residents,
        active_residents=active_residents,
        total_revenue=total_revenue or ZERO,
        pending_bills=len(open_bills) - len(overdue),
        overdue_bills=len(overdue),
        recent_payments=[
            RecentPaymentOut(
                id=p.id,
                resident_name=p.resident_name,
                amount=p.amount,
                paid_at=p.paid_at,
                bill_type_name=p.bill_type_name,
            )
            for p in recent_payments
        ],
        upcoming_due_dates=[
            UpcomingDueOut(
                bill_id=b.id,
                resident_name=b.resident.full_name,
                amount=b.amount,
                due_date=b.due_date,
                days_left=days_left(b.due_date, today),
                bill_type_name=b.bill_type_name,
                status=b.status,
            )
            for b in upcoming
        ],
    )


@router.get("/bill-types", response_model=List[BillTypeStatsOut])
def bill_type_stats(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    """
    Per bill type: total/paid bills and amounts, both percentages and the
    health band (Baik / Sedang / Perlu Perhatian) of the paid-bill share.

    Cancelled bills are left out of every count.
    """
    paid_amounts = (
        db.query(
            Bill.bill_type_id.label("bill_type_id"),
            func.sum(Payment.amount).label("paid_amount"),
        )
        .join(Payment, Payment.bill_id == Bill.id)
        .filter(Payment.status == PaymentStatus.COMPLETED, Bill.status != BillStatus.CANCELLED)
        .group_by(Bill.bill_type_id)
        .subquery()
    )
    bill_counts = (
        db.query(
            Bill.bill_type_id.label("bill_type_id"),
            func.count(Bill.id).label("total_bills"),
            func.sum(case((Bill.status == BillStatus.PAID, 1), else_=0)).label("paid_bills"),
            func.sum(Bill.amount).label("total_amount"),
        )
        .filter(Bill.status != BillStatus.CANCELLED)
        .group_by(Bill.bill_type_id)
        .subquery()
    )

    rows = (
        db.query(
            BillType,
            func.coalesce(bill_counts.c.total_bills, 0),
            func.coalesce(bill_counts.c.paid_bills, 0),
            func.coalesce(bill_counts.c.total_amount, 0),
            func.coalesce(paid_amounts.c.paid_amount, 0),
        )
        .outerjoin(bill_counts, bill_counts.c.bill_type_id == BillType.id)
        .outerjoin(paid_amounts, paid_amounts.c.bill_type_id == BillType.id)
        .order_by(BillType.category_id, BillType.name)
        .all()
    )

    result: List[BillTypeStatsOut] = []
    for bill_type, total_bills, paid_bills, total_amount, paid_amount in rows:
        pct = round_percentage(paid_bills or 0, total_bills or 0)
        band = health_band(pct)
        result.append(
            BillTypeStatsOut(
                bill_type_id=bill_type.id,
                name=bill_type.name,
                category_id=bill_type.category_id,
                base_amount=bill_type.base_amount,
                is_active=bill_type.is_active,
                total_bills=int(total_bills or 0),
                paid_bills=int(paid_bills or 0),
                total_amount=total_amount or ZERO,
                paid_amount=paid_amount or ZERO,
                completion_percentage=pct,
                amount_percentage=amount_percentage(paid_amount or 0, total_amount or 0),
                health=HealthOut(label=band.label, color=band.color),
            )
        )
    return result

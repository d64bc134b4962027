from collections import OrderedDict
from datetime import date, datetime
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session, selectinload

from kitabayar.api.deps import get_db, flush_or_conflict
from kitabayar.core.audit import log_audit
from kitabayar.core.auth import require_staff
from kitabayar.core.reconciliation import (
    LUNAS,
    SEBAGIAN,
    BELUM_BAYAR,
    ZERO,
    merge_progress,
    summarize_bill,
    summarize_group,
)
from kitabayar.models.bill import Bill
from kitabayar.models.bill_category import BillCategory
from kitabayar.models.bill_period import BillPeriod
from kitabayar.models.bill_type import BillType
from kitabayar.models.enums import PaymentStatus
from kitabayar.models.payment import Payment
from kitabayar.models.user import User
from kitabayar.schemas.bill_period import (
    BillPeriodCreate,
    BillPeriodUpdate,
    BillPeriodOut,
    BillPeriodProgressOut,
    BillPeriodCalendarOut,
    CalendarDayOut,
    CalendarPaymentOut,
    GroupSummaryOut,
    HealthOut,
    PaymentDotOut,
    ResidentProgressOut,
)

router = APIRouter(prefix="/api/bill-periods", tags=["bill-periods"])

# ?status= filter values used by the period page
STATUS_FILTERS = {
    "LUNAS": LUNAS,
    "SEBAGIAN": SEBAGIAN,
    "BELUM_BAYAR": BELUM_BAYAR,
}


def _get_period_or_404(db: Session, period_id: int) -> BillPeriod:
    period = db.query(BillPeriod).filter(BillPeriod.id == period_id).first()
    if not period:
        raise HTTPException(status_code=404, detail="Bill period not found")
    return period


def _require_category(db: Session, category_id: int) -> None:
    if not db.query(BillCategory).filter(BillCategory.id == category_id).first():
        raise HTTPException(status_code=400, detail="categoryId does not match an existing bill category")


def _period_bills(db: Session, period: BillPeriod) -> List[Bill]:
    """Bills of the period: type in the period's category and bill.period == period name."""
    return (
        db.query(Bill)
        .join(BillType, Bill.bill_type_id == BillType.id)
        .options(selectinload(Bill.payments), selectinload(Bill.resident))
        .filter(BillType.category_id == period.category_id, Bill.period == period.name)
        .order_by(Bill.resident_id, Bill.id)
        .all()
    )


@router.get("", response_model=List[BillPeriodOut])
def list_bill_periods(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
    category_id: Optional[int] = Query(None, alias="categoryId"),
    is_active: Optional[bool] = Query(None, alias="isActive"),
):
    q = db.query(BillPeriod)

    if category_id is not None:
        q = q.filter(BillPeriod.category_id == category_id)
    if is_active is not None:
        q = q.filter(BillPeriod.is_active == is_active)

    return q.order_by(BillPeriod.start_date.desc(), BillPeriod.id.desc()).all()


@router.get("/{period_id}", response_model=BillPeriodOut)
def get_bill_period(
    period_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    return _get_period_or_404(db, period_id)


@router.post("", response_model=BillPeriodOut, status_code=201)
def create_bill_period(
    payload: BillPeriodCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    _require_category(db, payload.category_id)

    period = BillPeriod(**payload.model_dump())
    db.add(period)
    flush_or_conflict(db, f"Bill period '{payload.name}' already exists in this category")
    log_audit(
        db,
        actor=current_user,
        action="created",
        entity_type="bill_period",
        entity_id=str(period.id),
        description=f"Bill period created: {period.name} ({period.start_date} - {period.end_date})",
    )
    db.commit()
    db.refresh(period)
    return period


@router.put("/{period_id}", response_model=BillPeriodOut)
def update_bill_period(
    period_id: int,
    payload: BillPeriodUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    period = _get_period_or_404(db, period_id)
    _require_category(db, payload.category_id)

    for k, v in payload.model_dump().items():
        setattr(period, k, v)

    flush_or_conflict(db, f"Bill period '{payload.name}' already exists in this category")
    log_audit(
        db,
        actor=current_user,
        action="updated",
        entity_type="bill_period",
        entity_id=str(period.id),
        description=f"Bill period updated: {period.name}",
    )
    db.commit()
    db.refresh(period)
    return period


@router.delete("/{period_id}", status_code=204)
def delete_bill_period(
    period_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    """Bills issued for the period keep their period string."""
    period = _get_period_or_404(db, period_id)

    name = period.name
    db.delete(period)
    log_audit(
        db,
        actor=current_user,
        action="deleted",
        entity_type="bill_period",
        entity_id=str(period_id),
        description=f"Bill period deleted: {name}",
    )
    db.commit()
    return None


@router.get("/{period_id}/progress", response_model=BillPeriodProgressOut)
def bill_period_progress(
    period_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
    status: Optional[str] = Query(None, description="LUNAS|SEBAGIAN|BELUM_BAYAR"),
    search: Optional[str] = Query(None, description="search by resident name"),
):
    """
    Per-resident installment progress for the period.

    A resident with several bills in the period (e.g. Iuran Pokok + Keamanan)
    gets one line adding up their installments and amounts. The summary always
    covers every resident; status/search only narrow the returned list.
    """
    period = _get_period_or_404(db, period_id)

    if status is not None and status.upper() not in STATUS_FILTERS:
        raise HTTPException(status_code=400, detail="status must be one of LUNAS, SEBAGIAN, BELUM_BAYAR")

    by_resident: Dict[int, list] = OrderedDict()
    residents = {}
    for bill in _period_bills(db, period):
        by_resident.setdefault(bill.resident_id, []).append(summarize_bill(bill))
        residents[bill.resident_id] = bill.resident

    lines = []
    for resident_id, summaries in by_resident.items():
        lines.append((residents[resident_id], merge_progress(summaries)))

    group = summarize_group([s for _, s in lines])

    if status is not None:
        wanted = STATUS_FILTERS[status.upper()]
        lines = [(r, s) for r, s in lines if s.status == wanted]
    if search:
        needle = search.strip().lower()
        lines = [(r, s) for r, s in lines if needle in r.full_name.lower()]

    return BillPeriodProgressOut(
        period=BillPeriodOut.model_validate(period),
        summary=GroupSummaryOut(
            total=group.total,
            lunas_count=group.lunas_count,
            sebagian_count=group.sebagian_count,
            belum_bayar_count=group.belum_bayar_count,
            total_amount=group.total_amount,
            paid_amount=group.paid_amount,
            completion_percentage=group.completion_percentage,
            amount_percentage=group.amount_percentage,
            health=HealthOut(label=group.health.label, color=group.health.color),
        ),
        residents=[
            ResidentProgressOut(
                resident_id=r.id,
                full_name=r.full_name,
                house_number=r.house_number,
                rt_rw=r.rt_rw,
                installments=s.installments,
                completed_payments=s.completed_payments,
                total_amount=s.total_amount,
                paid_amount=s.paid_amount,
                remaining_amount=s.remaining_amount,
                completion_percentage=s.completion_percentage,
                amount_percentage=s.amount_percentage,
                status=s.status,
                last_payment_date=s.last_payment_date,
                payments=[
                    PaymentDotOut(installment=e.installment, paid_on=e.paid_on, amount=e.amount)
                    for e in s.payments
                ],
            )
            for r, s in lines
        ],
    )


def _parse_month(month: Optional[str], fallback: date) -> date:
    if not month:
        return fallback.replace(day=1)
    try:
        return datetime.strptime(month, "%Y-%m").date()
    except ValueError:
        raise HTTPException(status_code=400, detail="month must be formatted as YYYY-MM")


@router.get("/{period_id}/calendar", response_model=BillPeriodCalendarOut)
def bill_period_calendar(
    period_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
    month: Optional[str] = Query(None, description="YYYY-MM, defaults to the period's first month"),
):
    """Completed payments of the period in one month, grouped by day."""
    period = _get_period_or_404(db, period_id)
    first_day = _parse_month(month, period.start_date)

    bill_ids = [b.id for b in _period_bills(db, period)]
    payments = []
    if bill_ids:
        payments = (
            db.query(Payment)
            .options(selectinload(Payment.resident))
            .filter(
                Payment.bill_id.in_(bill_ids),
                Payment.status == PaymentStatus.COMPLETED,
                Payment.paid_at.isnot(None),
            )
            .order_by(Payment.paid_at, Payment.id)
            .all()
        )

    days: Dict[date, CalendarDayOut] = OrderedDict()
    for p in payments:
        paid_on = p.paid_at.date()
        if (paid_on.year, paid_on.month) != (first_day.year, first_day.month):
            continue
        day = days.get(paid_on)
        if day is None:
            day = days[paid_on] = CalendarDayOut(day=paid_on, total_amount=ZERO, payments=[])
        day.total_amount += p.amount
        day.payments.append(
            CalendarPaymentOut(
                payment_id=p.id,
                resident_id=p.resident_id,
                resident_name=p.resident.full_name,
                amount=p.amount,
                installment=p.installment_number,
                receipt_number=p.receipt_number,
            )
        )

    return BillPeriodCalendarOut(
        period=BillPeriodOut.model_validate(period),
        month=first_day.strftime("%Y-%m"),
        days=list(days.values()),
    )

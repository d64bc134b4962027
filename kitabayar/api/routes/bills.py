import logging
from datetime import datetime, time, timezone
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session, selectinload

from kitabayar.api.deps import get_db, flush_or_conflict
from kitabayar.core.audit import log_audit
from kitabayar.core.auth import require_staff
from kitabayar.core.billing import sync_bill_status, today_utc
from kitabayar.core.config import settings
from kitabayar.core.reconciliation import (
    DUE_OVERDUE,
    DUE_SETTLED,
    DUE_SOON,
    DUE_UPCOMING,
    due_cutoff,
)
from kitabayar.models.bill import Bill
from kitabayar.models.bill_period import BillPeriod
from kitabayar.models.bill_type import BillType
from kitabayar.models.enums import BillStatus
from kitabayar.models.resident import Resident
from kitabayar.models.user import User
from kitabayar.schemas.bill import (
    BillCreate,
    BillUpdate,
    BillOut,
    BillDetailOut,
    BillGenerateRequest,
    BillGenerateOut,
    bill_detail_out,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/bills", tags=["bills"])

DUPLICATE_BILL = "Resident already has a bill for this bill type and period"
OPEN_STATUSES = (BillStatus.PENDING, BillStatus.OVERDUE)


def _start_of(day) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def _require_bill_type(db: Session, bill_type_id: int) -> BillType:
    bill_type = db.query(BillType).filter(BillType.id == bill_type_id).first()
    if not bill_type:
        raise HTTPException(status_code=400, detail="billTypeId does not match an existing bill type")
    return bill_type


def _require_resident(db: Session, resident_id: int) -> Resident:
    resident = db.query(Resident).filter(Resident.id == resident_id).first()
    if not resident:
        raise HTTPException(status_code=400, detail="residentId does not match an existing resident")
    return resident


def default_installments(db: Session, bill_type: BillType, period: str) -> int:
    """Installments configured on the matching bill period, else 1."""
    bill_period = (
        db.query(BillPeriod)
        .filter(BillPeriod.category_id == bill_type.category_id, BillPeriod.name == period)
        .first()
    )
    return bill_period.installments if bill_period else 1


def apply_due_state_filter(q, due_state: str):
    today = today_utc()
    start_today = _start_of(today)
    after_window = _start_of(due_cutoff(today, settings.DUE_SOON_DAYS + 1))

    if due_state == DUE_SETTLED:
        return q.filter(Bill.status.in_((BillStatus.PAID, BillStatus.CANCELLED)))

    q = q.filter(Bill.status.in_(OPEN_STATUSES))
    if due_state == DUE_OVERDUE:
        return q.filter(Bill.due_date < start_today)
    if due_state == DUE_SOON:
        return q.filter(Bill.due_date >= start_today, Bill.due_date < after_window)
    return q.filter(Bill.due_date >= after_window)


@router.get("", response_model=List[BillOut])
def list_bills(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
    resident_id: Optional[int] = Query(None, alias="residentId"),
    bill_type_id: Optional[int] = Query(None, alias="billTypeId"),
    status: Optional[BillStatus] = Query(None),
    period: Optional[str] = Query(None),
    due_state: Optional[str] = Query(None, alias="dueState", description="settled|overdue|due_soon|upcoming"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
):
    q = db.query(Bill).options(selectinload(Bill.bill_type), selectinload(Bill.resident))

    if resident_id is not None:
        q = q.filter(Bill.resident_id == resident_id)
    if bill_type_id is not None:
        q = q.filter(Bill.bill_type_id == bill_type_id)
    if status is not None:
        q = q.filter(Bill.status == status)
    if period:
        q = q.filter(Bill.period == period)
    if due_state:
        if due_state not in (DUE_SETTLED, DUE_OVERDUE, DUE_SOON, DUE_UPCOMING):
            raise HTTPException(status_code=400, detail="dueState must be one of settled, overdue, due_soon, upcoming")
        q = apply_due_state_filter(q, due_state)

    return q.order_by(Bill.due_date.asc(), Bill.id.asc()).offset(offset).limit(limit).all()


@router.get("/{bill_id}", response_model=BillDetailOut)
def get_bill(
    bill_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    """Bill with its payments and installment progress."""
    bill = (
        db.query(Bill)
        .options(selectinload(Bill.payments), selectinload(Bill.bill_type), selectinload(Bill.resident))
        .filter(Bill.id == bill_id)
        .first()
    )
    if not bill:
        raise HTTPException(status_code=404, detail="Bill not found")
    return bill_detail_out(bill)


@router.post("", response_model=BillOut, status_code=201)
def create_bill(
    payload: BillCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    """
    Issue one bill. amount defaults to the bill type's base amount and
    installments to the matching bill period's installments.
    """
    _require_resident(db, payload.resident_id)
    bill_type = _require_bill_type(db, payload.bill_type_id)

    data = payload.model_dump()
    if data["amount"] is None:
        data["amount"] = bill_type.base_amount
    if "installments" not in payload.model_fields_set:
        data["installments"] = default_installments(db, bill_type, payload.period)

    bill = Bill(**data)
    db.add(bill)
    flush_or_conflict(db, DUPLICATE_BILL)
    log_audit(
        db,
        actor=current_user,
        action="created",
        entity_type="bill",
        entity_id=str(bill.id),
        status=bill.status.value,
        due_at=bill.due_date,
        resident_id=bill.resident_id,
        description=f"Bill created: {bill_type.name} {bill.period}",
    )
    db.commit()
    db.refresh(bill)
    return bill


@router.post("/generate", response_model=BillGenerateOut, status_code=201)
def generate_bills(
    payload: BillGenerateRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    """
    Issue one bill per active resident for a bill type and period.
    Residents that already have that bill are skipped, not duplicated.
    """
    bill_type = _require_bill_type(db, payload.bill_type_id)
    if not bill_type.is_active:
        raise HTTPException(status_code=400, detail="Cannot issue bills for an inactive bill type")

    q = db.query(Resident).filter(Resident.is_active == True)  # noqa: E712
    if payload.resident_ids:
        q = q.filter(Resident.id.in_(payload.resident_ids))
    residents = q.order_by(Resident.id).all()

    already_billed = {
        rid
        for (rid,) in db.query(Bill.resident_id).filter(
            Bill.bill_type_id == bill_type.id,
            Bill.period == payload.period,
        )
    }

    amount: Decimal = payload.amount if payload.amount is not None else bill_type.base_amount
    installments = (
        payload.installments
        if "installments" in payload.model_fields_set
        else default_installments(db, bill_type, payload.period)
    )

    created: List[Bill] = []
    for resident in residents:
        if resident.id in already_billed:
            continue
        bill = Bill(
            resident_id=resident.id,
            bill_type_id=bill_type.id,
            period=payload.period,
            amount=amount,
            due_date=payload.due_date,
            description=payload.description,
            installments=installments,
        )
        db.add(bill)
        created.append(bill)

    flush_or_conflict(db, DUPLICATE_BILL)
    skipped = len(residents) - len(created)
    logger.info(
        "Generated %s bills for %s %s (%s skipped)", len(created), bill_type.name, payload.period, skipped
    )
    log_audit(
        db,
        actor=current_user,
        action="created",
        entity_type="bill",
        entity_id=",".join(str(b.id) for b in created) or "-",
        source="generate",
        due_at=payload.due_date,
        description=f"Generated {len(created)} bills: {bill_type.name} {payload.period}",
    )
    db.commit()
    return {"created": len(created), "skipped": skipped, "bill_ids": [b.id for b in created]}


@router.put("/{bill_id}", response_model=BillOut)
def update_bill(
    bill_id: int,
    payload: BillUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    """
    Replace the bill. Unless it is cancelled, status is re-derived from the
    recorded payments and due date afterwards.
    """
    bill = db.query(Bill).filter(Bill.id == bill_id).first()
    if not bill:
        raise HTTPException(status_code=404, detail="Bill not found")
    _require_resident(db, payload.resident_id)
    bill_type = _require_bill_type(db, payload.bill_type_id)

    for k, v in payload.model_dump().items():
        setattr(bill, k, v)
    sync_bill_status(bill)

    flush_or_conflict(db, DUPLICATE_BILL)
    log_audit(
        db,
        actor=current_user,
        action="updated",
        entity_type="bill",
        entity_id=str(bill.id),
        status=bill.status.value,
        due_at=bill.due_date,
        resident_id=bill.resident_id,
        description=f"Bill updated: {bill_type.name} {bill.period}",
    )
    db.commit()
    db.refresh(bill)
    return bill


@router.delete("/{bill_id}", status_code=204)
def delete_bill(
    bill_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    """Delete a bill and its payments."""
    bill = db.query(Bill).filter(Bill.id == bill_id).first()
    if not bill:
        raise HTTPException(status_code=404, detail="Bill not found")

    status_value = bill.status.value
    due_date = bill.due_date
    resident_id = bill.resident_id
    description = f"Bill deleted: {bill.bill_type_name} {bill.period}"
    db.delete(bill)
    log_audit(
        db,
        actor=current_user,
        action="deleted",
        entity_type="bill",
        entity_id=str(bill_id),
        status=status_value,
        due_at=due_date,
        resident_id=resident_id,
        description=description,
    )
    db.commit()
    return None

import logging
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session, selectinload

from kitabayar.api.deps import get_db, flush_or_conflict
from kitabayar.core.audit import log_audit
from kitabayar.core.auth import require_staff
from kitabayar.core.billing import finalize_payment, next_installment_number, sync_bill_status
from kitabayar.models.bill import Bill
from kitabayar.models.enums import BillStatus, PaymentMethod, PaymentStatus
from kitabayar.models.payment import Payment
from kitabayar.models.user import User
from kitabayar.schemas.payment import PaymentCreate, PaymentUpdate, PaymentOut

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/payments", tags=["payments"])

DUPLICATE_RECEIPT = "Receipt number is already used by another payment"


def _parse_dt(value: str, field: str) -> datetime:
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise HTTPException(status_code=400, detail=f"{field} must be an ISO date or date-time")
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _load_bill_for(db: Session, bill_id: int, resident_id: int, allow_cancelled: bool = False) -> Bill:
    """The bill must exist and belong to the paying resident. Cancelled bills take no new money."""
    bill = db.query(Bill).filter(Bill.id == bill_id).first()
    if not bill:
        raise HTTPException(status_code=400, detail="billId does not match an existing bill")
    if bill.resident_id != resident_id:
        raise HTTPException(status_code=400, detail="Payment resident does not match the bill's resident")
    if bill.status == BillStatus.CANCELLED and not allow_cancelled:
        raise HTTPException(status_code=400, detail="Cannot record a payment for a cancelled bill")
    return bill


@router.get("", response_model=List[PaymentOut])
def list_payments(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
    resident_id: Optional[int] = Query(None, alias="residentId"),
    bill_id: Optional[int] = Query(None, alias="billId"),
    status: Optional[PaymentStatus] = Query(None),
    payment_method: Optional[PaymentMethod] = Query(None, alias="paymentMethod"),
    start_date: Optional[str] = Query(None, alias="startDate", description="ISO date-time, on paidAt"),
    end_date: Optional[str] = Query(None, alias="endDate", description="ISO date-time, on paidAt"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
):
    q = db.query(Payment).options(
        selectinload(Payment.resident),
        selectinload(Payment.bill).selectinload(Bill.bill_type),
    )

    if resident_id is not None:
        q = q.filter(Payment.resident_id == resident_id)
    if bill_id is not None:
        q = q.filter(Payment.bill_id == bill_id)
    if status is not None:
        q = q.filter(Payment.status == status)
    if payment_method is not None:
        q = q.filter(Payment.payment_method == payment_method)
    if start_date:
        q = q.filter(Payment.paid_at >= _parse_dt(start_date, "startDate"))
    if end_date:
        q = q.filter(Payment.paid_at <= _parse_dt(end_date, "endDate"))

    return q.order_by(Payment.created_at.desc(), Payment.id.desc()).offset(offset).limit(limit).all()


@router.get("/{payment_id}", response_model=PaymentOut)
def get_payment(
    payment_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    payment = db.query(Payment).filter(Payment.id == payment_id).first()
    if not payment:
        raise HTTPException(status_code=404, detail="Payment not found")
    return payment


@router.post("", response_model=PaymentOut, status_code=201)
def create_payment(
    payload: PaymentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    """
    Record one payment (installment) against a bill.

    COMPLETED payments get paidAt (now) and a receipt number when missing,
    and may move the bill to PAID once every installment is in.
    """
    bill = _load_bill_for(db, payload.bill_id, payload.resident_id)

    data = payload.model_dump()
    if data["installment_number"] is None and payload.status == PaymentStatus.COMPLETED:
        data["installment_number"] = next_installment_number(bill)

    payment = Payment(**data)
    bill.payments.append(payment)
    flush_or_conflict(db, DUPLICATE_RECEIPT)  # receipt numbers need the id
    finalize_payment(payment)
    sync_bill_status(bill)

    flush_or_conflict(db, DUPLICATE_RECEIPT)
    logger.info("Payment %s recorded for bill %s (bill now %s)", payment.id, bill.id, bill.status.value)
    log_audit(
        db,
        actor=current_user,
        action="created",
        entity_type="payment",
        entity_id=str(payment.id),
        status=payment.status.value,
        resident_id=payment.resident_id,
        description=f"Payment {payment.receipt_number or payment.id} of {payment.amount} for bill {payment.bill_id}",
    )
    db.commit()
    db.refresh(payment)
    return payment


@router.put("/{payment_id}", response_model=PaymentOut)
def update_payment(
    payment_id: int,
    payload: PaymentUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    """
    Replace the payment (e.g. PENDING -> COMPLETED, or REFUNDED) and
    reconcile the affected bill(s).
    """
    payment = db.query(Payment).filter(Payment.id == payment_id).first()
    if not payment:
        raise HTTPException(status_code=404, detail="Payment not found")

    old_bill = payment.bill
    # refunds and failures may still be recorded against a bill cancelled after payment
    same_bill_no_new_money = payload.bill_id == old_bill.id and payload.status != PaymentStatus.COMPLETED
    bill = _load_bill_for(db, payload.bill_id, payload.resident_id, allow_cancelled=same_bill_no_new_money)

    for k, v in payload.model_dump().items():
        setattr(payment, k, v)
    if old_bill.id != bill.id:
        old_bill.payments.remove(payment)
        bill.payments.append(payment)
    if payment.status == PaymentStatus.COMPLETED and payment.installment_number is None:
        payment.installment_number = next_installment_number(bill, exclude=payment)

    finalize_payment(payment)
    for b in {old_bill.id: old_bill, bill.id: bill}.values():
        sync_bill_status(b)

    flush_or_conflict(db, DUPLICATE_RECEIPT)
    log_audit(
        db,
        actor=current_user,
        action="updated",
        entity_type="payment",
        entity_id=str(payment.id),
        status=payment.status.value,
        resident_id=payment.resident_id,
        description=f"Payment updated: {payment.receipt_number or payment.id} ({payment.status.value})",
    )
    db.commit()
    db.refresh(payment)
    return payment


@router.delete("/{payment_id}", status_code=204)
def delete_payment(
    payment_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    """Delete a payment; its bill drops back to PENDING/OVERDUE if no longer fully paid."""
    payment = db.query(Payment).filter(Payment.id == payment_id).first()
    if not payment:
        raise HTTPException(status_code=404, detail="Payment not found")

    bill = payment.bill
    status_value = payment.status.value
    resident_id = payment.resident_id
    receipt = payment.receipt_number
    bill.payments.remove(payment)
    db.delete(payment)
    sync_bill_status(bill)
    log_audit(
        db,
        actor=current_user,
        action="deleted",
        entity_type="payment",
        entity_id=str(payment_id),
        status=status_value,
        resident_id=resident_id,
        description=f"Payment deleted: {receipt or payment_id}",
    )
    db.commit()
    return None

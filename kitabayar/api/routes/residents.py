import logging
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from sqlalchemy.orm import Session, selectinload

from kitabayar.api.deps import get_db, flush_or_conflict
from kitabayar.core.audit import log_audit
from kitabayar.core.auth import require_staff
from kitabayar.models.bill import Bill
from kitabayar.models.resident import Resident
from kitabayar.models.user import User
from kitabayar.schemas.bill import ResidentBillsOut, bill_detail_out
from kitabayar.schemas.resident import (
    ResidentCreate,
    ResidentUpdate,
    ResidentDelete,
    ResidentOut,
    SuccessOut,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/residents", tags=["residents"])

# Replaced wholesale on PUT
MUTABLE_FIELDS = (
    "full_name",
    "email",
    "phone_number",
    "address",
    "house_number",
    "identity_card",
    "rt_rw",
    "kelurahan",
    "kecamatan",
    "city",
    "postal_code",
    "is_active",
)


def apply_resident_filters(q, search: Optional[str], is_active: Optional[bool], rt_rw: Optional[str]):
    if is_active is not None:
        q = q.filter(Resident.is_active == is_active)

    if rt_rw:
        q = q.filter(Resident.rt_rw == rt_rw)

    # basic search: name/address/house number/phone
    if search:
        like = f"%{search.strip()}%"
        q = q.filter(
            Resident.full_name.ilike(like)
            | Resident.address.ilike(like)
            | Resident.house_number.ilike(like)
            | Resident.phone_number.ilike(like)
        )

    return q


@router.get("", response_model=List[ResidentOut])
def list_residents(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
    id: Optional[int] = Query(None, description="Only this resident (still returned as a list)"),
    search: Optional[str] = Query(None, description="search by name/address/house number/phone"),
    is_active: Optional[bool] = Query(None, alias="isActive"),
    rt_rw: Optional[str] = Query(None, alias="rtRw"),
):
    """
    All residents, newest first. An unknown id yields an empty list, not an error.
    """
    q = db.query(Resident)
    if id is not None:
        q = q.filter(Resident.id == id)

    q = apply_resident_filters(q, search, is_active, rt_rw)
    return q.order_by(Resident.created_at.desc(), Resident.id.desc()).all()


@router.post("", response_model=ResidentOut)
def create_resident(
    payload: ResidentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    """
    Only fullName is required; blank optional fields are stored as null.
    """
    if payload.user_id is not None:
        if not db.query(User).filter(User.id == payload.user_id).first():
            raise HTTPException(status_code=400, detail="userId does not match an existing user")

    resident = Resident(**payload.model_dump())
    db.add(resident)
    flush_or_conflict(db, "This user already has a resident profile")
    log_audit(
        db,
        actor=current_user,
        action="created",
        entity_type="resident",
        entity_id=str(resident.id),
        resident_id=resident.id,
        description=f"Resident created: {resident.full_name}",
    )
    db.commit()
    db.refresh(resident)
    return resident


@router.put("", response_model=SuccessOut)
def update_resident(
    payload: ResidentUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    """
    Replace every mutable field of the resident named by payload.id.
    Sending the same payload twice leaves the row unchanged.
    """
    resident = db.query(Resident).filter(Resident.id == payload.id).first()
    if not resident:
        logger.warning("Update of unknown resident %s", payload.id)
        raise HTTPException(status_code=404, detail="Resident not found")

    data = payload.model_dump()
    for k in MUTABLE_FIELDS:
        setattr(resident, k, data[k])

    flush_or_conflict(db, "Resident conflicts with an existing record")
    log_audit(
        db,
        actor=current_user,
        action="updated",
        entity_type="resident",
        entity_id=str(resident.id),
        resident_id=resident.id,
        description=f"Resident updated: {resident.full_name}",
    )
    db.commit()
    return {"success": True}


@router.delete("", response_model=SuccessOut)
def delete_resident(
    payload: ResidentDelete = Body(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    """
    Hard delete of the resident row (its bills and payments go with it).
    The linked user account, if any, is kept.
    """
    resident = db.query(Resident).filter(Resident.id == payload.id).first()
    if not resident:
        logger.warning("Delete of unknown resident %s", payload.id)
        raise HTTPException(status_code=404, detail="Resident not found")

    name = resident.full_name
    db.delete(resident)
    log_audit(
        db,
        actor=current_user,
        action="deleted",
        entity_type="resident",
        entity_id=str(payload.id),
        resident_id=payload.id,
        description=f"Resident deleted: {name}",
    )
    db.commit()
    return {"success": True}


@router.get("/{resident_id}/bills", response_model=ResidentBillsOut)
def list_resident_bills(
    resident_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    """One resident's bills with installment progress, nearest due date first."""
    resident = db.query(Resident).filter(Resident.id == resident_id).first()
    if not resident:
        raise HTTPException(status_code=404, detail="Resident not found")

    bills = (
        db.query(Bill)
        .options(selectinload(Bill.payments), selectinload(Bill.bill_type))
        .filter(Bill.resident_id == resident_id)
        .order_by(Bill.due_date.asc(), Bill.id.asc())
        .all()
    )
    return ResidentBillsOut(
        resident=ResidentOut.model_validate(resident),
        bills=[bill_detail_out(b) for b in bills],
    )

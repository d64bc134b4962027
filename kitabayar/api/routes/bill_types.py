from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import List, Optional

from kitabayar.api.deps import get_db, flush_or_conflict
from kitabayar.core.audit import log_audit
from kitabayar.core.auth import require_admin, require_staff
from kitabayar.models.bill_category import BillCategory
from kitabayar.models.bill_type import BillType
from kitabayar.models.user import User
from kitabayar.schemas.bill_type import BillTypeCreate, BillTypeUpdate, BillTypeOut

router = APIRouter(prefix="/api/bill-types", tags=["bill-types"])


def _require_category(db: Session, category_id: int) -> BillCategory:
    category = db.query(BillCategory).filter(BillCategory.id == category_id).first()
    if not category:
        raise HTTPException(status_code=400, detail="categoryId does not match an existing bill category")
    return category


@router.get("", response_model=List[BillTypeOut])
def list_bill_types(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
    category_id: Optional[int] = Query(None, alias="categoryId"),
    is_active: Optional[bool] = Query(None, alias="isActive"),
):
    q = db.query(BillType)

    if category_id is not None:
        q = q.filter(BillType.category_id == category_id)
    if is_active is not None:
        q = q.filter(BillType.is_active == is_active)

    return q.order_by(BillType.category_id, BillType.name).all()


@router.get("/{bill_type_id}", response_model=BillTypeOut)
def get_bill_type(
    bill_type_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    bill_type = db.query(BillType).filter(BillType.id == bill_type_id).first()
    if not bill_type:
        raise HTTPException(status_code=404, detail="Bill type not found")
    return bill_type


@router.post("", response_model=BillTypeOut, status_code=201)
def create_bill_type(
    payload: BillTypeCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    _require_category(db, payload.category_id)

    bill_type = BillType(**payload.model_dump())
    db.add(bill_type)
    flush_or_conflict(db, f"Bill type '{payload.name}' already exists in this category")
    log_audit(
        db,
        actor=current_user,
        action="created",
        entity_type="bill_type",
        entity_id=str(bill_type.id),
        description=f"Bill type created: {bill_type.name} ({bill_type.base_amount})",
    )
    db.commit()
    db.refresh(bill_type)
    return bill_type


@router.put("/{bill_type_id}", response_model=BillTypeOut)
def update_bill_type(
    bill_type_id: int,
    payload: BillTypeUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    """
    Replace the bill type. Existing bills keep the amount they were issued with.
    """
    bill_type = db.query(BillType).filter(BillType.id == bill_type_id).first()
    if not bill_type:
        raise HTTPException(status_code=404, detail="Bill type not found")
    _require_category(db, payload.category_id)

    for k, v in payload.model_dump().items():
        setattr(bill_type, k, v)

    flush_or_conflict(db, f"Bill type '{payload.name}' already exists in this category")
    log_audit(
        db,
        actor=current_user,
        action="updated",
        entity_type="bill_type",
        entity_id=str(bill_type.id),
        description=f"Bill type updated: {bill_type.name}",
    )
    db.commit()
    db.refresh(bill_type)
    return bill_type


@router.delete("/{bill_type_id}", status_code=204)
def delete_bill_type(
    bill_type_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """Refused with 409 while bills still reference this type."""
    bill_type = db.query(BillType).filter(BillType.id == bill_type_id).first()
    if not bill_type:
        raise HTTPException(status_code=404, detail="Bill type not found")

    name = bill_type.name
    db.delete(bill_type)
    flush_or_conflict(db, "Bill type is still used by bills; cancel or delete them first")
    log_audit(
        db,
        actor=current_user,
        action="deleted",
        entity_type="bill_type",
        entity_id=str(bill_type_id),
        description=f"Bill type deleted: {name}",
    )
    db.commit()
    return None

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session, selectinload
from sqlalchemy import func
from typing import List, Optional

from kitabayar.api.deps import get_db, flush_or_conflict
from kitabayar.core.audit import log_audit
from kitabayar.core.auth import require_admin, require_staff
from kitabayar.models.bill_category import BillCategory
from kitabayar.models.bill_period import BillPeriod
from kitabayar.models.bill_type import BillType
from kitabayar.models.user import User
from kitabayar.schemas.bill_category import (
    BillCategoryCreate,
    BillCategoryUpdate,
    BillCategoryOut,
    BillCategoryDetailOut,
)

router = APIRouter(prefix="/api/bill-categories", tags=["bill-categories"])


@router.get("", response_model=List[BillCategoryOut])
def list_bill_categories(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
    is_active: Optional[bool] = Query(None, alias="isActive"),
):
    """
    Categories with bill_types_count and periods_count.

    NOTE: types and periods are aggregated in separate subqueries so joining
    two one-to-many tables does not inflate the counts.
    """
    types_agg = (
        db.query(
            BillType.category_id.label("category_id"),
            func.count(BillType.id).label("bill_types_count"),
        )
        .group_by(BillType.category_id)
        .subquery()
    )
    periods_agg = (
        db.query(
            BillPeriod.category_id.label("category_id"),
            func.count(BillPeriod.id).label("periods_count"),
        )
        .group_by(BillPeriod.category_id)
        .subquery()
    )

    q = (
        db.query(
            BillCategory,
            func.coalesce(types_agg.c.bill_types_count, 0),
            func.coalesce(periods_agg.c.periods_count, 0),
        )
        .outerjoin(types_agg, types_agg.c.category_id == BillCategory.id)
        .outerjoin(periods_agg, periods_agg.c.category_id == BillCategory.id)
    )
    if is_active is not None:
        q = q.filter(BillCategory.is_active == is_active)

    result: List[BillCategory] = []
    for category, types_count, periods_count in q.order_by(BillCategory.name).all():
        category.bill_types_count = int(types_count or 0)
        category.periods_count = int(periods_count or 0)
        result.append(category)
    return result


@router.get("/{category_id}", response_model=BillCategoryDetailOut)
def get_bill_category(
    category_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    """Category with all of its bill types and periods."""
    category = (
        db.query(BillCategory)
        .options(selectinload(BillCategory.bill_types), selectinload(BillCategory.periods))
        .filter(BillCategory.id == category_id)
        .first()
    )
    if not category:
        raise HTTPException(status_code=404, detail="Bill category not found")

    category.bill_types_count = len(category.bill_types)
    category.periods_count = len(category.periods)
    return category


@router.post("", response_model=BillCategoryOut, status_code=201)
def create_bill_category(
    payload: BillCategoryCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    category = BillCategory(**payload.model_dump())
    db.add(category)
    flush_or_conflict(db, f"Bill category '{payload.name}' already exists")
    log_audit(
        db,
        actor=current_user,
        action="created",
        entity_type="bill_category",
        entity_id=str(category.id),
        description=f"Bill category created: {category.name}",
    )
    db.commit()
    db.refresh(category)
    return category


@router.put("/{category_id}", response_model=BillCategoryOut)
def update_bill_category(
    category_id: int,
    payload: BillCategoryUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    category = db.query(BillCategory).filter(BillCategory.id == category_id).first()
    if not category:
        raise HTTPException(status_code=404, detail="Bill category not found")

    for k, v in payload.model_dump().items():
        setattr(category, k, v)

    flush_or_conflict(db, f"Bill category '{payload.name}' already exists")
    log_audit(
        db,
        actor=current_user,
        action="updated",
        entity_type="bill_category",
        entity_id=str(category.id),
        description=f"Bill category updated: {category.name}",
    )
    db.commit()
    db.refresh(category)
    return category


@router.delete("/{category_id}", status_code=204)
def delete_bill_category(
    category_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """
    Delete a category with its types and periods.
    Refused (409) while any of its types is still billed.
    """
    category = db.query(BillCategory).filter(BillCategory.id == category_id).first()
    if not category:
        raise HTTPException(status_code=404, detail="Bill category not found")

    name = category.name
    db.delete(category)
    flush_or_conflict(db, "Bill category still has bills; cancel or delete them first")
    log_audit(
        db,
        actor=current_user,
        action="deleted",
        entity_type="bill_category",
        entity_id=str(category_id),
        description=f"Bill category deleted: {name}",
    )
    db.commit()
    return None

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import List, Optional

from kitabayar.api.deps import get_db, flush_or_conflict
from kitabayar.core.audit import log_audit
from kitabayar.core.auth import hash_password, require_admin
from kitabayar.models.enums import UserRole
from kitabayar.models.user import User
from kitabayar.schemas.user import UserCreate, UserUpdate, UserOut

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("", response_model=List[UserOut])
def list_users(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
    role: Optional[UserRole] = Query(None),
    is_active: Optional[bool] = Query(None, alias="isActive"),
    search: Optional[str] = Query(None, description="search by email/username"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
):
    q = db.query(User)

    if role is not None:
        q = q.filter(User.role == role)
    if is_active is not None:
        q = q.filter(User.is_active == is_active)
    if search:
        like = f"%{search.strip()}%"
        q = q.filter(User.email.ilike(like) | User.username.ilike(like))

    return q.order_by(User.id.desc()).offset(offset).limit(limit).all()


@router.get("/{user_id}", response_model=UserOut)
def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.post("", response_model=UserOut, status_code=201)
def create_user(
    payload: UserCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    data = payload.model_dump(exclude={"password"})
    user = User(**data, password_hash=hash_password(payload.password))
    db.add(user)
    flush_or_conflict(db, "Email or username is already taken")
    log_audit(
        db,
        actor=current_user,
        action="created",
        entity_type="user",
        entity_id=str(user.id),
        status=user.role.value,
        description=f"User created: {user.email}",
    )
    db.commit()
    db.refresh(user)
    return user


@router.put("/{user_id}", response_model=UserOut)
def update_user(
    user_id: int,
    payload: UserUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """
    Replace the user's fields. The password is only changed when supplied.
    """
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    for k, v in payload.model_dump(exclude={"password"}).items():
        setattr(user, k, v)
    if payload.password:
        user.password_hash = hash_password(payload.password)

    flush_or_conflict(db, "Email or username is already taken")
    log_audit(
        db,
        actor=current_user,
        action="updated",
        entity_type="user",
        entity_id=str(user.id),
        status=user.role.value,
        description=f"User updated: {user.email}",
    )
    db.commit()
    db.refresh(user)
    return user


@router.delete("/{user_id}", status_code=204)
def delete_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """
    Delete a user. Its resident profile (and that resident's bills and payments) go with it.
    """
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    if user.id == current_user.id:
        raise HTTPException(status_code=400, detail="You cannot delete your own account")

    email = user.email
    db.delete(user)
    log_audit(
        db,
        actor=current_user,
        action="deleted",
        entity_type="user",
        entity_id=str(user_id),
        description=f"User deleted: {email}",
    )
    db.commit()
    return None

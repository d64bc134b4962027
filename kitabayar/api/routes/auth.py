import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from kitabayar.api.deps import get_db, flush_or_conflict
from kitabayar.core.audit import log_audit
from kitabayar.core.auth import create_access_token, get_current_user, hash_password, verify_password
from kitabayar.models.enums import UserRole
from kitabayar.models.resident import Resident
from kitabayar.models.user import User
from kitabayar.schemas.auth import LoginRequest, RegisterRequest, RegisterOut, TokenOut
from kitabayar.schemas.user import UserOut

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/login", response_model=TokenOut)
def login(payload: LoginRequest, db: Session = Depends(get_db)):
    """
    Exchange email (or username) and password for a bearer token.
    """
    q = db.query(User)
    if payload.email:
        q = q.filter(User.email == payload.email.strip().lower())
    else:
        q = q.filter(User.username == payload.username.strip())
    user = q.first()

    if not user or not verify_password(payload.password, user.password_hash):
        logger.info("Failed login for %s", payload.email or payload.username)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Account is inactive",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return {"access_token": create_access_token(user), "token_type": "bearer", "user": user}


@router.post("/register", response_model=RegisterOut, status_code=201)
def register(payload: RegisterRequest, db: Session = Depends(get_db)):
    """
    Create a RESIDENT account and its resident profile in one transaction.
    """
    user = User(
        email=payload.email.lower(),
        username=payload.username,
        password_hash=hash_password(payload.password),
        role=UserRole.RESIDENT,
    )
    profile = payload.model_dump(exclude={"username", "password"})
    resident = Resident(**profile, user=user)
    db.add(user)
    db.add(resident)
    flush_or_conflict(db, "Email or username is already taken")
    log_audit(
        db,
        actor=user,
        action="created",
        entity_type="resident",
        entity_id=str(resident.id),
        source="register",
        resident_id=resident.id,
        description=f"Resident registered: {resident.full_name}",
    )
    db.commit()
    db.refresh(user)
    db.refresh(resident)
    return {"user": user, "resident": resident}


@router.get("/me", response_model=UserOut)
def me(current_user: User = Depends(get_current_user)):
    return current_user

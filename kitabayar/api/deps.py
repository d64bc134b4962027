import logging

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from kitabayar.core.database import SessionLocal

logger = logging.getLogger(__name__)


def get_db():
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def flush_or_conflict(db: Session, detail: str) -> None:
    """
    Flush pending changes; a unique/foreign-key violation becomes 409 with the
    given detail. Anything else propagates and is handled as a 500.

    Routes flush the mutation, add its audit row, then commit both together.
    """
    try:
        db.flush()
    except IntegrityError as e:
        db.rollback()
        logger.warning("Integrity error: %s (%s)", detail, e.orig)
        raise HTTPException(status_code=409, detail=detail)

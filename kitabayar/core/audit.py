import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from kitabayar.models.audit_log import AuditLog
from kitabayar.models.enums import BillStatus, PaymentStatus
from kitabayar.models.user import User

logger = logging.getLogger(__name__)


def _compute_risk_level(
    entity_type: str,
    status: Optional[str],
    due_at: Optional[datetime],
    explicit: Optional[str] = None,
) -> str:
    if explicit:
        return explicit
    if entity_type == "payment" and status in (PaymentStatus.FAILED.value, PaymentStatus.REFUNDED.value):
        return "high"
    if entity_type != "bill" or due_at is None:
        return "low"
    if due_at.tzinfo is None:
        due_at = due_at.replace(tzinfo=timezone.utc)
    overdue = due_at < datetime.now(timezone.utc)
    if overdue and status not in (BillStatus.PAID.value, BillStatus.CANCELLED.value):
        return "high"
    return "low"


def log_audit(
    db: Session,
    *,
    actor: User,
    action: str,
    entity_type: str,
    entity_id: str,
    source: str = "api",
    status: Optional[str] = None,
    due_at: Optional[datetime] = None,
    resident_id: Optional[int] = None,
    description: Optional[str] = None,
    risk_level: Optional[str] = None,
) -> AuditLog:
    """Add an audit row to the current transaction; the caller commits it with the change."""
    log = AuditLog(
        actor_id=str(actor.id),
        actor_email=actor.email,
        actor_role=actor.role.value if actor.role is not None else None,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        source=source,
        status=status,
        due_at=due_at,
        resident_id=resident_id,
        description=description,
        risk_level=_compute_risk_level(entity_type, status, due_at, risk_level),
    )
    db.add(log)
    logger.info("%s %s %s by %s", entity_type, entity_id, action, actor.email)
    return log

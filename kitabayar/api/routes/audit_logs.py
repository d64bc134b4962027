from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from kitabayar.api.deps import get_db
from kitabayar.core.auth import require_admin
from kitabayar.models.audit_log import AuditLog
from kitabayar.models.user import User
from kitabayar.schemas.audit_log import AuditLogOut

router = APIRouter(prefix="/api/audit-logs", tags=["audit-logs"])


def _parse_dt(value: str, field: str) -> datetime:
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise HTTPException(status_code=400, detail=f"{field} must be an ISO date-time")
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


@router.get("", response_model=List[AuditLogOut])
def list_audit_logs(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
    start_date: Optional[str] = Query(None, alias="startDate", description="ISO date-time"),
    end_date: Optional[str] = Query(None, alias="endDate", description="ISO date-time"),
    actor: Optional[str] = Query(None, description="Filter by actor email"),
    entity_type: Optional[str] = Query(None, alias="entityType"),
    action: Optional[str] = Query(None),
    resident_id: Optional[int] = Query(None, alias="residentId"),
    risk_level: Optional[str] = Query(None, alias="riskLevel", description="low|high"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
):
    q = db.query(AuditLog)

    if start_date:
        q = q.filter(AuditLog.created_at >= _parse_dt(start_date, "startDate"))
    if end_date:
        q = q.filter(AuditLog.created_at <= _parse_dt(end_date, "endDate"))
    if actor:
        q = q.filter(AuditLog.actor_email == actor)
    if entity_type:
        q = q.filter(AuditLog.entity_type == entity_type)
    if action:
        q = q.filter(AuditLog.action == action)
    if resident_id is not None:
        q = q.filter(AuditLog.resident_id == resident_id)
    if risk_level:
        q = q.filter(AuditLog.risk_level == risk_level)

    return q.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).offset(offset).limit(limit).all()

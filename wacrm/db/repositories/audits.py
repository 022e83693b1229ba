"""
Audit log persistence and filtered listing.
"""
from __future__ import annotations

import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session, joinedload

from wacrm.db import models, schemas


def add_audit_log(
    db: Session,
    *,
    action_type: str,
    status: str,
    actor_user_id: uuid.UUID,
    company_id: Optional[uuid.UUID] = None,
    target_type: Optional[str] = None,
    target_id: Optional[str] = None,
    reason: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> models.AuditLog:
    row = models.AuditLog(
        action_type=action_type,
        status=status,
        actor_user_id=actor_user_id,
        company_id=company_id,
        target_type=target_type,
        target_id=target_id,
        reason=reason,
        metadata_json=metadata,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def get_audit_logs(
    db: Session,
    filters: Optional[schemas.AuditLogFilters] = None,
    skip: int = 0,
    limit: int = 100,
    **criteria: Any,
) -> List[models.AuditLog]:
    """Newest first. ``criteria`` are shorthand for the ``AuditLogFilters`` fields."""
    f = filters or schemas.AuditLogFilters(**criteria)
    AuditLog = models.AuditLog
    query = db.query(AuditLog).options(joinedload(AuditLog.actor))
    if f.company_id:
        query = query.filter(AuditLog.company_id == f.company_id)
    if f.user_id:
        query = query.filter(AuditLog.actor_user_id == f.user_id)
    if f.action_type:
        query = query.filter(AuditLog.action_type == f.action_type)
    if f.status:
        query = query.filter(AuditLog.status == f.status)
    if f.target_type:
        query = query.filter(AuditLog.target_type == f.target_type)
    if f.since:
        query = query.filter(AuditLog.created_at >= f.since)
    if f.until:
        query = query.filter(AuditLog.created_at < f.until)
    return query.order_by(AuditLog.created_at.desc()).offset(skip).limit(limit).all()

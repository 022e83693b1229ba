"""
Audit log API endpoints.

Query audit logs with permission checks tailored for company
administrators.
"""
from datetime import datetime
from typing import Optional, List
import uuid

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from wacrm.api.deps import get_current_user_context
from wacrm.api.permissions import can_manage_company
from wacrm.db import schemas
from wacrm.db.database import get_db
from wacrm.db.repositories import audits as audit_repo

router = APIRouter(prefix="/audits", tags=["audits"])


@router.get("/", response_model=List[schemas.AuditLog])
def list_audit_logs(
    company_id: Optional[uuid.UUID] = None,
    user_id: Optional[uuid.UUID] = None,
    action_type: Optional[str] = None,
    status: Optional[str] = None,
    target_type: Optional[str] = None,
    since: Optional[datetime] = None,
    until: Optional[datetime] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    _, current_user = user_context

    if company_id:
        if not can_manage_company(company_id, current_user):
            raise HTTPException(status_code=403, detail="Forbidden")
    elif not current_user.get("is_superadmin"):
        raise HTTPException(status_code=403, detail="Forbidden, company_id is required for non-superadmins")

    filters = schemas.AuditLogFilters(
        company_id=company_id,
        user_id=user_id,
        action_type=action_type,
        status=status,
        target_type=target_type,
        since=since,
        until=until,
    )
    return audit_repo.get_audit_logs(db, filters, skip=skip, limit=limit)

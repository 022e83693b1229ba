"""
Audit logging helpers and enums.

Centralized helpers to persist normalized audit records with consistent
schema. ``record`` is the best-effort variant used by routers: a failed
audit write is logged and rolled back, never surfaced to the caller.
"""
from __future__ import annotations
import logging
import uuid
from enum import Enum
from typing import Any, Optional, Dict
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from wacrm.db import models
from wacrm.db.repositories import audits as audit_repo

logger = logging.getLogger(__name__)


class AuditAction(str, Enum):
    # Company
    COMPANY_CREATE = "company_create"
    COMPANY_UPDATE = "company_update"
    COMPANY_DELETE = "company_delete"
    # Membership
    MEMBER_ADD = "member_add"
    MEMBER_REMOVE = "member_remove"
    MEMBER_ROLE_CHANGE = "member_role_change"
    # Contacts
    CONTACT_CREATE = "contact_create"
    CONTACT_UPDATE = "contact_update"
    CONTACT_DELETE = "contact_delete"
    CONTACT_IMPORT = "contact_import"
    # Broadcast groups / hashtags
    GROUP_CREATE = "group_create"
    GROUP_UPDATE = "group_update"
    GROUP_DELETE = "group_delete"
    HASHTAG_CREATE = "hashtag_create"
    HASHTAG_UPDATE = "hashtag_update"
    HASHTAG_DELETE = "hashtag_delete"
    # Broadcasts
    BROADCAST_SEND = "broadcast_send"
    BROADCAST_CANCEL = "broadcast_cancel"
    # API providers
    PROVIDER_UPDATE = "provider_update"
    # E-forms
    EFORM_CREATE = "eform_create"
    EFORM_UPDATE = "eform_update"
    EFORM_DELETE = "eform_delete"
    EFORM_STATUS_CHANGE = "eform_status_change"
    # Workflows
    WORKFLOW_CREATE = "workflow_create"
    WORKFLOW_UPDATE = "workflow_update"
    WORKFLOW_DELETE = "workflow_delete"
    WORKFLOW_COPY = "workflow_copy"
    WORKFLOW_STATUS_CHANGE = "workflow_status_change"
    WORKFLOW_START = "workflow_start"
    # Data sets
    DATASET_CREATE = "dataset_create"
    DATASET_UPDATE = "dataset_update"
    DATASET_DELETE = "dataset_delete"
    DATASET_RECORD_CREATE = "dataset_record_create"
    DATASET_RECORD_UPDATE = "dataset_record_update"
    DATASET_RECORD_DELETE = "dataset_record_delete"


class AuditStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"


def log(
    db: Session,
    *,
    action: AuditAction | str,
    status: AuditStatus | str = AuditStatus.SUCCESS,
    target_type: str,
    target_id: Any = None,
    actor_user_id: uuid.UUID,
    company_id: Optional[uuid.UUID] = None,
    reason: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> models.AuditLog:
    """Central audit logging helper."""
    # Persist pure string values, not Enum reprs
    return audit_repo.add_audit_log(
        db,
        action_type=action.value if isinstance(action, AuditAction) else str(action),
        status=status.value if isinstance(status, AuditStatus) else str(status),
        actor_user_id=actor_user_id,
        company_id=company_id,
        target_type=target_type,
        target_id=str(target_id) if target_id is not None else None,
        reason=reason,
        metadata=metadata or {},
    )


def record(db: Session, **kwargs) -> Optional[models.AuditLog]:
    """Best-effort ``log``; returns None when the audit row could not be written."""
    try:
        return log(db, **kwargs)
    except SQLAlchemyError:
        logger.warning("Failed to write audit log for %s", kwargs.get("action"), exc_info=True)
        db.rollback()
        return None


__all__ = ["AuditAction", "AuditStatus", "log", "record"]

"""
API dependency helpers.

Resolves the authenticated user and the company (tenant) a request acts on.
"""
import logging
import uuid
from dataclasses import dataclass
from typing import Optional, Tuple, Dict, Any

from fastapi import Depends, Header, HTTPException, Query, status
from sqlalchemy.orm import Session

from wacrm.api.auth import (
    DEV_USER_EMAIL,
    DEV_USER_NAME,
    get_or_create_user,
    get_user_memberships,
    resolve_identity_from_headers,
)
from wacrm.api.permissions import can_manage_company, can_read_company, can_write_company
from wacrm.db import models
from wacrm.db.database import get_db
from wacrm.db.repositories import companies as company_repo
from wacrm.utils.runtime import dev_mode_active

logger = logging.getLogger(__name__)


def build_user_context(db: Session, user: models.User) -> Dict[str, Any]:
    memberships = get_user_memberships(db, user.id)
    return {
        "id": user.id,
        "email": user.email,
        "display_name": user.display_name,
        "is_superadmin": bool(user.is_superadmin),
        "memberships": memberships,
        "memberships_by_company": {m["company_id"]: m for m in memberships},
    }


# Contract:
# Returns (sqlalchemy User model, current_user_context_dict)
# Raises 401 if identity cannot be resolved.
def get_current_user_context(
    db: Session = Depends(get_db),
    x_auth_request_user: Optional[str] = Header(default=None),
    x_auth_request_email: Optional[str] = Header(default=None),
    x_forwarded_user: Optional[str] = Header(default=None),
    x_forwarded_email: Optional[str] = Header(default=None),
) -> Tuple[models.User, Dict[str, Any]]:
    try:
        is_dev_mode = dev_mode_active()
    except RuntimeError as exc:
        logger.error("DEV_MODE misconfiguration detected: %s", exc)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="DEV_MODE misconfigured")

    if is_dev_mode:
        email, name = DEV_USER_EMAIL, DEV_USER_NAME
    else:
        name, email = resolve_identity_from_headers(
            x_auth_request_user=x_auth_request_user,
            x_auth_request_email=x_auth_request_email,
            x_forwarded_user=x_forwarded_user,
            x_forwarded_email=x_forwarded_email,
        )
        if not email:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    user = get_or_create_user(db, email=email, display_name=name)
    return user, build_user_context(db, user)


@dataclass
class CompanyContext:
    """The authenticated caller acting inside one company."""

    user: models.User
    current_user: Dict[str, Any]
    company_id: uuid.UUID

    @property
    def actor(self) -> str:
        return self.user.email

    @property
    def can_write(self) -> bool:
        return can_write_company(self.company_id, self.current_user)

    @property
    def can_manage(self) -> bool:
        return can_manage_company(self.company_id, self.current_user)


def parse_company_id(raw: Optional[str]) -> uuid.UUID:
    if raw is None or not str(raw).strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="company_id_required")
    try:
        return uuid.UUID(str(raw).strip())
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="invalid_company_id")


def get_company_context(
    db: Session = Depends(get_db),
    user_ctx=Depends(get_current_user_context),
    x_company_id: Optional[str] = Header(default=None, alias="X-Company-Id"),
    company_id: Optional[str] = Query(default=None),
) -> CompanyContext:
    """Resolve the selected company; the header wins over the query parameter."""
    user, current_user = user_ctx
    selected = parse_company_id(x_company_id or company_id)
    if company_repo.get_company(db, selected) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Company not found")
    if not can_read_company(selected, current_user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    return CompanyContext(user=user, current_user=current_user, company_id=selected)


def require_company_write(ctx: CompanyContext = Depends(get_company_context)) -> CompanyContext:
    if not ctx.can_write:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Write permission required")
    return ctx


def require_company_manage(ctx: CompanyContext = Depends(get_company_context)) -> CompanyContext:
    if not ctx.can_manage:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only owner/admin can manage company settings")
    return ctx

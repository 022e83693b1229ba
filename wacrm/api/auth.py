"""
Authentication helpers and identity resolution.

Parses proxy headers, normalizes emails, and upserts users while supporting
simple superadmin elevation via environment configuration.
"""
import logging
import os
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any, List, Tuple
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from wacrm.db import models
from wacrm.db.models import now_utc

logger = logging.getLogger(__name__)

DEV_USER_EMAIL = "dev@localhost"
DEV_USER_NAME = "Development User"

# last_seen_at is rewritten at most once per window
LAST_SEEN_RESOLUTION = timedelta(minutes=15)


def _normalize_email(email: Optional[str]) -> Optional[str]:
    if not email:
        return None
    return email.strip().lower() or None


def _normalize_list_env(var_name: str) -> set:
    raw = os.getenv(var_name, "")
    values = set()
    for entry in raw.split(","):
        cleaned = entry.strip().strip('"').strip("'")
        if cleaned:
            values.add(cleaned.lower())
    return values


def _admin_emails() -> set:
    return _normalize_list_env("ADMIN_EMAILS")


def resolve_identity_from_headers(
    x_auth_request_user: Optional[str],
    x_auth_request_email: Optional[str],
    x_forwarded_user: Optional[str],
    x_forwarded_email: Optional[str],
) -> Tuple[Optional[str], Optional[str]]:
    user = x_auth_request_user or x_forwarded_user
    email = _normalize_email(x_auth_request_email or x_forwarded_email)
    return user, email


def get_user_by_email(db: Session, email: str) -> Optional[models.User]:
    return db.query(models.User).filter(models.User.email == _normalize_email(email)).first()


def _seen_recently(user: models.User, now: datetime) -> bool:
    seen = user.last_seen_at
    if seen is None:
        return False
    if seen.tzinfo is None:
        seen = seen.replace(tzinfo=timezone.utc)
    return now - seen < LAST_SEEN_RESOLUTION


def get_or_create_user(db: Session, email: str, display_name: Optional[str] = None) -> models.User:
    email = _normalize_email(email)
    user = db.query(models.User).filter(models.User.email == email).first()
    admins = _admin_emails()
    now = now_utc()
    if not user:
        user = models.User(
            email=email,
            display_name=display_name or email.split("@")[0],
            is_superadmin=email in admins,
            auth_provider="oauth2-proxy",
            last_seen_at=now,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        logger.info("user_created: email=%s superadmin=%s", email, user.is_superadmin)
        return user

    changed = False
    # Existing users might predate a new ADMIN_EMAILS value; promote them when necessary.
    if email in admins and not user.is_superadmin:
        user.is_superadmin = True
        changed = True
    if not _seen_recently(user, now):
        user.last_seen_at = now
        changed = True
    if not changed:
        return user
    try:
        db.commit()
    except SQLAlchemyError:
        logger.warning("user refresh failed for %s", email, exc_info=True)
        db.rollback()
    else:
        db.refresh(user)
    return user


def get_user_memberships(db: Session, user_id) -> List[Dict[str, Any]]:
    results = (
        db.query(models.CompanyMembership, models.Company)
        .join(models.Company, models.Company.id == models.CompanyMembership.company_id)
        .filter(models.CompanyMembership.user_id == user_id)
        .order_by(models.Company.name)
        .all()
    )
    return [
        {
            "company_id": str(membership.company_id),
            "company_name": company.name,
            "role": membership.role,
            "can_read": bool(membership.can_read),
            "can_write": bool(membership.can_write),
        }
        for membership, company in results
    ]

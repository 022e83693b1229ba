"""
Contact repository functions.

Company-scoped CRUD, filtered listing, statistics and bulk import for the
contact list. Deletes are soft (``is_active = False``).
"""
from __future__ import annotations

import re
import uuid
from typing import Dict, Optional, List, Tuple, Iterable
from sqlalchemy import String, func, literal, or_
from sqlalchemy.orm import Session, joinedload

from wacrm.db import models, schemas
from wacrm.db.models.base import now_utc
from wacrm.db.repositories import paginate
from wacrm.utils.hashtags import parse_hashtags


def hashtag_any_filter(tags: Iterable[str]):
    """SQL condition matching contacts whose stored tags include any of ``tags``.

    Stored tags are comma separated without spaces, so wrapping the column in
    commas turns an exact tag match into a substring match.
    """
    wrapped = func.lower(
        literal(",") + func.coalesce(models.Contact.hashtags, "") + literal(","),
        type_=String,
    )
    conditions = [wrapped.contains(f",{tag.lower()},", autoescape=True) for tag in parse_hashtags(list(tags))]
    if not conditions:
        return None
    return or_(*conditions)


def _active_contacts(db: Session, company_id: uuid.UUID):
    return db.query(models.Contact).filter(
        models.Contact.company_id == company_id,
        models.Contact.is_active.is_(True),
    )


def get_contacts(
    db: Session,
    company_id: uuid.UUID,
    *,
    page: int = 1,
    page_size: int = 20,
    search: Optional[str] = None,
    broadcast_group_id: Optional[uuid.UUID] = None,
    hashtag_filter: Optional[str] = None,
) -> Tuple[List[models.Contact], int]:
    q = _active_contacts(db, company_id).options(joinedload(models.Contact.broadcast_group))
    if search and search.strip():
        pattern = f"%{search.strip()}%"
        q = q.filter(
            or_(
                models.Contact.name.ilike(pattern),
                models.Contact.email.ilike(pattern),
                models.Contact.whatsapp_number.ilike(pattern),
                models.Contact.company_name.ilike(pattern),
                models.Contact.department.ilike(pattern),
                models.Contact.position.ilike(pattern),
            )
        )
    if broadcast_group_id:
        q = q.filter(models.Contact.broadcast_group_id == broadcast_group_id)
    tag_condition = hashtag_any_filter(parse_hashtags(hashtag_filter))
    if tag_condition is not None:
        q = q.filter(tag_condition)
    q = q.order_by(models.Contact.name, models.Contact.created_at)
    return paginate(q, page, page_size)


def find_broadcast_targets(
    db: Session,
    company_id: uuid.UUID,
    *,
    broadcast_group_id: Optional[uuid.UUID] = None,
    hashtag_filter: Optional[str] = None,
) -> List[models.Contact]:
    """Active contacts with a WhatsApp number matching the broadcast filters."""
    q = _active_contacts(db, company_id).filter(
        models.Contact.whatsapp_number.isnot(None),
        models.Contact.whatsapp_number != "",
    )
    if broadcast_group_id:
        q = q.filter(models.Contact.broadcast_group_id == broadcast_group_id)
    tag_condition = hashtag_any_filter(parse_hashtags(hashtag_filter))
    if tag_condition is not None:
        q = q.filter(tag_condition)
    return q.order_by(models.Contact.name).all()


def get_contact(db: Session, company_id: uuid.UUID, contact_id: uuid.UUID) -> Optional[models.Contact]:
    return (
        db.query(models.Contact)
        .options(joinedload(models.Contact.broadcast_group))
        .filter(models.Contact.id == contact_id, models.Contact.company_id == company_id)
        .first()
    )


def whatsapp_digits(number: Optional[str]) -> str:
    """Digits only, so ``+60 12-345`` and ``6012345`` compare equal."""
    if not isinstance(number, str):
        return ""
    return re.sub(r"\D", "", number)


def get_contacts_by_whatsapp(db: Session, company_id: uuid.UUID, numbers: Iterable[str]) -> Dict[str, models.Contact]:
    """Active contacts keyed by digits-only WhatsApp number."""
    wanted = {whatsapp_digits(n) for n in numbers} - {""}
    if not wanted:
        return {}
    matches = _active_contacts(db, company_id).filter(models.Contact.whatsapp_number.in_(wanted)).all()
    return {whatsapp_digits(c.whatsapp_number): c for c in matches}


def get_contact_statistics(db: Session, company_id: uuid.UUID) -> dict:
    base = db.query(models.Contact).filter(models.Contact.company_id == company_id)
    total = base.count()
    active = base.filter(models.Contact.is_active.is_(True)).count()
    return {"total": total, "active": active, "inactive": total - active}


def create_contact(
    db: Session,
    company_id: uuid.UUID,
    contact: schemas.ContactCreate,
    created_by: Optional[str] = None,
    *,
    commit: bool = True,
) -> models.Contact:
    db_contact = models.Contact(
        **contact.model_dump(),
        company_id=company_id,
        is_active=True,
        created_by=created_by,
    )
    db.add(db_contact)
    if commit:
        db.commit()
        db.refresh(db_contact)
    return db_contact


def update_contact(
    db: Session,
    db_contact: models.Contact,
    contact: schemas.ContactUpdate,
    updated_by: Optional[str] = None,
) -> models.Contact:
    for key, value in contact.model_dump().items():
        setattr(db_contact, key, value)
    db_contact.updated_at = now_utc()
    db_contact.updated_by = updated_by
    db.commit()
    db.refresh(db_contact)
    return db_contact


def deactivate_contact(db: Session, db_contact: models.Contact, updated_by: Optional[str] = None) -> models.Contact:
    db_contact.is_active = False
    db_contact.updated_at = now_utc()
    db_contact.updated_by = updated_by
    db.commit()
    db.refresh(db_contact)
    return db_contact


def get_active_hashtag_strings(db: Session, company_id: uuid.UUID) -> List[str]:
    rows = (
        _active_contacts(db, company_id)
        .with_entities(models.Contact.hashtags)
        .filter(models.Contact.hashtags.isnot(None))
        .all()
    )
    return [r[0] for r in rows if r[0]]


def get_active_contacts_with_hashtag(db: Session, company_id: uuid.UUID, tag: str) -> List[models.Contact]:
    condition = hashtag_any_filter([tag])
    if condition is None:
        return []
    return _active_contacts(db, company_id).filter(condition).all()

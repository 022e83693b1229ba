"""
Contact hashtag repository functions.

Hashtag usage is derived from the comma separated tag strings stored on
active contacts, so statistics and rename operations scan those strings.
"""
from __future__ import annotations

import uuid
from typing import Optional, List, Dict
from sqlalchemy import func
from sqlalchemy.orm import Session

from wacrm.db import models, schemas
from wacrm.db.models.base import now_utc
from wacrm.db.repositories import contacts as contact_repo
from wacrm.utils.hashtags import parse_hashtags, rename_hashtag


def _active_hashtags(db: Session, company_id: uuid.UUID):
    return db.query(models.ContactHashtag).filter(
        models.ContactHashtag.company_id == company_id,
        models.ContactHashtag.is_active.is_(True),
    )


def get_hashtags(db: Session, company_id: uuid.UUID) -> List[models.ContactHashtag]:
    return _active_hashtags(db, company_id).order_by(models.ContactHashtag.name).all()


def get_hashtag(db: Session, company_id: uuid.UUID, hashtag_id: uuid.UUID) -> Optional[models.ContactHashtag]:
    return (
        db.query(models.ContactHashtag)
        .filter(models.ContactHashtag.id == hashtag_id, models.ContactHashtag.company_id == company_id)
        .first()
    )


def get_active_hashtag_by_name(db: Session, company_id: uuid.UUID, name: str) -> Optional[models.ContactHashtag]:
    return (
        _active_hashtags(db, company_id)
        .filter(func.lower(models.ContactHashtag.name) == name.strip().lower())
        .first()
    )


def usage_counts(db: Session, company_id: uuid.UUID) -> Dict[str, int]:
    """Map of lower-cased tag -> number of active contacts carrying it."""
    counts: Dict[str, int] = {}
    for stored in contact_repo.get_active_hashtag_strings(db, company_id):
        for tag in parse_hashtags(stored):
            key = tag.lower()
            counts[key] = counts.get(key, 0) + 1
    return counts


def get_hashtag_statistics(db: Session, company_id: uuid.UUID) -> dict:
    total = db.query(models.ContactHashtag).filter(models.ContactHashtag.company_id == company_id).count()
    active = _active_hashtags(db, company_id).count()
    usage = sum(usage_counts(db, company_id).values())
    return {"total_hashtags": total, "active_hashtags": active, "hashtag_usage": usage}


def create_hashtag(db: Session, company_id: uuid.UUID, hashtag: schemas.HashtagCreate, created_by: Optional[str] = None):
    db_hashtag = models.ContactHashtag(
        **hashtag.model_dump(),
        company_id=company_id,
        is_active=True,
        created_by=created_by,
    )
    db.add(db_hashtag)
    db.commit()
    db.refresh(db_hashtag)
    return db_hashtag


def update_hashtag(
    db: Session,
    db_hashtag: models.ContactHashtag,
    hashtag: schemas.HashtagUpdate,
    updated_by: Optional[str] = None,
):
    old_name = db_hashtag.name
    for key, value in hashtag.model_dump().items():
        setattr(db_hashtag, key, value)
    if old_name.lower() != db_hashtag.name.lower() or old_name != db_hashtag.name:
        # Keep contacts pointing at the renamed tag
        try:
            for contact in contact_repo.get_active_contacts_with_hashtag(db, db_hashtag.company_id, old_name):
                contact.hashtags = rename_hashtag(contact.hashtags, old_name, db_hashtag.name)
                contact.updated_at = now_utc()
                contact.updated_by = updated_by
        except ValueError:
            db.rollback()
            raise
    db.commit()
    db.refresh(db_hashtag)
    return db_hashtag


def count_active_usage(db: Session, db_hashtag: models.ContactHashtag) -> int:
    return len(contact_repo.get_active_contacts_with_hashtag(db, db_hashtag.company_id, db_hashtag.name))


def deactivate_hashtag(db: Session, db_hashtag: models.ContactHashtag):
    db_hashtag.is_active = False
    db.commit()
    db.refresh(db_hashtag)
    return db_hashtag

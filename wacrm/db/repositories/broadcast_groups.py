"""
Broadcast group repository functions.
"""
from __future__ import annotations

import uuid
from typing import Optional, List, Dict
from sqlalchemy import func
from sqlalchemy.orm import Session

from wacrm.db import models, schemas
from wacrm.db.models.base import now_utc


def _active_groups(db: Session, company_id: uuid.UUID):
    return db.query(models.BroadcastGroup).filter(
        models.BroadcastGroup.company_id == company_id,
        models.BroadcastGroup.is_active.is_(True),
    )


def member_counts(db: Session, company_id: uuid.UUID) -> Dict[uuid.UUID, int]:
    rows = (
        db.query(models.Contact.broadcast_group_id, func.count(models.Contact.id))
        .filter(
            models.Contact.company_id == company_id,
            models.Contact.is_active.is_(True),
            models.Contact.broadcast_group_id.isnot(None),
        )
        .group_by(models.Contact.broadcast_group_id)
        .all()
    )
    return {group_id: int(count) for group_id, count in rows}


def get_groups(db: Session, company_id: uuid.UUID) -> List[models.BroadcastGroup]:
    return _active_groups(db, company_id).order_by(models.BroadcastGroup.name).all()


def get_group(db: Session, company_id: uuid.UUID, group_id: uuid.UUID) -> Optional[models.BroadcastGroup]:
    return (
        db.query(models.BroadcastGroup)
        .filter(models.BroadcastGroup.id == group_id, models.BroadcastGroup.company_id == company_id)
        .first()
    )


def get_active_group(db: Session, company_id: uuid.UUID, group_id: uuid.UUID) -> Optional[models.BroadcastGroup]:
    return _active_groups(db, company_id).filter(models.BroadcastGroup.id == group_id).first()


def get_active_group_by_name(db: Session, company_id: uuid.UUID, name: str) -> Optional[models.BroadcastGroup]:
    return (
        _active_groups(db, company_id)
        .filter(func.lower(models.BroadcastGroup.name) == name.strip().lower())
        .first()
    )


def get_group_statistics(db: Session, company_id: uuid.UUID) -> dict:
    total_groups = db.query(models.BroadcastGroup).filter(models.BroadcastGroup.company_id == company_id).count()
    active_groups = _active_groups(db, company_id).count()
    total_members = (
        db.query(models.Contact)
        .join(models.BroadcastGroup, models.BroadcastGroup.id == models.Contact.broadcast_group_id)
        .filter(
            models.Contact.company_id == company_id,
            models.Contact.is_active.is_(True),
            models.BroadcastGroup.is_active.is_(True),
        )
        .count()
    )
    return {"total_groups": total_groups, "active_groups": active_groups, "total_members": total_members}


def create_group(db: Session, company_id: uuid.UUID, group: schemas.BroadcastGroupCreate, created_by: Optional[str] = None):
    db_group = models.BroadcastGroup(
        **group.model_dump(),
        company_id=company_id,
        is_active=True,
        created_by=created_by,
    )
    db.add(db_group)
    db.commit()
    db.refresh(db_group)
    return db_group


def update_group(db: Session, db_group: models.BroadcastGroup, group: schemas.BroadcastGroupUpdate, updated_by: Optional[str] = None):
    for key, value in group.model_dump().items():
        setattr(db_group, key, value)
    db_group.updated_at = now_utc()
    db_group.updated_by = updated_by
    db.commit()
    db.refresh(db_group)
    return db_group


def count_active_members(db: Session, db_group: models.BroadcastGroup) -> int:
    return (
        db.query(models.Contact)
        .filter(
            models.Contact.broadcast_group_id == db_group.id,
            models.Contact.is_active.is_(True),
        )
        .count()
    )


def deactivate_group(db: Session, db_group: models.BroadcastGroup, updated_by: Optional[str] = None):
    db_group.is_active = False
    db_group.updated_at = now_utc()
    db_group.updated_by = updated_by
    db.commit()
    db.refresh(db_group)
    return db_group

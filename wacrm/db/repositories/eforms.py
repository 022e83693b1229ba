"""
E-form definition repository functions.
"""
from __future__ import annotations

import uuid
from typing import Optional, List, Tuple
from sqlalchemy import or_
from sqlalchemy.orm import Session

from wacrm.db import models, schemas
from wacrm.db.models.base import now_utc
from wacrm.db.repositories import paginate
from wacrm.utils.statuses import EFORM_ACTIVE

_SORT_COLUMNS = {
    "name": models.EFormDefinition.name,
    "status": models.EFormDefinition.status,
    "created_at": models.EFormDefinition.created_at,
    "updated_at": models.EFormDefinition.updated_at,
}


def get_eforms(
    db: Session,
    company_id: uuid.UUID,
    *,
    page: int = 1,
    page_size: int = 20,
    search: Optional[str] = None,
    sort_field: Optional[str] = None,
    sort_order: Optional[str] = None,
) -> Tuple[List[models.EFormDefinition], int]:
    q = db.query(models.EFormDefinition).filter(models.EFormDefinition.company_id == company_id)
    if search and search.strip():
        pattern = f"%{search.strip()}%"
        q = q.filter(or_(models.EFormDefinition.name.ilike(pattern), models.EFormDefinition.description.ilike(pattern)))
    column = _SORT_COLUMNS.get((sort_field or "").strip().lower(), models.EFormDefinition.created_at)
    ascending = (sort_order or "").strip().lower() == "asc"
    q = q.order_by(column.asc() if ascending else column.desc(), models.EFormDefinition.id)
    return paginate(q, page, page_size)


def get_eform(db: Session, company_id: uuid.UUID, form_id: uuid.UUID) -> Optional[models.EFormDefinition]:
    return (
        db.query(models.EFormDefinition)
        .filter(models.EFormDefinition.id == form_id, models.EFormDefinition.company_id == company_id)
        .first()
    )


def get_eforms_by_ids(db: Session, company_id: uuid.UUID, form_ids: List[uuid.UUID]) -> List[models.EFormDefinition]:
    if not form_ids:
        return []
    return (
        db.query(models.EFormDefinition)
        .filter(models.EFormDefinition.company_id == company_id, models.EFormDefinition.id.in_(form_ids))
        .all()
    )


def create_eform(db: Session, company_id: uuid.UUID, eform: schemas.EFormCreate, user_id: Optional[uuid.UUID] = None):
    db_eform = models.EFormDefinition(
        **eform.model_dump(),
        company_id=company_id,
        status=EFORM_ACTIVE,
        rstatus=EFORM_ACTIVE,
        created_user_id=user_id,
        updated_user_id=user_id,
    )
    db.add(db_eform)
    db.commit()
    db.refresh(db_eform)
    return db_eform


def update_eform(db: Session, db_eform: models.EFormDefinition, eform: schemas.EFormUpdate, user_id: Optional[uuid.UUID] = None):
    for key, value in eform.model_dump(exclude_unset=True).items():
        setattr(db_eform, key, value)
    db_eform.updated_user_id = user_id
    db_eform.updated_at = now_utc()
    db.commit()
    db.refresh(db_eform)
    return db_eform


def delete_eform(db: Session, db_eform: models.EFormDefinition) -> None:
    db.delete(db_eform)
    db.commit()


def delete_eforms(db: Session, forms: List[models.EFormDefinition]) -> int:
    for form in forms:
        db.delete(form)
    db.commit()
    return len(forms)


def set_eforms_status(db: Session, forms: List[models.EFormDefinition], status: str, user_id: Optional[uuid.UUID] = None) -> int:
    stamp = now_utc()
    for form in forms:
        form.status = status
        form.updated_user_id = user_id
        form.updated_at = stamp
    db.commit()
    return len(forms)

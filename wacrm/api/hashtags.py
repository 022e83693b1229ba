"""
Contact hashtag API endpoints (``/contactlist/hashtags``).
"""
from typing import List
import uuid

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from wacrm.audit import AuditAction, record
from wacrm.api.deps import CompanyContext, get_company_context, require_company_write
from wacrm.db import models, schemas
from wacrm.db.database import get_db
from wacrm.db.repositories import hashtags as hashtag_repo

router = APIRouter(prefix="/contactlist/hashtags", tags=["hashtags"])


def _hashtag_out(hashtag: models.ContactHashtag, usage_count: int) -> schemas.Hashtag:
    out = schemas.Hashtag.model_validate(hashtag)
    out.usage_count = usage_count
    return out


def _get_hashtag_or_404(db: Session, company_id: uuid.UUID, hashtag_id: uuid.UUID) -> models.ContactHashtag:
    hashtag = hashtag_repo.get_hashtag(db, company_id, hashtag_id)
    if not hashtag or not hashtag.is_active:
        raise HTTPException(status_code=404, detail="Hashtag not found")
    return hashtag


def _ensure_unique_name(db: Session, company_id: uuid.UUID, name: str, current_id=None) -> None:
    existing = hashtag_repo.get_active_hashtag_by_name(db, company_id, name)
    if existing and existing.id != current_id:
        raise HTTPException(status_code=409, detail="A hashtag with this name already exists")


@router.get("/statistics", response_model=schemas.HashtagStatistics)
def get_hashtag_statistics(
    db: Session = Depends(get_db),
    ctx: CompanyContext = Depends(get_company_context),
):
    return hashtag_repo.get_hashtag_statistics(db, ctx.company_id)


@router.get("", response_model=List[schemas.Hashtag])
def list_hashtags(
    db: Session = Depends(get_db),
    ctx: CompanyContext = Depends(get_company_context),
):
    counts = hashtag_repo.usage_counts(db, ctx.company_id)
    return [_hashtag_out(h, counts.get(h.name.lower(), 0)) for h in hashtag_repo.get_hashtags(db, ctx.company_id)]


@router.get("/{hashtag_id}", response_model=schemas.Hashtag)
def get_hashtag(
    hashtag_id: uuid.UUID,
    db: Session = Depends(get_db),
    ctx: CompanyContext = Depends(get_company_context),
):
    hashtag = _get_hashtag_or_404(db, ctx.company_id, hashtag_id)
    return _hashtag_out(hashtag, hashtag_repo.count_active_usage(db, hashtag))


@router.post("", response_model=schemas.Hashtag, status_code=status.HTTP_201_CREATED)
def create_hashtag(
    payload: schemas.HashtagCreate,
    db: Session = Depends(get_db),
    ctx: CompanyContext = Depends(require_company_write),
):
    _ensure_unique_name(db, ctx.company_id, payload.name)
    hashtag = hashtag_repo.create_hashtag(db, ctx.company_id, payload, created_by=ctx.actor)
    record(
        db,
        action=AuditAction.HASHTAG_CREATE,
        target_type="hashtag",
        target_id=hashtag.id,
        actor_user_id=ctx.user.id,
        company_id=ctx.company_id,
        metadata={"name": hashtag.name},
    )
    return _hashtag_out(hashtag, hashtag_repo.count_active_usage(db, hashtag))


@router.put("/{hashtag_id}", response_model=schemas.Hashtag)
def update_hashtag(
    hashtag_id: uuid.UUID,
    payload: schemas.HashtagUpdate,
    db: Session = Depends(get_db),
    ctx: CompanyContext = Depends(require_company_write),
):
    hashtag = _get_hashtag_or_404(db, ctx.company_id, hashtag_id)
    _ensure_unique_name(db, ctx.company_id, payload.name, current_id=hashtag.id)
    old_name = hashtag.name
    try:
        hashtag = hashtag_repo.update_hashtag(db, hashtag, payload, updated_by=ctx.actor)
    except ValueError as exc:
        # A renamed tag can push a contact past the hashtag length limit
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    record(
        db,
        action=AuditAction.HASHTAG_UPDATE,
        target_type="hashtag",
        target_id=hashtag.id,
        actor_user_id=ctx.user.id,
        company_id=ctx.company_id,
        metadata={"old_name": old_name, "new_name": hashtag.name},
    )
    return _hashtag_out(hashtag, hashtag_repo.count_active_usage(db, hashtag))


@router.delete("/{hashtag_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_hashtag(
    hashtag_id: uuid.UUID,
    db: Session = Depends(get_db),
    ctx: CompanyContext = Depends(require_company_write),
):
    hashtag = _get_hashtag_or_404(db, ctx.company_id, hashtag_id)
    usage = hashtag_repo.count_active_usage(db, hashtag)
    if usage:
        raise HTTPException(
            status_code=409,
            detail=f"Cannot delete hashtag: {usage} active contact(s) still use it",
        )
    hashtag_repo.deactivate_hashtag(db, hashtag)
    record(
        db,
        action=AuditAction.HASHTAG_DELETE,
        target_type="hashtag",
        target_id=hashtag_id,
        actor_user_id=ctx.user.id,
        company_id=ctx.company_id,
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)

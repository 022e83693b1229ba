"""
Broadcast group API endpoints (``/contactlist/groups``).
"""
from typing import List
import uuid

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from wacrm.audit import AuditAction, record
from wacrm.api.deps import CompanyContext, get_company_context, require_company_write
from wacrm.db import models, schemas
from wacrm.db.database import get_db
from wacrm.db.repositories import broadcast_groups as group_repo

router = APIRouter(prefix="/contactlist/groups", tags=["broadcast-groups"])


def _group_out(group: models.BroadcastGroup, member_count: int) -> schemas.BroadcastGroup:
    out = schemas.BroadcastGroup.model_validate(group)
    out.member_count = member_count
    return out


def _get_group_or_404(db: Session, company_id: uuid.UUID, group_id: uuid.UUID) -> models.BroadcastGroup:
    group = group_repo.get_active_group(db, company_id, group_id)
    if not group:
        raise HTTPException(status_code=404, detail="Broadcast group not found")
    return group


def _ensure_unique_name(db: Session, company_id: uuid.UUID, name: str, current_id=None) -> None:
    existing = group_repo.get_active_group_by_name(db, company_id, name)
    if existing and existing.id != current_id:
        raise HTTPException(status_code=409, detail="A broadcast group with this name already exists")


@router.get("/statistics", response_model=schemas.BroadcastGroupStatistics)
def get_group_statistics(
    db: Session = Depends(get_db),
    ctx: CompanyContext = Depends(get_company_context),
):
    return group_repo.get_group_statistics(db, ctx.company_id)


@router.get("", response_model=List[schemas.BroadcastGroup])
def list_groups(
    db: Session = Depends(get_db),
    ctx: CompanyContext = Depends(get_company_context),
):
    counts = group_repo.member_counts(db, ctx.company_id)
    return [_group_out(g, counts.get(g.id, 0)) for g in group_repo.get_groups(db, ctx.company_id)]


@router.get("/{group_id}", response_model=schemas.BroadcastGroup)
def get_group(
    group_id: uuid.UUID,
    db: Session = Depends(get_db),
    ctx: CompanyContext = Depends(get_company_context),
):
    group = _get_group_or_404(db, ctx.company_id, group_id)
    return _group_out(group, group_repo.count_active_members(db, group))


@router.post("", response_model=schemas.BroadcastGroup, status_code=status.HTTP_201_CREATED)
def create_group(
    payload: schemas.BroadcastGroupCreate,
    db: Session = Depends(get_db),
    ctx: CompanyContext = Depends(require_company_write),
):
    _ensure_unique_name(db, ctx.company_id, payload.name)
    group = group_repo.create_group(db, ctx.company_id, payload, created_by=ctx.actor)
    record(
        db,
        action=AuditAction.GROUP_CREATE,
        target_type="broadcast_group",
        target_id=group.id,
        actor_user_id=ctx.user.id,
        company_id=ctx.company_id,
        metadata={"name": group.name},
    )
    return _group_out(group, 0)


@router.put("/{group_id}", response_model=schemas.BroadcastGroup)
def update_group(
    group_id: uuid.UUID,
    payload: schemas.BroadcastGroupUpdate,
    db: Session = Depends(get_db),
    ctx: CompanyContext = Depends(require_company_write),
):
    group = _get_group_or_404(db, ctx.company_id, group_id)
    _ensure_unique_name(db, ctx.company_id, payload.name, current_id=group.id)
    group = group_repo.update_group(db, group, payload, updated_by=ctx.actor)
    record(
        db,
        action=AuditAction.GROUP_UPDATE,
        target_type="broadcast_group",
        target_id=group.id,
        actor_user_id=ctx.user.id,
        company_id=ctx.company_id,
    )
    return _group_out(group, group_repo.count_active_members(db, group))


@router.delete("/{group_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_group(
    group_id: uuid.UUID,
    db: Session = Depends(get_db),
    ctx: CompanyContext = Depends(require_company_write),
):
    group = _get_group_or_404(db, ctx.company_id, group_id)
    members = group_repo.count_active_members(db, group)
    if members:
        raise HTTPException(
            status_code=409,
            detail=f"Cannot delete group: {members} active contact(s) still belong to it",
        )
    group_repo.deactivate_group(db, group, updated_by=ctx.actor)
    record(
        db,
        action=AuditAction.GROUP_DELETE,
        target_type="broadcast_group",
        target_id=group_id,
        actor_user_id=ctx.user.id,
        company_id=ctx.company_id,
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)

"""
Broadcast API endpoints.

Preview targets, queue a send for background delivery, and follow or cancel
it while it runs.
"""
import uuid

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from wacrm.audit import AuditAction, record
from wacrm.api.deps import CompanyContext, get_company_context, require_company_write
from wacrm.db import models, schemas
from wacrm.db.database import get_db
from wacrm.db.repositories import broadcast_groups as group_repo
from wacrm.db.repositories import broadcasts as broadcast_repo
from wacrm.db.repositories import normalize_paging
from wacrm.services.broadcast_service import (
    NoBroadcastTargetsError,
    create_broadcast,
    preview_broadcast,
    process_broadcast,
)

router = APIRouter(prefix="/broadcast", tags=["broadcast"])


def _check_group(db: Session, ctx: CompanyContext, target: schemas.BroadcastTarget) -> None:
    if target.broadcast_group_id and not group_repo.get_active_group(db, ctx.company_id, target.broadcast_group_id):
        raise HTTPException(status_code=400, detail="Broadcast group not found")


def _get_send_or_404(db: Session, ctx: CompanyContext, send_id: uuid.UUID) -> models.BroadcastSend:
    send = broadcast_repo.get_broadcast_send(db, ctx.company_id, send_id)
    if not send:
        raise HTTPException(status_code=404, detail="Broadcast not found")
    return send


@router.post("/preview", response_model=schemas.BroadcastPreview)
def preview(
    payload: schemas.BroadcastPreviewRequest,
    db: Session = Depends(get_db),
    ctx: CompanyContext = Depends(get_company_context),
):
    _check_group(db, ctx, payload)
    return preview_broadcast(db, ctx.company_id, payload)


@router.post("/send", response_model=schemas.BroadcastSend, status_code=status.HTTP_202_ACCEPTED)
def send_broadcast(
    payload: schemas.BroadcastSendRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    ctx: CompanyContext = Depends(require_company_write),
):
    if not payload.has_content():
        raise HTTPException(status_code=400, detail="Either message or template_name is required")
    _check_group(db, ctx, payload)
    try:
        send = create_broadcast(db, ctx.company_id, payload, created_by=ctx.actor)
    except NoBroadcastTargetsError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    record(
        db,
        action=AuditAction.BROADCAST_SEND,
        target_type="broadcast",
        target_id=send.id,
        actor_user_id=ctx.user.id,
        company_id=ctx.company_id,
        metadata={"total_contacts": send.total_contacts},
    )
    background_tasks.add_task(process_broadcast, send.id)
    return send


@router.get("/status/{send_id}", response_model=schemas.BroadcastSendStatus)
def get_broadcast_status(
    send_id: uuid.UUID,
    db: Session = Depends(get_db),
    ctx: CompanyContext = Depends(get_company_context),
):
    send = _get_send_or_404(db, ctx, send_id)
    out = schemas.BroadcastSendStatus.model_validate(send)
    out.status_details = broadcast_repo.get_status_details(db, send.id)
    return out


@router.get("/history", response_model=schemas.PaginatedBroadcastSends)
def get_broadcast_history(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1),
    db: Session = Depends(get_db),
    ctx: CompanyContext = Depends(get_company_context),
):
    page, page_size = normalize_paging(page, page_size)
    items, total = broadcast_repo.get_broadcast_history(db, ctx.company_id, page=page, page_size=page_size)
    return {"data": items, "total": total, "page": page, "page_size": page_size}


@router.post("/cancel/{send_id}", response_model=schemas.BroadcastSend)
def cancel_broadcast(
    send_id: uuid.UUID,
    db: Session = Depends(get_db),
    ctx: CompanyContext = Depends(require_company_write),
):
    send = _get_send_or_404(db, ctx, send_id)
    if not broadcast_repo.is_cancellable(send):
        raise HTTPException(status_code=400, detail=f"Broadcast cannot be cancelled in status {send.status}")
    send = broadcast_repo.cancel_broadcast_send(db, send)
    record(
        db,
        action=AuditAction.BROADCAST_CANCEL,
        target_type="broadcast",
        target_id=send.id,
        actor_user_id=ctx.user.id,
        company_id=ctx.company_id,
    )
    return send

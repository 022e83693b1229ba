"""
E-form definition API endpoints.

CRUD and batch operations for MetaFlow forms; form JSON is validated before
it is stored.
"""
import math
from typing import Any, Dict, Optional
import uuid

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from wacrm.audit import AuditAction, record
from wacrm.api.deps import CompanyContext, get_company_context, require_company_write
from wacrm.db import models, schemas
from wacrm.db.database import get_db
from wacrm.db.repositories import eforms as eform_repo
from wacrm.db.repositories import normalize_paging
from wacrm.services.metaflow_validator import validate_metaflow_json
from wacrm.utils.statuses import EFORM_STATUSES

router = APIRouter(prefix="/eforms", tags=["eforms"])


def _ensure_valid_form_json(form_json: Optional[Dict[str, Any]]) -> None:
    if form_json is None:
        return
    valid, errors = validate_metaflow_json(form_json)
    if not valid:
        raise HTTPException(status_code=400, detail={"message": "Invalid form JSON", "errors": errors})


def _get_eform_or_404(db: Session, company_id: uuid.UUID, form_id: uuid.UUID) -> models.EFormDefinition:
    eform = eform_repo.get_eform(db, company_id, form_id)
    if not eform:
        raise HTTPException(status_code=404, detail="E-form not found")
    return eform


@router.get("", response_model=schemas.PaginatedEForms)
def list_eforms(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1),
    search: Optional[str] = None,
    sort_field: Optional[str] = None,
    sort_order: Optional[str] = None,
    db: Session = Depends(get_db),
    ctx: CompanyContext = Depends(get_company_context),
):
    page, page_size = normalize_paging(page, page_size)
    items, total = eform_repo.get_eforms(
        db,
        ctx.company_id,
        page=page,
        page_size=page_size,
        search=search,
        sort_field=sort_field,
        sort_order=sort_order,
    )
    return {
        "data": items,
        "total": total,
        "page": page,
        "page_size": page_size,
        "total_pages": math.ceil(total / page_size),
    }


@router.post("/validate", response_model=schemas.MetaFlowValidationResult)
def validate_form(document: Any = Body(...), ctx: CompanyContext = Depends(get_company_context)):
    valid, errors = validate_metaflow_json(document)
    return {"valid": valid, "errors": errors}


@router.post("/batch-delete")
def batch_delete_eforms(
    payload: schemas.EFormBatchDelete,
    db: Session = Depends(get_db),
    ctx: CompanyContext = Depends(require_company_write),
):
    forms = eform_repo.get_eforms_by_ids(db, ctx.company_id, payload.form_ids)
    if not forms:
        raise HTTPException(status_code=404, detail="No e-forms found")
    deleted_ids = [str(f.id) for f in forms]
    deleted = eform_repo.delete_eforms(db, forms)
    record(
        db,
        action=AuditAction.EFORM_DELETE,
        target_type="eform",
        actor_user_id=ctx.user.id,
        company_id=ctx.company_id,
        metadata={"form_ids": deleted_ids},
    )
    return {"deleted_count": deleted}


@router.post("/batch-status")
def batch_status_eforms(
    payload: schemas.EFormBatchStatus,
    db: Session = Depends(get_db),
    ctx: CompanyContext = Depends(require_company_write),
):
    new_status = (payload.status or "").strip().upper()
    if new_status not in EFORM_STATUSES:
        raise HTTPException(status_code=400, detail="Status must be 'A' or 'I'")
    forms = eform_repo.get_eforms_by_ids(db, ctx.company_id, payload.form_ids)
    updated = eform_repo.set_eforms_status(db, forms, new_status, user_id=ctx.user.id)
    record(
        db,
        action=AuditAction.EFORM_STATUS_CHANGE,
        target_type="eform",
        actor_user_id=ctx.user.id,
        company_id=ctx.company_id,
        metadata={"form_ids": [str(f.id) for f in forms], "status": new_status},
    )
    return {"updated_count": updated}


@router.get("/{form_id}", response_model=schemas.EForm)
def get_eform(
    form_id: uuid.UUID,
    db: Session = Depends(get_db),
    ctx: CompanyContext = Depends(get_company_context),
):
    return _get_eform_or_404(db, ctx.company_id, form_id)


@router.post("", response_model=schemas.EForm, status_code=status.HTTP_201_CREATED)
def create_eform(
    payload: schemas.EFormCreate,
    db: Session = Depends(get_db),
    ctx: CompanyContext = Depends(require_company_write),
):
    if not (payload.html_code or "").strip() and payload.form_json is None:
        raise HTTPException(status_code=400, detail="Either html_code or form_json is required")
    _ensure_valid_form_json(payload.form_json)
    eform = eform_repo.create_eform(db, ctx.company_id, payload, user_id=ctx.user.id)
    record(
        db,
        action=AuditAction.EFORM_CREATE,
        target_type="eform",
        target_id=eform.id,
        actor_user_id=ctx.user.id,
        company_id=ctx.company_id,
        metadata={"name": eform.name},
    )
    return eform


@router.put("/{form_id}", response_model=schemas.EForm)
def update_eform(
    form_id: uuid.UUID,
    payload: schemas.EFormUpdate,
    db: Session = Depends(get_db),
    ctx: CompanyContext = Depends(require_company_write),
):
    eform = _get_eform_or_404(db, ctx.company_id, form_id)
    if "name" in payload.model_fields_set and not (payload.name or "").strip():
        raise HTTPException(status_code=400, detail="Form name is required")
    if payload.status is not None and payload.status not in EFORM_STATUSES:
        raise HTTPException(status_code=400, detail="Status must be 'A' or 'I'")
    _ensure_valid_form_json(payload.form_json)
    eform = eform_repo.update_eform(db, eform, payload, user_id=ctx.user.id)
    record(
        db,
        action=AuditAction.EFORM_UPDATE,
        target_type="eform",
        target_id=eform.id,
        actor_user_id=ctx.user.id,
        company_id=ctx.company_id,
    )
    return eform


@router.delete("/{form_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_eform(
    form_id: uuid.UUID,
    db: Session = Depends(get_db),
    ctx: CompanyContext = Depends(require_company_write),
):
    eform = _get_eform_or_404(db, ctx.company_id, form_id)
    eform_repo.delete_eform(db, eform)
    record(
        db,
        action=AuditAction.EFORM_DELETE,
        target_type="eform",
        target_id=form_id,
        actor_user_id=ctx.user.id,
        company_id=ctx.company_id,
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)

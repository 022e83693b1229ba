"""
Workflow definition API endpoints.

CRUD, copy and batch operations for workflow designer graphs, plus starting
an execution of a definition.
"""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from wacrm.audit import AuditAction, record
from wacrm.api.deps import CompanyContext, get_company_context, require_company_write
from wacrm.db import models, schemas
from wacrm.db.database import get_db
from wacrm.db.repositories import normalize_paging
from wacrm.db.repositories import workflows as workflow_repo
from wacrm.services.workflow_graph import NODE_TYPES, validate_workflow_json
from wacrm.utils.statuses import WORKFLOW_ACTIVE, WORKFLOW_INACTIVE

router = APIRouter(prefix="/workflow-definitions", tags=["workflow-definitions"])


def _ensure_valid_graph(document: Optional[Dict[str, Any]]) -> None:
    # Drafts may be saved without a graph
    if document is None:
        return
    valid, errors = validate_workflow_json(document)
    if not valid:
        raise HTTPException(status_code=400, detail={"message": "Invalid workflow JSON", "errors": errors})


def _ensure_valid_status(value: Optional[str]) -> None:
    if value is not None and value not in (WORKFLOW_ACTIVE, WORKFLOW_INACTIVE):
        raise HTTPException(status_code=400, detail="Status must be 'Active' or 'Inactive'")


def _get_definition_or_404(db: Session, ctx: CompanyContext, workflow_id: int) -> models.WorkflowDefinition:
    definition = workflow_repo.get_definition(db, ctx.company_id, workflow_id)
    if not definition:
        raise HTTPException(status_code=404, detail="Workflow definition not found")
    return definition


def _audit(db: Session, ctx: CompanyContext, action: AuditAction, target_id=None, metadata=None) -> None:
    record(
        db,
        action=action,
        target_type="workflow_definition",
        target_id=target_id,
        actor_user_id=ctx.user.id,
        company_id=ctx.company_id,
        metadata=metadata,
    )


@router.get("/node-types", response_model=List[schemas.WorkflowNodeType])
def list_node_types(ctx: CompanyContext = Depends(get_company_context)):
    return NODE_TYPES


@router.get("", response_model=schemas.PaginatedWorkflowDefinitions)
def list_definitions(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1),
    search: Optional[str] = None,
    sort_by: Optional[str] = None,
    sort_order: Optional[str] = None,
    db: Session = Depends(get_db),
    ctx: CompanyContext = Depends(get_company_context),
):
    page, page_size = normalize_paging(page, page_size)
    items, total = workflow_repo.get_definitions(
        db,
        ctx.company_id,
        page=page,
        page_size=page_size,
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return {"data": items, "total": total, "page": page, "page_size": page_size}


@router.post("/batch-delete")
def batch_delete_definitions(
    payload: schemas.WorkflowBatchDelete,
    db: Session = Depends(get_db),
    ctx: CompanyContext = Depends(require_company_write),
):
    definitions = workflow_repo.get_definitions_by_ids(db, ctx.company_id, payload.ids)
    if not definitions:
        raise HTTPException(status_code=404, detail="No workflow definitions found")
    ids = [d.id for d in definitions]
    deleted = workflow_repo.delete_definitions(db, definitions)
    _audit(db, ctx, AuditAction.WORKFLOW_DELETE, metadata={"ids": ids})
    return {"deleted_count": deleted}


@router.post("/batch-status")
def batch_status_definitions(
    payload: schemas.WorkflowBatchStatus,
    db: Session = Depends(get_db),
    ctx: CompanyContext = Depends(require_company_write),
):
    definitions = workflow_repo.get_definitions_by_ids(db, ctx.company_id, payload.ids)
    updated = workflow_repo.set_definitions_active(db, definitions, payload.is_active, updated_by=ctx.actor)
    _audit(
        db,
        ctx,
        AuditAction.WORKFLOW_STATUS_CHANGE,
        metadata={"ids": [d.id for d in definitions], "is_active": payload.is_active},
    )
    return {"updated_count": updated}


@router.get("/{workflow_id}", response_model=schemas.WorkflowDefinition)
def get_definition(
    workflow_id: int,
    db: Session = Depends(get_db),
    ctx: CompanyContext = Depends(get_company_context),
):
    return _get_definition_or_404(db, ctx, workflow_id)


@router.post("", response_model=schemas.WorkflowDefinition, status_code=status.HTTP_201_CREATED)
def create_definition(
    payload: schemas.WorkflowDefinitionCreate,
    db: Session = Depends(get_db),
    ctx: CompanyContext = Depends(require_company_write),
):
    _ensure_valid_status(payload.status)
    _ensure_valid_graph(payload.json_data)
    definition = workflow_repo.create_definition(db, ctx.company_id, payload, created_by=ctx.actor)
    _audit(db, ctx, AuditAction.WORKFLOW_CREATE, definition.id, {"name": definition.name})
    return definition


@router.put("/{workflow_id}", response_model=schemas.WorkflowDefinition)
def update_definition(
    workflow_id: int,
    payload: schemas.WorkflowDefinitionUpdate,
    db: Session = Depends(get_db),
    ctx: CompanyContext = Depends(require_company_write),
):
    definition = _get_definition_or_404(db, ctx, workflow_id)
    if "name" in payload.model_fields_set and not (payload.name or "").strip():
        raise HTTPException(status_code=400, detail="Workflow name is required")
    _ensure_valid_status(payload.status)
    _ensure_valid_graph(payload.json_data)
    definition = workflow_repo.update_definition(db, definition, payload, updated_by=ctx.actor)
    _audit(db, ctx, AuditAction.WORKFLOW_UPDATE, definition.id)
    return definition


@router.delete("/{workflow_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_definition(
    workflow_id: int,
    db: Session = Depends(get_db),
    ctx: CompanyContext = Depends(require_company_write),
):
    definition = _get_definition_or_404(db, ctx, workflow_id)
    workflow_repo.delete_definitions(db, [definition])
    _audit(db, ctx, AuditAction.WORKFLOW_DELETE, workflow_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{workflow_id}/copy", response_model=schemas.WorkflowDefinition, status_code=status.HTTP_201_CREATED)
def copy_definition(
    workflow_id: int,
    db: Session = Depends(get_db),
    ctx: CompanyContext = Depends(require_company_write),
):
    source = _get_definition_or_404(db, ctx, workflow_id)
    copy = workflow_repo.copy_definition(db, source, created_by=ctx.actor)
    _audit(db, ctx, AuditAction.WORKFLOW_COPY, copy.id, {"source_id": workflow_id})
    return copy


@router.post("/{workflow_id}/start", response_model=schemas.WorkflowExecution, status_code=status.HTTP_201_CREATED)
def start_workflow(
    workflow_id: int,
    payload: Optional[schemas.WorkflowStartRequest] = None,
    db: Session = Depends(get_db),
    ctx: CompanyContext = Depends(require_company_write),
):
    definition = _get_definition_or_404(db, ctx, workflow_id)
    if definition.status != WORKFLOW_ACTIVE:
        raise HTTPException(status_code=400, detail="Workflow is not active")
    execution = workflow_repo.start_execution(
        db, definition, input_json=payload.input if payload else None, created_by=ctx.actor
    )
    _audit(db, ctx, AuditAction.WORKFLOW_START, workflow_id, {"execution_id": execution.id})
    out = schemas.WorkflowExecution.model_validate(execution)
    out.workflow_name = definition.name
    return out

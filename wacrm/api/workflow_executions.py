"""
Workflow execution API endpoints.

Read executions for the selected company, follow them on the realtime board,
and record runtime progress (steps, completion, failure, cancellation).
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from wacrm.api.deps import CompanyContext, get_company_context, require_company_write
from wacrm.db import models, schemas
from wacrm.db.database import get_db
from wacrm.db.repositories import normalize_paging
from wacrm.db.repositories import workflows as workflow_repo
from wacrm.services.report_service import execution_kanban
from wacrm.utils.feature_flags import realtime_reports_enabled
from wacrm.utils.statuses import OPEN_EXECUTION_STATUSES, ExecutionStatus

router = APIRouter(prefix="/workflow-executions", tags=["workflow-executions"])


def _execution_out(execution: models.WorkflowExecution, schema=schemas.WorkflowExecution):
    out = schema.model_validate(execution)
    if execution.workflow_definition is not None:
        out.workflow_name = execution.workflow_definition.name
    return out


def _get_execution_or_404(db: Session, ctx: CompanyContext, execution_id: int) -> models.WorkflowExecution:
    execution = workflow_repo.get_execution(db, ctx.company_id, execution_id)
    if not execution:
        raise HTTPException(status_code=404, detail="Workflow execution not found")
    return execution


def _get_open_execution(db: Session, ctx: CompanyContext, execution_id: int) -> models.WorkflowExecution:
    execution = _get_execution_or_404(db, ctx, execution_id)
    if execution.status not in OPEN_EXECUTION_STATUSES:
        raise HTTPException(status_code=400, detail=f"Execution is already {execution.status}")
    return execution


@router.get("", response_model=schemas.PaginatedWorkflowExecutions)
def list_executions(
    status: Optional[str] = None,
    workflow_definition_id: Optional[int] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1),
    db: Session = Depends(get_db),
    ctx: CompanyContext = Depends(get_company_context),
):
    page, page_size = normalize_paging(page, page_size)
    items, total = workflow_repo.get_executions(
        db,
        ctx.company_id,
        status=status,
        workflow_definition_id=workflow_definition_id,
        page=page,
        page_size=page_size,
    )
    return {"data": [_execution_out(e) for e in items], "total": total, "page": page, "page_size": page_size}


@router.get("/kanban")
def get_kanban(
    hours: int = Query(24, ge=1, le=24 * 31),
    db: Session = Depends(get_db),
    ctx: CompanyContext = Depends(get_company_context),
):
    if not realtime_reports_enabled():
        raise HTTPException(status_code=503, detail="Realtime reports are currently disabled")
    return execution_kanban(db, ctx.company_id, hours)


@router.get("/{execution_id}", response_model=schemas.WorkflowExecutionDetail)
def get_execution(
    execution_id: int,
    db: Session = Depends(get_db),
    ctx: CompanyContext = Depends(get_company_context),
):
    return _execution_out(_get_execution_or_404(db, ctx, execution_id), schemas.WorkflowExecutionDetail)


@router.post("/{execution_id}/cancel", response_model=schemas.WorkflowExecution)
def cancel_execution(
    execution_id: int,
    db: Session = Depends(get_db),
    ctx: CompanyContext = Depends(require_company_write),
):
    execution = _get_open_execution(db, ctx, execution_id)
    execution = workflow_repo.finish_execution(db, execution, ExecutionStatus.CANCELLED.value)
    return _execution_out(execution)


@router.post("/{execution_id}/steps", response_model=schemas.WorkflowStepExecution)
def record_step(
    execution_id: int,
    payload: schemas.WorkflowStepRecord,
    db: Session = Depends(get_db),
    ctx: CompanyContext = Depends(require_company_write),
):
    execution = _get_open_execution(db, ctx, execution_id)
    return workflow_repo.record_step(db, execution, payload)


@router.post("/{execution_id}/complete", response_model=schemas.WorkflowExecution)
def complete_execution(
    execution_id: int,
    payload: Optional[schemas.WorkflowExecutionFinish] = None,
    db: Session = Depends(get_db),
    ctx: CompanyContext = Depends(require_company_write),
):
    execution = _get_open_execution(db, ctx, execution_id)
    execution = workflow_repo.finish_execution(
        db,
        execution,
        ExecutionStatus.COMPLETED.value,
        output_json=payload.output_json if payload else None,
    )
    return _execution_out(execution)


@router.post("/{execution_id}/fail", response_model=schemas.WorkflowExecution)
def fail_execution(
    execution_id: int,
    payload: Optional[schemas.WorkflowExecutionFinish] = None,
    db: Session = Depends(get_db),
    ctx: CompanyContext = Depends(require_company_write),
):
    execution = _get_open_execution(db, ctx, execution_id)
    execution = workflow_repo.finish_execution(
        db,
        execution,
        ExecutionStatus.FAILED.value,
        output_json=payload.output_json if payload else None,
        error_message=(payload.error_message if payload else None) or "Execution failed",
    )
    return _execution_out(execution)

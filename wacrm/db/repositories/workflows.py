"""
Workflow definition and execution repository functions.

Executions carry no company column; they are scoped through their
definition, so every execution query joins ``workflow_definitions``.
"""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional, List, Tuple, Any
from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from wacrm.db import models, schemas
from wacrm.db.models.base import now_utc
from wacrm.db.repositories import paginate
from wacrm.utils.statuses import WORKFLOW_ACTIVE, WORKFLOW_INACTIVE, ExecutionStatus

_SORT_COLUMNS = {
    "name": models.WorkflowDefinition.name,
    "createdby": models.WorkflowDefinition.created_by,
    "createdat": models.WorkflowDefinition.created_at,
    "updatedat": models.WorkflowDefinition.updated_at,
    "status": models.WorkflowDefinition.status,
}


# Definitions

def get_definitions(
    db: Session,
    company_id: uuid.UUID,
    *,
    page: int = 1,
    page_size: int = 20,
    search: Optional[str] = None,
    sort_by: Optional[str] = None,
    sort_order: Optional[str] = None,
) -> Tuple[List[models.WorkflowDefinition], int]:
    q = db.query(models.WorkflowDefinition).filter(models.WorkflowDefinition.company_id == company_id)
    if search and search.strip():
        pattern = f"%{search.strip()}%"
        q = q.filter(or_(models.WorkflowDefinition.name.ilike(pattern), models.WorkflowDefinition.created_by.ilike(pattern)))
    key = (sort_by or "").replace("_", "").strip().lower()
    column = _SORT_COLUMNS.get(key, models.WorkflowDefinition.created_at)
    ascending = (sort_order or "").strip().lower() == "asc"
    q = q.order_by(column.asc() if ascending else column.desc(), models.WorkflowDefinition.id.desc())
    return paginate(q, page, page_size)


def get_definition(db: Session, company_id: uuid.UUID, workflow_id: int) -> Optional[models.WorkflowDefinition]:
    return (
        db.query(models.WorkflowDefinition)
        .filter(models.WorkflowDefinition.id == workflow_id, models.WorkflowDefinition.company_id == company_id)
        .first()
    )


def get_definitions_by_ids(db: Session, company_id: uuid.UUID, ids: List[int]) -> List[models.WorkflowDefinition]:
    if not ids:
        return []
    return (
        db.query(models.WorkflowDefinition)
        .filter(models.WorkflowDefinition.company_id == company_id, models.WorkflowDefinition.id.in_(ids))
        .all()
    )


def create_definition(db: Session, company_id: uuid.UUID, workflow: schemas.WorkflowDefinitionCreate, created_by: Optional[str] = None):
    data = workflow.model_dump(by_alias=True)
    db_workflow = models.WorkflowDefinition(
        company_id=company_id,
        name=data["name"],
        description=data.get("description"),
        json=data.get("json"),
        status=data.get("status") or WORKFLOW_ACTIVE,
        created_by=created_by,
        updated_by=created_by,
    )
    db.add(db_workflow)
    db.commit()
    db.refresh(db_workflow)
    return db_workflow


def update_definition(db: Session, db_workflow: models.WorkflowDefinition, workflow: schemas.WorkflowDefinitionUpdate, updated_by: Optional[str] = None):
    for key, value in workflow.model_dump(exclude_unset=True, by_alias=True).items():
        setattr(db_workflow, key, value)
    db_workflow.updated_by = updated_by
    db_workflow.updated_at = now_utc()
    db.commit()
    db.refresh(db_workflow)
    return db_workflow


def copy_definition(db: Session, source: models.WorkflowDefinition, created_by: Optional[str] = None):
    copy = models.WorkflowDefinition(
        company_id=source.company_id,
        name=f"{source.name} - Copy",
        description=source.description,
        json=source.json,
        status=WORKFLOW_ACTIVE,
        created_by=created_by,
        updated_by=created_by,
    )
    db.add(copy)
    db.commit()
    db.refresh(copy)
    return copy


def delete_definitions(db: Session, definitions: List[models.WorkflowDefinition]) -> int:
    for definition in definitions:
        db.delete(definition)
    db.commit()
    return len(definitions)


def set_definitions_active(db: Session, definitions: List[models.WorkflowDefinition], is_active: bool, updated_by: Optional[str] = None) -> int:
    status = WORKFLOW_ACTIVE if is_active else WORKFLOW_INACTIVE
    stamp = now_utc()
    for definition in definitions:
        definition.status = status
        definition.updated_by = updated_by
        definition.updated_at = stamp
    db.commit()
    return len(definitions)


# Executions

def _company_executions(db: Session, company_id: uuid.UUID):
    return (
        db.query(models.WorkflowExecution)
        .join(models.WorkflowDefinition, models.WorkflowDefinition.id == models.WorkflowExecution.workflow_definition_id)
        .filter(models.WorkflowDefinition.company_id == company_id)
        .options(joinedload(models.WorkflowExecution.workflow_definition))
    )


def start_execution(db: Session, definition: models.WorkflowDefinition, input_json: Any = None, created_by: Optional[str] = None):
    started = now_utc()
    execution = models.WorkflowExecution(
        workflow_definition_id=definition.id,
        status=ExecutionStatus.RUNNING.value,
        current_step=0,
        input_json=input_json,
        started_at=started,
        created_by=created_by,
        is_waiting=False,
        last_user_activity=started,
    )
    execution.steps = [
        models.WorkflowStepExecution(
            step_index=0,
            step_type="start",
            status=ExecutionStatus.COMPLETED.value,
            input_json=input_json,
            started_at=started,
            ended_at=started,
            is_waiting=False,
        )
    ]
    db.add(execution)
    db.commit()
    db.refresh(execution)
    return execution


def get_executions(
    db: Session,
    company_id: uuid.UUID,
    *,
    status: Optional[str] = None,
    workflow_definition_id: Optional[int] = None,
    page: int = 1,
    page_size: int = 20,
) -> Tuple[List[models.WorkflowExecution], int]:
    q = _company_executions(db, company_id)
    if status:
        q = q.filter(models.WorkflowExecution.status == status)
    if workflow_definition_id:
        q = q.filter(models.WorkflowExecution.workflow_definition_id == workflow_definition_id)
    q = q.order_by(models.WorkflowExecution.started_at.desc(), models.WorkflowExecution.id.desc())
    return paginate(q, page, page_size)


def get_execution(db: Session, company_id: uuid.UUID, execution_id: int) -> Optional[models.WorkflowExecution]:
    return (
        _company_executions(db, company_id)
        .options(joinedload(models.WorkflowExecution.steps))
        .filter(models.WorkflowExecution.id == execution_id)
        .first()
    )


def get_executions_between(db: Session, company_id: uuid.UUID, start: datetime, end: datetime) -> List[models.WorkflowExecution]:
    """Executions started in ``[start, end)`` for reports and the kanban board."""
    return (
        _company_executions(db, company_id)
        .filter(models.WorkflowExecution.started_at >= start, models.WorkflowExecution.started_at < end)
        .order_by(models.WorkflowExecution.started_at.desc())
        .all()
    )


def get_failed_steps_between(db: Session, company_id: uuid.UUID, start: datetime, end: datetime) -> List[models.WorkflowStepExecution]:
    return (
        db.query(models.WorkflowStepExecution)
        .join(models.WorkflowExecution, models.WorkflowExecution.id == models.WorkflowStepExecution.workflow_execution_id)
        .join(models.WorkflowDefinition, models.WorkflowDefinition.id == models.WorkflowExecution.workflow_definition_id)
        .filter(
            models.WorkflowDefinition.company_id == company_id,
            models.WorkflowExecution.started_at >= start,
            models.WorkflowExecution.started_at < end,
            or_(
                models.WorkflowStepExecution.status.ilike("%fail%"),
                models.WorkflowStepExecution.status.ilike("%error%"),
            ),
        )
        .all()
    )


def record_step(db: Session, execution: models.WorkflowExecution, step: schemas.WorkflowStepRecord):
    now = now_utc()
    index = step.step_index
    if index is None:
        index = max((s.step_index for s in execution.steps), default=-1) + 1
    finished = step.status in (ExecutionStatus.COMPLETED.value, ExecutionStatus.FAILED.value)
    db_step = models.WorkflowStepExecution(
        workflow_execution_id=execution.id,
        step_index=index,
        step_type=step.step_type,
        status=step.status,
        input_json=step.input_json,
        output_json=step.output_json,
        started_at=now,
        ended_at=now if finished else None,
        is_waiting=step.is_waiting,
        waiting_for_user=step.waiting_for_user,
        error_message=step.error_message,
    )
    db.add(db_step)
    execution.current_step = index
    execution.last_user_activity = now
    if step.is_waiting:
        execution.status = ExecutionStatus.WAITING.value
        execution.is_waiting = True
        execution.waiting_since = now
        execution.current_waiting_step = index
        execution.waiting_for_user = step.waiting_for_user
    elif execution.is_waiting:
        execution.status = ExecutionStatus.RUNNING.value
        execution.is_waiting = False
        execution.waiting_since = None
        execution.current_waiting_step = None
        execution.waiting_for_user = None
    db.commit()
    db.refresh(db_step)
    return db_step


def finish_execution(db: Session, execution: models.WorkflowExecution, status: str, output_json: Any = None, error_message: Optional[str] = None):
    execution.status = status
    execution.ended_at = now_utc()
    execution.is_waiting = False
    execution.waiting_since = None
    execution.current_waiting_step = None
    execution.waiting_for_user = None
    if output_json is not None:
        execution.output_json = output_json
    if error_message is not None:
        execution.error_message = error_message
    db.commit()
    db.refresh(execution)
    return execution

"""
Data set API endpoints.

Company-scoped data set definitions (columns plus data source settings)
and their records, which workflows read through ``dbQuery`` nodes.
"""
import logging
import math
import uuid
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from wacrm.audit import AuditAction, record
from wacrm.api.deps import CompanyContext, get_company_context, require_company_write
from wacrm.db import models, schemas
from wacrm.db.database import get_db
from wacrm.db.repositories import datasets as dataset_repo
from wacrm.db.repositories import normalize_paging
from wacrm.services.api_key_protector import get_protector
from wacrm.utils.dataset_values import DataSetValueError, prepare_record, read_value

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/datasets", tags=["datasets"])


def _get_data_set_or_404(db: Session, ctx: CompanyContext, data_set_id: uuid.UUID) -> models.DataSet:
    data_set = dataset_repo.get_data_set(db, ctx.company_id, data_set_id)
    if not data_set:
        raise HTTPException(status_code=404, detail="Data set not found")
    return data_set


def _get_record_or_404(db: Session, data_set: models.DataSet, record_id: uuid.UUID) -> models.DataSetRecord:
    db_record = dataset_repo.get_record(db, data_set, record_id)
    if not db_record:
        raise HTTPException(status_code=404, detail="Record not found")
    return db_record


def _audit(db: Session, ctx: CompanyContext, action: AuditAction, target_type: str, target_id=None, metadata=None) -> None:
    record(
        db,
        action=action,
        target_type=target_type,
        target_id=target_id,
        actor_user_id=ctx.user.id,
        company_id=ctx.company_id,
        metadata=metadata,
    )


def _protector_for(source: Optional[schemas.DataSetDataSourceWrite]):
    if source is None or (source.database_connection is None and source.authentication_config is None):
        return None
    return get_protector()


def _record_view(data_set: models.DataSet, db_record: models.DataSetRecord) -> Dict[str, Any]:
    types = {c.column_name: c.data_type for c in data_set.columns}
    # Values of columns removed from the definition are not shown
    values = {v.column_name: read_value(types[v.column_name], v) for v in db_record.values if v.column_name in types}
    return {
        "id": db_record.id,
        "data_set_id": db_record.data_set_id,
        "primary_key_value": db_record.primary_key_value,
        "status": db_record.status,
        "created_at": db_record.created_at,
        "updated_at": db_record.updated_at,
        "values": values,
    }


def _prepare_or_400(db: Session, data_set: models.DataSet, payload: schemas.DataSetRecordWrite, exclude_id=None):
    typed, primary_key, errors = prepare_record(data_set.columns, payload.values)
    if errors:
        raise HTTPException(status_code=400, detail={"message": "Invalid record", "errors": errors})
    if dataset_repo.primary_key_taken(db, data_set, primary_key, exclude_id=exclude_id):
        raise HTTPException(status_code=409, detail=f"A record with primary key '{primary_key}' already exists")
    return typed, primary_key


def _records_page(
    db: Session,
    data_set: models.DataSet,
    *,
    page: int,
    page_size: int,
    conditions: List[Any],
    sort_by: Optional[str],
    sort_order: Optional[str],
) -> Dict[str, Any]:
    page, page_size = normalize_paging(page, page_size)
    items, total = dataset_repo.get_records(
        db,
        data_set,
        page=page,
        page_size=page_size,
        conditions=conditions,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return {
        "data": [_record_view(data_set, item) for item in items],
        "total": total,
        "page": page,
        "page_size": page_size,
        "total_pages": math.ceil(total / page_size),
    }


def _condition_or_400(data_set: models.DataSet, column_name: str, operator: Optional[str], value: Any):
    column = next((c for c in data_set.columns if c.column_name == column_name), None)
    if column is None:
        raise HTTPException(status_code=400, detail=f"Unknown column '{column_name}'")
    try:
        return dataset_repo.record_condition(column, operator, value)
    except DataSetValueError as exc:
        raise HTTPException(status_code=400, detail=f"{column_name}: {exc}") from exc


@router.get("", response_model=schemas.PaginatedDataSets)
def list_data_sets(
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1),
    search: Optional[str] = None,
    sort_by: Optional[str] = None,
    sort_order: Optional[str] = None,
    db: Session = Depends(get_db),
    ctx: CompanyContext = Depends(get_company_context),
):
    page, page_size = normalize_paging(page, page_size)
    items, total = dataset_repo.get_data_sets(
        db,
        ctx.company_id,
        page=page,
        page_size=page_size,
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return {
        "data": items,
        "total": total,
        "page": page,
        "page_size": page_size,
        "total_pages": math.ceil(total / page_size),
    }


@router.get("/{data_set_id}", response_model=schemas.DataSet)
def get_data_set(
    data_set_id: uuid.UUID,
    db: Session = Depends(get_db),
    ctx: CompanyContext = Depends(get_company_context),
):
    return _get_data_set_or_404(db, ctx, data_set_id)


@router.post("", response_model=schemas.DataSet, status_code=status.HTTP_201_CREATED)
def create_data_set(
    payload: schemas.DataSetCreate,
    db: Session = Depends(get_db),
    ctx: CompanyContext = Depends(require_company_write),
):
    data_set = dataset_repo.create_data_set(
        db, ctx.company_id, payload, protector=_protector_for(payload.data_source), created_by=ctx.actor
    )
    logger.info("Data set %s created for company %s", data_set.id, ctx.company_id)
    _audit(db, ctx, AuditAction.DATASET_CREATE, "data_set", data_set.id, {"name": data_set.name})
    return data_set


@router.put("/{data_set_id}", response_model=schemas.DataSet)
def update_data_set(
    data_set_id: uuid.UUID,
    payload: schemas.DataSetUpdate,
    db: Session = Depends(get_db),
    ctx: CompanyContext = Depends(require_company_write),
):
    data_set = _get_data_set_or_404(db, ctx, data_set_id)
    data_set = dataset_repo.update_data_set(
        db, data_set, payload, protector=_protector_for(payload.data_source), updated_by=ctx.actor
    )
    _audit(db, ctx, AuditAction.DATASET_UPDATE, "data_set", data_set.id)
    return data_set


@router.delete("/{data_set_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_data_set(
    data_set_id: uuid.UUID,
    db: Session = Depends(get_db),
    ctx: CompanyContext = Depends(require_company_write),
):
    data_set = _get_data_set_or_404(db, ctx, data_set_id)
    name = data_set.name
    dataset_repo.delete_data_set(db, data_set)
    _audit(db, ctx, AuditAction.DATASET_DELETE, "data_set", data_set_id, {"name": name})
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{data_set_id}/records", response_model=schemas.PaginatedDataSetRecords)
def list_records(
    data_set_id: uuid.UUID,
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1),
    search_key: Optional[str] = None,
    search_value: Optional[str] = None,
    sort_by: Optional[str] = None,
    sort_order: Optional[str] = None,
    db: Session = Depends(get_db),
    ctx: CompanyContext = Depends(get_company_context),
):
    """Records newest first; ``search_key``/``search_value`` filter on one column."""
    data_set = _get_data_set_or_404(db, ctx, data_set_id)
    conditions = []
    if search_key and search_value:
        conditions.append(_condition_or_400(data_set, search_key, "equals", search_value))
    return _records_page(
        db,
        data_set,
        page=page,
        page_size=page_size,
        conditions=conditions,
        sort_by=sort_by,
        sort_order=sort_order,
    )


@router.post("/{data_set_id}/records/search", response_model=schemas.PaginatedDataSetRecords)
def search_records(
    data_set_id: uuid.UUID,
    payload: schemas.DataSetRecordSearch,
    db: Session = Depends(get_db),
    ctx: CompanyContext = Depends(get_company_context),
):
    """Records matching every condition."""
    data_set = _get_data_set_or_404(db, ctx, data_set_id)
    conditions = [_condition_or_400(data_set, c.column_name, c.operator, c.value) for c in payload.conditions]
    return _records_page(
        db,
        data_set,
        page=payload.page,
        page_size=payload.page_size,
        conditions=conditions,
        sort_by=payload.sort_by,
        sort_order=payload.sort_order,
    )


@router.post("/{data_set_id}/records", response_model=schemas.DataSetRecord, status_code=status.HTTP_201_CREATED)
def create_record(
    data_set_id: uuid.UUID,
    payload: schemas.DataSetRecordWrite,
    db: Session = Depends(get_db),
    ctx: CompanyContext = Depends(require_company_write),
):
    data_set = _get_data_set_or_404(db, ctx, data_set_id)
    typed, primary_key = _prepare_or_400(db, data_set, payload)
    db_record = dataset_repo.create_record(db, data_set, typed, primary_key, status=payload.status)
    _audit(db, ctx, AuditAction.DATASET_RECORD_CREATE, "data_set_record", db_record.id, {"data_set_id": str(data_set_id)})
    return _record_view(data_set, db_record)


@router.put("/{data_set_id}/records/{record_id}", response_model=schemas.DataSetRecord)
def update_record(
    data_set_id: uuid.UUID,
    record_id: uuid.UUID,
    payload: schemas.DataSetRecordWrite,
    db: Session = Depends(get_db),
    ctx: CompanyContext = Depends(require_company_write),
):
    """Replace every value of a record."""
    data_set = _get_data_set_or_404(db, ctx, data_set_id)
    db_record = _get_record_or_404(db, data_set, record_id)
    typed, primary_key = _prepare_or_400(db, data_set, payload, exclude_id=db_record.id)
    db_record = dataset_repo.update_record(db, data_set, db_record, typed, primary_key, status=payload.status)
    _audit(db, ctx, AuditAction.DATASET_RECORD_UPDATE, "data_set_record", db_record.id, {"data_set_id": str(data_set_id)})
    return _record_view(data_set, db_record)


@router.delete("/{data_set_id}/records/{record_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_record(
    data_set_id: uuid.UUID,
    record_id: uuid.UUID,
    db: Session = Depends(get_db),
    ctx: CompanyContext = Depends(require_company_write),
):
    data_set = _get_data_set_or_404(db, ctx, data_set_id)
    db_record = _get_record_or_404(db, data_set, record_id)
    dataset_repo.delete_record(db, data_set, db_record)
    _audit(db, ctx, AuditAction.DATASET_RECORD_DELETE, "data_set_record", record_id, {"data_set_id": str(data_set_id)})
    return Response(status_code=status.HTTP_204_NO_CONTENT)

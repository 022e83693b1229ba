"""
Data set repository functions.

Records store one ``DataSetRecordValue`` row per column; searches and
column sorts go through correlated subqueries on those rows.
"""
from __future__ import annotations

import uuid
from typing import Any, Dict, List, Optional, Tuple
from sqlalchemy import and_, func, or_, select
from sqlalchemy.orm import Session, selectinload

from wacrm.db import models, schemas
from wacrm.db.models.base import now_utc
from wacrm.db.repositories import paginate
from wacrm.utils.dataset_values import DataSetValueError, coerce_value, value_slots

_SORT_COLUMNS = {
    "name": models.DataSet.name,
    "datasourcetype": models.DataSet.data_source_type,
    "status": models.DataSet.status,
    "totalrecords": models.DataSet.total_records,
    "lastdatasynctime": models.DataSet.last_data_sync_time,
    "createdat": models.DataSet.created_at,
    "updatedat": models.DataSet.updated_at,
}
# Columns that may not be set to NULL through an update
_REQUIRED_FIELDS = ("name", "data_source_type", "status", "is_scheduled")


# Data sets

def get_data_sets(
    db: Session,
    company_id: uuid.UUID,
    *,
    page: int = 1,
    page_size: int = 10,
    search: Optional[str] = None,
    sort_by: Optional[str] = None,
    sort_order: Optional[str] = None,
) -> Tuple[List[models.DataSet], int]:
    q = (
        db.query(models.DataSet)
        .options(selectinload(models.DataSet.columns), selectinload(models.DataSet.data_source))
        .filter(models.DataSet.company_id == company_id)
    )
    if search and search.strip():
        pattern = f"%{search.strip()}%"
        q = q.filter(or_(models.DataSet.name.ilike(pattern), models.DataSet.description.ilike(pattern)))
    key = (sort_by or "").replace("_", "").strip().lower()
    column = _SORT_COLUMNS.get(key, models.DataSet.created_at)
    ascending = (sort_order or "").strip().lower() == "asc"
    q = q.order_by(column.asc() if ascending else column.desc(), models.DataSet.id)
    return paginate(q, page, page_size)


def get_data_set(db: Session, company_id: uuid.UUID, data_set_id: uuid.UUID) -> Optional[models.DataSet]:
    return (
        db.query(models.DataSet)
        .filter(models.DataSet.id == data_set_id, models.DataSet.company_id == company_id)
        .first()
    )


def _apply_data_source(db_data_set: models.DataSet, payload: schemas.DataSetDataSourceWrite, protector) -> None:
    source = db_data_set.data_source
    if source is None:
        source = models.DataSetDataSource()
        db_data_set.data_source = source
    data = payload.model_dump(exclude={"database_connection", "authentication_config"})
    for key, value in data.items():
        setattr(source, key, value)
    if payload.database_connection is not None:
        source.database_connection_encrypted = protector.protect(payload.database_connection.strip())
    if payload.authentication_config is not None:
        source.authentication_config_encrypted = protector.protect(payload.authentication_config.strip())
    source.last_update_time = now_utc()


def _build_columns(columns: List[schemas.DataSetColumnCreate]) -> List[models.DataSetColumn]:
    return [models.DataSetColumn(**column.model_dump()) for column in columns]


def create_data_set(
    db: Session,
    company_id: uuid.UUID,
    payload: schemas.DataSetCreate,
    protector=None,
    created_by: Optional[str] = None,
):
    """Create a data set with its columns. ``protector`` seals data source secrets."""
    db_data_set = models.DataSet(
        company_id=company_id,
        name=payload.name,
        description=payload.description,
        data_source_type=payload.data_source_type,
        is_scheduled=payload.is_scheduled,
        update_interval_minutes=payload.update_interval_minutes,
        created_by=created_by,
    )
    db_data_set.columns = _build_columns(payload.columns)
    if payload.data_source is not None:
        _apply_data_source(db_data_set, payload.data_source, protector)
    db.add(db_data_set)
    db.commit()
    db.refresh(db_data_set)
    return db_data_set


def update_data_set(
    db: Session,
    db_data_set: models.DataSet,
    payload: schemas.DataSetUpdate,
    protector=None,
    updated_by: Optional[str] = None,
):
    data = payload.model_dump(exclude_unset=True, exclude={"columns", "data_source"})
    for key, value in data.items():
        if value is None and key in _REQUIRED_FIELDS:
            continue
        setattr(db_data_set, key, value)
    if payload.columns:
        db_data_set.columns = _build_columns(payload.columns)
    if payload.data_source is not None:
        _apply_data_source(db_data_set, payload.data_source, protector)
    db_data_set.updated_by = updated_by
    db_data_set.updated_at = now_utc()
    db.commit()
    db.refresh(db_data_set)
    return db_data_set


def delete_data_set(db: Session, db_data_set: models.DataSet) -> None:
    db.delete(db_data_set)
    db.commit()


# Records

def _slot_column(data_type: str):
    v = models.DataSetRecordValue
    if data_type in ("int", "decimal"):
        return v.numeric_value
    if data_type == "datetime":
        return v.date_value
    if data_type == "boolean":
        return v.boolean_value
    return func.coalesce(v.string_value, v.text_value)


def record_condition(column: models.DataSetColumn, operator: Optional[str], value: Any):
    """SQL filter matching records whose value in ``column`` satisfies ``operator``.

    Raises ``DataSetValueError`` for unknown operators, operators that do not
    apply to the column type, and values that do not parse.
    """
    v = models.DataSetRecordValue
    op = (operator or "").strip().lower()
    data_type = column.data_type
    if op == "equals":
        typed = coerce_value(data_type, value)
        if typed is None:
            raise DataSetValueError("a value is required")
        if data_type == "string":
            match = or_(v.string_value == typed, v.text_value == typed)
        else:
            match = _slot_column(data_type) == typed
    elif op == "contains":
        if data_type != "string":
            raise DataSetValueError("contains only applies to string columns")
        text = coerce_value("string", value)
        if text is None:
            raise DataSetValueError("a value is required")
        pattern = f"%{text}%"
        match = or_(v.string_value.ilike(pattern), v.text_value.ilike(pattern))
    elif op in ("greater_than", "less_than"):
        if data_type not in ("int", "decimal", "datetime"):
            raise DataSetValueError(f"{op} only applies to number and date columns")
        typed = coerce_value(data_type, value)
        if typed is None:
            raise DataSetValueError("a value is required")
        slot = _slot_column(data_type)
        match = slot > typed if op == "greater_than" else slot < typed
    elif op == "date_range":
        if data_type != "datetime":
            raise DataSetValueError("date_range only applies to datetime columns")
        parts = str(value or "").split(",")
        if len(parts) != 2:
            raise DataSetValueError("date_range expects 'start,end'")
        start, end = (coerce_value("datetime", part) for part in parts)
        if start is None or end is None:
            raise DataSetValueError("date_range expects 'start,end'")
        match = and_(v.date_value >= start, v.date_value <= end)
    else:
        raise DataSetValueError(f"unsupported operator '{operator}'")
    return models.DataSetRecord.values.any(and_(v.column_name == column.column_name, match))


def get_records(
    db: Session,
    db_data_set: models.DataSet,
    *,
    page: int = 1,
    page_size: int = 50,
    conditions: Optional[List[Any]] = None,
    sort_by: Optional[str] = None,
    sort_order: Optional[str] = None,
) -> Tuple[List[models.DataSetRecord], int]:
    record = models.DataSetRecord
    q = (
        db.query(record)
        .options(selectinload(record.values))
        .filter(record.data_set_id == db_data_set.id)
    )
    for condition in conditions or []:
        q = q.filter(condition)
    descending = (sort_order or "").strip().lower() == "desc"
    columns = {c.column_name: c for c in db_data_set.columns}
    if sort_by == "created_at":
        key = record.created_at
    elif sort_by == "primary_key_value":
        key = record.primary_key_value
    elif sort_by in columns:
        v = models.DataSetRecordValue
        key = (
            select(_slot_column(columns[sort_by].data_type))
            .where(v.record_id == record.id, v.column_name == sort_by)
            .limit(1)
            .scalar_subquery()
        )
    else:
        key, descending = record.created_at, True
    q = q.order_by(key.desc() if descending else key.asc(), record.id)
    return paginate(q, page, page_size)


def get_record(db: Session, db_data_set: models.DataSet, record_id: uuid.UUID) -> Optional[models.DataSetRecord]:
    return (
        db.query(models.DataSetRecord)
        .filter(models.DataSetRecord.id == record_id, models.DataSetRecord.data_set_id == db_data_set.id)
        .first()
    )


def primary_key_taken(
    db: Session,
    db_data_set: models.DataSet,
    primary_key_value: Optional[str],
    exclude_id: Optional[uuid.UUID] = None,
) -> bool:
    if primary_key_value is None:
        return False
    q = db.query(models.DataSetRecord.id).filter(
        models.DataSetRecord.data_set_id == db_data_set.id,
        models.DataSetRecord.primary_key_value == primary_key_value,
    )
    if exclude_id is not None:
        q = q.filter(models.DataSetRecord.id != exclude_id)
    return q.first() is not None


def _build_values(db_data_set: models.DataSet, typed: Dict[str, Any]) -> List[models.DataSetRecordValue]:
    types = {c.column_name: c.data_type for c in db_data_set.columns}
    return [
        models.DataSetRecordValue(column_name=name, **value_slots(types[name], value))
        for name, value in typed.items()
    ]


def _refresh_total(db: Session, db_data_set: models.DataSet) -> None:
    db.flush()
    db_data_set.total_records = (
        db.query(func.count(models.DataSetRecord.id))
        .filter(models.DataSetRecord.data_set_id == db_data_set.id)
        .scalar()
    )


def create_record(
    db: Session,
    db_data_set: models.DataSet,
    typed: Dict[str, Any],
    primary_key_value: Optional[str],
    status: Optional[str] = None,
) -> models.DataSetRecord:
    db_record = models.DataSetRecord(
        data_set_id=db_data_set.id,
        primary_key_value=primary_key_value,
        status=status,
        values=_build_values(db_data_set, typed),
    )
    db.add(db_record)
    _refresh_total(db, db_data_set)
    db.commit()
    db.refresh(db_record)
    return db_record


def update_record(
    db: Session,
    db_data_set: models.DataSet,
    db_record: models.DataSetRecord,
    typed: Dict[str, Any],
    primary_key_value: Optional[str],
    status: Optional[str] = None,
) -> models.DataSetRecord:
    db_record.values = _build_values(db_data_set, typed)
    db_record.primary_key_value = primary_key_value
    if status is not None:
        db_record.status = status
    db_record.updated_at = now_utc()
    db.commit()
    db.refresh(db_record)
    return db_record


def delete_record(db: Session, db_data_set: models.DataSet, db_record: models.DataSetRecord) -> None:
    db.delete(db_record)
    _refresh_total(db, db_data_set)
    db.commit()

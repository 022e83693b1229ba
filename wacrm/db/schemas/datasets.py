import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from wacrm.utils.dataset_values import DataSetValueError, coerce_value
from wacrm.utils.statuses import DATASET_COLUMN_TYPES, DATASET_SOURCE_TYPES, DATASET_STATUSES


def _check_source_type(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = v.strip().upper()
    if v not in DATASET_SOURCE_TYPES:
        raise ValueError(f"Data source type must be one of {', '.join(sorted(DATASET_SOURCE_TYPES))}")
    return v


def _check_columns(columns: Optional[List["DataSetColumnCreate"]]) -> None:
    if not columns:
        return
    names = [c.column_name.lower() for c in columns]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        raise ValueError(f"Duplicate column names: {', '.join(duplicates)}")
    if sum(1 for c in columns if c.is_primary_key) > 1:
        raise ValueError("Only one column can be the primary key")


class DataSetColumnBase(BaseModel):
    column_name: str = Field(max_length=100)
    display_name: str | None = Field(default=None, max_length=100)
    data_type: str = "string"
    max_length: int | None = Field(default=None, ge=1)
    is_required: bool = False
    is_primary_key: bool = False
    is_searchable: bool = False
    is_sortable: bool = False
    is_indexed: bool = False
    default_value: str | None = Field(default=None, max_length=500)
    sort_order: int = 0

    @field_validator("column_name")
    @classmethod
    def _column_name_required(cls, v: str):
        v = (v or "").strip()
        if not v:
            raise ValueError("Column name is required")
        return v

    @field_validator("data_type")
    @classmethod
    def _known_type(cls, v: str):
        v = (v or "").strip().lower()
        if v not in DATASET_COLUMN_TYPES:
            raise ValueError(f"Data type must be one of {', '.join(sorted(DATASET_COLUMN_TYPES))}")
        return v


class DataSetColumnCreate(DataSetColumnBase):
    @model_validator(mode="after")
    def _default_fits_type(self):
        try:
            coerce_value(self.data_type, self.default_value, self.max_length)
        except DataSetValueError as exc:
            raise ValueError(f"Default value of {self.column_name}: {exc}") from exc
        return self


class DataSetColumn(DataSetColumnBase):
    id: uuid.UUID
    data_set_id: uuid.UUID
    model_config = ConfigDict(from_attributes=True)


class DataSetDataSourceBase(BaseModel):
    source_type: str
    sql_query: str | None = None
    sql_parameters: str | None = Field(default=None, max_length=2000)
    excel_file_path: str | None = Field(default=None, max_length=1000)
    excel_sheet_name: str | None = Field(default=None, max_length=100)
    google_docs_url: str | None = Field(default=None, max_length=1000)
    google_docs_sheet_name: str | None = Field(default=None, max_length=100)

    @field_validator("source_type")
    @classmethod
    def _known_source(cls, v: str):
        return _check_source_type(v)


class DataSetDataSourceWrite(DataSetDataSourceBase):
    # Sealed at rest; omit to keep the stored value, send "" to clear it
    database_connection: str | None = Field(default=None, max_length=1000)
    authentication_config: str | None = Field(default=None, max_length=2000)


class DataSetDataSource(DataSetDataSourceBase):
    id: uuid.UUID
    data_set_id: uuid.UUID
    has_database_connection: bool = False
    has_authentication_config: bool = False
    last_update_time: datetime | None = None
    model_config = ConfigDict(from_attributes=True)


class DataSetBase(BaseModel):
    name: str = Field(max_length=200)
    description: str | None = Field(default=None, max_length=500)
    data_source_type: str
    is_scheduled: bool = False
    update_interval_minutes: int | None = Field(default=None, ge=1)

    @field_validator("name")
    @classmethod
    def _name_required(cls, v: str):
        v = (v or "").strip()
        if not v:
            raise ValueError("Data set name is required")
        return v

    @field_validator("data_source_type")
    @classmethod
    def _known_source(cls, v: str):
        return _check_source_type(v)


class DataSetCreate(DataSetBase):
    columns: List[DataSetColumnCreate] = Field(default_factory=list)
    data_source: DataSetDataSourceWrite | None = None

    @model_validator(mode="after")
    def _unique_columns(self):
        _check_columns(self.columns)
        return self


class DataSetUpdate(BaseModel):
    name: str | None = Field(default=None, max_length=200)
    description: str | None = Field(default=None, max_length=500)
    data_source_type: str | None = None
    status: str | None = None
    is_scheduled: bool | None = None
    update_interval_minutes: int | None = Field(default=None, ge=1)
    # A non-empty list replaces every column definition
    columns: List[DataSetColumnCreate] | None = None
    data_source: DataSetDataSourceWrite | None = None

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, v):
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("Data set name is required")
        return v

    @field_validator("data_source_type")
    @classmethod
    def _known_source(cls, v):
        return _check_source_type(v)

    @field_validator("status")
    @classmethod
    def _known_status(cls, v):
        if v is not None and v not in DATASET_STATUSES:
            raise ValueError(f"Status must be one of {', '.join(sorted(DATASET_STATUSES))}")
        return v

    @model_validator(mode="after")
    def _unique_columns(self):
        _check_columns(self.columns)
        return self


class DataSet(DataSetBase):
    id: uuid.UUID
    company_id: uuid.UUID
    status: str
    total_records: int
    last_data_sync_time: datetime | None = None
    sync_status: str
    created_at: datetime
    updated_at: datetime | None = None
    created_by: str | None = None
    updated_by: str | None = None
    columns: List[DataSetColumn] = Field(default_factory=list)
    data_source: DataSetDataSource | None = None
    model_config = ConfigDict(from_attributes=True)


class PaginatedDataSets(BaseModel):
    data: List[DataSet]
    total: int
    page: int
    page_size: int
    total_pages: int


class DataSetRecordWrite(BaseModel):
    values: Dict[str, Any]
    status: str | None = Field(default=None, max_length=50)


class DataSetRecord(BaseModel):
    id: uuid.UUID
    data_set_id: uuid.UUID
    primary_key_value: str | None = None
    status: str | None = None
    created_at: datetime
    updated_at: datetime | None = None
    values: Dict[str, Any]


class PaginatedDataSetRecords(BaseModel):
    data: List[DataSetRecord]
    total: int
    page: int
    page_size: int
    total_pages: int


class DataSetQueryCondition(BaseModel):
    column_name: str
    # equals | contains | greater_than | less_than | date_range ("start,end")
    operator: str
    value: Any = None


class DataSetRecordSearch(BaseModel):
    conditions: List[DataSetQueryCondition] = Field(default_factory=list)
    sort_by: str | None = None
    sort_order: str | None = None
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=50, ge=1)

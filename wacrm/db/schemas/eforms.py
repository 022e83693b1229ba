import uuid
from datetime import datetime
from typing import Any, Dict, List
from pydantic import BaseModel, ConfigDict, Field, field_validator


class EFormBase(BaseModel):
    name: str = Field(max_length=200)
    description: str | None = None
    html_code: str | None = None
    form_json: Dict[str, Any] | None = None
    source_file_path: str | None = None
    field_display_settings: Dict[str, Any] | None = None

    @field_validator("name")
    @classmethod
    def _name_required(cls, v: str):
        v = (v or "").strip()
        if not v:
            raise ValueError("Form name is required")
        return v


class EFormCreate(EFormBase):
    pass


class EFormUpdate(BaseModel):
    name: str | None = Field(default=None, max_length=200)
    description: str | None = None
    html_code: str | None = None
    form_json: Dict[str, Any] | None = None
    status: str | None = None
    source_file_path: str | None = None
    field_display_settings: Dict[str, Any] | None = None


class EForm(EFormBase):
    id: uuid.UUID
    company_id: uuid.UUID
    status: str
    rstatus: str
    created_at: datetime
    updated_at: datetime | None = None
    created_user_id: uuid.UUID | None = None
    updated_user_id: uuid.UUID | None = None
    model_config = ConfigDict(from_attributes=True)


class PaginatedEForms(BaseModel):
    data: List[EForm]
    total: int
    page: int
    page_size: int
    total_pages: int


class EFormBatchDelete(BaseModel):
    form_ids: List[uuid.UUID]


class EFormBatchStatus(BaseModel):
    form_ids: List[uuid.UUID]
    status: str


class MetaFlowValidationResult(BaseModel):
    valid: bool
    errors: List[str]

import uuid
from datetime import datetime
from typing import Any, Dict, List
from pydantic import BaseModel, ConfigDict, Field, field_validator


class WorkflowDefinitionBase(BaseModel):
    # "json" would shadow BaseModel.json, so the field is aliased
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(max_length=200)
    description: str | None = None
    json_data: Dict[str, Any] | None = Field(default=None, alias="json")
    status: str | None = "Active"

    @field_validator("name")
    @classmethod
    def _name_required(cls, v: str):
        v = (v or "").strip()
        if not v:
            raise ValueError("Workflow name is required")
        return v


class WorkflowDefinitionCreate(WorkflowDefinitionBase):
    pass


class WorkflowDefinitionUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str | None = Field(default=None, max_length=200)
    description: str | None = None
    json_data: Dict[str, Any] | None = Field(default=None, alias="json")
    status: str | None = None


class WorkflowDefinition(WorkflowDefinitionBase):
    id: int
    company_id: uuid.UUID
    created_at: datetime
    updated_at: datetime | None = None
    created_by: str | None = None
    updated_by: str | None = None
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class PaginatedWorkflowDefinitions(BaseModel):
    data: List[WorkflowDefinition]
    total: int
    page: int
    page_size: int


class WorkflowBatchDelete(BaseModel):
    ids: List[int]


class WorkflowBatchStatus(BaseModel):
    ids: List[int]
    is_active: bool


class WorkflowNodeType(BaseModel):
    type: str
    label: str
    category: str
    description: str
    default_data: Dict[str, Any]


class WorkflowStartRequest(BaseModel):
    input: Dict[str, Any] | None = None


class WorkflowStepExecution(BaseModel):
    id: int
    step_index: int
    step_type: str | None = None
    status: str
    input_json: Any | None = None
    output_json: Any | None = None
    started_at: datetime | None = None
    ended_at: datetime | None = None
    is_waiting: bool
    waiting_for_user: str | None = None
    error_message: str | None = None
    model_config = ConfigDict(from_attributes=True)


class WorkflowStepRecord(BaseModel):
    step_type: str
    status: str = "Completed"
    step_index: int | None = None
    input_json: Any | None = None
    output_json: Any | None = None
    error_message: str | None = None
    is_waiting: bool = False
    waiting_for_user: str | None = None


class WorkflowExecutionFinish(BaseModel):
    output_json: Any | None = None
    error_message: str | None = None


class WorkflowExecution(BaseModel):
    id: int
    workflow_definition_id: int
    workflow_name: str | None = None
    status: str
    current_step: int | None = None
    input_json: Any | None = None
    output_json: Any | None = None
    started_at: datetime
    ended_at: datetime | None = None
    created_by: str | None = None
    error_message: str | None = None
    is_waiting: bool
    waiting_since: datetime | None = None
    last_user_activity: datetime | None = None
    current_waiting_step: int | None = None
    waiting_for_user: str | None = None
    model_config = ConfigDict(from_attributes=True)


class WorkflowExecutionDetail(WorkflowExecution):
    steps: List[WorkflowStepExecution] = []


class PaginatedWorkflowExecutions(BaseModel):
    data: List[WorkflowExecution]
    total: int
    page: int
    page_size: int

import uuid
from datetime import datetime
from typing import Optional, Dict, Any
from pydantic import BaseModel, ConfigDict, Field


class AuditLog(BaseModel):
    id: uuid.UUID
    company_id: Optional[uuid.UUID] = None
    actor_user_id: uuid.UUID
    actor_email: Optional[str] = None
    action_type: str
    status: str
    target_type: Optional[str] = None
    target_id: Optional[str] = None
    reason: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = Field(default=None, validation_alias="metadata_json")
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class AuditLogFilters(BaseModel):
    """Query filters accepted by ``GET /audits/``."""
    company_id: Optional[uuid.UUID] = None
    user_id: Optional[uuid.UUID] = None
    action_type: Optional[str] = None
    status: Optional[str] = None
    target_type: Optional[str] = None
    since: Optional[datetime] = None
    until: Optional[datetime] = None

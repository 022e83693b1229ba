import uuid
from datetime import datetime
from typing import List
from pydantic import BaseModel


class UserMembership(BaseModel):
    company_id: uuid.UUID
    company_name: str
    role: str
    can_read: bool
    can_write: bool


class UserInfo(BaseModel):
    """Payload of ``GET /user-info``: who is signed in and which companies they can open."""
    authenticated: bool = True
    user_id: uuid.UUID
    email: str
    display_name: str | None = None
    is_superadmin: bool
    last_seen_at: datetime | None = None
    memberships: List[UserMembership]
    ai_features_enabled: bool
    realtime_reports_enabled: bool

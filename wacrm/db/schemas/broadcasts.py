import uuid
from datetime import datetime
from typing import Dict, List
from pydantic import BaseModel, ConfigDict

from .contacts import Contact


class BroadcastTarget(BaseModel):
    broadcast_group_id: uuid.UUID | None = None
    hashtag_filter: str | None = None


class BroadcastPreviewRequest(BroadcastTarget):
    message: str | None = None


class BroadcastPreview(BaseModel):
    total_count: int
    preview: List[Contact]
    message: str | None = None


class BroadcastSendRequest(BroadcastTarget):
    message: str | None = None
    template_name: str | None = None
    template_language: str | None = "en_US"

    def has_content(self) -> bool:
        return bool((self.message or "").strip() or (self.template_name or "").strip())


class BroadcastSend(BaseModel):
    id: uuid.UUID
    company_id: uuid.UUID
    broadcast_group_id: uuid.UUID | None = None
    hashtag_filter: str | None = None
    message_content: str | None = None
    template_name: str | None = None
    template_language: str | None = None
    total_contacts: int
    sent_count: int
    failed_count: int
    status: str
    started_at: datetime
    completed_at: datetime | None = None
    created_by: str | None = None
    error_message: str | None = None
    model_config = ConfigDict(from_attributes=True)


class BroadcastSendStatus(BroadcastSend):
    status_details: Dict[str, int] = {}


class PaginatedBroadcastSends(BaseModel):
    data: List[BroadcastSend]
    total: int
    page: int
    page_size: int

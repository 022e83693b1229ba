import re
import uuid
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from wacrm.utils.hashtags import join_hashtags, normalize_hashtag, parse_hashtags

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_COLOR_RE = re.compile(r"^#[0-9A-Fa-f]{6}$")


def _blank_to_none(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    v = v.strip()
    return v or None


def _check_email(v: Optional[str]) -> Optional[str]:
    v = _blank_to_none(v)
    if v is not None and not _EMAIL_RE.match(v):
        raise ValueError("Invalid email address")
    return v


def _check_color(v: Optional[str]) -> Optional[str]:
    v = _blank_to_none(v)
    if v is not None and not _COLOR_RE.match(v):
        raise ValueError("Color must be a hex value like #1890ff")
    return v


class BroadcastGroupSummary(BaseModel):
    id: uuid.UUID
    name: str
    color: str | None = None
    model_config = ConfigDict(from_attributes=True)


class ContactBase(BaseModel):
    name: str = Field(max_length=200)
    title: str | None = Field(default=None, max_length=100)
    occupation: str | None = Field(default=None, max_length=100)
    whatsapp_number: str | None = Field(default=None, max_length=20)
    email: str | None = Field(default=None, max_length=255)
    company_name: str | None = Field(default=None, max_length=200)
    department: str | None = Field(default=None, max_length=100)
    position: str | None = Field(default=None, max_length=100)
    hashtags: str | None = None
    broadcast_group_id: uuid.UUID | None = None

    @field_validator("name")
    @classmethod
    def _name_required(cls, v: str):
        v = (v or "").strip()
        if not v:
            raise ValueError("Name is required")
        return v

    @field_validator("email")
    @classmethod
    def _validate_email(cls, v):
        return _check_email(v)

    @field_validator("whatsapp_number")
    @classmethod
    def _normalize_whatsapp(cls, v):
        v = _blank_to_none(v)
        if v is None:
            return v
        # WhatsApp ids are digits only; keep a leading '+' out of storage
        digits = re.sub(r"[\s\-()]", "", v).lstrip("+")
        if not digits.isdigit():
            raise ValueError("WhatsApp number must contain digits only")
        return digits

    @field_validator("hashtags", mode="before")
    @classmethod
    def _normalize_hashtags(cls, v):
        if v is None:
            return None
        return join_hashtags(parse_hashtags(v))


class ContactCreate(ContactBase):
    pass


class ContactUpdate(ContactBase):
    pass


class Contact(ContactBase):
    id: uuid.UUID
    company_id: uuid.UUID
    is_active: bool
    created_at: datetime
    updated_at: datetime | None = None
    created_by: str | None = None
    updated_by: str | None = None
    broadcast_group: BroadcastGroupSummary | None = None
    model_config = ConfigDict(from_attributes=True)

    @field_validator("hashtags", mode="before")
    @classmethod
    def _normalize_hashtags(cls, v):
        return v


class PaginatedContacts(BaseModel):
    data: List[Contact]
    total: int
    page: int
    page_size: int
    total_pages: int


class ContactStatistics(BaseModel):
    total: int
    active: int
    inactive: int


class ContactImportError(BaseModel):
    row: int
    name: str | None = None
    error: str


class ContactImportResult(BaseModel):
    success_count: int
    failed_count: int
    errors: List[ContactImportError]


class DuplicateContactRef(BaseModel):
    id: uuid.UUID | None = None
    name: str | None = None
    whatsapp_number: str | None = None


class ContactDuplicate(BaseModel):
    row: int
    new_data: DuplicateContactRef
    existing_data: DuplicateContactRef


class ContactDuplicateCheck(BaseModel):
    has_duplicates: bool
    duplicates: List[ContactDuplicate]


class BroadcastGroupBase(BaseModel):
    name: str = Field(max_length=200)
    description: str | None = Field(default=None, max_length=500)
    color: str | None = "#1890ff"

    @field_validator("name")
    @classmethod
    def _name_required(cls, v: str):
        v = (v or "").strip()
        if not v:
            raise ValueError("Group name is required")
        return v

    @field_validator("color")
    @classmethod
    def _validate_color(cls, v):
        return _check_color(v)


class BroadcastGroupCreate(BroadcastGroupBase):
    pass


class BroadcastGroupUpdate(BroadcastGroupBase):
    pass


class BroadcastGroup(BroadcastGroupBase):
    id: uuid.UUID
    company_id: uuid.UUID
    is_active: bool
    member_count: int = 0
    created_at: datetime
    updated_at: datetime | None = None
    created_by: str | None = None
    updated_by: str | None = None
    model_config = ConfigDict(from_attributes=True)


class BroadcastGroupStatistics(BaseModel):
    total_groups: int
    active_groups: int
    total_members: int


class HashtagBase(BaseModel):
    name: str = Field(max_length=100)
    color: str | None = "#52c41a"
    description: str | None = Field(default=None, max_length=300)

    @field_validator("name")
    @classmethod
    def _normalize_name(cls, v: str):
        v = normalize_hashtag(v)
        if not v:
            raise ValueError("Hashtag name is required")
        if "," in v or ";" in v:
            raise ValueError("Hashtag name cannot contain separators")
        return v

    @field_validator("color")
    @classmethod
    def _validate_color(cls, v):
        return _check_color(v)


class HashtagCreate(HashtagBase):
    pass


class HashtagUpdate(HashtagBase):
    pass


class Hashtag(HashtagBase):
    id: uuid.UUID
    company_id: uuid.UUID
    is_active: bool
    usage_count: int = 0
    created_at: datetime
    created_by: str | None = None
    model_config = ConfigDict(from_attributes=True)


class HashtagStatistics(BaseModel):
    total_hashtags: int
    active_hashtags: int
    hashtag_usage: int

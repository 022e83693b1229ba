import uuid
from datetime import datetime
from pydantic import BaseModel, ConfigDict, field_validator

from wacrm.utils.role_permissions import ALLOWED_ROLES


class CompanyBase(BaseModel):
    name: str
    description: str | None = None
    email: str | None = None
    address: str | None = None
    phone: str | None = None
    website: str | None = None
    logo_url: str | None = None
    wa_phone_number_id: str | None = None
    wa_business_account_id: str | None = None
    wa_verify_token: str | None = None
    wa_welcome_message: str | None = None
    wa_no_function_message: str | None = None
    wa_menu_title: str | None = None
    wa_menu_footer: str | None = None
    wa_menu_button: str | None = None
    wa_section_title: str | None = None
    wa_default_option_description: str | None = None
    wa_input_error_message: str | None = None
    wa_fallback_message: str | None = None


class CompanyCreate(CompanyBase):
    # Plain WhatsApp access token; stored encrypted
    wa_api_key: str | None = None

    @field_validator("name")
    @classmethod
    def _name_required(cls, v: str):
        v = (v or "").strip()
        if not v:
            raise ValueError("Company name is required")
        return v


class CompanyUpdate(BaseModel):
    name: str | None = None
    description: str | None = None
    email: str | None = None
    address: str | None = None
    phone: str | None = None
    website: str | None = None
    logo_url: str | None = None
    is_active: bool | None = None
    wa_phone_number_id: str | None = None
    wa_business_account_id: str | None = None
    wa_verify_token: str | None = None
    wa_api_key: str | None = None
    clear_wa_api_key: bool = False
    wa_welcome_message: str | None = None
    wa_no_function_message: str | None = None
    wa_menu_title: str | None = None
    wa_menu_footer: str | None = None
    wa_menu_button: str | None = None
    wa_section_title: str | None = None
    wa_default_option_description: str | None = None
    wa_input_error_message: str | None = None
    wa_fallback_message: str | None = None


class Company(CompanyBase):
    id: uuid.UUID
    is_active: bool
    has_wa_api_key: bool = False
    created_by: uuid.UUID | None = None
    created_at: datetime
    updated_at: datetime | None = None
    model_config = ConfigDict(from_attributes=True)


class CompanyMemberCreate(BaseModel):
    email: str
    display_name: str | None = None
    role: str = "viewer"
    can_read: bool | None = None
    can_write: bool | None = None

    @field_validator("role")
    @classmethod
    def _validate_role(cls, v: str):
        v = (v or "").strip().lower()
        if v not in ALLOWED_ROLES:
            raise ValueError(f"Invalid role '{v}'. Allowed roles: {sorted(ALLOWED_ROLES)}")
        return v


class CompanyMemberUpdate(BaseModel):
    role: str | None = None
    can_read: bool | None = None
    can_write: bool | None = None

    @field_validator("role")
    @classmethod
    def _validate_role(cls, v: str | None):
        if v is None:
            return v
        v = v.strip().lower()
        if v not in ALLOWED_ROLES:
            raise ValueError(f"Invalid role '{v}'. Allowed roles: {sorted(ALLOWED_ROLES)}")
        return v


class CompanyMember(BaseModel):
    company_id: uuid.UUID
    user_id: uuid.UUID
    email: str
    display_name: str | None = None
    role: str
    can_read: bool
    can_write: bool
    created_at: datetime | None = None

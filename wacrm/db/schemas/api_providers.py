from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict


class ApiProviderDefinition(BaseModel):
    provider_key: str
    category: str
    display_name: str
    icon_name: str | None = None
    default_api_url: str | None = None
    default_model: str | None = None
    supported_models: List[str] | None = None
    auth_type: str
    default_settings_json: str | None = None
    enable_streaming: bool
    temperature_min: float | None = None
    temperature_max: float | None = None
    model_config = ConfigDict(from_attributes=True)


class CompanyApiProviderSettingView(BaseModel):
    provider_key: str
    category: str
    display_name: str
    icon_name: str | None = None
    api_url: str | None = None
    model: str | None = None
    temperature: float | None = None
    top_p: float | None = None
    enable_streaming: bool | None = None
    extra_headers_json: str | None = None
    auth_type: str | None = None
    auth_config_json: str | None = None
    settings_json: str | None = None
    active: bool = False
    has_api_key: bool = False
    masked_api_key: str | None = None
    default_api_url: str | None = None
    default_model: str | None = None
    supported_models: List[str] | None = None
    definition_enable_streaming: bool = False
    temperature_min: float | None = None
    temperature_max: float | None = None
    default_auth_type: str | None = None
    default_settings_json: str | None = None
    updated_at: datetime | None = None


class CompanyApiProviderSettingUpdate(BaseModel):
    api_url: str | None = None
    api_key: str | None = None
    clear_api_key: bool = False
    model: str | None = None
    temperature: float | None = None
    top_p: float | None = None
    enable_streaming: bool | None = None
    extra_headers_json: str | None = None
    auth_type: str | None = None
    auth_config_json: str | None = None
    settings_json: str | None = None
    active: bool = True


class ProviderTestEmailRequest(BaseModel):
    to_email: str
    subject: str | None = None
    body: str | None = None
    reply_to: str | None = None


class ProviderTestResult(BaseModel):
    success: bool
    message: str


class ChatMessage(BaseModel):
    role: str | None = "user"
    content: str | None = None


class AiChatOptions(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    model_override: str | None = None
    temperature: float | None = None
    top_p: float | None = None
    top_k: float | None = None
    max_tokens: int | None = None
    max_output_tokens: int | None = None
    candidate_count: int | None = None
    stop_sequences: List[str] | None = None
    stream: bool | None = None
    additional_parameters: Dict[str, Any] | None = None


class AiChatRequest(BaseModel):
    provider_key: str | None = None
    system_prompt: str | None = None
    messages: List[ChatMessage] = []
    options: Optional[AiChatOptions] = None


class AiChatResponse(BaseModel):
    success: bool
    content: str | None = None
    error: str | None = None
    status_code: int | None = None
    provider_key: str | None = None

"""
Company API provider configuration.

Merges the provider catalogue with per-company settings, validates and
stores updates (encrypting keys), and resolves the runtime configuration
the AI and email clients call with.
"""
from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from wacrm.db import models, schemas
from wacrm.db.models.base import now_utc
from wacrm.db.repositories import api_providers as provider_repo
from wacrm.db.repositories import companies as company_repo
from wacrm.services.api_key_protector import (
    ApiKeyDecryptionError,
    ApiKeyProtector,
    get_protector,
    mask_api_key,
)

logger = logging.getLogger(__name__)

DEFAULT_AUTH_TYPE = "apiKey"


class ProviderNotFoundError(Exception):
    def __init__(self, provider_key: str) -> None:
        super().__init__(f"Provider '{provider_key}' not found.")
        self.provider_key = provider_key


class CompanyNotFoundError(Exception):
    def __init__(self, company_id: uuid.UUID) -> None:
        super().__init__(f"Company '{company_id}' not found.")
        self.company_id = company_id


class InvalidProviderSettingError(ValueError):
    pass


@dataclass
class ProviderRuntime:
    """Effective provider configuration with the decrypted key."""

    provider_key: str
    category: str
    api_url: Optional[str]
    model: Optional[str]
    enable_streaming: bool
    auth_type: str
    api_key: Optional[str] = None
    auth_config_json: Optional[str] = None
    settings_json: Optional[str] = None
    extra_headers: Optional[Dict[str, str]] = None
    active: bool = False
    has_api_key: bool = False
    temperature: Optional[float] = None
    top_p: Optional[float] = None
    default_api_url: Optional[str] = None
    default_model: Optional[str] = None
    default_settings_json: Optional[str] = None
    settings: Dict[str, Any] = field(default_factory=dict)
    auth_config: Dict[str, Any] = field(default_factory=dict)


def normalize_json_or_none(value: Optional[str], field_name: str) -> Optional[str]:
    """Return compact JSON text for ``value`` or None when blank."""
    if value is None or not value.strip():
        return None
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError as exc:
        raise InvalidProviderSettingError(f"Field '{field_name}' contains invalid JSON: {exc.msg}") from exc
    return json.dumps(parsed, separators=(",", ":"), ensure_ascii=False)


def parse_key_value_json(value: Optional[str]) -> Optional[Dict[str, str]]:
    if value is None or not value.strip():
        return None
    try:
        document = json.loads(value)
    except json.JSONDecodeError as exc:
        logger.warning("Failed to parse JSON into key-value pairs: %s", exc.msg)
        return None
    if not isinstance(document, dict):
        return None
    result: Dict[str, str] = {}
    for key, item in document.items():
        if item is None:
            result[key] = ""
        elif isinstance(item, str):
            result[key] = item
        else:
            result[key] = json.dumps(item, separators=(",", ":"))
    return result or None


def _parse_object(value: Optional[str]) -> Dict[str, Any]:
    if not value:
        return {}
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError:
        return {}
    return parsed if isinstance(parsed, dict) else {}


def _masked_key(setting: models.CompanyApiProviderSetting, protector: ApiKeyProtector) -> Optional[str]:
    try:
        return mask_api_key(protector.unprotect(setting.api_key_encrypted))
    except ApiKeyDecryptionError as exc:
        logger.warning("Failed to unprotect API key for provider %s: %s", setting.provider_key, exc)
        return "****"


def build_setting_view(
    definition: models.ApiProviderDefinition,
    setting: Optional[models.CompanyApiProviderSetting],
    protector: Optional[ApiKeyProtector] = None,
) -> schemas.CompanyApiProviderSettingView:
    has_api_key = bool(setting is not None and setting.api_key_encrypted)
    masked = _masked_key(setting, protector or get_protector()) if has_api_key else None
    default_auth = definition.auth_type or DEFAULT_AUTH_TYPE
    enable_streaming = definition.enable_streaming
    if setting is not None and setting.enable_streaming is not None:
        enable_streaming = setting.enable_streaming
    return schemas.CompanyApiProviderSettingView(
        provider_key=definition.provider_key,
        category=definition.category,
        display_name=definition.display_name,
        icon_name=definition.icon_name,
        api_url=(setting.api_url_override if setting else None) or definition.default_api_url,
        model=(setting.model_override if setting else None) or definition.default_model,
        temperature=setting.temperature if setting else None,
        top_p=setting.top_p if setting else None,
        enable_streaming=enable_streaming,
        extra_headers_json=setting.extra_headers_json if setting else None,
        auth_type=(setting.auth_type if setting else None) or default_auth,
        auth_config_json=setting.auth_config_json if setting else None,
        settings_json=(setting.settings_json if setting else None) or definition.default_settings_json,
        active=bool(setting.active) if setting else False,
        has_api_key=has_api_key,
        masked_api_key=masked,
        default_api_url=definition.default_api_url,
        default_model=definition.default_model,
        supported_models=definition.supported_models,
        definition_enable_streaming=bool(definition.enable_streaming),
        temperature_min=definition.temperature_min,
        temperature_max=definition.temperature_max,
        default_auth_type=default_auth,
        default_settings_json=definition.default_settings_json,
        updated_at=(setting.updated_at if setting else None) or definition.updated_at,
    )


def list_company_settings(db: Session, company_id: uuid.UUID, category: Optional[str] = None) -> List[schemas.CompanyApiProviderSettingView]:
    definitions = provider_repo.get_definitions(db, category)
    settings = {s.provider_key: s for s in provider_repo.get_company_settings(db, company_id)}
    protector = get_protector()
    return [build_setting_view(d, settings.get(d.provider_key), protector) for d in definitions]


def get_company_setting_view(db: Session, company_id: uuid.UUID, provider_key: str) -> schemas.CompanyApiProviderSettingView:
    definition = provider_repo.get_definition(db, provider_key)
    if definition is None:
        raise ProviderNotFoundError(provider_key)
    setting = provider_repo.get_company_setting(db, company_id, provider_key)
    return build_setting_view(definition, setting)


def _check_temperature(definition: models.ApiProviderDefinition, temperature: Optional[float]) -> None:
    if temperature is None:
        return
    low, high = definition.temperature_min, definition.temperature_max
    if (low is not None and temperature < low) or (high is not None and temperature > high):
        raise InvalidProviderSettingError(
            f"Temperature must be between {low if low is not None else '-inf'} and {high if high is not None else 'inf'}."
        )


def upsert_company_setting(
    db: Session,
    company_id: uuid.UUID,
    provider_key: str,
    update: schemas.CompanyApiProviderSettingUpdate,
) -> schemas.CompanyApiProviderSettingView:
    definition = provider_repo.get_definition(db, provider_key)
    if definition is None:
        raise ProviderNotFoundError(provider_key)
    _check_temperature(definition, update.temperature)

    extra_headers = normalize_json_or_none(update.extra_headers_json, "extra_headers_json")
    auth_config = normalize_json_or_none(update.auth_config_json, "auth_config_json")
    settings_json = normalize_json_or_none(update.settings_json, "settings_json")

    setting = provider_repo.get_company_setting(db, company_id, provider_key)
    if setting is None:
        if company_repo.get_company(db, company_id) is None:
            raise CompanyNotFoundError(company_id)
        setting = models.CompanyApiProviderSetting(
            company_id=company_id,
            provider_key=provider_key,
            category=definition.category,
        )

    setting.category = definition.category
    setting.api_url_override = (update.api_url or "").strip() or None
    setting.model_override = (update.model or "").strip() or None
    setting.temperature = update.temperature
    setting.top_p = update.top_p
    setting.enable_streaming = update.enable_streaming
    setting.extra_headers_json = extra_headers
    setting.auth_type = (update.auth_type or "").strip().lower() or definition.auth_type
    setting.auth_config_json = auth_config
    setting.settings_json = settings_json or definition.default_settings_json
    setting.active = update.active
    setting.updated_at = now_utc()

    protector = get_protector()
    if update.clear_api_key:
        setting.api_key_encrypted = None
    elif update.api_key and update.api_key.strip():
        setting.api_key_encrypted = protector.protect(update.api_key.strip())

    setting = provider_repo.save_company_setting(db, setting)
    logger.info("Provider %s updated for company %s (active=%s)", provider_key, company_id, setting.active)
    return build_setting_view(definition, setting, protector)


def get_runtime_provider(db: Session, company_id: uuid.UUID, provider_key: str) -> Optional[ProviderRuntime]:
    """Resolve the effective provider configuration; None for unknown keys."""
    if not provider_key or not provider_key.strip():
        raise ValueError("Provider key is required")
    definition = provider_repo.get_definition(db, provider_key)
    if definition is None:
        logger.warning("Provider definition not found for key '%s'", provider_key)
        return None
    setting = provider_repo.get_company_setting(db, company_id, provider_key)

    api_key: Optional[str] = None
    if setting is not None and setting.api_key_encrypted:
        try:
            api_key = get_protector().unprotect(setting.api_key_encrypted)
        except ApiKeyDecryptionError:
            logger.error("Failed to decrypt API key for provider %s (company: %s)", provider_key, company_id)

    enable_streaming = bool(definition.enable_streaming)
    if setting is not None and setting.enable_streaming is not None:
        enable_streaming = setting.enable_streaming
    settings_json = (setting.settings_json if setting else None) or definition.default_settings_json
    auth_config_json = setting.auth_config_json if setting else None
    return ProviderRuntime(
        provider_key=definition.provider_key,
        category=definition.category,
        api_url=(setting.api_url_override if setting else None) or definition.default_api_url,
        model=(setting.model_override if setting else None) or definition.default_model,
        enable_streaming=enable_streaming,
        auth_type=(setting.auth_type if setting else None) or definition.auth_type or DEFAULT_AUTH_TYPE,
        api_key=api_key,
        auth_config_json=auth_config_json,
        settings_json=settings_json,
        extra_headers=parse_key_value_json(setting.extra_headers_json if setting else None),
        active=bool(setting.active) if setting else False,
        has_api_key=bool(api_key and api_key.strip()),
        temperature=setting.temperature if setting else None,
        top_p=setting.top_p if setting else None,
        default_api_url=definition.default_api_url,
        default_model=definition.default_model,
        default_settings_json=definition.default_settings_json,
        settings=_parse_object(settings_json),
        auth_config=_parse_object(auth_config_json),
    )


def get_active_provider_keys(db: Session, company_id: uuid.UUID, category: str) -> List[str]:
    return [s.provider_key for s in provider_repo.get_active_settings(db, company_id, category)]

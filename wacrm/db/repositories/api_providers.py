"""
API provider definition and company setting repository functions.
"""
from __future__ import annotations

import json
import uuid
from typing import Optional, List
from sqlalchemy.orm import Session

from wacrm.db import models

# Built-in provider catalogue, mirrored by the initial migration
DEFAULT_PROVIDER_DEFINITIONS = [
    {
        "provider_key": "openai",
        "category": "ai",
        "display_name": "OpenAI",
        "icon_name": "openai",
        "default_api_url": "https://api.openai.com/v1/chat/completions",
        "default_model": "gpt-4o-mini",
        "supported_models": ["gpt-4o-mini", "gpt-4o", "gpt-4.1-mini", "gpt-4.1"],
        "auth_type": "apiKey",
        "default_settings_json": json.dumps({"imageDetail": "high"}, separators=(",", ":")),
        "enable_streaming": False,
        "temperature_min": 0.0,
        "temperature_max": 2.0,
    },
    {
        "provider_key": "xai",
        "category": "ai",
        "display_name": "xAI Grok",
        "icon_name": "xai",
        "default_api_url": "https://api.x.ai/v1/chat/completions",
        "default_model": "grok-2-latest",
        "supported_models": ["grok-2-latest", "grok-2-vision-latest"],
        "auth_type": "apiKey",
        "default_settings_json": json.dumps({"imageDetail": "high"}, separators=(",", ":")),
        "enable_streaming": False,
        "temperature_min": 0.0,
        "temperature_max": 2.0,
    },
    {
        "provider_key": "gemini",
        "category": "ai",
        "display_name": "Google Gemini",
        "icon_name": "gemini",
        "default_api_url": "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent",
        "default_model": "gemini-1.5-flash",
        "supported_models": ["gemini-1.5-flash", "gemini-1.5-pro", "gemini-2.0-flash"],
        "auth_type": "query",
        "default_settings_json": None,
        "enable_streaming": False,
        "temperature_min": 0.0,
        "temperature_max": 2.0,
    },
    {
        "provider_key": "microsoft-graph",
        "category": "email",
        "display_name": "Microsoft Graph Mail",
        "icon_name": "microsoft",
        "default_api_url": "https://graph.microsoft.com/v1.0",
        "default_model": None,
        "supported_models": None,
        "auth_type": "oauth2",
        "default_settings_json": None,
        "enable_streaming": False,
        "temperature_min": None,
        "temperature_max": None,
    },
]


def seed_provider_definitions(db: Session) -> int:
    """Insert missing built-in definitions; returns how many were added."""
    existing = {row[0] for row in db.query(models.ApiProviderDefinition.provider_key).all()}
    added = 0
    for definition in DEFAULT_PROVIDER_DEFINITIONS:
        if definition["provider_key"] in existing:
            continue
        db.add(models.ApiProviderDefinition(**definition))
        added += 1
    if added:
        db.commit()
    return added


def get_definitions(db: Session, category: Optional[str] = None) -> List[models.ApiProviderDefinition]:
    q = db.query(models.ApiProviderDefinition)
    if category:
        q = q.filter(models.ApiProviderDefinition.category == category.strip().lower())
    return q.order_by(models.ApiProviderDefinition.category, models.ApiProviderDefinition.display_name).all()


def get_definition(db: Session, provider_key: str) -> Optional[models.ApiProviderDefinition]:
    return (
        db.query(models.ApiProviderDefinition)
        .filter(models.ApiProviderDefinition.provider_key == provider_key)
        .first()
    )


def get_company_settings(db: Session, company_id: uuid.UUID, category: Optional[str] = None) -> List[models.CompanyApiProviderSetting]:
    q = db.query(models.CompanyApiProviderSetting).filter(models.CompanyApiProviderSetting.company_id == company_id)
    if category:
        q = q.filter(models.CompanyApiProviderSetting.category == category.strip().lower())
    return q.all()


def get_company_setting(db: Session, company_id: uuid.UUID, provider_key: str) -> Optional[models.CompanyApiProviderSetting]:
    return (
        db.query(models.CompanyApiProviderSetting)
        .filter(
            models.CompanyApiProviderSetting.company_id == company_id,
            models.CompanyApiProviderSetting.provider_key == provider_key,
        )
        .first()
    )


def get_active_settings(db: Session, company_id: uuid.UUID, category: str) -> List[models.CompanyApiProviderSetting]:
    return (
        db.query(models.CompanyApiProviderSetting)
        .filter(
            models.CompanyApiProviderSetting.company_id == company_id,
            models.CompanyApiProviderSetting.category == category,
            models.CompanyApiProviderSetting.active.is_(True),
        )
        .order_by(models.CompanyApiProviderSetting.updated_at.desc())
        .all()
    )


def save_company_setting(db: Session, setting: models.CompanyApiProviderSetting) -> models.CompanyApiProviderSetting:
    db.add(setting)
    db.commit()
    db.refresh(setting)
    return setting

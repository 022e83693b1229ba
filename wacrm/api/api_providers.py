"""
API provider configuration endpoints.

Lists provider definitions and the selected company's settings, upserts
settings (keys are encrypted at rest and never returned), and sends a test
email through a configured email provider.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from wacrm.audit import AuditAction, record
from wacrm.api.deps import CompanyContext, get_company_context, require_company_manage
from wacrm.db import schemas
from wacrm.db.database import get_db
from wacrm.db.repositories import api_providers as provider_repo
from wacrm.services import api_provider_service
from wacrm.services.api_key_protector import ApiKeyDecryptionError
from wacrm.services.api_provider_service import (
    CompanyNotFoundError,
    InvalidProviderSettingError,
    ProviderNotFoundError,
)
from wacrm.services.email_provider_tester import EmailProviderError, send_test_email

router = APIRouter(prefix="/api-providers", tags=["api-providers"])


def _provider_http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, (ProviderNotFoundError, CompanyNotFoundError)):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, EmailProviderError):
        return HTTPException(status_code=502, detail=str(exc))
    if isinstance(exc, ApiKeyDecryptionError):
        return HTTPException(status_code=409, detail="Stored API key cannot be decrypted; save the key again.")
    return HTTPException(status_code=400, detail=str(exc))


@router.get("/definitions", response_model=List[schemas.ApiProviderDefinition])
def list_definitions(
    category: Optional[str] = None,
    db: Session = Depends(get_db),
    ctx: CompanyContext = Depends(get_company_context),
):
    return provider_repo.get_definitions(db, category)


@router.get("/company", response_model=List[schemas.CompanyApiProviderSettingView])
def list_company_settings(
    category: Optional[str] = None,
    db: Session = Depends(get_db),
    ctx: CompanyContext = Depends(get_company_context),
):
    return api_provider_service.list_company_settings(db, ctx.company_id, category)


@router.get("/company/{provider_key}", response_model=schemas.CompanyApiProviderSettingView)
def get_company_setting(
    provider_key: str,
    db: Session = Depends(get_db),
    ctx: CompanyContext = Depends(get_company_context),
):
    try:
        return api_provider_service.get_company_setting_view(db, ctx.company_id, provider_key)
    except ProviderNotFoundError as exc:
        raise _provider_http_error(exc)


@router.post("/company/{provider_key}", response_model=schemas.CompanyApiProviderSettingView)
def save_company_setting(
    provider_key: str,
    payload: schemas.CompanyApiProviderSettingUpdate,
    db: Session = Depends(get_db),
    ctx: CompanyContext = Depends(require_company_manage),
):
    try:
        view = api_provider_service.upsert_company_setting(db, ctx.company_id, provider_key, payload)
    except (ProviderNotFoundError, CompanyNotFoundError, InvalidProviderSettingError) as exc:
        raise _provider_http_error(exc)
    record(
        db,
        action=AuditAction.PROVIDER_UPDATE,
        target_type="api_provider",
        target_id=provider_key,
        actor_user_id=ctx.user.id,
        company_id=ctx.company_id,
        metadata={
            "active": view.active,
            "api_key_changed": bool(payload.clear_api_key or (payload.api_key or "").strip()),
        },
    )
    return view


@router.post("/test-email/{provider_key}", response_model=schemas.ProviderTestResult)
def test_email_provider(
    provider_key: str,
    payload: schemas.ProviderTestEmailRequest,
    db: Session = Depends(get_db),
    ctx: CompanyContext = Depends(require_company_manage),
):
    try:
        return send_test_email(db, ctx.company_id, provider_key, payload)
    except (
        ProviderNotFoundError,
        InvalidProviderSettingError,
        EmailProviderError,
        ApiKeyDecryptionError,
    ) as exc:
        raise _provider_http_error(exc)

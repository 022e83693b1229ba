"""
Microsoft Graph test mail for the email provider settings page.

Uses the client-credentials flow against Azure AD, then calls
``/users/{from}/sendMail`` with a plain-text body rendered from the
``provider_test.txt`` Jinja2 template.
"""
from __future__ import annotations

import logging
import os
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional

import requests
from jinja2 import Environment, FileSystemLoader
from sqlalchemy.orm import Session

from wacrm.db import schemas
from wacrm.db.models.base import now_utc
from wacrm.db.repositories import companies as company_repo
from wacrm.services import api_provider_service
from wacrm.services.api_provider_service import InvalidProviderSettingError, ProviderNotFoundError, ProviderRuntime

logger = logging.getLogger(__name__)

GRAPH_PROVIDER_KEY = "microsoft-graph"
GRAPH_SCOPE = "https://graph.microsoft.com/.default"
TOKEN_URL = "https://login.microsoftonline.com/{tenant}/oauth2/v2.0/token"
DEFAULT_GRAPH_URL = "https://graph.microsoft.com/v1.0"
DEFAULT_SUBJECT = "Email provider test"
DEFAULT_BODY = "Your email provider is configured correctly."

_DEFAULT_TIMEOUT = (3, 30)
_TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates" / "email"


class EmailProviderError(Exception):
    """The mail provider rejected a token or send request."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def _template_env() -> Environment:
    template_dir = os.getenv("EMAIL_TEMPLATE_DIR") or str(_TEMPLATE_DIR)
    return Environment(loader=FileSystemLoader(template_dir), autoescape=False)


def render_test_body(body: str, company_name: str, provider_name: str) -> str:
    template = _template_env().get_template("provider_test.txt")
    return template.render(
        body=body,
        company_name=company_name,
        provider_name=provider_name,
        sent_at=now_utc().strftime("%Y-%m-%d %H:%M"),
    )


def _config_value(config: Dict[str, Any], *names: str) -> Optional[str]:
    for name in names:
        value = config.get(name)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def graph_credentials(runtime: ProviderRuntime) -> Dict[str, str]:
    """Collect tenant/client/secret/from from the runtime; raise listing what is missing."""
    config = dict(runtime.settings)
    config.update(runtime.auth_config)
    values: Dict[str, Any] = {
        "tenant_id": _config_value(config, "tenant_id", "tenantId"),
        "client_id": _config_value(config, "client_id", "clientId"),
        "client_secret": (runtime.api_key or "").strip() or _config_value(config, "client_secret", "clientSecret"),
        "from_email": _config_value(config, "from_email", "fromEmail"),
    }
    missing: List[str] = [name for name, value in values.items() if not value]
    if missing:
        raise InvalidProviderSettingError(
            "Microsoft Graph configuration is incomplete; missing: " + ", ".join(missing)
        )
    return values


def fetch_graph_token(tenant_id: str, client_id: str, client_secret: str) -> str:
    response = requests.post(
        TOKEN_URL.format(tenant=tenant_id),
        data={
            "client_id": client_id,
            "client_secret": client_secret,
            "scope": GRAPH_SCOPE,
            "grant_type": "client_credentials",
        },
        timeout=_DEFAULT_TIMEOUT,
    )
    if response.status_code != 200:
        raise EmailProviderError(response.text or "Token request failed", response.status_code)
    token = (response.json() or {}).get("access_token")
    if not token:
        raise EmailProviderError("Token response did not contain an access_token", response.status_code)
    return token


def send_graph_mail(
    base_url: str,
    token: str,
    from_email: str,
    to_email: str,
    subject: str,
    text: str,
    reply_to: Optional[str] = None,
) -> None:
    message: Dict[str, Any] = {
        "subject": subject,
        "body": {"contentType": "Text", "content": text},
        "toRecipients": [{"emailAddress": {"address": to_email}}],
    }
    if reply_to:
        message["replyTo"] = [{"emailAddress": {"address": reply_to}}]
    response = requests.post(
        f"{base_url.rstrip('/')}/users/{from_email}/sendMail",
        headers={"Authorization": f"Bearer {token}", "Content-Type": "application/json"},
        json={"message": message, "saveToSentItems": False},
        timeout=_DEFAULT_TIMEOUT,
    )
    if response.status_code not in (200, 202):
        raise EmailProviderError(response.text or "sendMail failed", response.status_code)


def send_test_email(
    db: Session,
    company_id: uuid.UUID,
    provider_key: str,
    request: schemas.ProviderTestEmailRequest,
) -> schemas.ProviderTestResult:
    if provider_key != GRAPH_PROVIDER_KEY:
        raise InvalidProviderSettingError(f"Test email is not supported for provider '{provider_key}'.")
    runtime = api_provider_service.get_runtime_provider(db, company_id, provider_key)
    if runtime is None:
        raise ProviderNotFoundError(provider_key)

    creds = graph_credentials(runtime)
    company = company_repo.get_company(db, company_id)
    text = render_test_body(
        request.body or DEFAULT_BODY,
        company.name if company else "WhatsFlow",
        "Microsoft Graph",
    )
    token = fetch_graph_token(creds["tenant_id"], creds["client_id"], creds["client_secret"])
    send_graph_mail(
        runtime.api_url or DEFAULT_GRAPH_URL,
        token,
        creds["from_email"],
        request.to_email,
        request.subject or DEFAULT_SUBJECT,
        text,
        request.reply_to,
    )
    logger.info("Test email sent through %s for company %s", provider_key, company_id)
    return schemas.ProviderTestResult(success=True, message=f"Test email sent to {request.to_email}.")

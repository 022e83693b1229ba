"""WhatsApp Cloud API client used for broadcast delivery."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT = (3, 30)
MAX_ERROR_LENGTH = 500


class WhatsAppDeliveryError(Exception):
    """A message could not be delivered; the text is stored on the detail row."""


@dataclass
class WhatsAppConfig:
    base_url: str
    api_version: str

    @classmethod
    def from_env(cls) -> "WhatsAppConfig":
        return cls(
            base_url=(os.getenv("WHATSAPP_GRAPH_BASE_URL") or "https://graph.facebook.com").rstrip("/"),
            api_version=(os.getenv("WHATSAPP_API_VERSION") or "v21.0").strip(),
        )


def text_payload(to: str, body: str) -> Dict[str, Any]:
    return {
        "messaging_product": "whatsapp",
        "recipient_type": "individual",
        "to": to,
        "type": "text",
        "text": {"preview_url": False, "body": body},
    }


def template_payload(to: str, name: str, language: Optional[str]) -> Dict[str, Any]:
    return {
        "messaging_product": "whatsapp",
        "to": to,
        "type": "template",
        "template": {"name": name, "language": {"code": language or "en_US"}},
    }


class WhatsAppClient:
    def __init__(self, phone_number_id: str, access_token: str, config: Optional[WhatsAppConfig] = None) -> None:
        self.phone_number_id = phone_number_id
        self.access_token = access_token
        self.config = config or WhatsAppConfig.from_env()

    @property
    def messages_url(self) -> str:
        return f"{self.config.base_url}/{self.config.api_version}/{self.phone_number_id}/messages"

    def _post(self, payload: Dict[str, Any]) -> str:
        try:
            response = requests.post(
                self.messages_url,
                headers={"Authorization": f"Bearer {self.access_token}", "Content-Type": "application/json"},
                json=payload,
                timeout=_DEFAULT_TIMEOUT,
            )
        except requests.RequestException as exc:
            raise WhatsAppDeliveryError(str(exc)[:MAX_ERROR_LENGTH]) from exc
        if not 200 <= response.status_code < 300:
            raise WhatsAppDeliveryError(f"HTTP {response.status_code}: {response.text}"[:MAX_ERROR_LENGTH])
        try:
            data = response.json()
        except ValueError:
            data = {}
        messages = data.get("messages") if isinstance(data, dict) else None
        if isinstance(messages, list) and messages and isinstance(messages[0], dict):
            return str(messages[0].get("id") or "")
        return ""

    def send_text(self, to: str, body: str) -> str:
        """Send a text message; returns the WhatsApp message id."""
        return self._post(text_payload(to, body))

    def send_template(self, to: str, name: str, language: Optional[str] = None) -> str:
        return self._post(template_payload(to, name, language))

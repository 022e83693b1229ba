"""
Chat completion adapter over the company's configured AI providers.

Requests are normalized into either an OpenAI-style ``chat/completions``
body or a Gemini ``generateContent`` body. Provider failures never raise:
callers always receive an ``AiCompletionResult``.
"""
from __future__ import annotations

import json
import logging
import os
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple
from urllib.parse import urlparse

import requests
from sqlalchemy.orm import Session

from wacrm.db import schemas
from wacrm.services import api_provider_service
from wacrm.services.api_provider_service import ProviderRuntime

logger = logging.getLogger(__name__)

AI_CATEGORY = "ai"
GEMINI_HOST = "generativelanguage.googleapis.com"
BEARER_AUTH_TYPES = {"apikey", "bearertoken", "bearer"}
DETAIL_PROVIDERS = {"openai", "xai"}
DEFAULT_MIME_TYPE = "image/jpeg"
IMAGE_ONLY_PROMPT = "Please analyse this image."

# Keys of a structured message that are not forwarded as reply fields
_STRUCTURED_KEYS = {"prompt", "text", "caption", "media", "mediaArray", "document", "documentText", "messageType", "node"}


@dataclass
class AiCompletionResult:
    success: bool
    content: Optional[str] = None
    error: Optional[str] = None
    status_code: Optional[int] = None
    raw: Optional[str] = None
    provider_key: Optional[str] = None


def _request_timeout() -> Tuple[int, float]:
    raw = os.getenv("AI_REQUEST_TIMEOUT_SECONDS", "60")
    try:
        read_timeout = float(raw)
    except ValueError:
        read_timeout = 60.0
    return (3, read_timeout)


def _ascii_header_value(value: Optional[str]) -> str:
    cleaned = (value or "").replace("\r", "").replace("\n", "").strip()
    return "".join(ch for ch in cleaned if ord(ch) < 128)


def _get_float(settings: Dict[str, Any], name: str) -> Optional[float]:
    value = settings.get(name)
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def _get_int(settings: Dict[str, Any], name: str) -> Optional[int]:
    value = settings.get(name)
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def _get_bool(settings: Dict[str, Any], name: str) -> Optional[bool]:
    value = settings.get(name)
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in {"true", "false"}:
        return value.strip().lower() == "true"
    return None


def _get_string_list(settings: Dict[str, Any], name: str) -> Optional[List[str]]:
    value = settings.get(name)
    if isinstance(value, list):
        items = [item for item in value if isinstance(item, str) and item.strip()]
        return items or None
    if isinstance(value, str) and value.strip():
        items = [item.strip() for item in value.replace(";", ",").split(",") if item.strip()]
        return items or None
    return None


def _first(*values):
    for value in values:
        if value is not None:
            return value
    return None


def _media_items(root: Dict[str, Any]) -> List[Tuple[str, str]]:
    """(mime_type, base64) pairs from ``mediaArray`` or the single ``media`` object."""
    items: List[Tuple[str, str]] = []
    if isinstance(root.get("mediaArray"), list):
        sources = root["mediaArray"]
    elif isinstance(root.get("media"), dict):
        sources = [root["media"]]
    else:
        sources = []
    for media in sources:
        if not isinstance(media, dict):
            continue
        data = media.get("base64")
        if not isinstance(data, str) or not data.strip():
            continue
        mime = media.get("mimeType") if isinstance(media.get("mimeType"), str) else DEFAULT_MIME_TYPE
        items.append((mime or DEFAULT_MIME_TYPE, data))
    return items


def _text_parts(root: Dict[str, Any], has_image: bool, original: str) -> List[str]:
    texts: List[str] = []
    for key in ("prompt", "text"):
        value = root.get(key)
        if isinstance(value, str) and value.strip():
            texts.append(value)
    caption = root.get("caption")
    if isinstance(caption, str) and caption.strip():
        texts.append(f"Image caption: {caption}")
    extra = {k: v for k, v in root.items() if k not in _STRUCTURED_KEYS and v is not None}
    if extra:
        texts.append("\n\nReply field data (JSON):\n" + json.dumps(extra, ensure_ascii=False, separators=(",", ":")))
    if not texts:
        texts.append(IMAGE_ONLY_PROMPT if has_image else original)
    return texts


def _parse_structured(content: str) -> Optional[Dict[str, Any]]:
    try:
        root = json.loads(content)
    except (json.JSONDecodeError, TypeError):
        return None
    return root if isinstance(root, dict) else None


def openai_content_parts(content: str, provider_key: str, settings: Dict[str, Any]) -> Optional[List[Dict[str, Any]]]:
    """Multimodal parts when ``content`` is JSON carrying base64 images, else None."""
    root = _parse_structured(content)
    if root is None:
        return None
    media = _media_items(root)
    if not media:
        return None
    parts: List[Dict[str, Any]] = []
    for mime, data in media:
        image_url: Dict[str, Any] = {"url": f"data:{mime};base64,{data}"}
        if provider_key in DETAIL_PROVIDERS:
            detail = settings.get("imageDetail")
            image_url["detail"] = detail if isinstance(detail, str) and detail else "high"
        parts.append({"type": "image_url", "image_url": image_url})
    for text in _text_parts(root, True, content):
        parts.append({"type": "text", "text": text})
    return parts


def gemini_content_parts(content: str) -> Optional[List[Dict[str, Any]]]:
    root = _parse_structured(content)
    if root is None:
        return None
    media = _media_items(root)
    if not media:
        return None
    parts: List[Dict[str, Any]] = [{"inline_data": {"mime_type": mime, "data": data}} for mime, data in media]
    parts.extend({"text": text} for text in _text_parts(root, True, content))
    return parts


def is_gemini(runtime: ProviderRuntime) -> bool:
    url = runtime.api_url or runtime.default_api_url or ""
    return runtime.provider_key.lower() == "gemini" or GEMINI_HOST in url.lower()


def build_endpoint(runtime: ProviderRuntime, model: Optional[str]) -> Optional[str]:
    endpoint = runtime.api_url or runtime.default_api_url
    if not endpoint or not endpoint.strip():
        return None
    endpoint = endpoint.strip()
    if model:
        endpoint = endpoint.replace("{model}", model)
    if "{model}" in endpoint:
        return None
    parsed = urlparse(endpoint)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        return None
    return endpoint


def build_openai_body(
    runtime: ProviderRuntime,
    system_prompt: Optional[str],
    messages: Sequence[schemas.ChatMessage],
    options: schemas.AiChatOptions,
) -> Optional[Dict[str, Any]]:
    settings = runtime.settings
    provider_key = runtime.provider_key.lower()
    body: Dict[str, Any] = {}
    model = options.model_override or runtime.model or runtime.default_model
    if model:
        body["model"] = model

    chat: List[Dict[str, Any]] = []
    if system_prompt and system_prompt.strip():
        chat.append({"role": "system", "content": system_prompt})
    for message in messages:
        if not message.content or not message.content.strip():
            continue
        role = message.role if message.role and message.role.strip() else "user"
        parts = openai_content_parts(message.content, provider_key, settings)
        chat.append({"role": role, "content": parts if parts else message.content})
    if not chat:
        return None
    body["messages"] = chat

    temperature = _first(options.temperature, runtime.temperature, _get_float(settings, "temperature"))
    if temperature is not None:
        body["temperature"] = temperature
    top_p = _first(options.top_p, runtime.top_p, _get_float(settings, "top_p"))
    if top_p is not None:
        body["top_p"] = top_p
    max_tokens = _first(options.max_tokens, _get_int(settings, "max_tokens"))
    if max_tokens is not None:
        body["max_tokens"] = max_tokens
    stream = _first(options.stream, _get_bool(settings, "stream"))
    if stream is not None:
        body["stream"] = stream
    if options.additional_parameters:
        body.update(options.additional_parameters)
    return body


def build_gemini_body(
    runtime: ProviderRuntime,
    system_prompt: Optional[str],
    messages: Sequence[schemas.ChatMessage],
    options: schemas.AiChatOptions,
) -> Optional[Dict[str, Any]]:
    settings = runtime.settings
    parts: List[Dict[str, Any]] = []
    if system_prompt and system_prompt.strip():
        parts.append({"text": system_prompt})
    for message in messages:
        if not message.content or not message.content.strip():
            continue
        parts.extend(gemini_content_parts(message.content) or [{"text": message.content}])
    if not parts:
        return None

    body: Dict[str, Any] = {"contents": [{"role": "user", "parts": parts}]}
    config: Dict[str, Any] = {}
    values = {
        "temperature": _first(options.temperature, runtime.temperature, _get_float(settings, "temperature")),
        "topP": _first(options.top_p, runtime.top_p, _get_float(settings, "topP")),
        "topK": _first(options.top_k, _get_float(settings, "topK")),
        "maxOutputTokens": _first(options.max_output_tokens, _get_int(settings, "maxOutputTokens")),
        "candidateCount": _first(options.candidate_count, _get_int(settings, "candidateCount")),
        "stopSequences": _first(options.stop_sequences or None, _get_string_list(settings, "stopSequences")),
    }
    for key, value in values.items():
        if value is not None:
            config[key] = value
    if config:
        body["generationConfig"] = config
    return body


def parse_response(gemini: bool, text: str) -> AiCompletionResult:
    try:
        document = json.loads(text)
    except json.JSONDecodeError as exc:
        return AiCompletionResult(success=False, error=str(exc), raw=text)

    content: Optional[str] = None
    if isinstance(document, dict):
        if gemini:
            candidates = document.get("candidates")
            if isinstance(candidates, list) and candidates:
                parts = ((candidates[0] or {}).get("content") or {}).get("parts")
                if isinstance(parts, list) and parts and isinstance(parts[0], dict):
                    content = parts[0].get("text")
        else:
            choices = document.get("choices")
            if isinstance(choices, list) and choices and isinstance(choices[0], dict):
                choice = choices[0]
                message = choice.get("message")
                if isinstance(message, dict) and "content" in message:
                    content = message.get("content")
                else:
                    content = choice.get("text")

    if not isinstance(content, str) or not content.strip():
        return AiCompletionResult(success=False, error="Unable to parse AI provider response.", raw=text)
    return AiCompletionResult(success=True, content=content, raw=text)


class AiCompletionClient:
    """Sends chat requests through the company's active AI provider."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def resolve_runtime(self, company_id: uuid.UUID, provider_key: Optional[str]) -> Optional[ProviderRuntime]:
        if provider_key and provider_key.strip():
            runtime = api_provider_service.get_runtime_provider(self.db, company_id, provider_key.strip())
            if runtime is not None and runtime.active:
                return runtime
        for key in api_provider_service.get_active_provider_keys(self.db, company_id, AI_CATEGORY):
            runtime = api_provider_service.get_runtime_provider(self.db, company_id, key)
            if runtime is not None and runtime.active:
                return runtime
        return None

    def send_chat(
        self,
        company_id: uuid.UUID,
        provider_key: Optional[str],
        system_prompt: Optional[str],
        messages: Sequence[schemas.ChatMessage],
        options: Optional[schemas.AiChatOptions] = None,
    ) -> AiCompletionResult:
        if not messages:
            return AiCompletionResult(success=False, error="No messages specified for AI completion request.")
        options = options or schemas.AiChatOptions()

        runtime = self.resolve_runtime(company_id, provider_key)
        if runtime is None:
            return AiCompletionResult(success=False, error="No active AI provider configured for current company.")

        endpoint = build_endpoint(runtime, options.model_override or runtime.model or runtime.default_model)
        if endpoint is None:
            return AiCompletionResult(
                success=False,
                error="AI provider endpoint is not configured.",
                provider_key=runtime.provider_key,
            )

        gemini = is_gemini(runtime)
        builder = build_gemini_body if gemini else build_openai_body
        body = builder(runtime, system_prompt, messages, options)
        if body is None:
            return AiCompletionResult(
                success=False,
                error="No messages specified for AI completion request.",
                provider_key=runtime.provider_key,
            )

        headers: Dict[str, str] = {"Content-Type": "application/json"}
        params: Dict[str, str] = {}
        auth_type = (runtime.auth_type or "apiKey").lower()
        if runtime.api_key:
            if auth_type in BEARER_AUTH_TYPES:
                headers["Authorization"] = f"Bearer {_ascii_header_value(runtime.api_key)}"
            elif auth_type == "query":
                params["key"] = runtime.api_key.strip()
        for name, value in (runtime.extra_headers or {}).items():
            name, value = (name or "").strip(), _ascii_header_value(value)
            if name and value:
                headers[name] = value

        logger.info("Sending AI request to '%s' (%s format)", runtime.provider_key, "gemini" if gemini else "openai")
        try:
            response = requests.post(
                endpoint,
                headers=headers,
                params=params or None,
                json=body,
                timeout=_request_timeout(),
            )
        except requests.Timeout:
            logger.warning("AI request to '%s' timed out", runtime.provider_key)
            return AiCompletionResult(success=False, error="AI request timed out.", provider_key=runtime.provider_key)
        except requests.RequestException as exc:
            logger.warning("AI request to '%s' failed: %s", runtime.provider_key, exc)
            return AiCompletionResult(success=False, error=str(exc), provider_key=runtime.provider_key)

        text = response.text or ""
        if not 200 <= response.status_code < 300:
            logger.warning("AI provider '%s' returned error %s", runtime.provider_key, response.status_code)
            return AiCompletionResult(
                success=False,
                error=text,
                status_code=response.status_code,
                raw=text,
                provider_key=runtime.provider_key,
            )

        result = parse_response(gemini, text)
        result.status_code = response.status_code
        result.provider_key = runtime.provider_key
        if not result.success:
            logger.warning("AI response from '%s' could not be parsed", runtime.provider_key)
        return result

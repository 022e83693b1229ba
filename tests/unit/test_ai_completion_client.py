import json

import requests

from wacrm.db import schemas
from wacrm.services import ai_completion_client as ai
from wacrm.services import api_provider_service
from wacrm.services.api_provider_service import ProviderRuntime

from tests.helpers import FakeResponse, RecordingPost


def _runtime(**fields):
    values = dict(
        provider_key="openai",
        category="ai",
        api_url="https://api.openai.com/v1/chat/completions",
        model="gpt-4o-mini",
        enable_streaming=False,
        auth_type="apiKey",
        api_key="sk-1",
        active=True,
    )
    values.update(fields)
    return ProviderRuntime(**values)


def _messages(*contents):
    return [schemas.ChatMessage(role="user", content=c) for c in contents]


def test_openai_body_includes_system_prompt_and_options():
    body = ai.build_openai_body(
        _runtime(temperature=0.3, settings={"max_tokens": "256"}),
        "Be brief",
        _messages("Hello", "   "),
        schemas.AiChatOptions(top_p=0.9, additional_parameters={"user": "u1"}),
    )
    assert body["model"] == "gpt-4o-mini"
    assert body["messages"] == [
        {"role": "system", "content": "Be brief"},
        {"role": "user", "content": "Hello"},
    ]
    assert body["temperature"] == 0.3
    assert body["top_p"] == 0.9
    assert body["max_tokens"] == 256
    assert body["user"] == "u1"


def test_openai_body_none_without_content():
    assert ai.build_openai_body(_runtime(), None, _messages(" "), schemas.AiChatOptions()) is None


def test_openai_body_turns_media_json_into_parts():
    content = json.dumps({"prompt": "What is this?", "media": {"base64": "AAA", "mimeType": "image/png"}, "orderId": 7})
    body = ai.build_openai_body(_runtime(settings={"imageDetail": "low"}), None, _messages(content), schemas.AiChatOptions())
    parts = body["messages"][0]["content"]
    assert parts[0] == {"type": "image_url", "image_url": {"url": "data:image/png;base64,AAA", "detail": "low"}}
    assert parts[1] == {"type": "text", "text": "What is this?"}
    assert parts[2]["text"].endswith('{"orderId":7}')


def test_gemini_body_generation_config():
    runtime = _runtime(provider_key="gemini", settings={"topK": 4, "stopSequences": "END; STOP"})
    body = ai.build_gemini_body(runtime, "System", _messages("Hi"), schemas.AiChatOptions(max_output_tokens=100))
    assert body["contents"] == [{"role": "user", "parts": [{"text": "System"}, {"text": "Hi"}]}]
    assert body["generationConfig"] == {"topK": 4.0, "maxOutputTokens": 100, "stopSequences": ["END", "STOP"]}


def test_build_endpoint_substitutes_model_and_rejects_bad_urls():
    runtime = _runtime(api_url="https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent")
    assert ai.build_endpoint(runtime, "gemini-1.5-flash").endswith("/models/gemini-1.5-flash:generateContent")
    assert ai.is_gemini(runtime) is True
    assert ai.build_endpoint(_runtime(api_url="ftp://x", default_api_url=None), None) is None


def test_endpoint_with_unresolved_model_placeholder_is_not_configured(monkeypatch):
    runtime = _runtime(
        provider_key="gemini",
        api_url="https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent",
        model=None,
    )
    assert ai.build_endpoint(runtime, None) is None

    post = RecordingPost(FakeResponse(200, {}))
    monkeypatch.setattr(ai.requests, "post", post)
    client = ai.AiCompletionClient(None)
    monkeypatch.setattr(client, "resolve_runtime", lambda company_id, provider_key: runtime)

    result = client.send_chat(None, "gemini", None, _messages("Hello"))

    assert result.success is False
    assert result.error == "AI provider endpoint is not configured."
    assert post.calls == []


def test_parse_response_shapes():
    openai = ai.parse_response(False, json.dumps({"choices": [{"message": {"content": "Hi!"}}]}))
    assert openai.success and openai.content == "Hi!"
    gemini = ai.parse_response(True, json.dumps({"candidates": [{"content": {"parts": [{"text": "Yo"}]}}]}))
    assert gemini.content == "Yo"
    empty = ai.parse_response(False, json.dumps({"choices": []}))
    assert empty.success is False
    assert empty.error == "Unable to parse AI provider response."
    assert ai.parse_response(False, "<html>").success is False


def test_send_chat_without_active_provider(db_session, owner_context):
    _, company, _ = owner_context
    result = ai.AiCompletionClient(db_session).send_chat(company.id, None, None, _messages("Hi"))
    assert result.success is False
    assert result.error == "No active AI provider configured for current company."


def test_send_chat_without_messages(db_session, owner_context):
    _, company, _ = owner_context
    result = ai.AiCompletionClient(db_session).send_chat(company.id, None, None, [])
    assert result.error == "No messages specified for AI completion request."


def _activate(db, company_id, key, **fields):
    values = {"api_key": "secret-key"}
    values.update(fields)
    api_provider_service.upsert_company_setting(db, company_id, key, schemas.CompanyApiProviderSettingUpdate(**values))


def test_send_chat_openai_uses_bearer_auth(db_session, owner_context, monkeypatch):
    _, company, _ = owner_context
    _activate(db_session, company.id, "openai", extra_headers_json='{"OpenAI-Organization": "org-1"}')
    post = RecordingPost(FakeResponse(200, {"choices": [{"message": {"content": "Hello back"}}]}))
    monkeypatch.setattr(ai.requests, "post", post)

    result = ai.AiCompletionClient(db_session).send_chat(company.id, None, "Sys", _messages("Hello"))

    assert result.success is True
    assert result.content == "Hello back"
    assert result.provider_key == "openai"
    headers = post.calls[0]["headers"]
    assert headers["Authorization"] == "Bearer secret-key"
    assert headers["OpenAI-Organization"] == "org-1"
    assert post.calls[0]["params"] is None


def test_send_chat_gemini_uses_query_key(db_session, owner_context, monkeypatch):
    _, company, _ = owner_context
    _activate(db_session, company.id, "gemini")
    post = RecordingPost(FakeResponse(200, {"candidates": [{"content": {"parts": [{"text": "G"}]}}]}))
    monkeypatch.setattr(ai.requests, "post", post)

    result = ai.AiCompletionClient(db_session).send_chat(company.id, "gemini", None, _messages("Hello"))

    assert result.content == "G"
    assert post.calls[0]["params"] == {"key": "secret-key"}
    assert "gemini-1.5-flash:generateContent" in post.calls[0]["url"]
    assert "Authorization" not in post.calls[0]["headers"]


def test_send_chat_reports_http_errors_and_timeouts(db_session, owner_context, monkeypatch):
    _, company, _ = owner_context
    _activate(db_session, company.id, "openai")
    monkeypatch.setattr(ai.requests, "post", RecordingPost(FakeResponse(429, text="rate limited")))
    failed = ai.AiCompletionClient(db_session).send_chat(company.id, None, None, _messages("Hi"))
    assert failed.success is False
    assert failed.status_code == 429
    assert failed.error == "rate limited"

    monkeypatch.setattr(ai.requests, "post", RecordingPost(requests.Timeout()))
    timed_out = ai.AiCompletionClient(db_session).send_chat(company.id, None, None, _messages("Hi"))
    assert timed_out.error == "AI request timed out."


def test_inactive_requested_provider_falls_back_to_active_one(db_session, owner_context, monkeypatch):
    _, company, _ = owner_context
    _activate(db_session, company.id, "xai", active=False)
    _activate(db_session, company.id, "openai")
    post = RecordingPost(FakeResponse(200, {"choices": [{"text": "legacy"}]}))
    monkeypatch.setattr(ai.requests, "post", post)

    result = ai.AiCompletionClient(db_session).send_chat(company.id, "xai", None, _messages("Hi"))

    assert result.provider_key == "openai"
    assert result.content == "legacy"

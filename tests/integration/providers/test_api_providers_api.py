from wacrm.services import ai_completion_client, email_provider_tester
from wacrm.utils.feature_flags import refresh_feature_flag_cache

from tests.helpers import FakeResponse, RecordingPost


def test_definitions_catalogue(client, owner_context):
    _, _, headers = owner_context
    keys = {d["provider_key"] for d in client.get("/api-providers/definitions", headers=headers).json()}
    assert keys == {"openai", "xai", "gemini", "microsoft-graph"}
    email_only = client.get("/api-providers/definitions", params={"category": "email"}, headers=headers).json()
    assert [d["provider_key"] for d in email_only] == ["microsoft-graph"]


def test_company_settings_default_view(client, owner_context):
    _, _, headers = owner_context
    views = client.get("/api-providers/company", headers=headers).json()
    assert len(views) == 4
    assert all(v["active"] is False and v["has_api_key"] is False for v in views)
    assert client.get("/api-providers/company/unknown", headers=headers).status_code == 404


def test_save_setting_masks_key(client, owner_context):
    _, _, headers = owner_context
    response = client.post(
        "/api-providers/company/openai",
        json={"api_key": "sk-live-abcdef123456", "model": "gpt-4o", "temperature": 0.7},
        headers=headers,
    )
    assert response.status_code == 200
    body = response.json()
    assert body["has_api_key"] is True
    assert body["masked_api_key"].endswith("3456")
    assert "sk-live" not in body["masked_api_key"]
    assert "api_key" not in body

    fetched = client.get("/api-providers/company/openai", headers=headers).json()
    assert fetched["model"] == "gpt-4o"
    assert fetched["temperature"] == 0.7
    assert fetched["active"] is True


def test_save_setting_validation(client, owner_context):
    _, _, headers = owner_context
    bad_json = client.post("/api-providers/company/openai", json={"extra_headers_json": "{oops"}, headers=headers)
    assert bad_json.status_code == 400
    assert "extra_headers_json" in bad_json.json()["detail"]
    too_hot = client.post("/api-providers/company/openai", json={"temperature": 3}, headers=headers)
    assert too_hot.status_code == 400
    unknown = client.post("/api-providers/company/nope", json={}, headers=headers)
    assert unknown.status_code == 404


def test_save_setting_requires_manage(client, editor_context):
    _, _, headers = editor_context
    assert client.post("/api-providers/company/openai", json={"api_key": "x"}, headers=headers).status_code == 403
    assert client.get("/api-providers/company", headers=headers).status_code == 200


def test_test_email_errors(client, owner_context):
    _, _, headers = owner_context
    unsupported = client.post("/api-providers/test-email/openai", json={"to_email": "a@b.test"}, headers=headers)
    assert unsupported.status_code == 400
    incomplete = client.post("/api-providers/test-email/microsoft-graph", json={"to_email": "a@b.test"}, headers=headers)
    assert incomplete.status_code == 400
    assert incomplete.json()["detail"].startswith("Microsoft Graph configuration is incomplete; missing: ")


def test_test_email_success_and_upstream_failure(client, owner_context, monkeypatch):
    _, _, headers = owner_context
    client.post(
        "/api-providers/company/microsoft-graph",
        json={
            "api_key": "graph-secret",
            "auth_config_json": '{"tenant_id": "t1", "client_id": "c1", "from_email": "bot@acme.test"}',
        },
        headers=headers,
    )
    monkeypatch.setattr(
        email_provider_tester.requests, "post",
        RecordingPost(FakeResponse(200, {"access_token": "tok"}), FakeResponse(202, text="")),
    )
    ok = client.post("/api-providers/test-email/microsoft-graph", json={"to_email": "ops@acme.test"}, headers=headers)
    assert ok.json() == {"success": True, "message": "Test email sent to ops@acme.test."}

    monkeypatch.setattr(email_provider_tester.requests, "post", RecordingPost(FakeResponse(400, text="bad tenant")))
    failed = client.post("/api-providers/test-email/microsoft-graph", json={"to_email": "ops@acme.test"}, headers=headers)
    assert failed.status_code == 502


def test_ai_chat_disabled(client, owner_context, monkeypatch):
    _, _, headers = owner_context
    monkeypatch.setenv("AI_FEATURES_ENABLED", "false")
    refresh_feature_flag_cache()
    response = client.post("/ai/chat", json={"messages": [{"content": "Hi"}]}, headers=headers)
    assert response.status_code == 503


def test_ai_chat_without_provider(client, owner_context):
    _, _, headers = owner_context
    body = client.post("/ai/chat", json={"messages": [{"content": "Hi"}]}, headers=headers).json()
    assert body["success"] is False
    assert body["error"] == "No active AI provider configured for current company."


def test_ai_chat_through_active_provider(client, owner_context, monkeypatch):
    _, _, headers = owner_context
    client.post("/api-providers/company/xai", json={"api_key": "xai-key"}, headers=headers)
    post = RecordingPost(FakeResponse(200, {"choices": [{"message": {"content": "Hello from Grok"}}]}))
    monkeypatch.setattr(ai_completion_client.requests, "post", post)

    body = client.post(
        "/ai/chat",
        json={"system_prompt": "Be nice", "messages": [{"role": "user", "content": "Hi"}], "options": {"temperature": 0.2}},
        headers=headers,
    ).json()

    assert body == {
        "success": True,
        "content": "Hello from Grok",
        "error": None,
        "status_code": 200,
        "provider_key": "xai",
    }
    sent = post.calls[0]["json"]
    assert sent["model"] == "grok-2-latest"
    assert sent["temperature"] == 0.2

import pytest
import requests

from wacrm.services import whatsapp_client
from wacrm.services.whatsapp_client import WhatsAppClient, WhatsAppConfig, WhatsAppDeliveryError

from tests.helpers import FakeResponse, RecordingPost

CONFIG = WhatsAppConfig(base_url="https://graph.example.test", api_version="v21.0")


def test_config_from_env(monkeypatch):
    monkeypatch.setenv("WHATSAPP_GRAPH_BASE_URL", "https://graph.local/")
    monkeypatch.setenv("WHATSAPP_API_VERSION", "v19.0")
    config = WhatsAppConfig.from_env()
    assert config.base_url == "https://graph.local"
    assert config.api_version == "v19.0"


def test_send_text_posts_cloud_api_payload(monkeypatch):
    post = RecordingPost(FakeResponse(200, {"messages": [{"id": "wamid.123"}]}))
    monkeypatch.setattr(whatsapp_client.requests, "post", post)

    message_id = WhatsAppClient("555", "token-1", CONFIG).send_text("60123456789", "Hello")

    assert message_id == "wamid.123"
    call = post.calls[0]
    assert call["url"] == "https://graph.example.test/v21.0/555/messages"
    assert call["headers"]["Authorization"] == "Bearer token-1"
    assert call["json"]["type"] == "text"
    assert call["json"]["to"] == "60123456789"
    assert call["json"]["text"]["body"] == "Hello"


def test_send_template_defaults_language(monkeypatch):
    post = RecordingPost(FakeResponse(200, {}))
    monkeypatch.setattr(whatsapp_client.requests, "post", post)

    assert WhatsAppClient("555", "t", CONFIG).send_template("60123", "welcome") == ""
    assert post.calls[0]["json"]["template"] == {"name": "welcome", "language": {"code": "en_US"}}


def test_http_error_raises_delivery_error(monkeypatch):
    monkeypatch.setattr(whatsapp_client.requests, "post", RecordingPost(FakeResponse(400, text="bad number")))
    with pytest.raises(WhatsAppDeliveryError) as exc:
        WhatsAppClient("555", "t", CONFIG).send_text("1", "x")
    assert "HTTP 400" in str(exc.value)


def test_network_error_is_wrapped(monkeypatch):
    monkeypatch.setattr(whatsapp_client.requests, "post", RecordingPost(requests.ConnectionError("refused")))
    with pytest.raises(WhatsAppDeliveryError):
        WhatsAppClient("555", "t", CONFIG).send_text("1", "x")

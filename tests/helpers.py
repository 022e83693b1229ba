"""Shared helpers for API tests."""

import json


def auth_headers(email: str, company=None) -> dict:
    """oauth2-proxy identity headers, optionally selecting a company."""
    headers = {"x-auth-request-user": email.split("@")[0], "x-auth-request-email": email}
    if company is not None:
        headers["X-Company-Id"] = str(getattr(company, "id", company))
    return headers


def valid_workflow_graph() -> dict:
    return {
        "nodes": [
            {"id": "start-1", "type": "start", "data": {"taskName": "Start"}},
            {"id": "send-1", "type": "sendWhatsApp", "data": {"message": "Hello"}},
            {"id": "end-1", "type": "end", "data": {}},
        ],
        "edges": [
            {"id": "e1", "source": "start-1", "target": "send-1"},
            {"id": "e2", "source": "send-1", "target": "end-1"},
        ],
    }


def valid_metaflow() -> dict:
    return {
        "version": "6.0",
        "screens": [
            {
                "id": "WELCOME",
                "title": "Welcome",
                "layout": {
                    "type": "SingleColumnLayout",
                    "children": [
                        {"type": "TextBody", "text": "Tell us about yourself"},
                        {"type": "TextInput", "name": "full_name", "label": "Full name"},
                        {
                            "type": "Footer",
                            "label": "Next",
                            "on-click-action": {"name": "navigate", "next": {"name": "DONE", "type": "screen"}},
                        },
                    ],
                },
            },
            {
                "id": "DONE",
                "terminal": True,
                "layout": {
                    "type": "SingleColumnLayout",
                    "children": [
                        {"type": "TextBody", "text": "Thanks"},
                        {"type": "Footer", "label": "Submit", "on-click-action": {"name": "complete"}},
                    ],
                },
            },
        ],
    }


class FakeResponse:
    """Minimal stand-in for ``requests.Response`` in monkeypatched calls."""

    def __init__(self, status_code: int = 200, payload=None, text: str = None):
        self.status_code = status_code
        self._payload = payload
        if text is None:
            text = json.dumps(payload) if payload is not None else ""
        self.text = text

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON payload")
        return self._payload


class RecordingPost:
    """Callable replacing ``requests.post``; records calls and replays responses."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def __call__(self, url, **kwargs):
        self.calls.append({"url": url, **kwargs})
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response

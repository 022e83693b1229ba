import uuid

import pytest
from fastapi import HTTPException

from wacrm.api.auth import (
    LAST_SEEN_RESOLUTION,
    get_or_create_user,
    get_user_memberships,
    resolve_identity_from_headers,
)
from wacrm.api.deps import build_user_context, parse_company_id
from wacrm.db.models import now_utc


def test_resolve_identity_prefers_auth_request_headers():
    name, email = resolve_identity_from_headers("alice", " Alice@Example.COM ", "bob", "bob@example.com")
    assert name == "alice"
    assert email == "alice@example.com"


def test_resolve_identity_falls_back_to_forwarded_headers():
    assert resolve_identity_from_headers(None, None, "bob", "bob@example.com") == ("bob", "bob@example.com")
    assert resolve_identity_from_headers(None, None, None, None) == (None, None)


def test_get_or_create_user_creates_once(db_session):
    first = get_or_create_user(db_session, "New@Example.com", "New User")
    second = get_or_create_user(db_session, "new@example.com")
    assert first.id == second.id
    assert first.email == "new@example.com"
    assert first.auth_provider == "oauth2-proxy"
    assert first.is_superadmin is False


def test_admin_emails_create_and_promote_superadmins(db_session, monkeypatch):
    existing = get_or_create_user(db_session, "root@example.com")
    assert existing.is_superadmin is False
    monkeypatch.setenv("ADMIN_EMAILS", "root@example.com, 'boss@example.com'")
    assert get_or_create_user(db_session, "root@example.com").is_superadmin is True
    assert get_or_create_user(db_session, "boss@example.com").is_superadmin is True


def test_last_seen_is_refreshed_only_after_the_window(db_session):
    user = get_or_create_user(db_session, "seen@example.com")
    first_seen = user.last_seen_at
    assert first_seen is not None
    assert get_or_create_user(db_session, "seen@example.com").last_seen_at == first_seen

    user.last_seen_at = now_utc() - LAST_SEEN_RESOLUTION * 2
    db_session.commit()
    refreshed = get_or_create_user(db_session, "seen@example.com").last_seen_at
    assert refreshed.replace(tzinfo=None) > first_seen.replace(tzinfo=None)


def test_user_context_lists_memberships(db_session, owner_context, company_factory):
    user, company, _ = owner_context
    company_factory("Unrelated Co")
    memberships = get_user_memberships(db_session, user.id)
    assert memberships == [{
        "company_id": str(company.id),
        "company_name": company.name,
        "role": "owner",
        "can_read": True,
        "can_write": True,
    }]
    ctx = build_user_context(db_session, user)
    assert ctx["memberships_by_company"][str(company.id)]["role"] == "owner"
    assert ctx["is_superadmin"] is False


def test_parse_company_id():
    value = uuid.uuid4()
    assert parse_company_id(f" {value} ") == value
    with pytest.raises(HTTPException) as missing:
        parse_company_id(None)
    assert missing.value.status_code == 400
    assert missing.value.detail == "company_id_required"
    with pytest.raises(HTTPException) as invalid:
        parse_company_id("not-a-uuid")
    assert invalid.value.detail == "invalid_company_id"

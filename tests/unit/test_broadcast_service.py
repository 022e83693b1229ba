import pytest

from wacrm.db import models, schemas
from wacrm.db.database import SessionLocal
from wacrm.db.repositories import broadcasts as broadcast_repo
from wacrm.services import broadcast_service, whatsapp_client
from wacrm.services.api_key_protector import ApiKeyProtector
from wacrm.utils.feature_flags import refresh_feature_flag_cache

from tests.helpers import FakeResponse, RecordingPost


@pytest.fixture
def contacts(db_session, owner_context):
    _, company, _ = owner_context
    rows = [
        models.Contact(company_id=company.id, name="Alice", whatsapp_number="6011111", hashtags="vip,sales"),
        models.Contact(company_id=company.id, name="Bob", whatsapp_number="6022222", hashtags="sales"),
        models.Contact(company_id=company.id, name="Carol", whatsapp_number=None, hashtags="vip"),
        models.Contact(company_id=company.id, name="Dave", whatsapp_number="6044444", hashtags="vip", is_active=False),
    ]
    db_session.add_all(rows)
    db_session.commit()
    return rows


def _disable_delivery(monkeypatch):
    monkeypatch.setenv("BROADCAST_DELIVERY_ENABLED", "false")
    refresh_feature_flag_cache()


def test_preview_counts_active_reachable_contacts(db_session, owner_context, contacts):
    _, company, _ = owner_context
    preview = broadcast_service.preview_broadcast(
        db_session, company.id, schemas.BroadcastPreviewRequest(hashtag_filter="#VIP", message="Hi")
    )
    assert preview.total_count == 1
    assert [c.name for c in preview.preview] == ["Alice"]
    assert preview.message == "Hi"


def test_create_broadcast_without_targets_raises(db_session, owner_context, contacts):
    _, company, _ = owner_context
    with pytest.raises(broadcast_service.NoBroadcastTargetsError):
        broadcast_service.create_broadcast(
            db_session, company.id, schemas.BroadcastSendRequest(hashtag_filter="nobody", message="Hi")
        )


def test_simulated_run_completes_every_detail(db_session, owner_context, contacts, monkeypatch):
    _, company, _ = owner_context
    _disable_delivery(monkeypatch)
    send = broadcast_service.create_broadcast(
        db_session, company.id, schemas.BroadcastSendRequest(hashtag_filter="sales", message="Promo"), created_by="owner@example.com"
    )
    assert send.status == "Pending"
    assert send.total_contacts == 2
    assert send.hashtag_filter == "sales"

    finished = broadcast_service.run_broadcast(db_session, send.id)

    assert finished.status == "Completed"
    assert finished.sent_count == 2
    assert finished.failed_count == 0
    assert finished.completed_at is not None
    assert broadcast_repo.get_status_details(db_session, send.id) == {"Sent": 2}


def test_unconfigured_company_fails_each_detail(db_session, owner_context, contacts):
    _, company, _ = owner_context
    send = broadcast_service.create_broadcast(
        db_session, company.id, schemas.BroadcastSendRequest(hashtag_filter="sales", message="Promo")
    )
    finished = broadcast_service.run_broadcast(db_session, send.id)

    assert finished.status == "Completed"
    assert finished.failed_count == 2
    errors = {d.error_message for d in finished.details}
    assert errors == {"WhatsApp phone number id is not configured for this company"}


def test_configured_company_delivers_through_cloud_api(db_session, owner_context, contacts, monkeypatch):
    _, company, _ = owner_context
    company.wa_phone_number_id = "phone-1"
    company.wa_api_key_encrypted = ApiKeyProtector().protect("wa-token")
    db_session.commit()
    post = RecordingPost(FakeResponse(200, {"messages": [{"id": "wamid.1"}]}))
    monkeypatch.setattr(whatsapp_client.requests, "post", post)

    send = broadcast_service.create_broadcast(
        db_session, company.id, schemas.BroadcastSendRequest(hashtag_filter="vip", template_name="promo")
    )
    finished = broadcast_service.run_broadcast(db_session, send.id)

    assert finished.sent_count == 1
    assert post.calls[0]["headers"]["Authorization"] == "Bearer wa-token"
    assert post.calls[0]["json"]["template"]["name"] == "promo"
    assert finished.details[0].whatsapp_message_id == "wamid.1"


def test_cancelled_send_is_not_processed(db_session, owner_context, contacts, monkeypatch):
    _, company, _ = owner_context
    _disable_delivery(monkeypatch)
    send = broadcast_service.create_broadcast(
        db_session, company.id, schemas.BroadcastSendRequest(message="Hi")
    )
    broadcast_repo.cancel_broadcast_send(db_session, send)

    result = broadcast_service.run_broadcast(db_session, send.id)

    assert result.status == "Cancelled"
    assert result.sent_count == 0
    assert broadcast_repo.get_status_details(db_session, send.id) == {"Cancelled": 2}


def test_cancel_from_another_session_stops_delivery(db_session, owner_context, contacts, monkeypatch):
    _, company, _ = owner_context
    db_session.add(models.Contact(company_id=company.id, name="Erin", whatsapp_number="6055555"))
    db_session.commit()
    send = broadcast_service.create_broadcast(db_session, company.id, schemas.BroadcastSendRequest(message="Hi"))
    send_id = send.id
    assert send.total_contacts == 3
    delivered = []

    def deliver_then_cancel(contact):
        delivered.append(contact.name)
        other = SessionLocal()
        try:
            broadcast_repo.cancel_broadcast_send(other, broadcast_repo.get_broadcast_send_by_id(other, send_id))
        finally:
            other.close()
        return "wamid.1"

    monkeypatch.setattr(broadcast_service, "build_sender", lambda db, s: deliver_then_cancel)

    result = broadcast_service.run_broadcast(db_session, send_id)

    assert len(delivered) == 1
    assert result.status == "Cancelled"
    assert result.sent_count == 1
    assert broadcast_repo.get_status_details(db_session, send_id) == {"Sent": 1, "Cancelled": 2}
    sent = [d for d in result.details if d.status == "Sent"]
    assert sent[0].contact.name == delivered[0]
    assert sent[0].whatsapp_message_id == "wamid.1"

    db_session.expire_all()
    assert broadcast_repo.get_broadcast_send_by_id(db_session, send_id).status == "Cancelled"


def test_process_broadcast_uses_its_own_session(db_session, owner_context, contacts, monkeypatch):
    _, company, _ = owner_context
    _disable_delivery(monkeypatch)
    send = broadcast_service.create_broadcast(db_session, company.id, schemas.BroadcastSendRequest(message="Hi"))

    broadcast_service.process_broadcast(send.id)

    db_session.expire_all()
    assert broadcast_repo.get_broadcast_send_by_id(db_session, send.id).status == "Completed"

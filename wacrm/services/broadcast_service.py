"""
Broadcast targeting and background delivery.

A send is created with one Pending detail per target contact, then
processed outside the request: each detail is delivered through the
company's WhatsApp Cloud API number and counted as sent or failed.
"""
from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from wacrm.db import models, schemas
from wacrm.db.database import get_db_session_local
from wacrm.db.models.base import now_utc
from wacrm.db.repositories import broadcasts as broadcast_repo
from wacrm.db.repositories import contacts as contact_repo
from wacrm.services.api_key_protector import ApiKeyDecryptionError, get_protector
from wacrm.services.whatsapp_client import MAX_ERROR_LENGTH, WhatsAppClient, WhatsAppDeliveryError
from wacrm.utils.feature_flags import broadcast_delivery_enabled
from wacrm.utils.hashtags import parse_hashtags
from wacrm.utils.statuses import BroadcastStatus, DeliveryStatus

logger = logging.getLogger(__name__)

PREVIEW_LIMIT = 10
NO_TARGETS_MESSAGE = "No contacts matched the broadcast filters"

Sender = Callable[[models.Contact], str]


class NoBroadcastTargetsError(ValueError):
    def __init__(self) -> None:
        super().__init__(NO_TARGETS_MESSAGE)


@contextmanager
def background_session():
    SessionLocal = get_db_session_local()
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _normalized_filter(hashtag_filter: Optional[str]) -> Optional[str]:
    tags = parse_hashtags(hashtag_filter)
    return ",".join(tags) if tags else None


def resolve_targets(db: Session, company_id: uuid.UUID, target: schemas.BroadcastTarget) -> List[models.Contact]:
    return contact_repo.find_broadcast_targets(
        db,
        company_id,
        broadcast_group_id=target.broadcast_group_id,
        hashtag_filter=target.hashtag_filter,
    )


def preview_broadcast(db: Session, company_id: uuid.UUID, request: schemas.BroadcastPreviewRequest) -> schemas.BroadcastPreview:
    contacts = resolve_targets(db, company_id, request)
    return schemas.BroadcastPreview(
        total_count=len(contacts),
        preview=[schemas.Contact.model_validate(c) for c in contacts[:PREVIEW_LIMIT]],
        message=request.message,
    )


def create_broadcast(
    db: Session,
    company_id: uuid.UUID,
    request: schemas.BroadcastSendRequest,
    created_by: Optional[str] = None,
) -> models.BroadcastSend:
    contacts = resolve_targets(db, company_id, request)
    if not contacts:
        raise NoBroadcastTargetsError()
    send = broadcast_repo.create_broadcast_send(
        db,
        company_id,
        contacts,
        broadcast_group_id=request.broadcast_group_id,
        hashtag_filter=_normalized_filter(request.hashtag_filter),
        message_content=(request.message or "").strip() or None,
        template_name=(request.template_name or "").strip() or None,
        template_language=request.template_language,
        created_by=created_by,
    )
    logger.info("Broadcast %s queued for %d contacts (company %s)", send.id, send.total_contacts, company_id)
    return send


def build_sender(db: Session, send: models.BroadcastSend) -> Sender:
    """Callable delivering one contact for ``send``; raises WhatsAppDeliveryError on failure."""
    if not broadcast_delivery_enabled():
        logger.info("Broadcast delivery disabled; simulating send %s", send.id)
        return lambda contact: f"simulated-{uuid.uuid4()}"

    company = db.get(models.Company, send.company_id)
    problem: Optional[str] = None
    token: Optional[str] = None
    if company is None or not company.wa_phone_number_id:
        problem = "WhatsApp phone number id is not configured for this company"
    else:
        try:
            token = get_protector().unprotect(company.wa_api_key_encrypted)
        except ApiKeyDecryptionError:
            problem = "WhatsApp API key could not be decrypted"
        if not problem and not token:
            problem = "WhatsApp API key is not configured for this company"

    if problem:
        logger.warning("Broadcast %s cannot be delivered: %s", send.id, problem)

        def _unconfigured(contact: models.Contact) -> str:
            raise WhatsAppDeliveryError(problem)

        return _unconfigured

    client = WhatsAppClient(company.wa_phone_number_id, token)
    if send.template_name:
        return lambda contact: client.send_template(contact.whatsapp_number, send.template_name, send.template_language)
    return lambda contact: client.send_text(contact.whatsapp_number, send.message_content or "")


def _deliver_pending(db: Session, send: models.BroadcastSend, sender: Sender) -> bool:
    """Deliver Pending details; returns False when the send was cancelled midway."""
    for detail in broadcast_repo.get_pending_details(db, send.id):
        db.refresh(send)
        if send.status == BroadcastStatus.CANCELLED.value:
            logger.info("Broadcast %s cancelled; stopping delivery", send.id)
            return False
        try:
            message_id = sender(detail.contact)
        except WhatsAppDeliveryError as exc:
            detail.status = DeliveryStatus.FAILED.value
            detail.error_message = str(exc)[:MAX_ERROR_LENGTH]
            send.failed_count = (send.failed_count or 0) + 1
        else:
            detail.status = DeliveryStatus.SENT.value
            detail.sent_at = now_utc()
            detail.whatsapp_message_id = message_id or None
            send.sent_count = (send.sent_count or 0) + 1
        db.commit()
    return True


def run_broadcast(db: Session, send_id: uuid.UUID) -> Optional[models.BroadcastSend]:
    send = broadcast_repo.get_broadcast_send_by_id(db, send_id)
    if send is None:
        logger.warning("Broadcast %s not found for processing", send_id)
        return None
    if send.status != BroadcastStatus.PENDING.value:
        logger.info("Broadcast %s is %s; skipping", send_id, send.status)
        return send

    send.status = BroadcastStatus.SENDING.value
    db.commit()
    try:
        finished = _deliver_pending(db, send, build_sender(db, send))
        if finished:
            send.status = BroadcastStatus.COMPLETED.value
            send.completed_at = now_utc()
            db.commit()
    except Exception as exc:
        logger.exception("Broadcast %s failed", send_id)
        db.rollback()
        send.status = BroadcastStatus.FAILED.value
        send.error_message = str(exc)[:MAX_ERROR_LENGTH]
        send.completed_at = now_utc()
        db.commit()
    db.refresh(send)
    logger.info(
        "Broadcast %s finished with status %s (sent=%s failed=%s)",
        send_id, send.status, send.sent_count, send.failed_count,
    )
    return send


def process_broadcast(send_id: uuid.UUID) -> None:
    """Background task entry point; owns its own session."""
    with background_session() as db:
        run_broadcast(db, send_id)

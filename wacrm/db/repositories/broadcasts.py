"""
Broadcast send repository functions.
"""
from __future__ import annotations

import uuid
from typing import Optional, List, Dict, Tuple
from sqlalchemy import func
from sqlalchemy.orm import Session

from wacrm.db import models
from wacrm.db.models.base import now_utc
from wacrm.db.repositories import paginate
from wacrm.utils.statuses import BroadcastStatus, DeliveryStatus, CANCELLABLE_BROADCAST_STATUSES


def create_broadcast_send(
    db: Session,
    company_id: uuid.UUID,
    contacts: List[models.Contact],
    *,
    broadcast_group_id: Optional[uuid.UUID] = None,
    hashtag_filter: Optional[str] = None,
    message_content: Optional[str] = None,
    template_name: Optional[str] = None,
    template_language: Optional[str] = None,
    created_by: Optional[str] = None,
) -> models.BroadcastSend:
    send = models.BroadcastSend(
        company_id=company_id,
        broadcast_group_id=broadcast_group_id,
        hashtag_filter=hashtag_filter,
        message_content=message_content,
        template_name=template_name,
        template_language=template_language,
        total_contacts=len(contacts),
        sent_count=0,
        failed_count=0,
        status=BroadcastStatus.PENDING.value,
        started_at=now_utc(),
        created_by=created_by,
    )
    send.details = [
        models.BroadcastSendDetail(contact_id=contact.id, status=DeliveryStatus.PENDING.value)
        for contact in contacts
    ]
    db.add(send)
    db.commit()
    db.refresh(send)
    return send


def get_broadcast_send(db: Session, company_id: uuid.UUID, send_id: uuid.UUID) -> Optional[models.BroadcastSend]:
    return (
        db.query(models.BroadcastSend)
        .filter(models.BroadcastSend.id == send_id, models.BroadcastSend.company_id == company_id)
        .first()
    )


def get_broadcast_send_by_id(db: Session, send_id: uuid.UUID) -> Optional[models.BroadcastSend]:
    return db.query(models.BroadcastSend).filter(models.BroadcastSend.id == send_id).first()


def get_broadcast_history(
    db: Session, company_id: uuid.UUID, *, page: int = 1, page_size: int = 20
) -> Tuple[List[models.BroadcastSend], int]:
    q = (
        db.query(models.BroadcastSend)
        .filter(models.BroadcastSend.company_id == company_id)
        .order_by(models.BroadcastSend.started_at.desc())
    )
    return paginate(q, page, page_size)


def get_status_details(db: Session, send_id: uuid.UUID) -> Dict[str, int]:
    rows = (
        db.query(models.BroadcastSendDetail.status, func.count(models.BroadcastSendDetail.id))
        .filter(models.BroadcastSendDetail.broadcast_send_id == send_id)
        .group_by(models.BroadcastSendDetail.status)
        .all()
    )
    return {status: int(count) for status, count in rows}


def get_pending_details(db: Session, send_id: uuid.UUID) -> List[models.BroadcastSendDetail]:
    return (
        db.query(models.BroadcastSendDetail)
        .filter(
            models.BroadcastSendDetail.broadcast_send_id == send_id,
            models.BroadcastSendDetail.status == DeliveryStatus.PENDING.value,
        )
        .all()
    )


def get_broadcast_totals(db: Session, company_id: uuid.UUID) -> dict:
    row = (
        db.query(
            func.count(models.BroadcastSend.id),
            func.coalesce(func.sum(models.BroadcastSend.sent_count), 0),
            func.coalesce(func.sum(models.BroadcastSend.failed_count), 0),
        )
        .filter(models.BroadcastSend.company_id == company_id)
        .one()
    )
    return {"total_broadcasts": int(row[0]), "messages_sent": int(row[1]), "messages_failed": int(row[2])}


def is_cancellable(send: models.BroadcastSend) -> bool:
    return send.status in CANCELLABLE_BROADCAST_STATUSES


def cancel_broadcast_send(db: Session, send: models.BroadcastSend) -> models.BroadcastSend:
    send.status = BroadcastStatus.CANCELLED.value
    send.completed_at = now_utc()
    (
        db.query(models.BroadcastSendDetail)
        .filter(
            models.BroadcastSendDetail.broadcast_send_id == send.id,
            models.BroadcastSendDetail.status == DeliveryStatus.PENDING.value,
        )
        .update({models.BroadcastSendDetail.status: DeliveryStatus.CANCELLED.value}, synchronize_session=False)
    )
    db.commit()
    db.refresh(send)
    return send

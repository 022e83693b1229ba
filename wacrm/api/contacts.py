"""
Contact list API endpoints.

Company-scoped contact CRUD, filtered listing, statistics and bulk import.
"""
import logging
import math
from typing import Any, Dict, List, Optional
import uuid

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Response, status
from pydantic import ValidationError
from sqlalchemy.orm import Session

from wacrm.audit import AuditAction, record
from wacrm.api.deps import CompanyContext, get_company_context, require_company_write
from wacrm.db import models, schemas
from wacrm.db.database import get_db
from wacrm.db.repositories import broadcast_groups as group_repo
from wacrm.db.repositories import contacts as contact_repo
from wacrm.db.repositories import normalize_paging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/contactlist", tags=["contacts"])


def total_pages(total: int, page_size: int) -> int:
    return math.ceil(total / page_size) if page_size else 0


def _check_group(db: Session, company_id: uuid.UUID, group_id: Optional[uuid.UUID]) -> None:
    if group_id and not group_repo.get_active_group(db, company_id, group_id):
        raise HTTPException(status_code=400, detail="Broadcast group not found")


def _get_contact_or_404(db: Session, company_id: uuid.UUID, contact_id: uuid.UUID) -> models.Contact:
    contact = contact_repo.get_contact(db, company_id, contact_id)
    if not contact:
        raise HTTPException(status_code=404, detail="Contact not found")
    return contact


@router.get("/statistics", response_model=schemas.ContactStatistics)
def get_contact_statistics(
    db: Session = Depends(get_db),
    ctx: CompanyContext = Depends(get_company_context),
):
    return contact_repo.get_contact_statistics(db, ctx.company_id)


@router.get("", response_model=schemas.PaginatedContacts)
def list_contacts(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1),
    search: Optional[str] = None,
    broadcast_group_id: Optional[uuid.UUID] = None,
    hashtag_filter: Optional[str] = None,
    db: Session = Depends(get_db),
    ctx: CompanyContext = Depends(get_company_context),
):
    page, page_size = normalize_paging(page, page_size)
    items, total = contact_repo.get_contacts(
        db,
        ctx.company_id,
        page=page,
        page_size=page_size,
        search=search,
        broadcast_group_id=broadcast_group_id,
        hashtag_filter=hashtag_filter,
    )
    return {
        "data": items,
        "total": total,
        "page": page,
        "page_size": page_size,
        "total_pages": total_pages(total, page_size),
    }


def _validation_message(exc: ValidationError) -> str:
    return "; ".join(err.get("msg", "invalid value") for err in exc.errors())


def _row_name(row: Dict[str, Any]) -> Optional[str]:
    value = row.get("name")
    return None if value is None else str(value)


@router.post("/import/check-duplicates", response_model=schemas.ContactDuplicateCheck)
def check_import_duplicates(
    rows: List[Dict[str, Any]] = Body(...),
    db: Session = Depends(get_db),
    ctx: CompanyContext = Depends(get_company_context),
):
    """Report rows whose WhatsApp number already belongs to an active contact."""
    if not rows:
        raise HTTPException(status_code=400, detail="No contacts to check")
    existing = contact_repo.get_contacts_by_whatsapp(db, ctx.company_id, (r.get("whatsapp_number") for r in rows))
    duplicates = []
    for index, row in enumerate(rows):
        match = existing.get(contact_repo.whatsapp_digits(row.get("whatsapp_number")))
        if match is None:
            continue
        duplicates.append({
            "row": index,
            "new_data": {"name": _row_name(row), "whatsapp_number": row.get("whatsapp_number")},
            "existing_data": {"id": match.id, "name": match.name, "whatsapp_number": match.whatsapp_number},
        })
    return {"has_duplicates": bool(duplicates), "duplicates": duplicates}


@router.post("/import", response_model=schemas.ContactImportResult)
def import_contacts(
    rows: List[Dict[str, Any]] = Body(...),
    skip_duplicates: bool = False,
    db: Session = Depends(get_db),
    ctx: CompanyContext = Depends(require_company_write),
):
    """Create contacts row by row; invalid rows are reported, valid rows are kept.

    With ``skip_duplicates`` a row whose WhatsApp number matches an active
    contact, or an earlier row of the same import, is reported instead of
    created.
    """
    errors: List[schemas.ContactImportError] = []
    created = 0
    seen_numbers = set()
    if skip_duplicates:
        seen_numbers.update(
            contact_repo.get_contacts_by_whatsapp(db, ctx.company_id, (r.get("whatsapp_number") for r in rows))
        )
    for index, row in enumerate(rows):
        name = _row_name(row)
        try:
            contact = schemas.ContactCreate.model_validate(row)
        except ValidationError as exc:
            errors.append(schemas.ContactImportError(row=index, name=name, error=_validation_message(exc)))
            continue
        if contact.broadcast_group_id and not group_repo.get_active_group(db, ctx.company_id, contact.broadcast_group_id):
            errors.append(schemas.ContactImportError(row=index, name=name, error="Broadcast group not found"))
            continue
        if skip_duplicates and contact.whatsapp_number:
            if contact.whatsapp_number in seen_numbers:
                errors.append(schemas.ContactImportError(row=index, name=name, error="Duplicate WhatsApp number"))
                continue
            seen_numbers.add(contact.whatsapp_number)
        contact_repo.create_contact(db, ctx.company_id, contact, created_by=ctx.actor, commit=False)
        created += 1
    db.commit()
    logger.info("contact_import: company=%s created=%d failed=%d", ctx.company_id, created, len(errors))
    record(
        db,
        action=AuditAction.CONTACT_IMPORT,
        target_type="contact",
        actor_user_id=ctx.user.id,
        company_id=ctx.company_id,
        metadata={"success_count": created, "failed_count": len(errors)},
    )
    return {"success_count": created, "failed_count": len(errors), "errors": errors}


@router.get("/{contact_id}", response_model=schemas.Contact)
def get_contact(
    contact_id: uuid.UUID,
    db: Session = Depends(get_db),
    ctx: CompanyContext = Depends(get_company_context),
):
    return _get_contact_or_404(db, ctx.company_id, contact_id)


@router.post("", response_model=schemas.Contact, status_code=status.HTTP_201_CREATED)
def create_contact(
    payload: schemas.ContactCreate,
    db: Session = Depends(get_db),
    ctx: CompanyContext = Depends(require_company_write),
):
    _check_group(db, ctx.company_id, payload.broadcast_group_id)
    contact = contact_repo.create_contact(db, ctx.company_id, payload, created_by=ctx.actor)
    record(
        db,
        action=AuditAction.CONTACT_CREATE,
        target_type="contact",
        target_id=contact.id,
        actor_user_id=ctx.user.id,
        company_id=ctx.company_id,
    )
    return contact


@router.put("/{contact_id}", response_model=schemas.Contact)
def update_contact(
    contact_id: uuid.UUID,
    payload: schemas.ContactUpdate,
    db: Session = Depends(get_db),
    ctx: CompanyContext = Depends(require_company_write),
):
    contact = _get_contact_or_404(db, ctx.company_id, contact_id)
    _check_group(db, ctx.company_id, payload.broadcast_group_id)
    contact = contact_repo.update_contact(db, contact, payload, updated_by=ctx.actor)
    record(
        db,
        action=AuditAction.CONTACT_UPDATE,
        target_type="contact",
        target_id=contact.id,
        actor_user_id=ctx.user.id,
        company_id=ctx.company_id,
    )
    return contact


@router.delete("/{contact_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_contact(
    contact_id: uuid.UUID,
    db: Session = Depends(get_db),
    ctx: CompanyContext = Depends(require_company_write),
):
    contact = _get_contact_or_404(db, ctx.company_id, contact_id)
    contact_repo.deactivate_contact(db, contact, updated_by=ctx.actor)
    record(
        db,
        action=AuditAction.CONTACT_DELETE,
        target_type="contact",
        target_id=contact_id,
        actor_user_id=ctx.user.id,
        company_id=ctx.company_id,
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)

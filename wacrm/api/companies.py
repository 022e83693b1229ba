"""
Companies API endpoints.

Manage companies (tenants) and their memberships with owner/admin role
enforcement and audited lifecycle actions.
"""
from typing import List
import uuid

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from wacrm.audit import AuditAction, record
from wacrm.api.auth import get_or_create_user
from wacrm.api.deps import get_current_user_context
from wacrm.api.permissions import can_manage_company, can_read_company, is_company_owner
from wacrm.db import models, schemas
from wacrm.db.database import get_db
from wacrm.db.repositories import companies as company_repo
from wacrm.services.api_key_protector import get_protector
from wacrm.utils.role_permissions import ROLE_OWNER

router = APIRouter(prefix="/companies", tags=["companies"])


def _company_out(company: models.Company) -> schemas.Company:
    out = schemas.Company.model_validate(company)
    out.has_wa_api_key = bool(company.wa_api_key_encrypted)
    return out


def _member_out(membership: models.CompanyMembership, user: models.User) -> schemas.CompanyMember:
    return schemas.CompanyMember(
        company_id=membership.company_id,
        user_id=membership.user_id,
        email=user.email,
        display_name=user.display_name,
        role=membership.role,
        can_read=membership.can_read,
        can_write=membership.can_write,
        created_at=membership.created_at,
    )


def _get_company_or_404(db: Session, company_id: uuid.UUID) -> models.Company:
    company = company_repo.get_company(db, company_id)
    if not company:
        raise HTTPException(status_code=404, detail="Company not found")
    return company


@router.post("/", response_model=schemas.Company, status_code=status.HTTP_201_CREATED)
def create_company(
    payload: schemas.CompanyCreate,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    user, _ = user_context
    if company_repo.get_company_by_name(db, payload.name):
        raise HTTPException(status_code=409, detail="Company name already exists")

    data = payload.model_dump(exclude={"wa_api_key"})
    if payload.wa_api_key and payload.wa_api_key.strip():
        data["wa_api_key_encrypted"] = get_protector().protect(payload.wa_api_key.strip())
    company = company_repo.create_company(db, data, user.id)
    record(
        db,
        action=AuditAction.COMPANY_CREATE,
        target_type="company",
        target_id=company.id,
        actor_user_id=user.id,
        company_id=company.id,
        metadata={"name": company.name},
    )
    return _company_out(company)


@router.get("/", response_model=List[schemas.Company])
def list_companies(
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    """Companies where the caller has a membership (for the company switcher)."""
    user, _ = user_context
    return [_company_out(c) for c in company_repo.get_companies_for_user(db, user.id)]


@router.get("/{company_id}", response_model=schemas.Company)
def get_company(
    company_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    _, current_user = user_context
    company = _get_company_or_404(db, company_id)
    if not can_read_company(company_id, current_user):
        raise HTTPException(status_code=403, detail="Forbidden")
    return _company_out(company)


@router.put("/{company_id}", response_model=schemas.Company)
def update_company(
    company_id: uuid.UUID,
    payload: schemas.CompanyUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    user, current_user = user_context
    company = _get_company_or_404(db, company_id)
    if not can_manage_company(company_id, current_user):
        raise HTTPException(status_code=403, detail="Only owner/admin can update company")

    data = payload.model_dump(exclude_unset=True, exclude={"wa_api_key", "clear_wa_api_key"})
    if "name" in data:
        name = (data["name"] or "").strip()
        if not name:
            raise HTTPException(status_code=422, detail="Company name is required")
        existing = company_repo.get_company_by_name(db, name)
        if existing and existing.id != company.id:
            raise HTTPException(status_code=409, detail="Company name already exists")
        data["name"] = name
    if payload.clear_wa_api_key:
        data["wa_api_key_encrypted"] = None
    elif payload.wa_api_key and payload.wa_api_key.strip():
        data["wa_api_key_encrypted"] = get_protector().protect(payload.wa_api_key.strip())

    company = company_repo.update_company(db, company, data)
    record(
        db,
        action=AuditAction.COMPANY_UPDATE,
        target_type="company",
        target_id=company.id,
        actor_user_id=user.id,
        company_id=company.id,
        metadata={"fields": sorted(k for k in data if k != "wa_api_key_encrypted")},
    )
    return _company_out(company)


@router.delete("/{company_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_company(
    company_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    user, current_user = user_context
    company = _get_company_or_404(db, company_id)
    if not is_company_owner(company_id, current_user):
        raise HTTPException(status_code=403, detail="Only the owner can delete a company")
    name = company.name
    company_repo.delete_company(db, company)
    record(
        db,
        action=AuditAction.COMPANY_DELETE,
        target_type="company",
        target_id=company_id,
        actor_user_id=user.id,
        metadata={"name": name},
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{company_id}/members", response_model=List[schemas.CompanyMember])
def list_members(
    company_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    _, current_user = user_context
    _get_company_or_404(db, company_id)
    if not can_read_company(company_id, current_user):
        raise HTTPException(status_code=403, detail="Forbidden")
    return [_member_out(m, u) for m, u in company_repo.list_members(db, company_id)]


@router.post("/{company_id}/members", response_model=schemas.CompanyMember, status_code=status.HTTP_201_CREATED)
def add_member(
    company_id: uuid.UUID,
    payload: schemas.CompanyMemberCreate,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    user, current_user = user_context
    _get_company_or_404(db, company_id)
    if not can_manage_company(company_id, current_user):
        raise HTTPException(status_code=403, detail="Only owner/admin can manage members")
    email = (payload.email or "").strip().lower()
    if not email:
        raise HTTPException(status_code=422, detail="Email is required")

    member_user = get_or_create_user(db, email=email, display_name=payload.display_name)
    if company_repo.get_membership(db, company_id, member_user.id):
        raise HTTPException(status_code=409, detail="User is already a member")
    membership = company_repo.add_member(
        db, company_id, member_user.id, payload.role, payload.can_read, payload.can_write
    )
    record(
        db,
        action=AuditAction.MEMBER_ADD,
        target_type="user",
        target_id=member_user.id,
        actor_user_id=user.id,
        company_id=company_id,
        metadata={"email": email, "role": payload.role},
    )
    return _member_out(membership, member_user)


def _get_membership_or_404(db: Session, company_id: uuid.UUID, user_id: uuid.UUID) -> models.CompanyMembership:
    membership = company_repo.get_membership(db, company_id, user_id)
    if not membership:
        raise HTTPException(status_code=404, detail="Membership not found")
    return membership


@router.put("/{company_id}/members/{user_id}", response_model=schemas.CompanyMember)
def update_member(
    company_id: uuid.UUID,
    user_id: uuid.UUID,
    payload: schemas.CompanyMemberUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    user, current_user = user_context
    _get_company_or_404(db, company_id)
    if not can_manage_company(company_id, current_user):
        raise HTTPException(status_code=403, detail="Only owner/admin can manage members")
    membership = _get_membership_or_404(db, company_id, user_id)
    old_role = membership.role
    if (
        old_role == ROLE_OWNER
        and payload.role not in (None, ROLE_OWNER)
        and company_repo.count_owners(db, company_id) <= 1
    ):
        raise HTTPException(status_code=409, detail="Cannot demote the last owner")

    membership = company_repo.update_member(db, membership, payload.role, payload.can_read, payload.can_write)
    record(
        db,
        action=AuditAction.MEMBER_ROLE_CHANGE,
        target_type="user",
        target_id=user_id,
        actor_user_id=user.id,
        company_id=company_id,
        metadata={"old_role": old_role, "new_role": membership.role},
    )
    member_user = db.query(models.User).filter(models.User.id == user_id).first()
    return _member_out(membership, member_user)


@router.delete("/{company_id}/members/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_member(
    company_id: uuid.UUID,
    user_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    user, current_user = user_context
    _get_company_or_404(db, company_id)
    if not can_manage_company(company_id, current_user):
        raise HTTPException(status_code=403, detail="Only owner/admin can manage members")
    membership = _get_membership_or_404(db, company_id, user_id)
    if membership.role == ROLE_OWNER and company_repo.count_owners(db, company_id) <= 1:
        raise HTTPException(status_code=409, detail="Cannot remove the last owner")
    company_repo.remove_member(db, membership)
    record(
        db,
        action=AuditAction.MEMBER_REMOVE,
        target_type="user",
        target_id=user_id,
        actor_user_id=user.id,
        company_id=company_id,
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)

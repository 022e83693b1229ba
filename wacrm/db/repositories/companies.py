"""
Company repository functions.

Implements CRUD for companies and their memberships.
"""
from __future__ import annotations

import uuid
from typing import Optional, List, Dict, Any
from sqlalchemy.orm import Session

from wacrm.db import models
from wacrm.utils.role_permissions import ROLE_OWNER, resolve_permissions


def create_company(db: Session, data: Dict[str, Any], user_id: uuid.UUID) -> models.Company:
    db_company = models.Company(**data, created_by=user_id)
    db.add(db_company)
    db.flush()
    # Creator becomes owner
    db.add(models.CompanyMembership(
        company_id=db_company.id,
        user_id=user_id,
        role=ROLE_OWNER,
        can_read=True,
        can_write=True,
    ))
    db.commit()
    db.refresh(db_company)
    return db_company


def get_company(db: Session, company_id: uuid.UUID) -> Optional[models.Company]:
    return db.query(models.Company).filter(models.Company.id == company_id).first()


def get_company_by_name(db: Session, name: str) -> Optional[models.Company]:
    return db.query(models.Company).filter(models.Company.name == name).first()


def get_companies_for_user(db: Session, user_id: uuid.UUID) -> List[models.Company]:
    return (
        db.query(models.Company)
        .join(models.CompanyMembership, models.CompanyMembership.company_id == models.Company.id)
        .filter(models.CompanyMembership.user_id == user_id)
        .order_by(models.Company.name)
        .all()
    )


def get_all_companies(db: Session) -> List[models.Company]:
    return db.query(models.Company).order_by(models.Company.name).all()


def update_company(db: Session, db_company: models.Company, update_data: Dict[str, Any]) -> models.Company:
    for key, value in update_data.items():
        setattr(db_company, key, value)
    db.commit()
    db.refresh(db_company)
    return db_company


def delete_company(db: Session, db_company: models.Company) -> None:
    db.query(models.CompanyMembership).filter(models.CompanyMembership.company_id == db_company.id).delete(synchronize_session=False)
    db.delete(db_company)
    db.commit()


def get_membership(db: Session, company_id: uuid.UUID, user_id: uuid.UUID) -> Optional[models.CompanyMembership]:
    return (
        db.query(models.CompanyMembership)
        .filter(
            models.CompanyMembership.company_id == company_id,
            models.CompanyMembership.user_id == user_id,
        )
        .first()
    )


def list_members(db: Session, company_id: uuid.UUID):
    """Return (membership, user) rows ordered by user email."""
    return (
        db.query(models.CompanyMembership, models.User)
        .join(models.User, models.User.id == models.CompanyMembership.user_id)
        .filter(models.CompanyMembership.company_id == company_id)
        .order_by(models.User.email)
        .all()
    )


def add_member(
    db: Session,
    company_id: uuid.UUID,
    user_id: uuid.UUID,
    role: str,
    can_read: Optional[bool] = None,
    can_write: Optional[bool] = None,
) -> models.CompanyMembership:
    perms = resolve_permissions(role, can_read, can_write)
    membership = models.CompanyMembership(
        company_id=company_id,
        user_id=user_id,
        role=role,
        can_read=perms["can_read"],
        can_write=perms["can_write"],
    )
    db.add(membership)
    db.commit()
    db.refresh(membership)
    return membership


def update_member(
    db: Session,
    membership: models.CompanyMembership,
    role: Optional[str] = None,
    can_read: Optional[bool] = None,
    can_write: Optional[bool] = None,
) -> models.CompanyMembership:
    if role is not None and role != membership.role:
        # A role change resets the flags to the new role's defaults unless overridden
        perms = resolve_permissions(role, can_read, can_write)
        membership.role = role
        membership.can_read = perms["can_read"]
        membership.can_write = perms["can_write"]
    else:
        if can_read is not None:
            membership.can_read = can_read
        if can_write is not None:
            membership.can_write = can_write
    db.commit()
    db.refresh(membership)
    return membership


def remove_member(db: Session, membership: models.CompanyMembership) -> None:
    db.delete(membership)
    db.commit()


def count_owners(db: Session, company_id: uuid.UUID) -> int:
    return (
        db.query(models.CompanyMembership)
        .filter(
            models.CompanyMembership.company_id == company_id,
            models.CompanyMembership.role == ROLE_OWNER,
        )
        .count()
    )

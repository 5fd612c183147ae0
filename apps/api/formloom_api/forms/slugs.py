"""Slug assignment for forms, workspaces and organizations.

Uniqueness is check-then-write; two concurrent creates with the same name
can still race into the database unique constraint.
"""

from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from formloom_api.db.models import Form, Organization, Workspace
from formloom_api.utils.slugs import base36, generate_slug, now_ms

UNTITLED_FORM_SLUG = "untitled-form"
UNTITLED_WORKSPACE_SLUG = "untitled-workspace"
UNTITLED_ORGANIZATION_SLUG = "organization"


def _form_slug_taken(db: Session, slug: str, exclude_form_id: Optional[str]) -> bool:
    stmt = select(Form.id).where(Form.slug == slug)
    if exclude_form_id:
        stmt = stmt.where(Form.id != exclude_form_id)
    return db.execute(stmt.limit(1)).first() is not None


def assign_form_slug(
    db: Session,
    name: str,
    workspace_id: str,
    exclude_form_id: Optional[str] = None,
) -> str:
    """Globally unique slug for a form named ``name``.

    Tries the base slug, then ``{base}-1``, ``{base}-2`` ... until no other
    form holds it. If a form in the same workspace still collides, a base-36
    millisecond timestamp is appended.
    """
    base = generate_slug(name) or UNTITLED_FORM_SLUG
    candidate = base
    counter = 1
    while _form_slug_taken(db, candidate, exclude_form_id):
        candidate = f"{base}-{counter}"
        counter += 1

    stmt = select(Form.id).where(Form.workspace_id == workspace_id, Form.slug == candidate)
    if exclude_form_id:
        stmt = stmt.where(Form.id != exclude_form_id)
    if db.execute(stmt.limit(1)).first() is not None:
        candidate = f"{candidate}-{base36(now_ms())}"

    return candidate


def workspace_slug(
    db: Session,
    name: str,
    organization_id: str,
    exclude_workspace_id: Optional[str] = None,
) -> str:
    """Slug for a workspace; duplicates within the organization are rejected.

    Raises:
        HTTPException: 400 "Workspace with this name already exists"
    """
    slug = generate_slug(name) or UNTITLED_WORKSPACE_SLUG
    existing = db.execute(
        select(Workspace).where(
            Workspace.organization_id == organization_id,
            Workspace.slug == slug,
        )
    ).scalar_one_or_none()
    if existing is not None and existing.id != exclude_workspace_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Workspace with this name already exists",
        )
    return slug


def _org_slug_owner(db: Session, slug: str) -> Optional[Organization]:
    return db.execute(select(Organization).where(Organization.slug == slug)).scalar_one_or_none()


def unique_organization_slug(db: Session, name: str) -> str:
    """Organization slug with a counter suffix on collision (used on create)."""
    base = generate_slug(name) or UNTITLED_ORGANIZATION_SLUG
    candidate = base
    counter = 1
    while _org_slug_owner(db, candidate) is not None:
        candidate = f"{base}-{counter}"
        counter += 1
    return candidate


def renamed_organization_slug(db: Session, name: str, organization_id: str) -> str:
    """Slug for an organization rename; another organization holding it is an error.

    Raises:
        HTTPException: 400 "Organization with this name already exists"
    """
    slug = generate_slug(name) or UNTITLED_ORGANIZATION_SLUG
    existing = _org_slug_owner(db, slug)
    if existing is not None and existing.id != organization_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Organization with this name already exists",
        )
    return slug

"""Personal organization and default workspace provisioning."""

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from formloom_api.db.models import (
    Organization,
    OrganizationMember,
    OrganizationRole,
    User,
    Workspace,
)
from formloom_api.forms.slugs import unique_organization_slug
from formloom_api.utils.slugs import base36, generate_slug, now_ms

logger = logging.getLogger(__name__)

DEFAULT_WORKSPACE_NAME = "My Workspace"


def create_organization(db: Session, user: User, name: str) -> Organization:
    """Create an organization owned by ``user`` with a default workspace. Caller commits."""
    organization = Organization(name=name, slug=unique_organization_slug(db, name))
    organization.members.append(
        OrganizationMember(user_id=user.id, role=OrganizationRole.OWNER.value)
    )
    organization.workspaces.append(
        Workspace(name=DEFAULT_WORKSPACE_NAME, slug=generate_slug(DEFAULT_WORKSPACE_NAME))
    )
    db.add(organization)
    db.flush()

    logger.info(
        "Organization created",
        extra={
            "event": "organization.created",
            "organization_id": organization.id,
            "user_id": user.id,
        },
    )
    return organization


def ensure_user_has_organization(db: Session, user: User) -> Organization:
    """Return the user's first organization, creating a personal one if none exists.

    The personal organization is named after the user's email, then username,
    then ``Organization <id prefix>``.
    """
    member = db.execute(
        select(OrganizationMember)
        .where(OrganizationMember.user_id == user.id)
        .order_by(OrganizationMember.created_at.asc())
        .limit(1)
    ).scalar_one_or_none()
    if member is not None:
        return member.organization

    name = user.email or user.username or f"Organization {user.id[:8]}"
    organization = create_organization(db, user, name)
    db.commit()
    return organization


def ensure_default_workspace(db: Session, organization_id: str) -> list[Workspace]:
    """Workspaces of an organization, oldest first, with "My Workspace" guaranteed.

    Re-creates the default workspace (listed first) if it was deleted.
    """
    workspaces = list(
        db.execute(
            select(Workspace)
            .where(Workspace.organization_id == organization_id)
            .order_by(Workspace.created_at.asc())
        ).scalars()
    )

    if any(workspace.name == DEFAULT_WORKSPACE_NAME for workspace in workspaces):
        return workspaces

    slug = generate_slug(DEFAULT_WORKSPACE_NAME)
    if any(workspace.slug == slug for workspace in workspaces):
        # e.g. a workspace renamed to "my workspace" still holds the slug
        slug = f"{slug}-{base36(now_ms())}"

    default = Workspace(
        name=DEFAULT_WORKSPACE_NAME,
        slug=slug,
        organization_id=organization_id,
    )
    db.add(default)
    db.commit()
    db.refresh(default)

    logger.info(
        "Default workspace provisioned",
        extra={
            "event": "workspace.default_created",
            "organization_id": organization_id,
            "workspace_id": default.id,
        },
    )
    return [default, *workspaces]

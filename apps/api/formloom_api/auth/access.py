"""Organization role enforcement (RBAC).

Roles are ranked VIEWER < EDITOR < ADMIN < OWNER. Every check resolves the
caller's membership in the organization that owns the target (directly, or
through a workspace or form), then compares ranks. No caching: each request
reads membership fresh.
"""

import logging
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from formloom_api.context import organization_id_var
from formloom_api.db.models import (
    Form,
    Organization,
    OrganizationMember,
    OrganizationRole,
    Workspace,
)

logger = logging.getLogger(__name__)

ROLE_RANK: dict[str, int] = {
    OrganizationRole.VIEWER.value: 0,
    OrganizationRole.EDITOR.value: 1,
    OrganizationRole.ADMIN.value: 2,
    OrganizationRole.OWNER.value: 3,
}


def has_role(role: str, required: OrganizationRole) -> bool:
    return ROLE_RANK.get(role, -1) >= ROLE_RANK[required.value]


def get_membership(db: Session, user_id: str, organization_id: str) -> Optional[OrganizationMember]:
    return db.execute(
        select(OrganizationMember).where(
            OrganizationMember.user_id == user_id,
            OrganizationMember.organization_id == organization_id,
        )
    ).scalar_one_or_none()


def _check_member(
    db: Session,
    user_id: str,
    organization_id: str,
    required: OrganizationRole,
    scope: str,
) -> OrganizationMember:
    member = get_membership(db, user_id, organization_id)
    if member is None:
        logger.warning(
            "Access denied: not a member",
            extra={
                "event": "auth.access.denied",
                "user_id": user_id,
                "organization_id": organization_id,
                "scope": scope,
            },
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"You don't have access to this {scope}",
        )

    if not has_role(member.role, required):
        logger.warning(
            "Insufficient permissions",
            extra={
                "event": "auth.insufficient_permissions",
                "user_id": user_id,
                "organization_id": organization_id,
                "role": member.role,
                "required_role": required.value,
            },
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"You need at least {required.value} role to perform this action",
        )

    organization_id_var.set(organization_id)
    return member


def require_org_role(
    db: Session,
    user_id: str,
    organization_id: str,
    required: OrganizationRole = OrganizationRole.VIEWER,
) -> tuple[Organization, OrganizationMember]:
    """Require membership with at least ``required`` role in an organization.

    Raises:
        HTTPException: 404 if the organization does not exist,
            403 if not a member or the role is too low
    """
    organization = db.get(Organization, organization_id)
    if organization is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Organization not found")

    member = _check_member(db, user_id, organization_id, required, "organization")
    return organization, member


def require_workspace_role(
    db: Session,
    user_id: str,
    workspace_id: str,
    required: OrganizationRole = OrganizationRole.VIEWER,
) -> tuple[Workspace, OrganizationMember]:
    """Require at least ``required`` role in the workspace's organization.

    Raises:
        HTTPException: 404 if the workspace does not exist, 403 otherwise
    """
    workspace = db.get(Workspace, workspace_id)
    if workspace is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Workspace not found")

    member = _check_member(db, user_id, workspace.organization_id, required, "workspace")
    return workspace, member


def require_form_role(
    db: Session,
    user_id: str,
    form_id: str,
    required: OrganizationRole = OrganizationRole.VIEWER,
) -> tuple[Form, OrganizationMember]:
    """Require at least ``required`` role in the organization owning the form.

    Raises:
        HTTPException: 404 if the form does not exist, 403 otherwise
    """
    form = db.get(Form, form_id)
    if form is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Form not found")

    member = _check_member(db, user_id, form.workspace.organization_id, required, "form")
    return form, member


def is_form_member(db: Session, user_id: str, form: Form) -> bool:
    """True when the user belongs to the organization owning ``form`` (any role)."""
    return get_membership(db, user_id, form.workspace.organization_id) is not None

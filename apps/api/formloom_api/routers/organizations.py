"""Organization endpoints.

- Listing provisions a personal organization on first use
- Renaming and inviting members are team features: PRO plan plus an
  OWNER/ADMIN membership
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from formloom_api.auth.access import get_membership, has_role
from formloom_api.auth.session_auth import SessionAuthContext, get_session_auth_context
from formloom_api.db.models import Organization, OrganizationMember, OrganizationRole, User
from formloom_api.db.session import get_db
from formloom_api.forms.slugs import renamed_organization_slug
from formloom_api.organizations.bootstrap import create_organization, ensure_user_has_organization
from formloom_api.pricing.plans import has_team_features, resolve_plan
from formloom_api.schemas import (
    MemberInviteRequest,
    MemberOut,
    OrganizationCreateRequest,
    OrganizationOut,
    OrganizationUpdateRequest,
    UUIDPath,
)

router = APIRouter(prefix="/v1/organizations", tags=["organizations"])
logger = logging.getLogger(__name__)


def _require_team_admin(
    db: Session,
    auth: SessionAuthContext,
    organization_id: str,
    plan_message: str,
    role_message: str,
) -> Organization:
    """PRO plan first, then OWNER/ADMIN membership."""
    plan = resolve_plan(auth.user.subscription_plan, auth.user.subscription_status)
    if not has_team_features(plan):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=plan_message)

    organization = db.get(Organization, organization_id)
    if organization is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Organization not found")

    member = get_membership(db, auth.user_id, organization_id)
    if member is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You don't have access to this organization",
        )
    if not has_role(member.role, OrganizationRole.ADMIN):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=role_message)

    return organization


@router.get("", response_model=list[OrganizationOut])
async def list_organizations(
    auth: SessionAuthContext = Depends(get_session_auth_context),
    db: Session = Depends(get_db),
) -> list[OrganizationOut]:
    """Organizations the caller belongs to, with their role, oldest membership first."""
    ensure_user_has_organization(db, auth.user)

    memberships = db.execute(
        select(OrganizationMember)
        .where(OrganizationMember.user_id == auth.user_id)
        .order_by(OrganizationMember.created_at.asc())
    ).scalars()
    return [
        OrganizationOut(
            id=m.organization.id,
            name=m.organization.name,
            slug=m.organization.slug,
            role=m.role,
        )
        for m in memberships
    ]


@router.post("", status_code=status.HTTP_201_CREATED, response_model=OrganizationOut)
async def create_org(
    request: OrganizationCreateRequest,
    auth: SessionAuthContext = Depends(get_session_auth_context),
    db: Session = Depends(get_db),
) -> OrganizationOut:
    """Create an organization; the caller becomes OWNER and gets "My Workspace"."""
    organization = create_organization(db, auth.user, request.name)
    db.commit()
    db.refresh(organization)
    return OrganizationOut(
        id=organization.id,
        name=organization.name,
        slug=organization.slug,
        role=OrganizationRole.OWNER.value,
    )


@router.patch("/{organization_id}", response_model=OrganizationOut)
async def update_organization(
    organization_id: UUIDPath,
    request: OrganizationUpdateRequest,
    auth: SessionAuthContext = Depends(get_session_auth_context),
    db: Session = Depends(get_db),
) -> OrganizationOut:
    """Rename an organization.

    Raises:
        HTTPException 400: Organization with this name already exists
        HTTPException 403: Not PRO, not a member, or not OWNER/ADMIN
        HTTPException 404: Organization not found
    """
    organization = _require_team_admin(
        db,
        auth,
        organization_id,
        plan_message="Organization name editing requires PRO plan",
        role_message="Only owners and admins can update organization",
    )

    organization.slug = renamed_organization_slug(db, request.name, organization.id)
    organization.name = request.name
    db.commit()
    db.refresh(organization)

    logger.info(
        "Organization renamed",
        extra={"event": "organization.updated", "organization_id": organization.id},
    )
    member = get_membership(db, auth.user_id, organization.id)
    return OrganizationOut(
        id=organization.id,
        name=organization.name,
        slug=organization.slug,
        role=member.role,
    )


@router.post("/{organization_id}/members", status_code=status.HTTP_201_CREATED, response_model=MemberOut)
async def invite_member(
    organization_id: UUIDPath,
    request: MemberInviteRequest,
    auth: SessionAuthContext = Depends(get_session_auth_context),
    db: Session = Depends(get_db),
) -> MemberOut:
    """Add an existing user to the organization by email.

    Raises:
        HTTPException 400: User is already a member
        HTTPException 403: Not PRO, not a member, or not OWNER/ADMIN
        HTTPException 404: No user with that email
    """
    organization = _require_team_admin(
        db,
        auth,
        organization_id,
        plan_message="Team member invites require PRO plan",
        role_message="Only owners and admins can invite members",
    )

    invitee = db.execute(select(User).where(User.email == request.email)).scalar_one_or_none()
    if invitee is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User with this email not found. They need to sign up first.",
        )

    if get_membership(db, invitee.id, organization.id) is not None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User is already a member of this organization",
        )

    member = OrganizationMember(user_id=invitee.id, organization_id=organization.id, role=request.role)
    db.add(member)
    db.commit()
    db.refresh(member)

    logger.info(
        "Organization member added",
        extra={
            "event": "organization.member_added",
            "organization_id": organization.id,
            "member_user_id": invitee.id,
            "role": member.role,
        },
    )
    return MemberOut.model_validate(member)

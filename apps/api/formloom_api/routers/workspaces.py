"""Workspace management endpoints.

Role requirements (organization of the workspace):
- read: VIEWER
- create/rename: EDITOR
- delete: ADMIN (cascades to forms, responses and analytics)
"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from formloom_api.auth.access import require_org_role, require_workspace_role
from formloom_api.auth.session_auth import SessionAuthContext, get_session_auth_context
from formloom_api.db.models import OrganizationRole, Workspace
from formloom_api.db.session import get_db
from formloom_api.forms.slugs import workspace_slug
from formloom_api.organizations.bootstrap import ensure_default_workspace
from formloom_api.schemas import UUIDPath, WorkspaceCreateRequest, WorkspaceOut, WorkspaceUpdateRequest

router = APIRouter(tags=["workspaces"])
logger = logging.getLogger(__name__)


@router.post("/v1/workspaces", status_code=status.HTTP_201_CREATED, response_model=WorkspaceOut)
async def create_workspace(
    request: WorkspaceCreateRequest,
    auth: SessionAuthContext = Depends(get_session_auth_context),
    db: Session = Depends(get_db),
) -> WorkspaceOut:
    """Create a workspace.

    Raises:
        HTTPException 400: Workspace with this name already exists
        HTTPException 403: Not a member, or role below EDITOR
        HTTPException 404: Organization not found
    """
    require_org_role(db, auth.user_id, request.organization_id, OrganizationRole.EDITOR)

    workspace = Workspace(
        name=request.name,
        slug=workspace_slug(db, request.name, request.organization_id),
        organization_id=request.organization_id,
    )
    db.add(workspace)
    db.commit()
    db.refresh(workspace)

    logger.info(
        "Workspace created",
        extra={
            "event": "workspace.created",
            "workspace_id": workspace.id,
            "organization_id": workspace.organization_id,
        },
    )
    return WorkspaceOut.model_validate(workspace)


@router.get("/v1/organizations/{organization_id}/workspaces", response_model=list[WorkspaceOut])
async def list_workspaces(
    organization_id: UUIDPath,
    auth: SessionAuthContext = Depends(get_session_auth_context),
    db: Session = Depends(get_db),
) -> list[WorkspaceOut]:
    """Workspaces of an organization; "My Workspace" is (re)created when missing."""
    require_org_role(db, auth.user_id, organization_id)
    return [WorkspaceOut.model_validate(w) for w in ensure_default_workspace(db, organization_id)]


@router.get("/v1/workspaces/{workspace_id}", response_model=WorkspaceOut)
async def get_workspace(
    workspace_id: UUIDPath,
    auth: SessionAuthContext = Depends(get_session_auth_context),
    db: Session = Depends(get_db),
) -> WorkspaceOut:
    workspace, _ = require_workspace_role(db, auth.user_id, workspace_id)
    return WorkspaceOut.model_validate(workspace)


@router.patch("/v1/workspaces/{workspace_id}", response_model=WorkspaceOut)
async def update_workspace(
    workspace_id: UUIDPath,
    request: WorkspaceUpdateRequest,
    auth: SessionAuthContext = Depends(get_session_auth_context),
    db: Session = Depends(get_db),
) -> WorkspaceOut:
    """Rename a workspace (slug follows the name). Requires: EDITOR role."""
    workspace, _ = require_workspace_role(db, auth.user_id, workspace_id, OrganizationRole.EDITOR)

    if request.name != workspace.name:
        workspace.slug = workspace_slug(
            db, request.name, workspace.organization_id, exclude_workspace_id=workspace.id
        )
        workspace.name = request.name
        db.commit()
        db.refresh(workspace)

        logger.info(
            "Workspace renamed",
            extra={"event": "workspace.updated", "workspace_id": workspace.id},
        )

    return WorkspaceOut.model_validate(workspace)


@router.delete("/v1/workspaces/{workspace_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_workspace(
    workspace_id: UUIDPath,
    auth: SessionAuthContext = Depends(get_session_auth_context),
    db: Session = Depends(get_db),
) -> None:
    """Delete a workspace and everything in it. Requires: ADMIN role."""
    workspace, _ = require_workspace_role(db, auth.user_id, workspace_id, OrganizationRole.ADMIN)

    db.delete(workspace)
    db.commit()

    logger.warning(
        "Workspace deleted",
        extra={"event": "workspace.deleted", "workspace_id": workspace_id},
    )

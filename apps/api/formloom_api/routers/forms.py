"""Form management endpoints.

AUTHENTICATION:
- Session-based: Supabase JWT
- Role checks against the organization owning the workspace/form
  (VIEWER reads, EDITOR writes)
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from formloom_api.auth.access import require_form_role, require_workspace_role
from formloom_api.auth.session_auth import SessionAuthContext, get_session_auth_context
from formloom_api.db.models import Form, FormStatus, OrganizationMember, OrganizationRole, Workspace
from formloom_api.db.session import get_db
from formloom_api.forms.schema_validation import default_form_schema, validate_form_schema
from formloom_api.forms.slugs import assign_form_slug
from formloom_api.schemas import (
    FormCreateRequest,
    FormOut,
    FormPublishRequest,
    FormSummary,
    FormUpdateRequest,
    FormWithWorkspace,
    UUIDPath,
    WorkspaceRef,
)

router = APIRouter(tags=["forms"])
logger = logging.getLogger(__name__)


# ============================================================================
# Form CRUD (Session Auth Required)
# ============================================================================


@router.post("/v1/forms", status_code=status.HTTP_201_CREATED, response_model=FormOut)
async def create_form(
    request: FormCreateRequest,
    auth: SessionAuthContext = Depends(get_session_auth_context),
    db: Session = Depends(get_db),
) -> FormOut:
    """Create a DRAFT form in a workspace.

    Requires: EDITOR role in the workspace's organization.

    Raises:
        HTTPException 400: Invalid form schema format
        HTTPException 403: Not a member, or role below EDITOR
        HTTPException 404: Workspace not found
    """
    require_workspace_role(db, auth.user_id, request.workspace_id, OrganizationRole.EDITOR)

    schema_json = (
        validate_form_schema(request.schema_json)
        if request.schema_json is not None
        else default_form_schema()
    )

    form = Form(
        name=request.name,
        slug=assign_form_slug(db, request.name, request.workspace_id),
        workspace_id=request.workspace_id,
        schema_json=schema_json,
        status=FormStatus.DRAFT.value,
    )
    db.add(form)
    db.commit()
    db.refresh(form)

    logger.info(
        "Form created",
        extra={
            "event": "form.created",
            "form_id": form.id,
            "workspace_id": form.workspace_id,
            "slug": form.slug,
        },
    )
    return FormOut.model_validate(form)


@router.get("/v1/workspaces/{workspace_id}/forms", response_model=list[FormSummary])
async def list_workspace_forms(
    workspace_id: UUIDPath,
    auth: SessionAuthContext = Depends(get_session_auth_context),
    db: Session = Depends(get_db),
) -> list[FormSummary]:
    """List forms of a workspace, most recently updated first."""
    require_workspace_role(db, auth.user_id, workspace_id)

    forms = db.execute(
        select(Form)
        .where(Form.workspace_id == workspace_id)
        .order_by(Form.updated_at.desc())
    ).scalars()
    return [FormSummary.model_validate(form) for form in forms]


@router.get("/v1/forms", response_model=list[FormWithWorkspace])
async def list_all_forms(
    search: Optional[str] = Query(None, description="Case-insensitive match on form or workspace name"),
    auth: SessionAuthContext = Depends(get_session_auth_context),
    db: Session = Depends(get_db),
) -> list[FormWithWorkspace]:
    """List forms across every organization the caller belongs to."""
    member_orgs = select(OrganizationMember.organization_id).where(
        OrganizationMember.user_id == auth.user_id
    )
    rows = db.execute(
        select(Form, Workspace)
        .join(Workspace, Form.workspace_id == Workspace.id)
        .where(Workspace.organization_id.in_(member_orgs))
        .order_by(Form.updated_at.desc())
    ).all()

    needle = search.strip().lower() if search else ""
    items = []
    for form, workspace in rows:
        if needle and needle not in form.name.lower() and needle not in workspace.name.lower():
            continue
        items.append(
            FormWithWorkspace(
                id=form.id,
                name=form.name,
                slug=form.slug,
                status=form.status,
                created_at=form.created_at,
                updated_at=form.updated_at,
                workspace=WorkspaceRef(id=workspace.id, name=workspace.name),
            )
        )
    return items


@router.get("/v1/forms/{form_id}", response_model=FormOut)
async def get_form(
    form_id: UUIDPath,
    auth: SessionAuthContext = Depends(get_session_auth_context),
    db: Session = Depends(get_db),
) -> FormOut:
    form, _ = require_form_role(db, auth.user_id, form_id)
    return FormOut.model_validate(form)


@router.patch("/v1/forms/{form_id}", response_model=FormOut)
async def update_form(
    form_id: UUIDPath,
    request: FormUpdateRequest,
    auth: SessionAuthContext = Depends(get_session_auth_context),
    db: Session = Depends(get_db),
) -> FormOut:
    """Rename and/or replace the schema of a form.

    A rename re-derives the slug (globally unique, suffixed on collision).

    Requires: EDITOR role.
    """
    form, _ = require_form_role(db, auth.user_id, form_id, OrganizationRole.EDITOR)

    if request.name and request.name != form.name:
        form.slug = assign_form_slug(db, request.name, form.workspace_id, exclude_form_id=form.id)
        form.name = request.name

    if not form.slug:
        form.slug = assign_form_slug(db, form.name, form.workspace_id, exclude_form_id=form.id)

    if request.schema_json is not None:
        form.schema_json = validate_form_schema(request.schema_json)

    db.commit()
    db.refresh(form)

    logger.info(
        "Form updated",
        extra={"event": "form.updated", "form_id": form.id, "slug": form.slug},
    )
    return FormOut.model_validate(form)


@router.delete("/v1/forms/{form_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_form(
    form_id: UUIDPath,
    auth: SessionAuthContext = Depends(get_session_auth_context),
    db: Session = Depends(get_db),
) -> None:
    """Delete a form with its responses and analytics. Requires: EDITOR role."""
    form, _ = require_form_role(db, auth.user_id, form_id, OrganizationRole.EDITOR)

    db.delete(form)
    db.commit()

    logger.warning(
        "Form deleted",
        extra={"event": "form.deleted", "form_id": form_id},
    )


@router.post("/v1/forms/{form_id}/publish", response_model=FormOut)
async def publish_form(
    form_id: UUIDPath,
    request: FormPublishRequest,
    auth: SessionAuthContext = Depends(get_session_auth_context),
    db: Session = Depends(get_db),
) -> FormOut:
    """Move a form between DRAFT and PUBLISHED.

    PUBLISHED stamps published_at with the current time; DRAFT clears it.
    """
    form, _ = require_form_role(db, auth.user_id, form_id, OrganizationRole.EDITOR)

    form.status = request.status.value
    form.published_at = (
        datetime.now(timezone.utc) if request.status.value == FormStatus.PUBLISHED.value else None
    )
    db.commit()
    db.refresh(form)

    logger.info(
        "Form status changed",
        extra={"event": "form.status_changed", "form_id": form.id, "status": form.status},
    )
    return FormOut.model_validate(form)

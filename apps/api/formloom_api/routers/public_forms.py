"""Public form endpoints (respondent-facing).

AUTHENTICATION:
- None required for published forms, responses and view tracking
- An optional session lets organization members preview DRAFT forms
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from formloom_api.auth.access import is_form_member
from formloom_api.auth.session_auth import SessionAuthContext, get_optional_session_auth_context
from formloom_api.db.models import Form, FormResponse, FormStatus
from formloom_api.db.session import get_db
from formloom_api.forms.analytics import record_submission, record_view
from formloom_api.schemas import (
    PublicFormOut,
    ResponseSubmitRequest,
    SubmissionReceipt,
    UUIDPath,
    ViewTrackedOut,
)

router = APIRouter(prefix="/v1/public/forms", tags=["public"])
logger = logging.getLogger(__name__)


def _visible_form(
    db: Session,
    form: Optional[Form],
    auth: Optional[SessionAuthContext],
) -> Form:
    """Published forms are public; drafts only for members of the owning organization."""
    if form is not None:
        if form.status == FormStatus.PUBLISHED.value:
            return form
        if auth is not None and is_form_member(db, auth.user_id, form):
            return form

    raise HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail="Form not found or not published",
    )


# ============================================================================
# Form retrieval
# ============================================================================


@router.get("/by-slug/{slug}", response_model=PublicFormOut)
async def get_form_by_slug(
    slug: str,
    auth: Optional[SessionAuthContext] = Depends(get_optional_session_auth_context),
    db: Session = Depends(get_db),
) -> PublicFormOut:
    form = db.execute(select(Form).where(Form.slug == slug)).scalar_one_or_none()
    return PublicFormOut.model_validate(_visible_form(db, form, auth))


@router.get("/{form_id}", response_model=PublicFormOut)
async def get_public_form(
    form_id: UUIDPath,
    auth: Optional[SessionAuthContext] = Depends(get_optional_session_auth_context),
    db: Session = Depends(get_db),
) -> PublicFormOut:
    form = db.get(Form, form_id)
    return PublicFormOut.model_validate(_visible_form(db, form, auth))


# ============================================================================
# Submissions & views
# ============================================================================


@router.post("/{form_id}/responses", status_code=status.HTTP_201_CREATED, response_model=SubmissionReceipt)
async def submit_form_response(
    form_id: UUIDPath,
    request: ResponseSubmitRequest,
    db: Session = Depends(get_db),
) -> SubmissionReceipt:
    """Store a response for a PUBLISHED form and update its analytics.

    Raises:
        HTTPException 400: Form is not published
        HTTPException 404: Form not found
    """
    form = db.get(Form, form_id)
    if form is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Form not found")

    if form.status != FormStatus.PUBLISHED.value:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Form is not published")

    response = FormResponse(
        form_id=form.id,
        response_json=request.response_json,
        metadata_json=request.metadata or {},
    )
    db.add(response)
    record_submission(db, form.id)
    db.commit()
    db.refresh(response)

    logger.info(
        "Form response submitted",
        extra={"event": "form.response.submitted", "form_id": form.id, "response_id": response.id},
    )
    return SubmissionReceipt(id=response.id, form_id=form.id, created_at=response.created_at)


@router.post("/{form_id}/views", response_model=ViewTrackedOut)
async def track_form_view(
    form_id: UUIDPath,
    db: Session = Depends(get_db),
) -> ViewTrackedOut:
    """Count a view of a PUBLISHED form; unknown or draft forms are ignored."""
    form = db.get(Form, form_id)
    if form is None or form.status != FormStatus.PUBLISHED.value:
        return ViewTrackedOut(tracked=False)

    record_view(db, form.id)
    db.commit()
    return ViewTrackedOut(tracked=True)

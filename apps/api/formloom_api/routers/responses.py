"""Form responses and analytics (members only)."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from formloom_api.auth.access import require_form_role
from formloom_api.auth.session_auth import SessionAuthContext, get_session_auth_context
from formloom_api.db.models import FormResponse
from formloom_api.db.session import get_db
from formloom_api.forms.analytics import analytics_summary
from formloom_api.schemas import AnalyticsOut, FormResponseOut, UUIDPath

router = APIRouter(prefix="/v1/forms", tags=["responses"])
logger = logging.getLogger(__name__)


@router.get("/{form_id}/responses", response_model=list[FormResponseOut])
async def list_form_responses(
    form_id: UUIDPath,
    auth: SessionAuthContext = Depends(get_session_auth_context),
    db: Session = Depends(get_db),
) -> list[FormResponseOut]:
    """Responses of a form, newest first."""
    require_form_role(db, auth.user_id, form_id)

    responses = db.execute(
        select(FormResponse)
        .where(FormResponse.form_id == form_id)
        .order_by(FormResponse.created_at.desc())
    ).scalars()
    return [FormResponseOut.model_validate(r) for r in responses]


@router.get("/{form_id}/analytics", response_model=AnalyticsOut)
async def get_form_analytics(
    form_id: UUIDPath,
    auth: SessionAuthContext = Depends(get_session_auth_context),
    db: Session = Depends(get_db),
) -> AnalyticsOut:
    """View/submission counters; zeros before the first view."""
    require_form_role(db, auth.user_id, form_id)
    return AnalyticsOut(**analytics_summary(db, form_id))

"""View/submission counters and completion rate."""

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from formloom_api.db.models import FormAnalytics

logger = logging.getLogger(__name__)


def compute_completion_rate(views: int, submissions: int) -> float:
    """submissions / views * 100, or 0 when there are no views."""
    if views <= 0:
        return 0.0
    return submissions / views * 100


def _get_analytics(db: Session, form_id: str) -> FormAnalytics | None:
    return db.execute(
        select(FormAnalytics).where(FormAnalytics.form_id == form_id)
    ).scalar_one_or_none()


def record_view(db: Session, form_id: str) -> FormAnalytics:
    """Increment views, creating the analytics row on first view. Caller commits."""
    analytics = _get_analytics(db, form_id)
    if analytics is None:
        analytics = FormAnalytics(form_id=form_id, views=1, submissions=0, completion_rate=0.0)
        db.add(analytics)
    else:
        analytics.views = FormAnalytics.views + 1
    return analytics


def record_submission(db: Session, form_id: str) -> FormAnalytics:
    """Increment submissions and recompute the completion rate. Caller commits."""
    analytics = _get_analytics(db, form_id)
    if analytics is None:
        analytics = FormAnalytics(form_id=form_id, views=0, submissions=1, completion_rate=0.0)
        db.add(analytics)
        return analytics

    analytics.submissions = FormAnalytics.submissions + 1
    db.flush()
    db.refresh(analytics)
    analytics.completion_rate = compute_completion_rate(analytics.views, analytics.submissions)
    return analytics


def analytics_summary(db: Session, form_id: str) -> dict:
    analytics = _get_analytics(db, form_id)
    if analytics is None:
        return {"views": 0, "submissions": 0, "completion_rate": 0.0}
    return {
        "views": analytics.views,
        "submissions": analytics.submissions,
        "completion_rate": analytics.completion_rate,
    }

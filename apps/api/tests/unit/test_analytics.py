"""Unit tests for form view/submission counters."""

import pytest
from sqlalchemy import update

from formloom_api.db.models import Form, FormAnalytics, Organization, Workspace
from formloom_api.forms.analytics import compute_completion_rate, record_submission, record_view


@pytest.fixture
def form(db_session):
    organization = Organization(name="Acme", slug="acme")
    workspace = Workspace(name="Main", slug="main")
    organization.workspaces.append(workspace)
    db_session.add(organization)
    db_session.flush()
    form = Form(name="Survey", slug="survey", workspace_id=workspace.id, schema_json={})
    db_session.add(form)
    db_session.commit()
    return form


@pytest.mark.parametrize(
    "views,submissions,expected",
    [(0, 0, 0.0), (0, 3, 0.0), (10, 5, 50.0), (4, 1, 25.0)],
)
def test_compute_completion_rate(views, submissions, expected):
    assert compute_completion_rate(views, submissions) == expected


def test_first_submission_creates_row(db_session, form):
    analytics = record_submission(db_session, form.id)
    db_session.commit()

    assert analytics.views == 0
    assert analytics.submissions == 1
    assert analytics.completion_rate == 0.0


def test_submission_increment_uses_stored_count(db_session, form):
    db_session.add(FormAnalytics(form_id=form.id, views=10, submissions=4, completion_rate=40.0))
    db_session.commit()
    analytics = db_session.query(FormAnalytics).filter_by(form_id=form.id).one()
    assert analytics.submissions == 4

    # Concurrent submission lands in the table without touching the loaded row
    db_session.execute(
        update(FormAnalytics)
        .where(FormAnalytics.form_id == form.id)
        .values(submissions=FormAnalytics.submissions + 1)
        .execution_options(synchronize_session=False)
    )

    analytics = record_submission(db_session, form.id)
    db_session.commit()
    db_session.refresh(analytics)

    assert analytics.submissions == 6
    assert analytics.completion_rate == 60.0


def test_views_increment(db_session, form):
    for _ in range(3):
        record_view(db_session, form.id)
        db_session.commit()

    analytics = db_session.query(FormAnalytics).filter_by(form_id=form.id).one()
    assert analytics.views == 3

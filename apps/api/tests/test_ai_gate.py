"""AI generate/modify behind the plan/credits usage gate."""

import json
from datetime import datetime, timedelta, timezone

import pytest

from conftest import assert_problem, auth_headers
from formloom_api.ai.client import get_ai_client
from formloom_api.ai.prompts import GENERATE_SYSTEM_PROMPT, GENERATE_SYSTEM_PROMPT_COMPACT
from formloom_api.db.models import AIUsageEvent, OrganizationRole
from formloom_api.main import app

PROMPT = "Create a job application form with name, email and resume upload"


def _generate(client, user, workspace, prompt=PROMPT):
    return client.post(
        "/v1/ai/forms/generate",
        json={"prompt": prompt, "workspace_id": workspace.id},
        headers=auth_headers(user),
    )


def _seed_usage(db_session, user, count, created_at=None, charged_from="plan"):
    for _ in range(count):
        event = AIUsageEvent(
            user_id=user.id, operation="generate", charged_from=charged_from, plan_key="free"
        )
        if created_at is not None:
            event.created_at = created_at
        db_session.add(event)
    db_session.commit()


def _events(db_session, user):
    return db_session.query(AIUsageEvent).filter_by(user_id=user.id).all()


class TestGenerate:
    def test_free_user_generates_with_compact_settings(
        self, test_client, db_session, make_user, make_org, fake_provider
    ):
        user = make_user()
        _, workspace = make_org(user)
        long_prompt = "Build a detailed customer onboarding form " + "with many questions " * 20

        response = _generate(test_client, user, workspace, prompt=long_prompt)

        assert response.status_code == 200
        schema = response.json()
        assert schema["title"] == "Customer Survey"
        assert schema["fields"][0] == {"id": "name", "type": "text", "label": "Name", "required": True}
        assert schema["fields"][1]["options"] == ["1", "2", "3"]

        (completion,) = fake_provider.completion_requests
        assert completion["max_tokens"] == 500
        assert completion["temperature"] == 0.7
        assert completion["messages"][0]["content"] == GENERATE_SYSTEM_PROMPT_COMPACT
        assert completion["messages"][1]["content"] == long_prompt[:100]

        # Classifier sees the full prompt
        (classifier,) = fake_provider.classifier_requests
        assert long_prompt in classifier["messages"][1]["content"]

    def test_charge_and_cost_are_recorded(self, test_client, db_session, make_user, make_org):
        user = make_user()
        _, workspace = make_org(user)

        _generate(test_client, user, workspace)

        db_session.refresh(user)
        assert user.ai_usage_count == 1
        # 1000 prompt tokens * 150 + 1000 completion tokens * 600, per 1K tokens
        assert user.ai_usage_cost_usd_micros == 750
        (event,) = _events(db_session, user)
        assert event.operation == "generate"
        assert event.charged_from == "plan"
        assert event.plan_key == "free"
        assert event.prompt_tokens == 1000
        assert event.completion_tokens == 1000
        assert event.cost_usd_micros == 750

    def test_hobby_user_gets_full_prompt_and_larger_budget(
        self, test_client, make_user, make_org, fake_provider
    ):
        user = make_user(plan="hobby", subscription_status="active")
        _, workspace = make_org(user)
        long_prompt = "Registration form " + "with extra detail " * 20

        _generate(test_client, user, workspace, prompt=long_prompt)

        (completion,) = fake_provider.completion_requests
        assert completion["max_tokens"] == 2000
        assert completion["messages"][0]["content"] == GENERATE_SYSTEM_PROMPT
        assert completion["messages"][1]["content"] == long_prompt

    def test_viewer_is_rejected_before_gate(self, test_client, db_session, make_user, make_org, add_member, fake_provider):
        owner = make_user()
        viewer = make_user()
        organization, workspace = make_org(owner)
        add_member(viewer, organization, OrganizationRole.VIEWER.value)

        response = _generate(test_client, viewer, workspace)

        assert_problem(response, 403)
        assert fake_provider.requests == []
        assert _events(db_session, viewer) == []

    def test_short_prompt_is_validation_error(self, test_client, make_user, make_org, fake_provider):
        user = make_user()
        _, workspace = make_org(user)

        response = _generate(test_client, user, workspace, prompt="form")

        assert_problem(response, 400)
        assert fake_provider.requests == []


class TestUsageGate:
    def test_limit_reached_without_credits(self, test_client, db_session, make_user, make_org, fake_provider):
        user = make_user()
        _, workspace = make_org(user)
        _seed_usage(db_session, user, 2)

        response = _generate(test_client, user, workspace)

        data = assert_problem(response, 403)
        assert data["type"] == "https://iana.org/assignments/http-problem-types#quota-exceeded"
        policies = {p["policy"]: p for p in data["violated-policies"]}
        assert policies["free_monthly_ai_requests"]["limit"] == 2
        assert policies["free_monthly_ai_requests"]["current"] == 2
        assert policies["ai_credits"]["current"] == 0

        db_session.refresh(user)
        assert user.ai_usage_count == 0
        assert len(_events(db_session, user)) == 2
        assert fake_provider.requests == []

    def test_credits_cover_requests_past_the_limit(self, test_client, db_session, make_user, make_org):
        user = make_user(credits=3)
        _, workspace = make_org(user)
        _seed_usage(db_session, user, 2)

        response = _generate(test_client, user, workspace)

        assert response.status_code == 200
        db_session.refresh(user)
        assert user.credits == 2
        assert user.ai_usage_count == 1
        charged = [e for e in _events(db_session, user) if e.charged_from == "credits"]
        assert len(charged) == 1

    def test_allowance_is_used_before_credits(self, test_client, db_session, make_user, make_org):
        user = make_user(credits=5)
        _, workspace = make_org(user)

        _generate(test_client, user, workspace)

        db_session.refresh(user)
        assert user.credits == 5

    def test_previous_months_do_not_count(self, test_client, db_session, make_user, make_org):
        user = make_user()
        _, workspace = make_org(user)
        _seed_usage(db_session, user, 5, created_at=datetime.now(timezone.utc) - timedelta(days=40))

        response = _generate(test_client, user, workspace)

        assert response.status_code == 200

    def test_lapsed_hobby_subscription_uses_free_limit(self, test_client, db_session, make_user, make_org):
        user = make_user(plan="hobby", subscription_status="past_due")
        _, workspace = make_org(user)
        _seed_usage(db_session, user, 2)

        response = _generate(test_client, user, workspace)

        data = assert_problem(response, 403)
        assert data["violated-policies"][0]["policy"] == "free_monthly_ai_requests"

    def test_pro_is_unlimited(self, test_client, db_session, make_user, make_org):
        user = make_user(plan="pro", subscription_status="active")
        _, workspace = make_org(user)
        _seed_usage(db_session, user, 120)

        response = _generate(test_client, user, workspace)

        assert response.status_code == 200


class TestClassifier:
    def test_unrelated_prompt_is_rejected_without_charge(
        self, test_client, db_session, make_user, make_org, fake_provider
    ):
        user = make_user()
        _, workspace = make_org(user)
        fake_provider.classifier_verdict = "NO"

        response = _generate(test_client, user, workspace, prompt="Write me a poem about the ocean")

        data = assert_problem(response, 400)
        assert data["detail"] == "Prompt is not related to form building"
        db_session.refresh(user)
        assert user.ai_usage_count == 0
        assert _events(db_session, user) == []
        assert fake_provider.completion_requests == []

    def test_verdict_is_case_insensitive(self, test_client, make_user, make_org, fake_provider):
        user = make_user()
        _, workspace = make_org(user)
        fake_provider.classifier_verdict = " yes\n"

        assert _generate(test_client, user, workspace).status_code == 200

    def test_classifier_outage_fails_open(self, test_client, db_session, make_user, make_org, fake_provider):
        user = make_user()
        _, workspace = make_org(user)
        fake_provider.classifier_status = 503

        response = _generate(test_client, user, workspace)

        assert response.status_code == 200
        db_session.refresh(user)
        assert user.ai_usage_count == 1

    def test_missing_api_key_is_500_without_charge(
        self, test_client, db_session, make_user, make_org, fake_provider
    ):
        user = make_user()
        _, workspace = make_org(user)
        app.dependency_overrides[get_ai_client] = lambda: fake_provider.client(api_key=None)

        response = _generate(test_client, user, workspace)

        data = assert_problem(response, 500)
        assert data["detail"] == "OpenAI API key not configured"
        db_session.refresh(user)
        assert user.ai_usage_count == 0
        assert fake_provider.requests == []

    def test_gate_runs_before_configuration_check(
        self, test_client, db_session, make_user, make_org, fake_provider
    ):
        user = make_user()
        _, workspace = make_org(user)
        _seed_usage(db_session, user, 2)
        app.dependency_overrides[get_ai_client] = lambda: fake_provider.client(api_key=None)

        response = _generate(test_client, user, workspace)

        assert_problem(response, 403)


class TestProviderFailures:
    def test_provider_error_keeps_the_charge(self, test_client, db_session, make_user, make_org, fake_provider):
        user = make_user()
        _, workspace = make_org(user)
        fake_provider.completion_status = 429

        response = _generate(test_client, user, workspace)

        data = assert_problem(response, 500)
        assert data["detail"] == "AI generation failed: Rate limit reached for requests"
        db_session.refresh(user)
        assert user.ai_usage_count == 1
        assert user.ai_usage_cost_usd_micros == 0

    def test_non_json_success_body_is_upstream_error(
        self, test_client, db_session, make_user, make_org, fake_provider
    ):
        user = make_user()
        _, workspace = make_org(user)
        fake_provider.completion_raw_body = "<html>gateway</html>"

        response = _generate(test_client, user, workspace)

        data = assert_problem(response, 500)
        assert data["detail"] == "AI generation failed: OpenAI API returned an invalid response"
        db_session.refresh(user)
        assert user.ai_usage_count == 1

    def test_unparsable_completion(self, test_client, make_user, make_org, fake_provider):
        user = make_user()
        _, workspace = make_org(user)
        fake_provider.completion_content = "Sure! Here is your form: {not json"

        response = _generate(test_client, user, workspace)

        data = assert_problem(response, 500)
        assert data["detail"] == "AI generation failed: Failed to parse AI response as JSON"

    def test_fenced_completion_is_accepted(self, test_client, make_user, make_org, fake_provider):
        user = make_user()
        _, workspace = make_org(user)
        fake_provider.completion_content = "```json\n" + json.dumps({"title": "Fenced", "fields": []}) + "\n```"

        response = _generate(test_client, user, workspace)

        assert response.status_code == 200
        assert response.json() == {"title": "Fenced", "description": "", "fields": []}


class TestModify:
    CURRENT = {
        "title": "Event Registration",
        "description": "Sign up for the meetup",
        "fields": [{"id": "name", "type": "text", "label": "Name", "required": True}],
    }

    def _modify(self, client, user, prompt="Add a dietary restrictions field"):
        return client.post(
            "/v1/ai/forms/modify",
            json={"current_schema": self.CURRENT, "modification_prompt": prompt},
            headers=auth_headers(user),
        )

    def test_modify_returns_complete_schema(self, test_client, db_session, make_user, fake_provider):
        user = make_user()
        fake_provider.completion_content = json.dumps(
            {
                "fields": [
                    {"id": "name", "type": "text", "label": "Name", "required": True},
                    {"type": "textarea", "label": "Dietary restrictions", "image": "https://img.test/a.png"},
                ]
            }
        )

        response = self._modify(test_client, user)

        assert response.status_code == 200
        schema = response.json()
        assert schema["title"] == "Event Registration"
        assert schema["description"] == "Sign up for the meetup"
        added = schema["fields"][1]
        assert added["id"]
        assert added["required"] is False
        assert added["image"] == "https://img.test/a.png"

        (completion,) = fake_provider.completion_requests
        assert completion["temperature"] == 0.3
        assert completion["max_tokens"] == 3000
        assert json.dumps(self.CURRENT, indent=2) in completion["messages"][0]["content"]

        (event,) = _events(db_session, user)
        assert event.operation == "modify"

    def test_modify_shares_the_gate(self, test_client, db_session, make_user, fake_provider):
        user = make_user()
        _seed_usage(db_session, user, 2)

        response = self._modify(test_client, user)

        assert_problem(response, 403)
        assert fake_provider.requests == []

    @pytest.mark.parametrize("prompt", ["short", "x" * 1001])
    def test_modify_prompt_length(self, test_client, make_user, prompt):
        user = make_user()

        assert_problem(self._modify(test_client, user, prompt=prompt), 400)


class TestUsageEndpoint:
    def test_free_usage_summary(self, test_client, db_session, make_user):
        user = make_user(credits=4)
        _seed_usage(db_session, user, 1)

        response = test_client.get("/v1/ai/usage", headers=auth_headers(user))

        assert response.status_code == 200
        assert response.json() == {
            "plan": "free",
            "monthly_limit": 2,
            "used_this_month": 1,
            "remaining_this_month": 1,
            "credits": 4,
            "lifetime_requests": 0,
            "lifetime_cost_usd_micros": 0,
        }

    def test_pro_usage_is_unlimited(self, test_client, make_user):
        user = make_user(plan="pro", subscription_status="active")

        data = test_client.get("/v1/ai/usage", headers=auth_headers(user)).json()

        assert data["plan"] == "pro"
        assert data["monthly_limit"] is None
        assert data["remaining_this_month"] is None

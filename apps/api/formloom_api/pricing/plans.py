"""
Plan catalogue and effective-plan resolution
"""

from .models import (
    PlanCatalogModel,
    PlanLimitsModel,
    PlanModel,
    PlanPoliciesModel,
    UnlimitedSemanticsModel,
)

FREE_PLAN_AI_LIMIT = 2
HOBBY_PLAN_AI_LIMIT = 50
FREE_PROMPT_TRUNCATION = 100

PLAN_CATALOG = PlanCatalogModel(
    unlimited_semantics=UnlimitedSemanticsModel(),
    # Statuses that keep a paid plan in force
    active_statuses=["active", "cancel_at_period_end"],
    fallback_plan="free",
    plans=[
        PlanModel(
            plan="free",
            display_name="Free",
            features={"team_features": False},
            limits=PlanLimitsModel(
                monthly_ai_requests=FREE_PLAN_AI_LIMIT,
                prompt_truncation_chars=FREE_PROMPT_TRUNCATION,
                max_generation_tokens=500,
            ),
            policies=PlanPoliciesModel(monthly_ai_policy_name="free_monthly_ai_requests"),
        ),
        PlanModel(
            plan="hobby",
            display_name="Hobby",
            features={"team_features": False},
            limits=PlanLimitsModel(
                monthly_ai_requests=HOBBY_PLAN_AI_LIMIT,
                prompt_truncation_chars=0,
                max_generation_tokens=2000,
            ),
            policies=PlanPoliciesModel(monthly_ai_policy_name="hobby_monthly_ai_requests"),
        ),
        PlanModel(
            plan="pro",
            display_name="Pro",
            features={"team_features": True},
            limits=PlanLimitsModel(
                monthly_ai_requests=0,
                prompt_truncation_chars=0,
                max_generation_tokens=2000,
            ),
            policies=PlanPoliciesModel(monthly_ai_policy_name="pro_monthly_ai_requests"),
        ),
    ],
)


def resolve_plan(subscription_plan: str | None, subscription_status: str | None) -> PlanModel:
    """
    Effective plan for a user.

    Free users are always free. A paid plan only counts while its
    subscription status is active (or cancelling at period end); anything
    else, unknown plan names included, falls back to the free plan.
    """
    fallback = PLAN_CATALOG.get_plan(PLAN_CATALOG.fallback_plan)
    plan = PLAN_CATALOG.get_plan(subscription_plan or "")
    if plan is None:
        return fallback
    if plan.plan == PLAN_CATALOG.fallback_plan:
        return plan
    if subscription_status not in PLAN_CATALOG.active_statuses:
        return fallback
    return plan


def monthly_limit(plan: PlanModel) -> int | None:
    """Monthly AI request allowance, None when unlimited."""
    value = plan.limits.monthly_ai_requests
    if PLAN_CATALOG.is_zero_unlimited("monthly_ai_requests", value):
        return None
    return value


def has_team_features(plan: PlanModel) -> bool:
    return plan.features.get("team_features", False)

"""
Formloom Pricing Module
Plan catalogue, AI usage gate and cost metering
"""

from .models import (
    PlanCatalogModel,
    PlanModel,
    PlanLimitsModel,
    PlanPoliciesModel,
    UnlimitedSemanticsModel,
)

from .plans import (
    PLAN_CATALOG,
    has_team_features,
    monthly_limit,
    resolve_plan,
)

from .problem_details import (
    ProblemDetails,
    QuotaExceededError,
    ViolatedPolicy,
    create_problem_details_response,
)

from .enforcement import (
    EnforcementEngine,
    UsageDecision,
    month_start,
)

from .metering import (
    MeteringService,
    TokenUsage,
    estimate_cost_usd_micros,
)

__all__ = [
    # Models
    "PlanCatalogModel",
    "PlanModel",
    "PlanLimitsModel",
    "PlanPoliciesModel",
    "UnlimitedSemanticsModel",

    # Plans
    "PLAN_CATALOG",
    "has_team_features",
    "monthly_limit",
    "resolve_plan",

    # Problem Details
    "ProblemDetails",
    "QuotaExceededError",
    "ViolatedPolicy",
    "create_problem_details_response",

    # Enforcement
    "EnforcementEngine",
    "UsageDecision",
    "month_start",

    # Metering
    "MeteringService",
    "TokenUsage",
    "estimate_cost_usd_micros",
]

"""
Pydantic models for Formloom subscription plans
"""

from pydantic import BaseModel, Field
from typing import List, Literal


class UnlimitedSemanticsModel(BaseModel):
    """Unlimited semantics (zero means unlimited)"""
    zero_means: Literal["unlimited", "disabled"] = "unlimited"
    applies_to_fields: List[str] = Field(
        default_factory=lambda: ["monthly_ai_requests"]
    )


class PlanLimitsModel(BaseModel):
    """Per-plan AI limits"""
    monthly_ai_requests: int  # 0 = unlimited
    prompt_truncation_chars: int  # 0 = no truncation
    max_generation_tokens: int


class PlanPoliciesModel(BaseModel):
    """Policy names reported in violated-policies"""
    monthly_ai_policy_name: str
    credits_policy_name: str = "ai_credits"


class PlanModel(BaseModel):
    """Subscription plan configuration"""
    plan: Literal["free", "hobby", "pro"]
    display_name: str
    features: dict[str, bool]
    limits: PlanLimitsModel
    policies: PlanPoliciesModel


class PlanCatalogModel(BaseModel):
    """Plan catalogue root model"""
    unlimited_semantics: UnlimitedSemanticsModel
    active_statuses: List[str]
    fallback_plan: str
    plans: List[PlanModel]

    def get_plan(self, plan_name: str) -> PlanModel | None:
        """Get plan configuration by name"""
        for plan in self.plans:
            if plan.plan == plan_name:
                return plan
        return None

    def is_zero_unlimited(self, field_name: str, value: int) -> bool:
        """Check if zero means unlimited for given field"""
        if int(value) != 0:
            return False
        if self.unlimited_semantics.zero_means != "unlimited":
            return False
        return field_name in self.unlimited_semantics.applies_to_fields

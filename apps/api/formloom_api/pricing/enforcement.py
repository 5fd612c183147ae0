"""
Runtime Enforcement Engine
Enforces the AI usage gate: monthly plan allowance, then purchased credits
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Literal, Optional

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from formloom_api.db.models import AIUsageEvent, User
from .models import PlanModel
from .plans import monthly_limit, resolve_plan
from .problem_details import (
    QUOTA_EXCEEDED_TITLE,
    QUOTA_EXCEEDED_TYPE,
    ProblemDetails,
    QuotaExceededError,
    ViolatedPolicy,
)

logger = logging.getLogger(__name__)

ChargeSource = Literal["plan", "credits"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def month_start(now: datetime) -> datetime:
    """First instant of the UTC calendar month containing ``now``."""
    now = now.astimezone(timezone.utc)
    return datetime(now.year, now.month, 1, tzinfo=timezone.utc)


@dataclass
class UsageDecision:
    """Outcome of a passed gate check."""
    plan: PlanModel
    charged_from: ChargeSource
    used_this_month: int
    limit: Optional[int]  # None = unlimited


class EnforcementEngine:
    """
    Three-tier AI usage gate:
    1. Monthly plan allowance (AIUsageEvent rows charged_from=plan this month)
    2. One purchased credit when the allowance is exhausted
    3. Otherwise reject with 403 + violated-policies

    check() only reads. charge() is the single place counters move, so usage
    never increments unless check() passed first.
    """

    def __init__(self, db: Session, clock: Callable[[], datetime] = _utcnow):
        self.db = db
        self.clock = clock

    def plan_usage_this_month(self, user_id: str) -> int:
        """Count plan-charged AI requests in the current UTC month"""
        start = month_start(self.clock())
        return self.db.execute(
            select(func.count(AIUsageEvent.id)).where(
                AIUsageEvent.user_id == user_id,
                AIUsageEvent.charged_from == "plan",
                AIUsageEvent.created_at >= start,
            )
        ).scalar_one()

    def check(self, user: User) -> UsageDecision:
        """
        Decide where the next AI request would be charged from

        Returns:
            UsageDecision if allowed

        Raises:
            QuotaExceededError: allowance exhausted and no credits left
        """
        plan = resolve_plan(user.subscription_plan, user.subscription_status)
        limit = monthly_limit(plan)
        used = self.plan_usage_this_month(user.id)

        # Zero means unlimited
        if limit is None or used < limit:
            return UsageDecision(plan=plan, charged_from="plan", used_this_month=used, limit=limit)

        if user.credits > 0:
            return UsageDecision(plan=plan, charged_from="credits", used_this_month=used, limit=limit)

        raise QuotaExceededError(self._quota_problem(plan, limit, used, user.credits))

    def charge(self, user: User, decision: UsageDecision, operation: str) -> AIUsageEvent:
        """
        Record one AI request against the user (single commit)

        Increments User.ai_usage_count, writes the ledger event and, when
        charged from credits, decrements User.credits. Not refunded if the
        generation call later fails.
        """
        if decision.charged_from == "credits":
            result = self.db.execute(
                update(User)
                .where(User.id == user.id, User.credits > 0)
                .values(credits=User.credits - 1)
            )
            if result.rowcount == 0:
                # Credits spent by a concurrent request since check()
                self.db.rollback()
                raise QuotaExceededError(
                    self._quota_problem(decision.plan, decision.limit or 0, decision.used_this_month, 0)
                )

        self.db.execute(
            update(User)
            .where(User.id == user.id)
            .values(ai_usage_count=User.ai_usage_count + 1)
        )

        event = AIUsageEvent(
            user_id=user.id,
            operation=operation,
            charged_from=decision.charged_from,
            plan_key=decision.plan.plan,
        )
        self.db.add(event)
        self.db.commit()
        self.db.refresh(user)

        logger.info(
            "AI usage charged",
            extra={
                "event": "ai.usage.charged",
                "user_id": user.id,
                "operation": operation,
                "charged_from": decision.charged_from,
                "plan": decision.plan.plan,
                "usage_event_id": event.id,
            },
        )
        return event

    def usage_summary(self, user: User) -> dict:
        plan = resolve_plan(user.subscription_plan, user.subscription_status)
        limit = monthly_limit(plan)
        used = self.plan_usage_this_month(user.id)
        return {
            "plan": plan.plan,
            "monthly_limit": limit,
            "used_this_month": used,
            "remaining_this_month": None if limit is None else max(0, limit - used),
            "credits": user.credits,
            "lifetime_requests": user.ai_usage_count,
            "lifetime_cost_usd_micros": user.ai_usage_cost_usd_micros,
        }

    def _quota_problem(self, plan: PlanModel, limit: int, used: int, credits: int) -> ProblemDetails:
        window = month_start(self.clock()).strftime("%Y-%m")
        logger.warning(
            "AI usage limit reached",
            extra={
                "event": "ai.usage.limit_reached",
                "plan": plan.plan,
                "limit": limit,
                "current": used,
            },
        )
        return ProblemDetails(
            type=QUOTA_EXCEEDED_TYPE,
            title=QUOTA_EXCEEDED_TITLE,
            status=403,
            detail=(
                f"Monthly AI request limit of {limit} reached for the {plan.display_name} plan "
                "and no credits remain. Upgrade your plan or purchase credits."
            ),
            violated_policies=[
                ViolatedPolicy(
                    policy=plan.policies.monthly_ai_policy_name,
                    limit=limit,
                    current=used,
                    window=window,
                ),
                ViolatedPolicy(
                    policy=plan.policies.credits_policy_name,
                    limit=0,
                    current=credits,
                ),
            ],
        )

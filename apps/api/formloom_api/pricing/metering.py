"""
AI cost metering
Attaches provider token usage to an already-charged AIUsageEvent
"""

import logging
from typing import Optional

from pydantic import BaseModel
from sqlalchemy import update
from sqlalchemy.orm import Session

from formloom_api.config.env import get_ai_token_prices
from formloom_api.db.models import AIUsageEvent, User

logger = logging.getLogger(__name__)


class TokenUsage(BaseModel):
    """Token counts reported by the chat-completion provider"""
    prompt_tokens: int = 0
    completion_tokens: int = 0


def estimate_cost_usd_micros(usage: TokenUsage, prices: Optional[tuple[int, int]] = None) -> int:
    """
    Estimated provider cost in USD micros (rounded up)

    Args:
        usage: Token counts
        prices: (prompt, completion) price per 1K tokens in USD micros.
            Defaults to the configured prices.
    """
    prompt_price, completion_price = prices or get_ai_token_prices()
    total = usage.prompt_tokens * prompt_price + usage.completion_tokens * completion_price
    return -(-total // 1000)


class MeteringService:
    """Record token usage and estimated cost after a successful AI call"""

    def __init__(self, db: Session):
        self.db = db

    def record_cost(self, event: AIUsageEvent, usage: Optional[TokenUsage]) -> int:
        """
        Store token counts on the event and accumulate cost on the user

        Returns:
            Cost charged in USD micros (0 when the provider reported no usage)
        """
        if usage is None:
            return 0

        cost = estimate_cost_usd_micros(usage)
        event.prompt_tokens = usage.prompt_tokens
        event.completion_tokens = usage.completion_tokens
        event.cost_usd_micros = cost
        self.db.execute(
            update(User)
            .where(User.id == event.user_id)
            .values(ai_usage_cost_usd_micros=User.ai_usage_cost_usd_micros + cost)
        )
        self.db.commit()

        logger.info(
            "AI usage cost recorded",
            extra={
                "event": "ai.usage.cost_recorded",
                "usage_event_id": event.id,
                "prompt_tokens": usage.prompt_tokens,
                "completion_tokens": usage.completion_tokens,
                "cost_usd_micros": cost,
            },
        )
        return cost

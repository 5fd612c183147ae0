"""AI form generation and modification behind the usage gate.

Order per request (after auth, validation and workspace access):
gate check -> prompt classifier -> charge -> completion -> cost metering.

The charge commits before the completion call and is not refunded when the
completion fails.
"""

import logging
from typing import Any

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from formloom_api.ai.classifier import evaluate_prompt_is_form_related
from formloom_api.ai.client import AIConfigurationError, AIError, ChatCompletionClient
from formloom_api.ai.postprocess import (
    coerce_generated_schema,
    coerce_modified_schema,
    parse_schema_content,
)
from formloom_api.ai.prompts import (
    GENERATE_SYSTEM_PROMPT,
    GENERATE_SYSTEM_PROMPT_COMPACT,
    modify_system_prompt,
)
from formloom_api.db.models import AIUsageEvent, User
from formloom_api.pricing.enforcement import EnforcementEngine
from formloom_api.pricing.metering import MeteringService
from formloom_api.pricing.models import PlanModel

logger = logging.getLogger(__name__)

GENERATE_TEMPERATURE = 0.7
MODIFY_TEMPERATURE = 0.3
MODIFY_MAX_TOKENS = 3000


def _configuration_error() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="OpenAI API key not configured",
    )


async def _admit(
    db: Session,
    client: ChatCompletionClient,
    user: User,
    prompt: str,
    operation: str,
) -> tuple[PlanModel, AIUsageEvent]:
    """Run gate check, classifier and charge. Returns the plan and ledger event."""
    engine = EnforcementEngine(db)
    decision = engine.check(user)

    try:
        related = await evaluate_prompt_is_form_related(client, prompt)
    except AIConfigurationError:
        raise _configuration_error()

    if not related:
        logger.info(
            "Prompt rejected as unrelated to forms",
            extra={"event": "ai.prompt.rejected", "user_id": user.id, "operation": operation},
        )
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Prompt is not related to form building",
        )

    event = engine.charge(user, decision, operation)
    return decision.plan, event


async def generate_form_schema(
    db: Session,
    client: ChatCompletionClient,
    user: User,
    prompt: str,
) -> dict[str, Any]:
    """Generate a new form schema from a natural-language prompt.

    Raises:
        QuotaExceededError: usage gate rejected the request (403)
        HTTPException: 400 unrelated prompt, 500 configuration/provider/parse failure
    """
    plan, event = await _admit(db, client, user, prompt, "generate")

    truncation = plan.limits.prompt_truncation_chars
    compact = truncation > 0
    user_prompt = prompt[:truncation] if compact else prompt
    system_prompt = GENERATE_SYSTEM_PROMPT_COMPACT if compact else GENERATE_SYSTEM_PROMPT

    try:
        completion = await client.complete(
            [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=GENERATE_TEMPERATURE,
            max_tokens=plan.limits.max_generation_tokens,
        )
        schema = coerce_generated_schema(parse_schema_content(completion.content))
    except AIError as e:
        logger.error(
            "AI generation failed",
            extra={"event": "ai.generate.failed", "usage_event_id": event.id, "error": str(e)},
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"AI generation failed: {e}",
        )

    MeteringService(db).record_cost(event, completion.usage)
    logger.info(
        "AI form generated",
        extra={
            "event": "ai.generate.completed",
            "usage_event_id": event.id,
            "field_count": len(schema["fields"]),
        },
    )
    return schema


async def modify_form_schema(
    db: Session,
    client: ChatCompletionClient,
    user: User,
    current_schema: dict[str, Any],
    prompt: str,
) -> dict[str, Any]:
    """Apply a natural-language modification to an existing schema.

    Raises:
        QuotaExceededError: usage gate rejected the request (403)
        HTTPException: 400 unrelated prompt, 500 configuration/provider/parse failure
    """
    _, event = await _admit(db, client, user, prompt, "modify")

    try:
        completion = await client.complete(
            [
                {"role": "system", "content": modify_system_prompt(current_schema)},
                {"role": "user", "content": prompt},
            ],
            temperature=MODIFY_TEMPERATURE,
            max_tokens=MODIFY_MAX_TOKENS,
        )
        schema = coerce_modified_schema(parse_schema_content(completion.content), current_schema)
    except AIError as e:
        logger.error(
            "AI modification failed",
            extra={"event": "ai.modify.failed", "usage_event_id": event.id, "error": str(e)},
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"AI modification failed: {e}",
        )

    MeteringService(db).record_cost(event, completion.usage)
    logger.info(
        "AI form modified",
        extra={
            "event": "ai.modify.completed",
            "usage_event_id": event.id,
            "field_count": len(schema["fields"]),
        },
    )
    return schema

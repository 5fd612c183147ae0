"""AI assist endpoints.

AUTHENTICATION:
- Session-based: Supabase JWT
- generate: EDITOR role in the target workspace

USAGE GATE:
- Every generate/modify request passes the plan/credits gate before the
  provider is called (pricing/enforcement.py); over-limit requests get a
  403 problem with violated-policies
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from formloom_api.ai.client import ChatCompletionClient, get_ai_client
from formloom_api.ai.generation import generate_form_schema, modify_form_schema
from formloom_api.auth.access import require_workspace_role
from formloom_api.auth.session_auth import SessionAuthContext, get_session_auth_context
from formloom_api.db.models import OrganizationRole
from formloom_api.db.session import get_db
from formloom_api.pricing.enforcement import EnforcementEngine
from formloom_api.schemas import AIGenerateRequest, AIModifyRequest, AIUsageOut

router = APIRouter(prefix="/v1/ai", tags=["ai"])
logger = logging.getLogger(__name__)


@router.post("/forms/generate")
async def generate_form(
    request: AIGenerateRequest,
    auth: SessionAuthContext = Depends(get_session_auth_context),
    db: Session = Depends(get_db),
    client: ChatCompletionClient = Depends(get_ai_client),
) -> dict[str, Any]:
    """Generate a form schema from a prompt.

    Raises:
        HTTPException 400: Prompt is not related to form building
        HTTPException 403: No workspace access, or AI usage limit reached
        HTTPException 500: Provider not configured, provider error, unparsable output
    """
    require_workspace_role(db, auth.user_id, request.workspace_id, OrganizationRole.EDITOR)
    return await generate_form_schema(db, client, auth.user, request.prompt)


@router.post("/forms/modify")
async def modify_form(
    request: AIModifyRequest,
    auth: SessionAuthContext = Depends(get_session_auth_context),
    db: Session = Depends(get_db),
    client: ChatCompletionClient = Depends(get_ai_client),
) -> dict[str, Any]:
    """Apply a natural-language change to a form schema and return the full result."""
    return await modify_form_schema(
        db, client, auth.user, request.current_schema, request.modification_prompt
    )


@router.get("/usage", response_model=AIUsageOut)
async def get_ai_usage(
    auth: SessionAuthContext = Depends(get_session_auth_context),
    db: Session = Depends(get_db),
) -> AIUsageOut:
    """Effective plan, this month's allowance usage and remaining credits."""
    return AIUsageOut(**EnforcementEngine(db).usage_summary(auth.user))

"""
RFC 9457 Problem Details for HTTP APIs
"""

from pydantic import BaseModel, Field, ConfigDict
from typing import List, Optional
from fastapi.responses import JSONResponse

QUOTA_EXCEEDED_TYPE = "https://iana.org/assignments/http-problem-types#quota-exceeded"
QUOTA_EXCEEDED_TITLE = "Request cannot be satisfied as assigned quota has been exceeded"


class ViolatedPolicy(BaseModel):
    """Violated policy details (RFC 9457 extension)"""
    policy: str
    limit: int
    current: int
    window: Optional[str] = None  # e.g. "2026-10" for monthly allowances


class ProblemDetails(BaseModel):
    """
    RFC 9457 Problem Details model

    Standard fields:
    - type: URI reference identifying the problem type
    - title: Short, human-readable summary
    - status: HTTP status code
    - detail: Human-readable explanation
    - instance: URI reference identifying the specific occurrence

    Extension fields:
    - violated_policies: List of violated policies (serialized as "violated-policies")
    """
    type: str
    title: str
    status: int
    detail: Optional[str] = None
    instance: Optional[str] = None
    violated_policies: List[ViolatedPolicy] = Field(
        default_factory=list,
        alias="violated-policies"
    )

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "type": QUOTA_EXCEEDED_TYPE,
                "title": QUOTA_EXCEEDED_TITLE,
                "status": 403,
                "detail": "Monthly AI request limit of 2 reached and no credits remain",
                "violated-policies": [
                    {
                        "policy": "free_monthly_ai_requests",
                        "limit": 2,
                        "current": 2,
                        "window": "2026-10"
                    }
                ]
            }
        }
    )


class QuotaExceededError(Exception):
    """Raised by the AI usage gate; rendered by the global handler in main.py."""

    def __init__(self, problem: ProblemDetails):
        super().__init__(problem.detail)
        self.problem = problem


def create_problem_details_response(
    *,
    type_uri: str,
    title: str,
    status: int,
    detail: Optional[str] = None,
    instance: Optional[str] = None,
    violated_policies: Optional[List[ViolatedPolicy]] = None,
    headers: Optional[dict[str, str]] = None
) -> JSONResponse:
    """
    Create RFC 9457 Problem Details JSON response

    Args:
        type_uri: URI reference identifying the problem type
        title: Short, human-readable summary
        status: HTTP status code
        detail: Human-readable explanation
        instance: URI reference identifying the specific occurrence
        violated_policies: List of violated policies (extension)
        headers: Optional additional headers

    Returns:
        JSONResponse with application/problem+json content type
    """
    problem = ProblemDetails(
        type=type_uri,
        title=title,
        status=status,
        detail=detail,
        instance=instance,
        violated_policies=violated_policies or []
    )

    response_headers = {"Content-Type": "application/problem+json"}
    if headers:
        response_headers.update(headers)

    # Serialize with alias (violated-policies instead of violated_policies)
    content = problem.model_dump(by_alias=True, exclude_none=True)
    if not content.get("violated-policies"):
        content.pop("violated-policies", None)

    return JSONResponse(
        status_code=problem.status,
        content=content,
        headers=response_headers
    )

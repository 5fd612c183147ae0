"""Pydantic schemas for API requests/responses."""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Optional

from fastapi import Path
from pydantic import BaseModel, ConfigDict, Field

UUID_PATTERN = r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
EMAIL_PATTERN = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"

# Path parameter carrying a resource id; malformed ids fail validation (400)
UUIDPath = Annotated[str, Path(pattern=UUID_PATTERN)]


# ============================================================================
# Form schema (embedded JSON document)
# ============================================================================


class FieldType(str, Enum):
    TEXT = "text"
    TEXTAREA = "textarea"
    EMAIL = "email"
    NUMBER = "number"
    SELECT = "select"
    MULTISELECT = "multiselect"
    RADIO = "radio"
    CHECKBOX = "checkbox"
    DATE = "date"
    FILE = "file"


class FieldValidation(BaseModel):
    """Optional per-field validation constraints."""

    model_config = ConfigDict(populate_by_name=True)

    min: Optional[float] = None
    max: Optional[float] = None
    pattern: Optional[str] = None
    min_length: Optional[int] = Field(None, alias="minLength")
    max_length: Optional[int] = Field(None, alias="maxLength")


class FormField(BaseModel):
    """A single typed field of a form."""

    model_config = ConfigDict(extra="allow")

    id: str
    type: FieldType
    label: str
    placeholder: Optional[str] = None
    required: Optional[bool] = None
    image: Optional[str] = None
    options: Optional[list[str]] = Field(None, description="For select, multiselect, radio")
    validation: Optional[FieldValidation] = None


class FormSchema(BaseModel):
    """Form document stored in Form.schema_json."""

    model_config = ConfigDict(extra="allow")

    title: str
    description: Optional[str] = None
    fields: list[FormField]


# ============================================================================
# Forms - Request/Response
# ============================================================================


class FormCreateRequest(BaseModel):
    """Request body for POST /v1/forms."""

    name: str = Field(..., min_length=1, max_length=100, description="Form name")
    workspace_id: str = Field(..., pattern=UUID_PATTERN, description="Owning workspace UUID")
    schema_json: Optional[dict[str, Any]] = Field(
        None, description="Initial form schema (defaults to an empty form)"
    )


class FormUpdateRequest(BaseModel):
    """Request body for PATCH /v1/forms/{form_id}."""

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    schema_json: Optional[dict[str, Any]] = None


class FormStatusValue(str, Enum):
    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"


class FormPublishRequest(BaseModel):
    """Request body for POST /v1/forms/{form_id}/publish."""

    status: FormStatusValue


class FormOut(BaseModel):
    """Full form representation."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    slug: str
    workspace_id: str
    schema_json: dict[str, Any]
    status: str
    published_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class FormSummary(BaseModel):
    """Form list item (GET /v1/workspaces/{workspace_id}/forms)."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    slug: str
    status: str
    created_at: datetime
    updated_at: datetime


class WorkspaceRef(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str


class FormWithWorkspace(FormSummary):
    """Form list item across workspaces (GET /v1/forms)."""

    workspace: WorkspaceRef


class PublicFormOut(BaseModel):
    """Form as served to respondents."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    slug: str
    schema_json: dict[str, Any]
    status: str
    published_at: Optional[datetime] = None


# ============================================================================
# Responses & Analytics
# ============================================================================


class ResponseSubmitRequest(BaseModel):
    """Request body for POST /v1/public/forms/{form_id}/responses."""

    response_json: dict[str, Any] = Field(..., description="Answers keyed by field id")
    metadata: Optional[dict[str, Any]] = Field(None, description="Client metadata")


class SubmissionReceipt(BaseModel):
    """Response for POST /v1/public/forms/{form_id}/responses."""

    id: str
    form_id: str
    created_at: datetime


class FormResponseOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    response_json: dict[str, Any]
    metadata: dict[str, Any] = Field(validation_alias="metadata_json")
    created_at: datetime


class AnalyticsOut(BaseModel):
    views: int = 0
    submissions: int = 0
    completion_rate: float = 0.0


class ViewTrackedOut(BaseModel):
    tracked: bool


# ============================================================================
# AI assist
# ============================================================================


class AIGenerateRequest(BaseModel):
    """Request body for POST /v1/ai/forms/generate."""

    prompt: str = Field(..., min_length=10, max_length=500)
    workspace_id: str = Field(..., pattern=UUID_PATTERN)


class AIModifyRequest(BaseModel):
    """Request body for POST /v1/ai/forms/modify."""

    current_schema: dict[str, Any] = Field(..., description="Schema to modify")
    modification_prompt: str = Field(..., min_length=10, max_length=1000)


class AIUsageOut(BaseModel):
    """Response for GET /v1/ai/usage."""

    plan: str = Field(..., description="Effective plan (free when subscription lapsed)")
    monthly_limit: Optional[int] = Field(..., description="None when unlimited")
    used_this_month: int
    remaining_this_month: Optional[int] = Field(..., description="None when unlimited")
    credits: int
    lifetime_requests: int
    lifetime_cost_usd_micros: int


# ============================================================================
# Workspaces
# ============================================================================


class WorkspaceCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    organization_id: str = Field(..., pattern=UUID_PATTERN)


class WorkspaceUpdateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)


class WorkspaceOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    slug: str
    organization_id: str
    created_at: datetime
    updated_at: datetime


# ============================================================================
# Organizations
# ============================================================================


class OrganizationCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)


class OrganizationUpdateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)


class OrganizationOut(BaseModel):
    """Organization plus the caller's role in it."""

    id: str
    name: str
    slug: str
    role: str


class MemberInviteRequest(BaseModel):
    email: str = Field(..., pattern=EMAIL_PATTERN, description="Invitee email address")
    role: str = Field(default="VIEWER", pattern=r"^(VIEWER|EDITOR|ADMIN|OWNER)$")


class MemberOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    organization_id: str
    role: str
    created_at: datetime


# ============================================================================
# Templates
# ============================================================================


class TemplateOut(BaseModel):
    name: str
    schema_json: dict[str, Any]


# ============================================================================
# RFC 9457 Problem Details
# ============================================================================


class ProblemDetail(BaseModel):
    """RFC 9457 Problem Details for HTTP API errors."""

    type: str = Field(..., description="URI reference identifying the problem type")
    title: str = Field(..., description="Short, human-readable summary")
    status: int = Field(..., description="HTTP status code")
    detail: str | dict[str, Any] = Field(..., description="Human-readable explanation or structured error details")
    instance: Optional[str] = Field(None, description="URI reference identifying the specific occurrence")

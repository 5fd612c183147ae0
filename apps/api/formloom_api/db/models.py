"""SQLAlchemy ORM Models for Formloom."""

import enum
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    BIGINT,
    FLOAT,
    JSON,
    TEXT,
    TIMESTAMP,
    ForeignKey,
    Index,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


class OrganizationRole(str, enum.Enum):
    """Membership roles, lowest to highest privilege."""

    VIEWER = "VIEWER"
    EDITOR = "EDITOR"
    ADMIN = "ADMIN"
    OWNER = "OWNER"


class FormStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class User(Base):
    """Application user, keyed by the Supabase auth.users id.

    Carries the subscription and AI usage counters used by the usage gate.
    """

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(TEXT, primary_key=True)
    email: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True, unique=True)
    username: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)

    # Subscription: free | hobby | pro
    subscription_plan: Mapped[str] = mapped_column(TEXT, nullable=False, default="free")
    # active | past_due | cancel_at_period_end | deleted (None = never subscribed)
    subscription_status: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)

    # AI usage ledger totals (lifetime)
    ai_usage_count: Mapped[int] = mapped_column(BIGINT, nullable=False, default=0)
    ai_usage_cost_usd_micros: Mapped[int] = mapped_column(BIGINT, nullable=False, default=0)
    credits: Mapped[int] = mapped_column(BIGINT, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=_utcnow
    )

    memberships: Mapped[list["OrganizationMember"]] = relationship(
        back_populates="user", cascade="all, delete-orphan"
    )


class Organization(Base):
    """Billing/team boundary that owns workspaces and members."""

    __tablename__ = "organizations"

    id: Mapped[str] = mapped_column(TEXT, primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(TEXT, nullable=False)
    slug: Mapped[str] = mapped_column(TEXT, nullable=False, unique=True)

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    members: Mapped[list["OrganizationMember"]] = relationship(
        back_populates="organization", cascade="all, delete-orphan"
    )
    workspaces: Mapped[list["Workspace"]] = relationship(
        back_populates="organization", cascade="all, delete-orphan"
    )


class OrganizationMember(Base):
    """User-to-organization membership with a role (RBAC)."""

    __tablename__ = "organization_members"

    id: Mapped[str] = mapped_column(TEXT, primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(
        TEXT, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    organization_id: Mapped[str] = mapped_column(
        TEXT, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    # VIEWER | EDITOR | ADMIN | OWNER
    role: Mapped[str] = mapped_column(TEXT, nullable=False, default=OrganizationRole.VIEWER.value)

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=_utcnow
    )

    user: Mapped[User] = relationship(back_populates="memberships")
    organization: Mapped[Organization] = relationship(back_populates="members")

    __table_args__ = (
        UniqueConstraint("user_id", "organization_id", name="uq_org_members_user_org"),
        Index("idx_org_members_user_id", "user_id"),
    )


class Workspace(Base):
    """Container of forms within an organization."""

    __tablename__ = "workspaces"

    id: Mapped[str] = mapped_column(TEXT, primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(TEXT, nullable=False)
    slug: Mapped[str] = mapped_column(TEXT, nullable=False)
    organization_id: Mapped[str] = mapped_column(
        TEXT, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    organization: Mapped[Organization] = relationship(back_populates="workspaces")
    forms: Mapped[list["Form"]] = relationship(
        back_populates="workspace", cascade="all, delete-orphan"
    )

    __table_args__ = (
        UniqueConstraint("organization_id", "slug", name="uq_workspaces_org_slug"),
    )


class Form(Base):
    """Form definition with its embedded JSON schema."""

    __tablename__ = "forms"

    id: Mapped[str] = mapped_column(TEXT, primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(TEXT, nullable=False)
    slug: Mapped[str] = mapped_column(TEXT, nullable=False, unique=True)
    workspace_id: Mapped[str] = mapped_column(
        TEXT, ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False
    )
    schema_json: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    # DRAFT | PUBLISHED
    status: Mapped[str] = mapped_column(TEXT, nullable=False, default=FormStatus.DRAFT.value)
    published_at: Mapped[Optional[datetime]] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    workspace: Mapped[Workspace] = relationship(back_populates="forms")
    responses: Mapped[list["FormResponse"]] = relationship(
        back_populates="form", cascade="all, delete-orphan"
    )
    analytics: Mapped[Optional["FormAnalytics"]] = relationship(
        back_populates="form", cascade="all, delete-orphan", uselist=False
    )

    __table_args__ = (
        UniqueConstraint("workspace_id", "slug", name="uq_forms_workspace_slug"),
        Index("idx_forms_workspace_updated", "workspace_id", "updated_at"),
    )


class FormResponse(Base):
    """A public submission against a published form."""

    __tablename__ = "form_responses"

    id: Mapped[str] = mapped_column(TEXT, primary_key=True, default=_new_id)
    form_id: Mapped[str] = mapped_column(
        TEXT, ForeignKey("forms.id", ondelete="CASCADE"), nullable=False
    )
    response_json: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    # "metadata" is reserved on declarative classes
    metadata_json: Mapped[dict] = mapped_column("metadata", JSON, nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=_utcnow
    )

    form: Mapped[Form] = relationship(back_populates="responses")

    __table_args__ = (Index("idx_form_responses_form_created", "form_id", "created_at"),)


class FormAnalytics(Base):
    """View/submission counters per form (one row per form)."""

    __tablename__ = "form_analytics"

    id: Mapped[str] = mapped_column(TEXT, primary_key=True, default=_new_id)
    form_id: Mapped[str] = mapped_column(
        TEXT, ForeignKey("forms.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    views: Mapped[int] = mapped_column(BIGINT, nullable=False, default=0)
    submissions: Mapped[int] = mapped_column(BIGINT, nullable=False, default=0)
    # submissions / views * 100, recomputed on every submission
    completion_rate: Mapped[float] = mapped_column(FLOAT, nullable=False, default=0.0)

    form: Mapped[Form] = relationship(back_populates="analytics")


class AIUsageEvent(Base):
    """Immutable AI request ledger entry.

    One row per charged AI request. The usage gate counts plan-charged rows
    in the current calendar month.
    """

    __tablename__ = "ai_usage_events"

    id: Mapped[str] = mapped_column(TEXT, primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(
        TEXT, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    # generate | modify
    operation: Mapped[str] = mapped_column(TEXT, nullable=False)
    # plan | credits
    charged_from: Mapped[str] = mapped_column(TEXT, nullable=False)
    plan_key: Mapped[str] = mapped_column(TEXT, nullable=False)

    prompt_tokens: Mapped[Optional[int]] = mapped_column(BIGINT, nullable=True)
    completion_tokens: Mapped[Optional[int]] = mapped_column(BIGINT, nullable=True)
    cost_usd_micros: Mapped[int] = mapped_column(BIGINT, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=_utcnow
    )

    __table_args__ = (
        Index("idx_ai_usage_events_user_created", "user_id", "created_at"),
    )

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


# JSONB on Postgres, plain JSON elsewhere so the schema also builds on sqlite.
JsonColumn = JSON().with_variant(JSONB(), "postgresql")


def _new_id() -> str:
    return uuid4().hex


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_new_id)
    email: Mapped[str] = mapped_column(String, unique=True, index=True)
    # bcrypt hash; plaintext passwords are never stored.
    password_hash: Mapped[str] = mapped_column(String)
    # ADMIN manages businesses; CLIENT only reaches portals.
    role: Mapped[str] = mapped_column(String, default="CLIENT")
    name: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now, server_default=func.now()
    )


class Business(Base):
    __tablename__ = "businesses"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String)
    # Capability token redeemed by clients to bootstrap portal access.
    code: Mapped[str] = mapped_column(String, unique=True, index=True)
    industry: Mapped[str | None] = mapped_column(String, nullable=True)
    website: Mapped[str | None] = mapped_column(String, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Free-form per-provider extras (e.g. leadsieUrl, GA property ids).
    connections: Mapped[dict[str, Any] | None] = mapped_column(JsonColumn, nullable=True)
    # Publish flags are the single source of truth for client visibility.
    is_scorecard_published: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_opportunities_published: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_assessments_published: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    admin_id: Mapped[str] = mapped_column(String, ForeignKey("users.id"), index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now, onupdate=_utc_now, server_default=func.now()
    )


class BusinessMember(Base):
    __tablename__ = "business_members"
    __table_args__ = (
        UniqueConstraint("business_id", "user_id", name="uq_business_members_business_user"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_new_id)
    business_id: Mapped[str] = mapped_column(String, ForeignKey("businesses.id", ondelete="CASCADE"), index=True)
    user_id: Mapped[str] = mapped_column(String, ForeignKey("users.id", ondelete="CASCADE"), index=True)
    granted_by: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now, server_default=func.now()
    )


class Assessment(Base):
    __tablename__ = "assessments"
    __table_args__ = (
        UniqueConstraint("business_id", "name", name="uq_assessments_business_name"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_new_id)
    business_id: Mapped[str] = mapped_column(String, ForeignKey("businesses.id", ondelete="CASCADE"), index=True)
    name: Mapped[str] = mapped_column(String)
    score: Mapped[float] = mapped_column(Float, default=0.0)
    # Holds JSON-encoded {notes, scores} for questionnaire-backed assessments.
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_published: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now, onupdate=_utc_now, server_default=func.now()
    )


class Opportunity(Base):
    __tablename__ = "opportunities"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_new_id)
    business_id: Mapped[str] = mapped_column(String, ForeignKey("businesses.id", ondelete="CASCADE"), index=True)
    title: Mapped[str] = mapped_column(String)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(String)
    status: Mapped[str] = mapped_column(String, default="OPEN")
    is_published: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    # Planning horizon in months; replaces the legacy [SPAN:n] description marker.
    timeline_span: Mapped[int | None] = mapped_column(Integer, nullable=True)
    # Only populated on legacy scorecard-by-title rows awaiting migration.
    highlights: Mapped[Any | None] = mapped_column(JsonColumn, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now, onupdate=_utc_now, server_default=func.now()
    )


class Scorecard(Base):
    __tablename__ = "scorecards"
    __table_args__ = (
        UniqueConstraint("business_id", "category", name="uq_scorecards_business_category"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_new_id)
    business_id: Mapped[str] = mapped_column(String, ForeignKey("businesses.id", ondelete="CASCADE"), index=True)
    category: Mapped[str] = mapped_column(String)
    score: Mapped[float] = mapped_column(Float, default=0.0)
    max_score: Mapped[float] = mapped_column(Float, default=100.0)
    is_published: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    # Bumped by every highlight mutation; serializes concurrent writers on the row.
    version: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    metric_signals: Mapped[list[dict[str, Any]] | None] = mapped_column(JsonColumn, nullable=True)
    last_audited_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now, onupdate=_utc_now, server_default=func.now()
    )


class ScorecardHighlight(Base):
    __tablename__ = "scorecard_highlights"

    # "{epoch_ms}-{suffix}" ids keep compatibility with existing client payloads.
    id: Mapped[str] = mapped_column(String, primary_key=True)
    scorecard_id: Mapped[str] = mapped_column(
        String, ForeignKey("scorecards.id", ondelete="CASCADE"), index=True
    )
    text: Mapped[str] = mapped_column(Text)
    service_area: Mapped[str | None] = mapped_column(String, nullable=True)
    related_metric_id: Mapped[str | None] = mapped_column(String, nullable=True)
    ai_generated: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    # Preserves client-visible ordering independent of id format.
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now, server_default=func.now()
    )


class Metric(Base):
    __tablename__ = "metrics"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_new_id)
    business_id: Mapped[str] = mapped_column(String, ForeignKey("businesses.id", ondelete="CASCADE"), index=True)
    name: Mapped[str] = mapped_column(String)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    # TEXT | NUMBER | BOOLEAN | SELECT; values stay string-encoded.
    type: Mapped[str] = mapped_column(String, default="TEXT")
    value: Mapped[str | None] = mapped_column(String, nullable=True)
    target: Mapped[str | None] = mapped_column(String, nullable=True)
    benchmark: Mapped[str | None] = mapped_column(String, nullable=True)
    is_client_requested: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now, server_default=func.now()
    )


class Goal(Base):
    __tablename__ = "goals"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_new_id)
    business_id: Mapped[str] = mapped_column(String, ForeignKey("businesses.id", ondelete="CASCADE"), index=True)
    name: Mapped[str] = mapped_column(String)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    # NOT_STARTED | IN_PROGRESS | COMPLETED
    status: Mapped[str] = mapped_column(String, default="IN_PROGRESS")
    target_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now, server_default=func.now()
    )


class Kpi(Base):
    __tablename__ = "kpis"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_new_id)
    business_id: Mapped[str] = mapped_column(String, ForeignKey("businesses.id", ondelete="CASCADE"), index=True)
    name: Mapped[str] = mapped_column(String)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    target: Mapped[str | None] = mapped_column(String, nullable=True)
    current: Mapped[str | None] = mapped_column(String, nullable=True)
    unit: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now, server_default=func.now()
    )


class Tool(Base):
    __tablename__ = "tools"
    __table_args__ = (
        UniqueConstraint("business_id", "name", name="uq_tools_business_name"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_new_id)
    business_id: Mapped[str] = mapped_column(String, ForeignKey("businesses.id", ondelete="CASCADE"), index=True)
    name: Mapped[str] = mapped_column(String)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    # PENDING | GRANTED | DENIED | REQUESTED
    status: Mapped[str] = mapped_column(String, default="PENDING")
    is_requested: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now, server_default=func.now()
    )


class ToolConnection(Base):
    __tablename__ = "tool_connections"
    __table_args__ = (
        UniqueConstraint("user_id", "tool_name", name="uq_tool_connections_user_tool"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String, ForeignKey("users.id", ondelete="CASCADE"), index=True)
    tool_name: Mapped[str] = mapped_column(String)
    access_token: Mapped[str | None] = mapped_column(Text, nullable=True)
    refresh_token: Mapped[str | None] = mapped_column(Text, nullable=True)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now, onupdate=_utc_now, server_default=func.now()
    )


class ToolConfiguration(Base):
    __tablename__ = "tool_configurations"
    __table_args__ = (
        UniqueConstraint("user_id", "tool_name", name="uq_tool_configurations_user_tool"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String, ForeignKey("users.id", ondelete="CASCADE"), index=True)
    tool_name: Mapped[str] = mapped_column(String)
    config: Mapped[dict[str, Any]] = mapped_column(JsonColumn, default=dict)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now, onupdate=_utc_now, server_default=func.now()
    )


class ClientPortal(Base):
    __tablename__ = "client_portals"
    __table_args__ = (
        UniqueConstraint("business_id", "client_id", name="uq_client_portals_business_client"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_new_id)
    business_id: Mapped[str] = mapped_column(String, ForeignKey("businesses.id", ondelete="CASCADE"), index=True)
    client_id: Mapped[str] = mapped_column(String, ForeignKey("users.id", ondelete="CASCADE"), index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now, server_default=func.now()
    )


class IntakeQuestion(Base):
    __tablename__ = "intake_questions"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_new_id)
    business_id: Mapped[str] = mapped_column(String, ForeignKey("businesses.id", ondelete="CASCADE"), index=True)
    question: Mapped[str] = mapped_column(Text)
    type: Mapped[str] = mapped_column(String, default="TEXT")
    options: Mapped[list[str] | None] = mapped_column(JsonColumn, nullable=True)
    order: Mapped[int] = mapped_column(Integer, default=0)
    area: Mapped[str | None] = mapped_column(String, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now, server_default=func.now()
    )


class IntakeAnswer(Base):
    __tablename__ = "intake_answers"
    __table_args__ = (
        UniqueConstraint("question_id", "client_portal_id", name="uq_intake_answers_question_portal"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_new_id)
    question_id: Mapped[str] = mapped_column(
        String, ForeignKey("intake_questions.id", ondelete="CASCADE"), index=True
    )
    client_portal_id: Mapped[str] = mapped_column(
        String, ForeignKey("client_portals.id", ondelete="CASCADE"), index=True
    )
    answer: Mapped[str] = mapped_column(Text)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now, onupdate=_utc_now, server_default=func.now()
    )


class Report(Base):
    __tablename__ = "reports"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_new_id)
    business_id: Mapped[str] = mapped_column(String, ForeignKey("businesses.id", ondelete="CASCADE"), index=True)
    audit_type_id: Mapped[str] = mapped_column(String)
    title: Mapped[str] = mapped_column(String)
    bucket: Mapped[str] = mapped_column(String, index=True)
    score: Mapped[float] = mapped_column(Float, default=0.0)
    summary: Mapped[str] = mapped_column(Text, default="")
    metrics: Mapped[list[Any]] = mapped_column(JsonColumn, default=list)
    findings: Mapped[list[Any]] = mapped_column(JsonColumn, default=list)
    recommendations: Mapped[list[Any]] = mapped_column(JsonColumn, default=list)
    status: Mapped[str] = mapped_column(String, default="draft")
    created_by_id: Mapped[str | None] = mapped_column(String, nullable=True)
    import_source: Mapped[str] = mapped_column(String, default="manual")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now, server_default=func.now()
    )


class AuditEvent(Base):
    __tablename__ = "audit_events"

    # Use a monotonic numeric id for efficient pagination and ordering.
    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer(), "sqlite"), primary_key=True, autoincrement=True
    )
    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
    actor_type: Mapped[str] = mapped_column(String)
    actor_id: Mapped[str | None] = mapped_column(String, nullable=True)
    actor_role: Mapped[str | None] = mapped_column(String, nullable=True)
    event_type: Mapped[str] = mapped_column(String, index=True)
    outcome: Mapped[str] = mapped_column(String)
    resource_type: Mapped[str | None] = mapped_column(String, nullable=True)
    resource_id: Mapped[str | None] = mapped_column(String, nullable=True)
    request_id: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
    ip_address: Mapped[str | None] = mapped_column(String, nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String, nullable=True)
    # Metadata is sanitized before it reaches this column.
    metadata_json: Mapped[dict[str, Any] | None] = mapped_column(JsonColumn, default=dict)
    error_code: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now, server_default=func.now()
    )

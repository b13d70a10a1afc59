"""init

Revision ID: 0001_init
Revises:
Create Date: 2026-10-16 09:00:00.000000
"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None


def _now() -> sa.sql.elements.ColumnElement:
    return sa.func.now()


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("password_hash", sa.String(), nullable=False),
        sa.Column("role", sa.String(), nullable=False, server_default="CLIENT"),
        sa.Column("name", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=_now()),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "businesses",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("code", sa.String(), nullable=False),
        sa.Column("industry", sa.String(), nullable=True),
        sa.Column("website", sa.String(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("connections", postgresql.JSONB(), nullable=True),
        sa.Column("is_scorecard_published", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_opportunities_published", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_assessments_published", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("admin_id", sa.String(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=_now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=_now()),
    )
    op.create_index("ix_businesses_code", "businesses", ["code"], unique=True)
    op.create_index("ix_businesses_admin_id", "businesses", ["admin_id"])

    op.create_table(
        "business_members",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("business_id", sa.String(), sa.ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.String(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("granted_by", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=_now()),
        sa.UniqueConstraint("business_id", "user_id", name="uq_business_members_business_user"),
    )
    op.create_index("ix_business_members_business_id", "business_members", ["business_id"])
    op.create_index("ix_business_members_user_id", "business_members", ["user_id"])

    op.create_table(
        "assessments",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("business_id", sa.String(), sa.ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("score", sa.Float(), nullable=False, server_default="0"),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_published", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=_now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=_now()),
        sa.UniqueConstraint("business_id", "name", name="uq_assessments_business_name"),
    )
    op.create_index("ix_assessments_business_id", "assessments", ["business_id"])

    op.create_table(
        "opportunities",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("business_id", sa.String(), sa.ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("category", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="OPEN"),
        sa.Column("is_published", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("timeline_span", sa.Integer(), nullable=True),
        # Legacy highlights blob, read only by the scorecard migration script.
        sa.Column("highlights", postgresql.JSONB(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=_now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=_now()),
    )
    op.create_index("ix_opportunities_business_id", "opportunities", ["business_id"])

    op.create_table(
        "scorecards",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("business_id", sa.String(), sa.ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("category", sa.String(), nullable=False),
        sa.Column("score", sa.Float(), nullable=False, server_default="0"),
        sa.Column("max_score", sa.Float(), nullable=False, server_default="100"),
        sa.Column("is_published", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("version", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("metric_signals", postgresql.JSONB(), nullable=True),
        sa.Column("last_audited_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=_now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=_now()),
        sa.UniqueConstraint("business_id", "category", name="uq_scorecards_business_category"),
    )
    op.create_index("ix_scorecards_business_id", "scorecards", ["business_id"])

    op.create_table(
        "scorecard_highlights",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("scorecard_id", sa.String(), sa.ForeignKey("scorecards.id", ondelete="CASCADE"), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("service_area", sa.String(), nullable=True),
        sa.Column("related_metric_id", sa.String(), nullable=True),
        sa.Column("ai_generated", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=_now()),
    )
    op.create_index("ix_scorecard_highlights_scorecard_id", "scorecard_highlights", ["scorecard_id"])

    op.create_table(
        "metrics",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("business_id", sa.String(), sa.ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("type", sa.String(), nullable=False, server_default="TEXT"),
        sa.Column("value", sa.String(), nullable=True),
        sa.Column("target", sa.String(), nullable=True),
        sa.Column("benchmark", sa.String(), nullable=True),
        sa.Column("is_client_requested", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=_now()),
    )
    op.create_index("ix_metrics_business_id", "metrics", ["business_id"])

    op.create_table(
        "goals",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("business_id", sa.String(), sa.ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", sa.String(), nullable=False, server_default="IN_PROGRESS"),
        sa.Column("target_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=_now()),
    )
    op.create_index("ix_goals_business_id", "goals", ["business_id"])

    op.create_table(
        "kpis",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("business_id", sa.String(), sa.ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("target", sa.String(), nullable=True),
        sa.Column("current", sa.String(), nullable=True),
        sa.Column("unit", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=_now()),
    )
    op.create_index("ix_kpis_business_id", "kpis", ["business_id"])

    op.create_table(
        "tools",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("business_id", sa.String(), sa.ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", sa.String(), nullable=False, server_default="PENDING"),
        sa.Column("is_requested", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=_now()),
        sa.UniqueConstraint("business_id", "name", name="uq_tools_business_name"),
    )
    op.create_index("ix_tools_business_id", "tools", ["business_id"])

    op.create_table(
        "tool_connections",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("user_id", sa.String(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("tool_name", sa.String(), nullable=False),
        sa.Column("access_token", sa.Text(), nullable=True),
        sa.Column("refresh_token", sa.Text(), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=_now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=_now()),
        sa.UniqueConstraint("user_id", "tool_name", name="uq_tool_connections_user_tool"),
    )
    op.create_index("ix_tool_connections_user_id", "tool_connections", ["user_id"])

    op.create_table(
        "tool_configurations",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("user_id", sa.String(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("tool_name", sa.String(), nullable=False),
        sa.Column("config", postgresql.JSONB(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=_now()),
        sa.UniqueConstraint("user_id", "tool_name", name="uq_tool_configurations_user_tool"),
    )
    op.create_index("ix_tool_configurations_user_id", "tool_configurations", ["user_id"])

    op.create_table(
        "client_portals",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("business_id", sa.String(), sa.ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("client_id", sa.String(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=_now()),
        sa.UniqueConstraint("business_id", "client_id", name="uq_client_portals_business_client"),
    )
    op.create_index("ix_client_portals_business_id", "client_portals", ["business_id"])
    op.create_index("ix_client_portals_client_id", "client_portals", ["client_id"])

    op.create_table(
        "intake_questions",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("business_id", sa.String(), sa.ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("question", sa.Text(), nullable=False),
        sa.Column("type", sa.String(), nullable=False, server_default="TEXT"),
        sa.Column("options", postgresql.JSONB(), nullable=True),
        sa.Column("order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("area", sa.String(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=_now()),
    )
    op.create_index("ix_intake_questions_business_id", "intake_questions", ["business_id"])

    op.create_table(
        "intake_answers",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column(
            "question_id", sa.String(), sa.ForeignKey("intake_questions.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column(
            "client_portal_id", sa.String(), sa.ForeignKey("client_portals.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("answer", sa.Text(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=_now()),
        sa.UniqueConstraint("question_id", "client_portal_id", name="uq_intake_answers_question_portal"),
    )
    op.create_index("ix_intake_answers_question_id", "intake_answers", ["question_id"])
    op.create_index("ix_intake_answers_client_portal_id", "intake_answers", ["client_portal_id"])

    op.create_table(
        "reports",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("business_id", sa.String(), sa.ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("audit_type_id", sa.String(), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("bucket", sa.String(), nullable=False),
        sa.Column("score", sa.Float(), nullable=False, server_default="0"),
        sa.Column("summary", sa.Text(), nullable=False, server_default=""),
        sa.Column("metrics", postgresql.JSONB(), nullable=False),
        sa.Column("findings", postgresql.JSONB(), nullable=False),
        sa.Column("recommendations", postgresql.JSONB(), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="draft"),
        sa.Column("created_by_id", sa.String(), nullable=True),
        sa.Column("import_source", sa.String(), nullable=False, server_default="manual"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=_now()),
    )
    op.create_index("ix_reports_business_id", "reports", ["business_id"])
    op.create_index("ix_reports_bucket", "reports", ["bucket"])

    # Persist structured audit events for auth and data mutation traceability.
    op.create_table(
        "audit_events",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("actor_type", sa.String(), nullable=False),
        sa.Column("actor_id", sa.String(), nullable=True),
        sa.Column("actor_role", sa.String(), nullable=True),
        sa.Column("event_type", sa.String(), nullable=False),
        sa.Column("outcome", sa.String(), nullable=False),
        sa.Column("resource_type", sa.String(), nullable=True),
        sa.Column("resource_id", sa.String(), nullable=True),
        sa.Column("request_id", sa.String(), nullable=True),
        sa.Column("ip_address", sa.String(), nullable=True),
        sa.Column("user_agent", sa.String(), nullable=True),
        sa.Column("metadata_json", postgresql.JSONB(), nullable=True),
        sa.Column("error_code", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=_now()),
    )
    op.create_index("ix_audit_events_occurred_at", "audit_events", ["occurred_at"], unique=False)
    op.create_index("ix_audit_events_event_type", "audit_events", ["event_type"], unique=False)
    op.create_index("ix_audit_events_request_id", "audit_events", ["request_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_audit_events_request_id", table_name="audit_events")
    op.drop_index("ix_audit_events_event_type", table_name="audit_events")
    op.drop_index("ix_audit_events_occurred_at", table_name="audit_events")
    op.drop_table("audit_events")
    op.drop_index("ix_reports_bucket", table_name="reports")
    op.drop_index("ix_reports_business_id", table_name="reports")
    op.drop_table("reports")
    op.drop_index("ix_intake_answers_client_portal_id", table_name="intake_answers")
    op.drop_index("ix_intake_answers_question_id", table_name="intake_answers")
    op.drop_table("intake_answers")
    op.drop_index("ix_intake_questions_business_id", table_name="intake_questions")
    op.drop_table("intake_questions")
    op.drop_index("ix_client_portals_client_id", table_name="client_portals")
    op.drop_index("ix_client_portals_business_id", table_name="client_portals")
    op.drop_table("client_portals")
    op.drop_index("ix_tool_configurations_user_id", table_name="tool_configurations")
    op.drop_table("tool_configurations")
    op.drop_index("ix_tool_connections_user_id", table_name="tool_connections")
    op.drop_table("tool_connections")
    op.drop_index("ix_tools_business_id", table_name="tools")
    op.drop_table("tools")
    op.drop_index("ix_kpis_business_id", table_name="kpis")
    op.drop_table("kpis")
    op.drop_index("ix_goals_business_id", table_name="goals")
    op.drop_table("goals")
    op.drop_index("ix_metrics_business_id", table_name="metrics")
    op.drop_table("metrics")
    op.drop_index("ix_scorecard_highlights_scorecard_id", table_name="scorecard_highlights")
    op.drop_table("scorecard_highlights")
    op.drop_index("ix_scorecards_business_id", table_name="scorecards")
    op.drop_table("scorecards")
    op.drop_index("ix_opportunities_business_id", table_name="opportunities")
    op.drop_table("opportunities")
    op.drop_index("ix_assessments_business_id", table_name="assessments")
    op.drop_table("assessments")
    op.drop_index("ix_business_members_user_id", table_name="business_members")
    op.drop_index("ix_business_members_business_id", table_name="business_members")
    op.drop_table("business_members")
    op.drop_index("ix_businesses_admin_id", table_name="businesses")
    op.drop_index("ix_businesses_code", table_name="businesses")
    op.drop_table("businesses")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")

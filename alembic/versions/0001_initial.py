"""initial schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    bind = op.get_bind()

    application_status = sa.Enum(
        "draft",
        "submitted",
        "under_review",
        "approved",
        "rejected",
        "issued",
        name="applicationstatus",
    )
    project_status = sa.Enum("draft", "active", "on_hold", "completed", "cancelled", name="projectstatus")
    outbox_kind = sa.Enum("notification", "deadline", name="outboxkind")
    outbox_status = sa.Enum("pending", "delivered", "failed", name="outboxstatus")
    notification_type = sa.Enum("info", "warning", "error", "success", "reminder", name="notificationtype")

    application_status.create(bind, checkfirst=True)
    project_status.create(bind, checkfirst=True)
    outbox_kind.create(bind, checkfirst=True)
    outbox_status.create(bind, checkfirst=True)
    notification_type.create(bind, checkfirst=True)

    op.create_table(
        "projects",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("status", project_status, nullable=False, server_default="draft"),
        sa.Column("tenant_id", sa.String(length=64), nullable=True),
        sa.Column("owner_id", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_projects_tenant_id", "projects", ["tenant_id"])

    op.create_table(
        "methodologies",
        sa.Column("id", sa.String(length=255), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("version", sa.String(length=32), nullable=False, server_default="1.0"),
        sa.Column("max_units", sa.Numeric(15, 2), nullable=False),
        sa.Column("required_documents_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("review_period_days", sa.Integer(), nullable=False, server_default="90"),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
    )

    op.create_table(
        "applications",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("project_id", sa.String(length=36), sa.ForeignKey("projects.id"), nullable=False),
        sa.Column("tenant_id", sa.String(length=64), nullable=True),
        sa.Column("status", application_status, nullable=False, server_default="draft"),
        sa.Column("units", sa.Numeric(15, 2), nullable=False),
        sa.Column("methodology_id", sa.String(length=255), nullable=False),
        sa.Column("ser_reference", sa.String(length=100), nullable=True),
        sa.Column("payload_json", sa.JSON(), nullable=False, server_default=sa.text("'{}'")),
        sa.Column("metadata_json", sa.JSON(), nullable=False, server_default=sa.text("'{}'")),
        sa.Column("submission_date", sa.DateTime(), nullable=True),
        sa.Column("approval_date", sa.DateTime(), nullable=True),
        sa.Column("issued_date", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("units >= 0", name="ck_application_units_non_negative"),
    )
    op.create_index("ix_applications_project_id", "applications", ["project_id"])
    op.create_index("ix_applications_status", "applications", ["status"])
    op.create_index("ix_applications_methodology_id", "applications", ["methodology_id"])
    op.create_index("ix_applications_tenant_status", "applications", ["tenant_id", "status"])
    op.create_index(
        "uq_applications_project_draft",
        "applications",
        ["project_id"],
        unique=True,
        sqlite_where=sa.text("status = 'draft'"),
        postgresql_where=sa.text("status = 'draft'"),
    )

    op.create_table(
        "project_documents",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("project_id", sa.String(length=36), sa.ForeignKey("projects.id"), nullable=True),
        sa.Column("application_id", sa.String(length=36), sa.ForeignKey("applications.id"), nullable=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("category", sa.String(length=64), nullable=True),
        sa.Column("role", sa.String(length=64), nullable=True),
        sa.Column("requirement_level", sa.String(length=16), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_project_documents_project_id", "project_documents", ["project_id"])
    op.create_index("ix_project_documents_application_id", "project_documents", ["application_id"])

    op.create_table(
        "application_status_history",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("application_id", sa.String(length=36), sa.ForeignKey("applications.id"), nullable=False),
        sa.Column("from_status", application_status, nullable=True),
        sa.Column("to_status", application_status, nullable=False),
        sa.Column("reason", sa.Text(), nullable=False, server_default=""),
        sa.Column("notes", sa.Text(), nullable=False, server_default=""),
        sa.Column("actor", sa.String(length=128), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index(
        "ix_status_history_app_created",
        "application_status_history",
        ["application_id", "created_at"],
    )
    if bind.dialect.name == "postgresql":
        # Ledger rows are insert-only for every client, not just the ORM.
        op.execute(
            """
            CREATE OR REPLACE FUNCTION forbid_status_history_mutation() RETURNS trigger AS $$
            BEGIN
                RAISE EXCEPTION 'application_status_history is append-only';
            END;
            $$ LANGUAGE plpgsql
            """
        )
        op.execute(
            """
            CREATE TRIGGER trg_status_history_immutable
            BEFORE UPDATE OR DELETE ON application_status_history
            FOR EACH ROW EXECUTE FUNCTION forbid_status_history_mutation()
            """
        )

    op.create_table(
        "deadlines",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("project_id", sa.String(length=36), sa.ForeignKey("projects.id"), nullable=False),
        sa.Column("application_id", sa.String(length=36), sa.ForeignKey("applications.id"), nullable=True),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("priority", sa.String(length=16), nullable=False, server_default="high"),
        sa.Column("due_at", sa.DateTime(), nullable=False),
        sa.Column("source_event_id", sa.String(length=36), nullable=True, unique=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_deadlines_project_due", "deadlines", ["project_id", "due_at"])

    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("type", notification_type, nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=True),
        sa.Column("tenant_id", sa.String(length=64), nullable=True),
        sa.Column("project_id", sa.String(length=36), nullable=True),
        sa.Column("application_id", sa.String(length=36), nullable=True),
        sa.Column("metadata_json", sa.JSON(), nullable=False, server_default=sa.text("'{}'")),
        sa.Column("source_event_id", sa.String(length=36), nullable=True, unique=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_notifications_application", "notifications", ["application_id"])

    op.create_table(
        "outbox_events",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("kind", outbox_kind, nullable=False),
        sa.Column("name", sa.String(length=64), nullable=False),
        sa.Column("application_id", sa.String(length=36), nullable=True),
        sa.Column("tenant_id", sa.String(length=64), nullable=True),
        sa.Column("payload_json", sa.JSON(), nullable=False, server_default=sa.text("'{}'")),
        sa.Column("status", outbox_status, nullable=False, server_default="pending"),
        sa.Column("attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_error", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("delivered_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_outbox_status_created", "outbox_events", ["status", "created_at"])

    op.create_table(
        "idempotency_keys",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("key", sa.String(length=255), nullable=False),
        sa.Column("endpoint", sa.String(length=255), nullable=False),
        sa.Column("request_hash", sa.String(length=64), nullable=False),
        sa.Column("response_json", sa.JSON(), nullable=False, server_default=sa.text("'{}'")),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("key", "endpoint", name="uq_idempotency_key_endpoint"),
    )
    op.create_index("ix_idempotency_created_at", "idempotency_keys", ["created_at"])

    op.create_table(
        "job_dead_letters",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("task_name", sa.String(length=255), nullable=False),
        sa.Column("payload_json", sa.JSON(), nullable=False, server_default=sa.text("'{}'")),
        sa.Column("outbox_event_id", sa.String(length=36), sa.ForeignKey("outbox_events.id"), nullable=True),
        sa.Column("retry_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("error", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )


def downgrade() -> None:
    bind = op.get_bind()
    op.drop_table("job_dead_letters")
    op.drop_index("ix_idempotency_created_at", table_name="idempotency_keys")
    op.drop_table("idempotency_keys")
    op.drop_index("ix_outbox_status_created", table_name="outbox_events")
    op.drop_table("outbox_events")
    op.drop_index("ix_notifications_application", table_name="notifications")
    op.drop_table("notifications")
    op.drop_index("ix_deadlines_project_due", table_name="deadlines")
    op.drop_table("deadlines")
    if bind.dialect.name == "postgresql":
        op.execute("DROP TRIGGER IF EXISTS trg_status_history_immutable ON application_status_history")
        op.execute("DROP FUNCTION IF EXISTS forbid_status_history_mutation()")
    op.drop_index("ix_status_history_app_created", table_name="application_status_history")
    op.drop_table("application_status_history")
    op.drop_index("ix_project_documents_application_id", table_name="project_documents")
    op.drop_index("ix_project_documents_project_id", table_name="project_documents")
    op.drop_table("project_documents")
    op.drop_index("uq_applications_project_draft", table_name="applications")
    op.drop_index("ix_applications_tenant_status", table_name="applications")
    op.drop_index("ix_applications_methodology_id", table_name="applications")
    op.drop_index("ix_applications_status", table_name="applications")
    op.drop_index("ix_applications_project_id", table_name="applications")
    op.drop_table("applications")
    op.drop_table("methodologies")
    op.drop_index("ix_projects_tenant_id", table_name="projects")
    op.drop_table("projects")

    sa.Enum(name="notificationtype").drop(bind, checkfirst=True)
    sa.Enum(name="outboxstatus").drop(bind, checkfirst=True)
    sa.Enum(name="outboxkind").drop(bind, checkfirst=True)
    sa.Enum(name="projectstatus").drop(bind, checkfirst=True)
    sa.Enum(name="applicationstatus").drop(bind, checkfirst=True)

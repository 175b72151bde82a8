"""initial validation schema

Revision ID: 0001
Revises:
Create Date: 2026-03-01 12:00:00
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSONType = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def _timestamps(*, updated: bool = False) -> list[sa.Column]:
    columns = [sa.Column("created_at", sa.DateTime(timezone=True), nullable=False)]
    if updated:
        columns.append(sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False))
    return columns


def upgrade() -> None:
    op.create_table(
        "organizations",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("settings", JSONType),
        *_timestamps(),
    )

    op.create_table(
        "employees",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("organization_id", sa.Uuid(), sa.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False),
        sa.Column("full_name", sa.String(255)),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("date_of_birth", sa.Date()),
        *_timestamps(),
    )
    op.create_index("ix_employees_organization_id", "employees", ["organization_id"])
    op.create_index("ix_employees_email", "employees", ["email"])

    op.create_table(
        "storage_configs",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("organization_id", sa.Uuid(), sa.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False),
        sa.Column("provider", sa.String(50), nullable=False),
        sa.Column("config", JSONType),
        *_timestamps(updated=True),
    )
    op.create_index("ix_storage_configs_organization_id", "storage_configs", ["organization_id"])

    op.create_table(
        "document_requests",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("organization_id", sa.Uuid(), sa.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False),
        sa.Column("request_type", sa.String(255)),
        sa.Column("subject", sa.String(500)),
        *_timestamps(),
    )
    op.create_index("ix_document_requests_organization_id", "document_requests", ["organization_id"])

    op.create_table(
        "documents",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("organization_id", sa.Uuid(), sa.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False),
        sa.Column("storage_config_id", sa.Uuid(), sa.ForeignKey("storage_configs.id", ondelete="SET NULL")),
        sa.Column("document_request_id", sa.Uuid(), sa.ForeignKey("document_requests.id", ondelete="SET NULL")),
        sa.Column("storage_path", sa.String(1000), nullable=False),
        sa.Column("original_filename", sa.String(500), nullable=False),
        sa.Column("mime_type", sa.String(100)),
        sa.Column("sender_email", sa.String(320)),
        sa.Column("content_hash", sa.String(64)),
        sa.Column("status", sa.String(50), nullable=False, server_default="received"),
        sa.Column("validation_status", sa.String(50), nullable=False, server_default="pending"),
        sa.Column("validation_metadata", JSONType),
        *_timestamps(updated=True),
    )
    op.create_index("ix_documents_organization_id", "documents", ["organization_id"])
    op.create_index("ix_documents_org_content_hash", "documents", ["organization_id", "content_hash"])

    op.create_table(
        "document_validations",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("document_id", sa.Uuid(), sa.ForeignKey("documents.id", ondelete="CASCADE"), nullable=False, unique=True),
        sa.Column("document_type", sa.String(100)),
        sa.Column("document_type_confidence", sa.Float()),
        sa.Column("issuing_country", sa.String(100)),
        sa.Column("document_number", sa.String(255)),
        sa.Column("matched_employee_id", sa.Uuid(), sa.ForeignKey("employees.id", ondelete="SET NULL")),
        sa.Column("name_match_score", sa.Float()),
        sa.Column("dob_match", sa.Boolean()),
        sa.Column("owner_match_confidence", sa.Float()),
        sa.Column("expiry_date", sa.Date()),
        sa.Column("issue_date", sa.Date()),
        sa.Column("expiry_status", sa.String(50)),
        sa.Column("days_until_expiry", sa.Integer()),
        sa.Column("authenticity_score", sa.Float()),
        sa.Column("image_quality_score", sa.Float()),
        sa.Column("is_duplicate", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("duplicate_of_document_id", sa.Uuid(), sa.ForeignKey("documents.id", ondelete="SET NULL")),
        sa.Column("matches_request_type", sa.Boolean()),
        sa.Column("request_compliance_score", sa.Float()),
        sa.Column("overall_status", sa.String(50), nullable=False),
        sa.Column("can_auto_approve", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("requires_admin_review", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("review_priority", sa.String(20), nullable=False),
        sa.Column("metadata", JSONType),
        sa.Column("validated_at", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "validation_jobs",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("document_id", sa.Uuid(), sa.ForeignKey("documents.id", ondelete="CASCADE"), nullable=False),
        sa.Column("status", sa.String(50), nullable=False, server_default="pending"),
        sa.Column("attempt", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("max_attempts", sa.Integer(), nullable=False, server_default="5"),
        sa.Column("next_run_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True)),
        sa.Column("completed_at", sa.DateTime(timezone=True)),
        sa.Column("error_message", sa.Text()),
        sa.Column("error_details", JSONType),
        *_timestamps(updated=True),
    )
    op.create_index("ix_validation_jobs_document_id", "validation_jobs", ["document_id"])
    op.create_index("ix_validation_jobs_status_next_run", "validation_jobs", ["status", "next_run_at"])
    op.create_index(
        "uq_validation_jobs_active_document",
        "validation_jobs",
        ["document_id"],
        unique=True,
        postgresql_where=sa.text("status IN ('pending', 'processing')"),
        sqlite_where=sa.text("status IN ('pending', 'processing')"),
    )

    op.create_table(
        "validation_dead_letters",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("job_id", sa.Uuid(), sa.ForeignKey("validation_jobs.id", ondelete="CASCADE"), nullable=False),
        sa.Column("document_id", sa.Uuid(), sa.ForeignKey("documents.id", ondelete="CASCADE"), nullable=False),
        sa.Column("final_attempt", sa.Integer(), nullable=False),
        sa.Column("final_error_message", sa.Text()),
        sa.Column("final_error_details", JSONType),
        sa.Column("resolved_at", sa.DateTime(timezone=True)),
        sa.Column("resolved_by", sa.String(255)),
        sa.Column("resolution_notes", sa.Text()),
        *_timestamps(),
    )
    op.create_index("ix_validation_dead_letters_job_id", "validation_dead_letters", ["job_id"])
    op.create_index("ix_validation_dead_letters_document_id", "validation_dead_letters", ["document_id"])

    op.create_table(
        "validation_executions",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("document_id", sa.Uuid(), sa.ForeignKey("documents.id", ondelete="CASCADE"), nullable=False),
        sa.Column("job_id", sa.Uuid(), sa.ForeignKey("validation_jobs.id", ondelete="SET NULL")),
        sa.Column("validation_result_id", sa.Uuid(), sa.ForeignKey("document_validations.id", ondelete="SET NULL")),
        sa.Column("status", sa.String(50), nullable=False, server_default="running"),
        sa.Column("triggered_by", sa.String(50), nullable=False),
        sa.Column("model", sa.String(100)),
        sa.Column("started_at", sa.DateTime(timezone=True)),
        sa.Column("completed_at", sa.DateTime(timezone=True)),
        sa.Column("duration_ms", sa.Integer()),
        sa.Column("error_summary", sa.Text()),
        sa.Column("error_details", JSONType),
        sa.Column("execution_log", JSONType),
    )
    op.create_index("ix_validation_executions_document_id", "validation_executions", ["document_id"])


def downgrade() -> None:
    op.drop_table("validation_executions")
    op.drop_table("validation_dead_letters")
    op.drop_index("uq_validation_jobs_active_document", table_name="validation_jobs")
    op.drop_table("validation_jobs")
    op.drop_table("document_validations")
    op.drop_table("documents")
    op.drop_table("document_requests")
    op.drop_table("storage_configs")
    op.drop_table("employees")
    op.drop_table("organizations")

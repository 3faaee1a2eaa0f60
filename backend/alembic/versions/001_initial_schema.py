"""initial schema

Revision ID: 001
Revises:
Create Date: 2026-01-05 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def _status_log(table: str, parent: str, fk: str) -> None:
    op.create_table(
        table,
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column(fk, sa.Integer(), sa.ForeignKey(f"{parent}.id", ondelete="CASCADE"), nullable=False),
        sa.Column("from_status", sa.String(20), nullable=True),
        sa.Column("to_status", sa.String(20), nullable=False),
        sa.Column("changed_by", sa.String(100), nullable=False),
        sa.Column("note", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index(f"ix_{table}_{parent[:-1]}_created", table, [fk, "created_at"])


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("client_name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=True, index=True),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("telegram_chat_id", sa.String(64), nullable=True),
        sa.Column("telegram_enabled", sa.Boolean(), server_default="false", nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "admins",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True, index=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("role", sa.String(20), server_default="OPERATOR", nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default="true", nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column("admin_id", sa.Integer(), sa.ForeignKey("admins.id", ondelete="SET NULL"), nullable=True, index=True),
        sa.Column("action", sa.String(100), nullable=False, index=True),
        sa.Column("entity_type", sa.String(50), nullable=False),
        sa.Column("entity_id", sa.Integer(), nullable=True),
        sa.Column("details", sa.Text(), nullable=True),
        sa.Column("ip_address", sa.String(45), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_audit_logs_entity", "audit_logs", ["entity_type", "entity_id"])

    op.create_table(
        "submissions",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True),
        sa.Column("brand_name", sa.String(255), nullable=True),
        sa.Column("contact_phone", sa.String(50), nullable=True),
        sa.Column("contact_email", sa.String(255), nullable=True),
        sa.Column("delivery_address", sa.Text(), nullable=True),
        sa.Column("website_style", sa.String(255), nullable=True),
        sa.Column("website_color", sa.String(255), nullable=True),
        sa.Column("blog_design_note", sa.Text(), nullable=True),
        sa.Column("additional_note", sa.Text(), nullable=True),
        sa.Column("status", sa.String(20), server_default="DRAFT", nullable=False, index=True),
        sa.Column("is_complete", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reviewed_by", sa.Integer(), sa.ForeignKey("admins.id", ondelete="SET NULL"), nullable=True),
        sa.Column("slack_channel_id", sa.String(64), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "workflows",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column("status", sa.String(20), server_default="PENDING", nullable=False, index=True),
        sa.Column("design_url", sa.String(1024), nullable=True),
        sa.Column("final_url", sa.String(1024), nullable=True),
        sa.Column("courier", sa.String(100), nullable=True),
        sa.Column("tracking_number", sa.String(100), nullable=True),
        sa.Column("revision_note", sa.Text(), nullable=True),
        sa.Column("revision_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("admin_note", sa.Text(), nullable=True),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("design_started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("design_uploaded_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("order_requested_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("order_approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("shipped_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "type", name="uq_workflows_user_type"),
    )
    _status_log("workflow_logs", "workflows", "workflow_id")

    op.create_table(
        "designs",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column("workflow_id", sa.Integer(), sa.ForeignKey("workflows.id", ondelete="CASCADE"), nullable=False, unique=True),
        sa.Column("status", sa.String(30), server_default="DRAFT", nullable=False, index=True),
        sa.Column("current_version", sa.Integer(), server_default="1", nullable=False),
        sa.Column("approved_version", sa.Integer(), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "design_versions",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column("design_id", sa.Integer(), sa.ForeignKey("designs.id", ondelete="CASCADE"), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("url", sa.String(1024), nullable=False),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("uploaded_by", sa.Integer(), sa.ForeignKey("admins.id", ondelete="SET NULL"), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("design_id", "version", name="uq_design_versions_design_version"),
    )

    op.create_table(
        "design_feedbacks",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column("version_id", sa.Integer(), sa.ForeignKey("design_versions.id", ondelete="CASCADE"), nullable=False),
        sa.Column("author_id", sa.Integer(), nullable=True),
        sa.Column("author_type", sa.String(10), nullable=False),
        sa.Column("author_name", sa.String(255), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_design_feedbacks_version_created", "design_feedbacks", ["version_id", "created_at"])

    op.create_table(
        "packages",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column("name", sa.String(50), nullable=False, unique=True),
        sa.Column("display_name", sa.String(255), nullable=False),
        sa.Column("price", sa.Numeric(12, 0), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default="true", nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "contracts",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column("contract_number", sa.String(13), nullable=False, unique=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("package_id", sa.Integer(), sa.ForeignKey("packages.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("status", sa.String(20), server_default="PENDING", nullable=False, index=True),
        sa.Column("contract_period", sa.Integer(), server_default="12", nullable=False),
        sa.Column("monthly_fee", sa.Numeric(12, 0), nullable=False),
        sa.Column("setup_fee", sa.Numeric(12, 0), server_default="0", nullable=False),
        sa.Column("total_amount", sa.Numeric(14, 0), nullable=False),
        sa.Column("is_promotion", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("additional_notes", sa.Text(), nullable=True),
        sa.Column("company_name", sa.String(255), nullable=True),
        sa.Column("ceo_name", sa.String(100), nullable=True),
        sa.Column("business_number", sa.String(20), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("contact_name", sa.String(100), nullable=True),
        sa.Column("contact_phone", sa.String(50), nullable=True),
        sa.Column("contact_email", sa.String(255), nullable=True),
        sa.Column("client_signature", sa.Text(), nullable=True),
        sa.Column("signed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("approved_by", sa.Integer(), nullable=True),
        sa.Column("rejected_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejected_by", sa.Integer(), nullable=True),
        sa.Column("reject_reason", sa.Text(), nullable=True),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("email_sent_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index(
        "uq_contracts_user_pending",
        "contracts",
        ["user_id"],
        unique=True,
        postgresql_where=sa.text("status = 'PENDING'"),
    )
    _status_log("contract_logs", "contracts", "contract_id")

    op.create_table(
        "contract_sequences",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column("day", sa.String(8), nullable=False, unique=True),
        sa.Column("last_value", sa.Integer(), server_default="0", nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "clients",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column("client_name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("meta_ad_account_id", sa.String(64), nullable=True),
        sa.Column("encrypted_access_token", sa.Text(), nullable=True),
        sa.Column("auth_status", sa.String(20), server_default="ACTIVE", nullable=False, index=True),
        sa.Column("token_expires_at", sa.DateTime(timezone=True), nullable=True, index=True),
        sa.Column("service_start", sa.Date(), nullable=True),
        sa.Column("service_end", sa.Date(), nullable=True),
        sa.Column("telegram_enabled", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default="true", nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "token_refresh_logs",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column("client_id", sa.Integer(), sa.ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("success", sa.Boolean(), server_default="true", nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "raw_data",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column("client_id", sa.Integer(), sa.ForeignKey("clients.id", ondelete="CASCADE"), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("ad_id", sa.String(64), nullable=False),
        sa.Column("ad_name", sa.String(512), nullable=False),
        sa.Column("campaign_id", sa.String(64), server_default="", nullable=False),
        sa.Column("campaign_name", sa.String(512), nullable=False),
        sa.Column("platform", sa.String(50), nullable=False),
        sa.Column("device", sa.String(50), nullable=False),
        sa.Column("currency", sa.String(10), server_default="KRW", nullable=False),
        sa.Column("impressions", sa.Integer(), server_default="0", nullable=False),
        sa.Column("reach", sa.Integer(), server_default="0", nullable=False),
        sa.Column("clicks", sa.Integer(), server_default="0", nullable=False),
        sa.Column("leads", sa.Integer(), server_default="0", nullable=False),
        sa.Column("spend", sa.Numeric(14, 2), server_default="0", nullable=False),
        *_timestamps(),
        sa.UniqueConstraint(
            "client_id", "date", "ad_id", "platform", "device",
            name="uq_raw_data_client_date_ad_platform_device",
        ),
    )

    op.create_table(
        "communication_threads",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("category", sa.String(50), nullable=True),
        sa.Column("status", sa.String(20), server_default="OPEN", nullable=False, index=True),
        sa.Column("last_reply_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("expected_completion_date", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "communication_messages",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column("thread_id", sa.Integer(), sa.ForeignKey("communication_threads.id", ondelete="CASCADE"), nullable=False),
        sa.Column("author_id", sa.Integer(), nullable=True),
        sa.Column("author_type", sa.String(10), nullable=False),
        sa.Column("author_name", sa.String(255), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("attachments", sa.JSON(), nullable=True),
        sa.Column("expected_completion_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_read_by_admin", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("is_read_by_user", sa.Boolean(), server_default="false", nullable=False),
        *_timestamps(),
    )
    op.create_index(
        "ix_communication_messages_thread_created",
        "communication_messages",
        ["thread_id", "created_at"],
    )


def downgrade() -> None:
    op.drop_table("communication_messages")
    op.drop_table("communication_threads")
    op.drop_table("raw_data")
    op.drop_table("token_refresh_logs")
    op.drop_table("clients")
    op.drop_table("contract_sequences")
    op.drop_table("contract_logs")
    op.drop_index("uq_contracts_user_pending", table_name="contracts")
    op.drop_table("contracts")
    op.drop_table("packages")
    op.drop_table("design_feedbacks")
    op.drop_table("design_versions")
    op.drop_table("designs")
    op.drop_table("workflow_logs")
    op.drop_table("workflows")
    op.drop_table("submissions")
    op.drop_table("audit_logs")
    op.drop_table("admins")
    op.drop_table("users")

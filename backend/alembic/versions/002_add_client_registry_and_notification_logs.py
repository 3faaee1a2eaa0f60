"""add client contact/plan columns and notification_logs

Revision ID: 002
Revises: 001
Create Date: 2026-02-02 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # --- new columns on clients ---
    op.add_column("clients", sa.Column("phone", sa.String(50), nullable=True))
    op.add_column("clients", sa.Column("contact_name", sa.String(100), nullable=True))
    op.add_column("clients", sa.Column("contact_phone", sa.String(50), nullable=True))
    op.add_column("clients", sa.Column("telegram_chat_id", sa.String(64), nullable=True))
    op.add_column("clients", sa.Column("plan_type", sa.String(20), server_default="FREE", nullable=False))
    op.add_column("clients", sa.Column("memo", sa.Text(), nullable=True))
    op.create_index(
        "ix_clients_lower_client_name",
        "clients",
        [sa.text("lower(client_name)")],
        unique=True,
    )
    op.create_index(
        "uq_clients_meta_ad_account_id",
        "clients",
        ["meta_ad_account_id"],
        unique=True,
        postgresql_where=sa.text("meta_ad_account_id IS NOT NULL"),
    )

    # --- notification_logs table ---
    op.create_table(
        "notification_logs",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column("client_id", sa.Integer(), sa.ForeignKey("clients.id", ondelete="CASCADE"), nullable=True, index=True),
        sa.Column("notification_type", sa.String(40), server_default="SYSTEM", nullable=False, index=True),
        sa.Column("channel", sa.String(20), nullable=False),
        sa.Column("recipient", sa.String(255), nullable=True),
        sa.Column("message", sa.Text(), server_default="", nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index(
        "ix_notification_logs_status_created",
        "notification_logs",
        ["status", "created_at"],
    )


def downgrade() -> None:
    op.drop_table("notification_logs")
    op.drop_index("uq_clients_meta_ad_account_id", table_name="clients")
    op.drop_index("ix_clients_lower_client_name", table_name="clients")
    op.drop_column("clients", "memo")
    op.drop_column("clients", "plan_type")
    op.drop_column("clients", "telegram_chat_id")
    op.drop_column("clients", "contact_phone")
    op.drop_column("clients", "contact_name")
    op.drop_column("clients", "phone")

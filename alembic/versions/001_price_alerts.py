"""가격 알림: price_threshold_alerts, price_alert_templates, price_alert_trigger_history

Revision ID: 001
Revises:
Create Date: 2026-10-18
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # ── price_threshold_alerts ──
    op.create_table(
        "price_threshold_alerts",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("stock_code", sa.String(20), nullable=False),
        sa.Column("stock_name", sa.String(100), nullable=False),
        sa.Column("alert_type", sa.String(30), nullable=False),
        sa.Column("conditions", sa.Text(), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column("sensitivity", sa.Float(), server_default="0.001", nullable=False),
        sa.Column("cooldown_hours", sa.Integer(), server_default="1", nullable=False),
        sa.Column(
            "post_trigger_action",
            sa.String(10),
            server_default="continue",
            nullable=False,
        ),
        sa.Column("enable_sound", sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column("enable_desktop", sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column("template_id", sa.String(50), nullable=True),
        sa.Column("last_triggered_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.current_timestamp(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.current_timestamp(),
            nullable=False,
        ),
    )
    op.create_index("ix_price_threshold_alerts_id", "price_threshold_alerts", ["id"])
    op.create_index(
        "ix_price_threshold_alerts_stock_code", "price_threshold_alerts", ["stock_code"]
    )
    op.create_index(
        "ix_price_threshold_alerts_is_active", "price_threshold_alerts", ["is_active"]
    )

    # ── price_alert_templates ──
    op.create_table(
        "price_alert_templates",
        sa.Column("id", sa.String(50), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("alert_type", sa.String(30), nullable=False),
        sa.Column("conditions", sa.Text(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.current_timestamp(),
            nullable=False,
        ),
    )

    # ── price_alert_trigger_history ──
    op.create_table(
        "price_alert_trigger_history",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("alert_id", sa.Integer(), nullable=False),
        sa.Column("stock_code", sa.String(20), nullable=False),
        sa.Column("stock_name", sa.String(100), nullable=False),
        sa.Column("alert_type", sa.String(30), nullable=False),
        sa.Column("trigger_price", sa.Float(), nullable=True),
        sa.Column("trigger_message", sa.Text(), nullable=True),
        sa.Column(
            "triggered_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.current_timestamp(),
            nullable=False,
        ),
    )
    op.create_index(
        "ix_price_alert_trigger_history_id", "price_alert_trigger_history", ["id"]
    )
    op.create_index(
        "ix_price_alert_trigger_history_alert_id", "price_alert_trigger_history", ["alert_id"]
    )
    op.create_index(
        "ix_price_alert_trigger_history_stock_code",
        "price_alert_trigger_history",
        ["stock_code"],
    )
    op.create_index(
        "ix_price_alert_trigger_history_triggered_at",
        "price_alert_trigger_history",
        ["triggered_at"],
    )


def downgrade() -> None:
    op.drop_table("price_alert_trigger_history")
    op.drop_table("price_alert_templates")
    op.drop_table("price_threshold_alerts")

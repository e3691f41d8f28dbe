"""initial event registrations schema

Revision ID: 0001_webhook
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


revision = "0001_webhook"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "eventsregistrations",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("event_id", sa.String(), nullable=False),
        sa.Column("user_email", sa.String(), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("payment_id", sa.String(), nullable=False),
        sa.Column("status", sa.String(), server_default="success", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("payment_id", name="eventsregistrations_payment_id_key"),
    )
    op.create_index("ix_eventsregistrations_payment_id", "eventsregistrations", ["payment_id"])
    op.create_index("ix_eventsregistrations_user_email", "eventsregistrations", ["user_email"])
    op.create_index("ix_eventsregistrations_event_id", "eventsregistrations", ["event_id"])
    op.create_index("ix_eventsregistrations_created_at", "eventsregistrations", ["created_at"])


def downgrade() -> None:
    op.drop_index("ix_eventsregistrations_created_at", table_name="eventsregistrations")
    op.drop_index("ix_eventsregistrations_event_id", table_name="eventsregistrations")
    op.drop_index("ix_eventsregistrations_user_email", table_name="eventsregistrations")
    op.drop_index("ix_eventsregistrations_payment_id", table_name="eventsregistrations")
    op.drop_table("eventsregistrations")

"""webhook calls

Revision ID: 0001_webhook_calls
Revises:
Create Date: 2026-10-17 09:00:00
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "0001_webhook_calls"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "webhook_calls",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("headers", postgresql.JSONB(), nullable=True),
        sa.Column("payload", postgresql.JSONB(), nullable=True),
        sa.Column("exception", postgresql.JSONB(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_webhook_calls_name", "webhook_calls", ["name"], unique=False)
    op.create_index("ix_webhook_calls_created_at", "webhook_calls", ["created_at"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_webhook_calls_created_at", table_name="webhook_calls")
    op.drop_index("ix_webhook_calls_name", table_name="webhook_calls")
    op.drop_table("webhook_calls")

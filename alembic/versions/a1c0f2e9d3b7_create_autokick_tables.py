"""create group_configs and kick_members

Revision ID: a1c0f2e9d3b7
Revises:
Create Date: 2026-10-19 12:00:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "a1c0f2e9d3b7"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "group_configs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("chat_id", sa.BigInteger(), nullable=False, unique=True),
        sa.Column("kick_after_ms", sa.BigInteger(), nullable=False, server_default=str(24 * 60 * 60 * 1000)),
        sa.Column("custom_message", sa.Text(), nullable=False, server_default=""),
        sa.Column("custom_message_enabled", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )

    op.create_table(
        "kick_members",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("chat_id", sa.BigInteger(), nullable=False),
        sa.Column("join_date", sa.DateTime(), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("kick_date", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_kick_members_kick_date", "kick_members", ["kick_date"])
    op.create_index("ix_kick_members_user_chat", "kick_members", ["user_id", "chat_id"])


def downgrade() -> None:
    op.drop_index("ix_kick_members_user_chat", table_name="kick_members")
    op.drop_index("ix_kick_members_kick_date", table_name="kick_members")
    op.drop_table("kick_members")
    op.drop_table("group_configs")

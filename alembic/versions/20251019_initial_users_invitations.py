"""initial: users and invitation_tokens

Revision ID: 20251019_initial
Revises:
Create Date: 2025-10-19 09:00:00.000000
"""
from __future__ import annotations
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "20251019_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

user_role = sa.Enum("ADMIN", "MANAGER", "MEMBER", name="user_role")


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("line_user_id", sa.String(length=64), nullable=False),
        sa.Column("display_name", sa.String(), nullable=False),
        sa.Column("picture_url", sa.String(length=512), nullable=True),
        sa.Column("role", user_role, nullable=False, server_default=sa.text("'MEMBER'")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_line_user_id", "users", ["line_user_id"], unique=True)

    op.create_table(
        "invitation_tokens",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("token", sa.String(length=68), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("max_uses", sa.Integer(), nullable=True),
        sa.Column("used_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_invitation_tokens_token", "invitation_tokens", ["token"], unique=True)
    op.create_index("ix_invitation_tokens_active_expires", "invitation_tokens", ["is_active", "expires_at"])
    op.create_index("ix_invitation_tokens_created_by", "invitation_tokens", ["created_by"])


def downgrade() -> None:
    op.drop_index("ix_invitation_tokens_created_by", table_name="invitation_tokens")
    op.drop_index("ix_invitation_tokens_active_expires", table_name="invitation_tokens")
    op.drop_index("ix_invitation_tokens_token", table_name="invitation_tokens")
    op.drop_table("invitation_tokens")

    op.drop_index("ix_users_line_user_id", table_name="users")
    op.drop_index("ix_users_id", table_name="users")
    op.drop_table("users")
    user_role.drop(op.get_bind(), checkfirst=True)

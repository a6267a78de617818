"""Initial schema — members, pair_credits.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "members",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("referral_code", sa.String(32), nullable=False, unique=True),
        sa.Column("name", sa.String(200), nullable=False, server_default=""),
        sa.Column("email", sa.String(320), nullable=True),
        sa.Column("referred_by", sa.String(32), nullable=True),
        sa.Column("referral_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("upline_code", sa.String(32), nullable=True),
        sa.Column("left_child_code", sa.String(32), nullable=True),
        sa.Column("right_child_code", sa.String(32), nullable=True),
        sa.Column("left_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("right_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("pairs_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("promotional_income", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("total_income", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("version", sa.Integer, nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_members_upline_code", "members", ["upline_code"])

    op.create_table(
        "pair_credits",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("member_code", sa.String(32), nullable=False),
        sa.Column("event_code", sa.String(32), nullable=True),
        sa.Column("source", sa.String(20), nullable=False, server_default="registration"),
        sa.Column("pairs", sa.Integer, nullable=False),
        sa.Column("pairs_total_after", sa.Integer, nullable=False),
        sa.Column("amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_pair_credits_member_code", "pair_credits", ["member_code"])
    op.create_index("ix_pair_credits_event_code", "pair_credits", ["event_code"])


def downgrade() -> None:
    op.drop_index("ix_pair_credits_event_code", table_name="pair_credits")
    op.drop_index("ix_pair_credits_member_code", table_name="pair_credits")
    op.drop_table("pair_credits")
    op.drop_index("ix_members_upline_code", table_name="members")
    op.drop_table("members")

"""Initial schema: account, activity

Revision ID: 001
Revises:
Create Date: 2024-01-01

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op


revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "account",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
    )

    op.create_table(
        "activity",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("owner_account_id", sa.Integer, sa.ForeignKey("account.id"), nullable=False),
        sa.Column("source_account_id", sa.Integer, sa.ForeignKey("account.id"), nullable=False),
        sa.Column("target_account_id", sa.Integer, sa.ForeignKey("account.id"), nullable=False),
        sa.Column("amount", sa.BigInteger, nullable=False),
    )
    op.create_index("ix_activity_owner_timestamp", "activity", ["owner_account_id", "timestamp"])


def downgrade() -> None:
    op.drop_index("ix_activity_owner_timestamp", table_name="activity")
    op.drop_table("activity")
    op.drop_table("account")

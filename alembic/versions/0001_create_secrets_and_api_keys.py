"""Create secrets and api_keys tables

Revision ID: 0001
Revises:
Create Date: 2026-10-19

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "secrets",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("ciphertext", sa.Text, nullable=False),
        sa.Column("nonce", sa.String(24), nullable=False),
        sa.Column("reads_left", sa.Integer, nullable=False),
        sa.Column("expires_at", sa.BigInteger, nullable=False),
        sa.Column("created_at", sa.DateTime, nullable=False),
    )

    # The sweep deletes by expires_at
    op.create_index("ix_secrets_expires_at", "secrets", ["expires_at"])

    op.create_table(
        "api_keys",
        sa.Column("key", sa.String(128), primary_key=True),
    )


def downgrade() -> None:
    op.drop_table("api_keys")

    op.drop_index("ix_secrets_expires_at", table_name="secrets")
    op.drop_table("secrets")

"""create store_snapshots table

Revision ID: 0001
Revises:
Create Date: 2026-10-19

Single durable artifact of the goal engine: one row per store name holding
the JSON-encoded state and the schema version it was written with.
"""
from alembic import op
import sqlalchemy as sa

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "store_snapshots",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("schema_version", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("payload", sa.Text(), nullable=True),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index("ix_store_snapshots_id", "store_snapshots", ["id"])
    op.create_index("ix_store_snapshots_name", "store_snapshots", ["name"], unique=True)


def downgrade() -> None:
    op.drop_index("ix_store_snapshots_name", table_name="store_snapshots")
    op.drop_index("ix_store_snapshots_id", table_name="store_snapshots")
    op.drop_table("store_snapshots")

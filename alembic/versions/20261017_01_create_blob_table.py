"""Create the namespaced blob table."""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "20261017_01"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "blob",
        sa.Column("namespace", sa.String(length=64), primary_key=True),
        sa.Column("key", sa.String(length=255), primary_key=True),
        sa.Column(
            "content_type",
            sa.String(length=128),
            nullable=False,
            server_default="application/octet-stream",
        ),
        sa.Column(
            "is_json", sa.Boolean(), nullable=False, server_default=sa.text("FALSE")
        ),
        sa.Column("payload", sa.LargeBinary(), nullable=False),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    )
    op.create_index("ix_blob_namespace_updated_at", "blob", ["namespace", "updated_at"])


def downgrade() -> None:
    op.drop_index("ix_blob_namespace_updated_at", table_name="blob")
    op.drop_table("blob")

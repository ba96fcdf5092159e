"""add processing request state versioning

Revision ID: 0002_state_version
Revises: 0001_processor
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


revision = "0002_state_version"
down_revision = "0001_processor"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column(
        "processing_requests",
        sa.Column("state_version", sa.Integer(), nullable=False, server_default=sa.text("0")),
    )
    op.alter_column("processing_requests", "state_version", server_default=None)


def downgrade() -> None:
    op.drop_column("processing_requests", "state_version")

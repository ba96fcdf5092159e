"""initial processor schema

Revision ID: 0001_processor
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


revision = "0001_processor"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "processing_requests",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("tenant_id", sa.String(length=100), nullable=False),
        sa.Column("request_id", sa.String(), nullable=False),
        sa.Column("payment_id", sa.String(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("error_message", sa.String(length=1000), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", "request_id", name="uq_processing_tenant_request"),
    )
    op.create_index("ix_processing_requests_tenant_id", "processing_requests", ["tenant_id"])
    op.create_index("idx_processing_tenant_payment", "processing_requests", ["tenant_id", "payment_id"])
    op.create_index("idx_processing_tenant_status", "processing_requests", ["tenant_id", "status"])


def downgrade() -> None:
    op.drop_index("idx_processing_tenant_status", table_name="processing_requests")
    op.drop_index("idx_processing_tenant_payment", table_name="processing_requests")
    op.drop_index("ix_processing_requests_tenant_id", table_name="processing_requests")
    op.drop_table("processing_requests")

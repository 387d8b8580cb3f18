"""property intentions

Revision ID: 0002_property_intentions
Revises: 0001_init
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa


revision = "0002_property_intentions"
down_revision = "0001_init"
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "property_intentions",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("property_id", sa.String(length=36), sa.ForeignKey("properties.id"), nullable=False),
        sa.Column("tenant_id", sa.String(length=36), sa.ForeignKey("app_users.id"), nullable=False),
        sa.Column("owner_id", sa.String(length=36), sa.ForeignKey("app_users.id"), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_property_intentions_property_id", "property_intentions", ["property_id"])
    op.create_index("ix_property_intentions_tenant_id", "property_intentions", ["tenant_id"])
    op.create_index("ix_property_intentions_owner_id", "property_intentions", ["owner_id"])
    op.create_index("uq_property_intentions_pair", "property_intentions", ["tenant_id", "property_id"], unique=True)


def downgrade():
    op.drop_index("uq_property_intentions_pair", table_name="property_intentions")
    op.drop_table("property_intentions")

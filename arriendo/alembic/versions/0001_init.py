"""init schema

Revision ID: 0001_init
Revises:
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa


revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None


ACTIVE_REQUEST_WHERE = "status IN ('pending', 'approved')"
OPEN_CONTRACT_WHERE = "status IN ('draft', 'pending_tenant', 'pending_owner', 'approved', 'signed', 'active')"


def upgrade():
    op.create_table(
        "app_users",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("email", sa.String(length=200), nullable=False),
        sa.Column("full_name", sa.String(length=200), nullable=True),
        sa.Column("company_name", sa.String(length=200), nullable=True),
        sa.Column("publisher_type", sa.String(length=20), nullable=True),
        sa.Column("user_type", sa.String(length=20), nullable=False, server_default="tenant"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_app_users_email", "app_users", ["email"], unique=True)

    op.create_table(
        "plans",
        sa.Column("id", sa.String(length=60), primary_key=True),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("user_type", sa.String(length=20), nullable=False),
        sa.Column("price_monthly", sa.Float(), nullable=False, server_default="0"),
        sa.Column("price_currency", sa.String(length=3), nullable=False, server_default="COP"),
        sa.Column("features_json", sa.Text(), nullable=True),
        sa.Column("max_properties", sa.Integer(), nullable=True),
        sa.Column("includes_price_insights", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
    )
    op.create_index("ix_plans_user_type", "plans", ["user_type"])

    op.create_table(
        "subscriptions",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("user_id", sa.String(length=36), sa.ForeignKey("app_users.id"), nullable=False),
        sa.Column("plan_id", sa.String(length=60), sa.ForeignKey("plans.id"), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending_payment"),
        sa.Column("started_at", sa.DateTime(), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=True),
        sa.Column("canceled_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_subscriptions_user_id", "subscriptions", ["user_id"])

    op.create_table(
        "properties",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("owner_id", sa.String(length=36), sa.ForeignKey("app_users.id"), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("city", sa.String(length=120), nullable=False),
        sa.Column("neighborhood", sa.String(length=120), nullable=True),
        sa.Column("address", sa.String(length=255), nullable=True),
        sa.Column("price", sa.Float(), nullable=False),
        sa.Column("status", sa.String(length=30), nullable=False, server_default="draft"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_properties_owner_id", "properties", ["owner_id"])
    op.create_index("ix_properties_status", "properties", ["status"])

    op.create_table(
        "kyc_verifications",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("user_id", sa.String(length=36), sa.ForeignKey("app_users.id"), nullable=False),
        sa.Column("verification_type", sa.String(length=20), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("document_type", sa.String(length=20), nullable=True),
        sa.Column("document_number", sa.String(length=60), nullable=True),
        sa.Column("document_front_url", sa.Text(), nullable=True),
        sa.Column("document_back_url", sa.Text(), nullable=True),
        sa.Column("selfie_url", sa.Text(), nullable=True),
        sa.Column("company_name", sa.String(length=200), nullable=True),
        sa.Column("company_nit", sa.String(length=40), nullable=True),
        sa.Column("company_document_url", sa.Text(), nullable=True),
        sa.Column("property_id", sa.String(length=36), sa.ForeignKey("properties.id"), nullable=True),
        sa.Column("property_document_type", sa.String(length=20), nullable=True),
        sa.Column("property_document_url", sa.Text(), nullable=True),
        sa.Column("verified_at", sa.DateTime(), nullable=True),
        sa.Column("verified_by", sa.String(length=20), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("expires_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_kyc_verifications_user_id", "kyc_verifications", ["user_id"])
    op.create_index(
        "ix_kyc_verifications_user_type", "kyc_verifications", ["user_id", "verification_type", "created_at"]
    )

    op.create_table(
        "contract_requests",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("property_id", sa.String(length=36), sa.ForeignKey("properties.id"), nullable=False),
        sa.Column("tenant_id", sa.String(length=36), sa.ForeignKey("app_users.id"), nullable=False),
        sa.Column("owner_id", sa.String(length=36), sa.ForeignKey("app_users.id"), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("requested_at", sa.DateTime(), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=True),
        sa.Column("tenant_kyc_status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("tenant_kyc_verified_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_contract_requests_property_id", "contract_requests", ["property_id"])
    op.create_index("ix_contract_requests_tenant_id", "contract_requests", ["tenant_id"])
    op.create_index("ix_contract_requests_owner_id", "contract_requests", ["owner_id"])
    op.create_index(
        "uq_contract_requests_active_pair",
        "contract_requests",
        ["tenant_id", "property_id"],
        unique=True,
        sqlite_where=sa.text(ACTIVE_REQUEST_WHERE),
        postgresql_where=sa.text(ACTIVE_REQUEST_WHERE),
    )

    op.create_table(
        "rental_contracts",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("contract_request_id", sa.String(length=36), sa.ForeignKey("contract_requests.id"), nullable=True),
        sa.Column("property_id", sa.String(length=36), sa.ForeignKey("properties.id"), nullable=False),
        sa.Column("tenant_id", sa.String(length=36), sa.ForeignKey("app_users.id"), nullable=False),
        sa.Column("owner_id", sa.String(length=36), sa.ForeignKey("app_users.id"), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="draft"),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("parent_contract_id", sa.String(length=36), sa.ForeignKey("rental_contracts.id"), nullable=True),
        sa.Column("contract_template_id", sa.String(length=40), nullable=True),
        sa.Column("contract_content", sa.Text(), nullable=False, server_default=""),
        sa.Column("contract_pdf_url", sa.Text(), nullable=True),
        sa.Column("clauses_json", sa.Text(), nullable=True),
        sa.Column("monthly_rent", sa.Float(), nullable=False),
        sa.Column("deposit_amount", sa.Float(), nullable=True),
        sa.Column("contract_duration_months", sa.Integer(), nullable=True),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("property_prior_status", sa.String(length=30), nullable=False, server_default="published"),
        sa.Column("owner_approved_at", sa.DateTime(), nullable=True),
        sa.Column("tenant_approved_at", sa.DateTime(), nullable=True),
        sa.Column("owner_signed_at", sa.DateTime(), nullable=True),
        sa.Column("tenant_signed_at", sa.DateTime(), nullable=True),
        sa.Column("legal_disclaimer_accepted_at", sa.DateTime(), nullable=True),
        sa.Column("tenant_disclaimer_accepted_at", sa.DateTime(), nullable=True),
        sa.Column("signed_at", sa.DateTime(), nullable=True),
        sa.Column("activated_at", sa.DateTime(), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_rental_contracts_contract_request_id", "rental_contracts", ["contract_request_id"])
    op.create_index("ix_rental_contracts_property_id", "rental_contracts", ["property_id"])
    op.create_index("ix_rental_contracts_tenant_id", "rental_contracts", ["tenant_id"])
    op.create_index("ix_rental_contracts_owner_id", "rental_contracts", ["owner_id"])
    op.create_index(
        "uq_rental_contracts_open_property",
        "rental_contracts",
        ["property_id"],
        unique=True,
        sqlite_where=sa.text(OPEN_CONTRACT_WHERE),
        postgresql_where=sa.text(OPEN_CONTRACT_WHERE),
    )

    op.create_table(
        "contract_messages",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "contract_id",
            sa.String(length=36),
            sa.ForeignKey("rental_contracts.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("sender_id", sa.String(length=36), sa.ForeignKey("app_users.id"), nullable=False),
        sa.Column("message_type", sa.String(length=20), nullable=False, server_default="comment"),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("change_request_json", sa.Text(), nullable=True),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_contract_messages_contract_id", "contract_messages", ["contract_id"])

    op.create_table(
        "notifications",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("user_id", sa.String(length=36), sa.ForeignKey("app_users.id"), nullable=False),
        sa.Column("kind", sa.String(length=60), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("related_entity_type", sa.String(length=60), nullable=True),
        sa.Column("related_entity_id", sa.String(length=36), nullable=True),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])
    op.create_index("ix_notifications_kind", "notifications", ["kind"])

    op.create_table(
        "audit_events",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("actor_user_id", sa.String(length=36), sa.ForeignKey("app_users.id"), nullable=True),
        sa.Column("action", sa.String(length=80), nullable=False),
        sa.Column("entity_type", sa.String(length=80), nullable=False),
        sa.Column("entity_id", sa.String(length=80), nullable=False),
        sa.Column("before_json", sa.Text(), nullable=True),
        sa.Column("after_json", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_audit_events_entity_id", "audit_events", ["entity_id"])


def downgrade():
    op.drop_table("audit_events")
    op.drop_table("notifications")
    op.drop_table("contract_messages")
    op.drop_table("rental_contracts")
    op.drop_table("contract_requests")
    op.drop_table("kyc_verifications")
    op.drop_table("properties")
    op.drop_table("subscriptions")
    op.drop_table("plans")
    op.drop_table("app_users")

# arriendo/models.py
from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .db import Base


def _uuid() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    # naive UTC everywhere; SQLite has no tz-aware DateTime
    return datetime.now(timezone.utc).replace(tzinfo=None)


# -----------------------------
# Identity / subscriptions
# -----------------------------
class AppUser(Base):
    __tablename__ = "app_users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    email: Mapped[str] = mapped_column(String(200), nullable=False, unique=True, index=True)
    full_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    company_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    publisher_type: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)  # person|landlord|inmobiliaria
    user_type: Mapped[str] = mapped_column(String(20), nullable=False, default="tenant")  # tenant|landlord|inmobiliaria
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    @property
    def display_name(self) -> str:
        if self.publisher_type == "inmobiliaria" and self.company_name:
            return self.company_name
        return self.full_name or self.email


class Plan(Base):
    __tablename__ = "plans"

    id: Mapped[str] = mapped_column(String(60), primary_key=True)  # e.g. tenant_pro
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    user_type: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    price_monthly: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    price_currency: Mapped[str] = mapped_column(String(3), nullable=False, default="COP")
    features_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    max_properties: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    includes_price_insights: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class Subscription(Base):
    __tablename__ = "subscriptions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("app_users.id"), nullable=False, index=True)
    plan_id: Mapped[str] = mapped_column(String(60), ForeignKey("plans.id"), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending_payment")
    started_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    canceled_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    plan: Mapped["Plan"] = relationship()


# -----------------------------
# Listings
# -----------------------------
class Property(Base):
    __tablename__ = "properties"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    owner_id: Mapped[str] = mapped_column(String(36), ForeignKey("app_users.id"), nullable=False, index=True)

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    city: Mapped[str] = mapped_column(String(120), nullable=False)
    neighborhood: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    address: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    price: Mapped[float] = mapped_column(Float, nullable=False)

    # draft|published|paused|locked_for_contract|rented
    status: Mapped[str] = mapped_column(String(30), nullable=False, default="draft", index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    owner: Mapped["AppUser"] = relationship(foreign_keys=[owner_id])


# -----------------------------
# KYC
# -----------------------------
class KYCVerification(Base):
    __tablename__ = "kyc_verifications"
    __table_args__ = (Index("ix_kyc_verifications_user_type", "user_id", "verification_type", "created_at"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("app_users.id"), nullable=False, index=True)
    verification_type: Mapped[str] = mapped_column(String(20), nullable=False)  # person|company|property
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")

    # person
    document_type: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)  # cc|ce|passport|nit
    document_number: Mapped[Optional[str]] = mapped_column(String(60), nullable=True)
    document_front_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    document_back_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    selfie_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # company
    company_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    company_nit: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    company_document_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # property
    property_id: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("properties.id"), nullable=True)
    property_document_type: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)  # escritura|certificado|otro
    property_document_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    verified_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    verified_by: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)  # system|manual|third_party
    rejection_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


# -----------------------------
# Contract requests / contracts
# -----------------------------
class ContractRequest(Base):
    __tablename__ = "contract_requests"
    __table_args__ = (
        # one pending/approved request per (tenant, property)
        Index(
            "uq_contract_requests_active_pair",
            "tenant_id",
            "property_id",
            unique=True,
            sqlite_where=text("status IN ('pending', 'approved')"),
            postgresql_where=text("status IN ('pending', 'approved')"),
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    property_id: Mapped[str] = mapped_column(String(36), ForeignKey("properties.id"), nullable=False, index=True)
    tenant_id: Mapped[str] = mapped_column(String(36), ForeignKey("app_users.id"), nullable=False, index=True)
    owner_id: Mapped[str] = mapped_column(String(36), ForeignKey("app_users.id"), nullable=False, index=True)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    requested_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    tenant_kyc_status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    tenant_kyc_verified_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    property: Mapped["Property"] = relationship()
    tenant: Mapped["AppUser"] = relationship(foreign_keys=[tenant_id])
    owner: Mapped["AppUser"] = relationship(foreign_keys=[owner_id])


class RentalContract(Base):
    __tablename__ = "rental_contracts"
    __table_args__ = (
        # at most one non-terminal contract per property
        Index(
            "uq_rental_contracts_open_property",
            "property_id",
            unique=True,
            sqlite_where=text(
                "status IN ('draft', 'pending_tenant', 'pending_owner', 'approved', 'signed', 'active')"
            ),
            postgresql_where=text(
                "status IN ('draft', 'pending_tenant', 'pending_owner', 'approved', 'signed', 'active')"
            ),
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    contract_request_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("contract_requests.id"), nullable=True, index=True
    )
    property_id: Mapped[str] = mapped_column(String(36), ForeignKey("properties.id"), nullable=False, index=True)
    tenant_id: Mapped[str] = mapped_column(String(36), ForeignKey("app_users.id"), nullable=False, index=True)
    owner_id: Mapped[str] = mapped_column(String(36), ForeignKey("app_users.id"), nullable=False, index=True)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft")
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    parent_contract_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("rental_contracts.id"), nullable=True
    )

    contract_template_id: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    contract_content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    contract_pdf_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    clauses_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    monthly_rent: Mapped[float] = mapped_column(Float, nullable=False)
    deposit_amount: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    contract_duration_months: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    start_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    # availability the property had before the lock; restored on cancel
    property_prior_status: Mapped[str] = mapped_column(String(30), nullable=False, default="published")

    owner_approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    tenant_approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    owner_signed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    tenant_signed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    legal_disclaimer_accepted_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    tenant_disclaimer_accepted_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    signed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    activated_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    property: Mapped["Property"] = relationship()
    tenant: Mapped["AppUser"] = relationship(foreign_keys=[tenant_id])
    owner: Mapped["AppUser"] = relationship(foreign_keys=[owner_id])
    messages: Mapped[List["ContractMessage"]] = relationship(
        back_populates="contract", cascade="all, delete-orphan", order_by="ContractMessage.created_at"
    )


class ContractMessage(Base):
    __tablename__ = "contract_messages"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    contract_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("rental_contracts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    sender_id: Mapped[str] = mapped_column(String(36), ForeignKey("app_users.id"), nullable=False)

    message_type: Mapped[str] = mapped_column(String(20), nullable=False, default="comment")
    content: Mapped[str] = mapped_column(Text, nullable=False)
    change_request_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    contract: Mapped["RentalContract"] = relationship(back_populates="messages")
    sender: Mapped["AppUser"] = relationship()


# -----------------------------
# Leads
# -----------------------------
class PropertyIntention(Base):
    __tablename__ = "property_intentions"
    __table_args__ = (
        # one interest per (tenant, property), whatever its status
        Index("uq_property_intentions_pair", "tenant_id", "property_id", unique=True),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    property_id: Mapped[str] = mapped_column(String(36), ForeignKey("properties.id"), nullable=False, index=True)
    tenant_id: Mapped[str] = mapped_column(String(36), ForeignKey("app_users.id"), nullable=False, index=True)
    owner_id: Mapped[str] = mapped_column(String(36), ForeignKey("app_users.id"), nullable=False, index=True)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    property: Mapped["Property"] = relationship()
    tenant: Mapped["AppUser"] = relationship(foreign_keys=[tenant_id])
    owner: Mapped["AppUser"] = relationship(foreign_keys=[owner_id])


# -----------------------------
# Notifications / audit
# -----------------------------
class Notification(Base):
    __tablename__ = "notifications"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("app_users.id"), nullable=False, index=True)

    kind: Mapped[str] = mapped_column(String(60), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    related_entity_type: Mapped[Optional[str]] = mapped_column(String(60), nullable=True)
    related_entity_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)


class AuditEvent(Base):
    __tablename__ = "audit_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    actor_user_id: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("app_users.id"), nullable=True)

    action: Mapped[str] = mapped_column(String(80), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(80), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(80), nullable=False, index=True)

    before_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    after_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

# arriendo/cli/seed_demo.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session

from arriendo.config import settings
from arriendo.db import Base, SessionLocal, engine
from arriendo.domain.statuses import KYCStatus, KYCType, PropertyStatus, SubscriptionStatus, VerifiedBy
from arriendo.models import AppUser, KYCVerification, Property, Subscription, utcnow
from arriendo.services.plan_service import ensure_default_plans


@dataclass(frozen=True)
class SeedResult:
    owner_id: str
    tenant_id: str
    property_id: str
    owner_plan: str
    tenant_plan: str


def _get_or_create_user(db: Session, *, email: str, full_name: str, user_type: str) -> AppUser:
    row = db.scalar(select(AppUser).where(AppUser.email == email))
    if row:
        return row
    row = AppUser(email=email, full_name=full_name, user_type=user_type, publisher_type="person")
    db.add(row)
    db.flush()
    return row


def _ensure_subscription(db: Session, *, user_id: str, plan_id: str) -> None:
    existing = db.scalar(
        select(Subscription).where(
            Subscription.user_id == user_id,
            Subscription.plan_id == plan_id,
            Subscription.status == SubscriptionStatus.ACTIVE.value,
        )
    )
    if existing:
        return
    now = utcnow()
    db.add(
        Subscription(
            user_id=user_id,
            plan_id=plan_id,
            status=SubscriptionStatus.ACTIVE.value,
            started_at=now,
            expires_at=now + timedelta(days=30),
        )
    )


def _ensure_verified_person(db: Session, *, user_id: str, document_number: str) -> None:
    existing = db.scalar(
        select(KYCVerification).where(
            KYCVerification.user_id == user_id,
            KYCVerification.verification_type == KYCType.PERSON.value,
            KYCVerification.status == KYCStatus.VERIFIED.value,
        )
    )
    if existing:
        return
    now = utcnow()
    db.add(
        KYCVerification(
            user_id=user_id,
            verification_type=KYCType.PERSON.value,
            status=KYCStatus.VERIFIED.value,
            document_type="cc",
            document_number=document_number,
            document_front_url="https://files.demo.local/doc-front.jpg",
            selfie_url="https://files.demo.local/selfie.jpg",
            verified_at=now,
            verified_by=VerifiedBy.SYSTEM.value,
            expires_at=now + timedelta(days=int(settings.kyc_validity_days)),
        )
    )


def _get_or_create_property(db: Session, *, owner_id: str) -> Property:
    row = db.scalar(select(Property).where(Property.owner_id == owner_id).limit(1))
    if row:
        return row
    row = Property(
        owner_id=owner_id,
        title="Apartamento en Chapinero",
        city="Bogotá",
        neighborhood="Chapinero Alto",
        address="Calle 57 # 5-20, Apto 301",
        price=2_500_000,
        status=PropertyStatus.PUBLISHED.value,
    )
    db.add(row)
    db.flush()
    return row


def seed_demo(
    *,
    owner_email: str,
    owner_name: str,
    tenant_email: str,
    tenant_name: str,
    owner_plan: str = "landlord_pro",
    tenant_plan: str = "tenant_pro",
    verify_kyc: bool = True,
    create_tables: bool = False,
) -> SeedResult:
    if create_tables:
        Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        ensure_default_plans(db)

        owner = _get_or_create_user(db, email=owner_email, full_name=owner_name, user_type="landlord")
        tenant = _get_or_create_user(db, email=tenant_email, full_name=tenant_name, user_type="tenant")

        _ensure_subscription(db, user_id=owner.id, plan_id=owner_plan)
        _ensure_subscription(db, user_id=tenant.id, plan_id=tenant_plan)

        if verify_kyc:
            _ensure_verified_person(db, user_id=owner.id, document_number="1010101010")
            _ensure_verified_person(db, user_id=tenant.id, document_number="2020202020")

        prop = _get_or_create_property(db, owner_id=owner.id)
        db.commit()

        return SeedResult(
            owner_id=owner.id,
            tenant_id=tenant.id,
            property_id=prop.id,
            owner_plan=owner_plan,
            tenant_plan=tenant_plan,
        )
    finally:
        db.close()

# tests/conftest.py
from __future__ import annotations

import uuid
from datetime import datetime, timedelta
from typing import Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from arriendo import models  # noqa: F401
from arriendo.db import Base, get_db
from arriendo.domain.statuses import KYCStatus, KYCType, PropertyStatus, SubscriptionStatus, VerifiedBy
from arriendo.main import create_app
from arriendo.models import AppUser, KYCVerification, Property, Subscription, utcnow
from arriendo.services.plan_service import ensure_default_plans
from arriendo.workers.celery_app import celery_app


@pytest.fixture(autouse=True, scope="session")
def _celery_eager():
    # emails run inline; nothing talks to a broker in tests
    celery_app.conf.update(task_always_eager=True, task_eager_propagates=False)
    yield


@pytest.fixture
def engine(tmp_path):
    eng = create_engine(
        f"sqlite:///{tmp_path / 'arriendo_test.db'}",
        connect_args={"check_same_thread": False},
        future=True,
    )
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


@pytest.fixture
def db(session_factory) -> Session:
    s = session_factory()
    ensure_default_plans(s)
    s.commit()
    try:
        yield s
    finally:
        s.close()


@pytest.fixture
def client(session_factory, db):
    app = create_app()

    def _get_db():
        s = session_factory()
        try:
            yield s
        except Exception:
            s.rollback()
            raise
        finally:
            s.close()

    app.dependency_overrides[get_db] = _get_db
    with TestClient(app) as c:
        yield c


class Factory:
    """Small row builders; every call commits so API tests see the data."""

    def __init__(self, db: Session):
        self.db = db

    def user(
        self,
        *,
        name: str = "Usuario",
        user_type: str = "tenant",
        plan: Optional[str] = None,
        email: Optional[str] = None,
        company_name: Optional[str] = None,
    ) -> AppUser:
        u = AppUser(
            email=email or f"{uuid.uuid4().hex[:10]}@test.local",
            full_name=name,
            user_type=user_type,
            company_name=company_name,
            publisher_type="inmobiliaria" if company_name else "person",
        )
        self.db.add(u)
        self.db.commit()
        if plan:
            self.subscribe(u, plan)
        return u

    def subscribe(
        self,
        user: AppUser,
        plan_id: str,
        *,
        status: str = SubscriptionStatus.ACTIVE.value,
        expires_at: Optional[datetime] = None,
    ) -> Subscription:
        now = utcnow()
        sub = Subscription(
            user_id=user.id,
            plan_id=plan_id,
            status=status,
            started_at=now,
            expires_at=expires_at if expires_at is not None else now + timedelta(days=30),
        )
        self.db.add(sub)
        self.db.commit()
        return sub

    def verified(
        self,
        user: AppUser,
        verification_type: KYCType = KYCType.PERSON,
        *,
        expires_at: Optional[datetime] = None,
        status: str = KYCStatus.VERIFIED.value,
    ) -> KYCVerification:
        now = utcnow()
        row = KYCVerification(
            user_id=user.id,
            verification_type=verification_type.value,
            status=status,
            document_type="cc" if verification_type == KYCType.PERSON else None,
            document_number="123456789" if verification_type == KYCType.PERSON else None,
            document_front_url="https://files.test/front.jpg" if verification_type == KYCType.PERSON else None,
            selfie_url="https://files.test/selfie.jpg" if verification_type == KYCType.PERSON else None,
            company_name="Inmobiliaria Test SAS" if verification_type == KYCType.COMPANY else None,
            company_nit="900123456-7" if verification_type == KYCType.COMPANY else None,
            company_document_url="https://files.test/rut.pdf" if verification_type == KYCType.COMPANY else None,
            verified_at=now if status == KYCStatus.VERIFIED.value else None,
            verified_by=VerifiedBy.SYSTEM.value if status == KYCStatus.VERIFIED.value else None,
            expires_at=expires_at if expires_at is not None else now + timedelta(days=365),
        )
        self.db.add(row)
        self.db.commit()
        return row

    def property(
        self,
        owner: AppUser,
        *,
        status: str = PropertyStatus.PUBLISHED.value,
        price: float = 1_500_000,
        title: str = "Apartamento en El Poblado",
        address: Optional[str] = "Carrera 43A # 1-50",
    ) -> Property:
        p = Property(
            owner_id=owner.id,
            title=title,
            city="Medellín",
            neighborhood="El Poblado",
            address=address,
            price=price,
            status=status,
        )
        self.db.add(p)
        self.db.commit()
        return p

    def ready_owner(self, *, name: str = "Olga Propietaria", kyc: KYCType = KYCType.PERSON) -> AppUser:
        owner = self.user(name=name, user_type="landlord", plan="landlord_pro")
        self.verified(owner, kyc)
        return owner

    def ready_tenant(self, *, name: str = "Tomás Inquilino") -> AppUser:
        tenant = self.user(name=name, user_type="tenant", plan="tenant_pro")
        self.verified(tenant, KYCType.PERSON)
        return tenant


@pytest.fixture
def factory(db) -> Factory:
    return Factory(db)


def as_user(user_id: str) -> dict[str, str]:
    return {"X-User-Id": user_id}


@pytest.fixture
def headers():
    return as_user

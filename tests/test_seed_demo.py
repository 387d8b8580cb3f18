# tests/test_seed_demo.py
from __future__ import annotations

from sqlalchemy import func, select

from arriendo.cli import seed_demo as seed_mod
from arriendo.domain.statuses import KYCType
from arriendo.models import AppUser, Property
from arriendo.services.kyc_service import is_actively_verified
from arriendo.services.plan_service import Capability, is_entitled
from arriendo.services.rental_contracts import start_contract


def _seed(monkeypatch, engine, session_factory, **kw):
    monkeypatch.setattr(seed_mod, "engine", engine)
    monkeypatch.setattr(seed_mod, "SessionLocal", session_factory)
    return seed_mod.seed_demo(
        owner_email="owner@demo.local",
        owner_name="Paula",
        tenant_email="tenant@demo.local",
        tenant_name="Tomás",
        **kw,
    )


def test_seed_is_idempotent_and_ready_for_a_contract(monkeypatch, engine, session_factory, db):
    first = _seed(monkeypatch, engine, session_factory, create_tables=True)
    second = _seed(monkeypatch, engine, session_factory)

    assert first == second
    assert db.scalar(select(func.count(AppUser.id))) == 2
    assert db.scalar(select(func.count(Property.id))) == 1

    assert is_entitled(db, user_id=first.owner_id, capability=Capability.START_CONTRACT)
    assert is_actively_verified(db, user_id=first.tenant_id, verification_type=KYCType.PERSON)

    c = start_contract(db, actor_user_id=first.owner_id, property_id=first.property_id, tenant_id=first.tenant_id)
    assert "$2.500.000 COP" in c.contract_content


def test_seed_without_kyc(monkeypatch, engine, session_factory, db):
    out = _seed(monkeypatch, engine, session_factory, verify_kyc=False)
    assert not is_actively_verified(db, user_id=out.tenant_id, verification_type=KYCType.PERSON)

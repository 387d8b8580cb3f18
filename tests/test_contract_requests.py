# tests/test_contract_requests.py
from __future__ import annotations

from datetime import timedelta

import pytest
from sqlalchemy import select

from arriendo.domain.audit import audit_trail
from arriendo.domain.errors import Conflict, Forbidden, InvalidState, NotEntitled, NotFound
from arriendo.domain.statuses import ContractRequestStatus
from arriendo.models import ContractRequest, Notification, utcnow
from arriendo.services import contract_requests
from arriendo.services.contract_requests import (
    create_request,
    get_request,
    has_active_request,
    is_eligible_for_contract,
    list_for_owner,
    list_for_tenant,
    with_details,
)
from arriendo.services.notifications import notify, take_pending_notifications


def test_create_request_snapshots_owner_and_kyc(db, factory):
    owner = factory.ready_owner()
    tenant = factory.ready_tenant()
    prop = factory.property(owner)

    req = create_request(db, actor_user_id=tenant.id, property_id=prop.id, tenant_id=tenant.id)
    db.commit()

    assert req.status == ContractRequestStatus.PENDING.value
    assert req.owner_id == owner.id
    assert req.tenant_kyc_status == "verified"
    assert req.tenant_kyc_verified_at is not None
    assert req.expires_at > utcnow() + timedelta(days=29)
    assert is_eligible_for_contract(req)

    notes = db.scalars(select(Notification).where(Notification.user_id == owner.id)).all()
    assert [n.kind for n in notes] == ["contract_request.created"]


def test_unverified_tenant_gets_pending_snapshot(db, factory):
    owner = factory.ready_owner()
    tenant = factory.user(plan="tenant_pro")
    prop = factory.property(owner)

    req = create_request(db, actor_user_id=tenant.id, property_id=prop.id, tenant_id=tenant.id)
    assert req.tenant_kyc_status == "pending"
    assert not is_eligible_for_contract(req)


def test_second_active_request_for_same_pair_conflicts(db, factory):
    owner = factory.ready_owner()
    tenant = factory.ready_tenant()
    prop = factory.property(owner)

    create_request(db, actor_user_id=tenant.id, property_id=prop.id, tenant_id=tenant.id)
    db.commit()

    with pytest.raises(Conflict):
        create_request(db, actor_user_id=tenant.id, property_id=prop.id, tenant_id=tenant.id)

    active = db.scalars(
        select(ContractRequest).where(
            ContractRequest.tenant_id == tenant.id,
            ContractRequest.property_id == prop.id,
            ContractRequest.status.in_(["pending", "approved"]),
        )
    ).all()
    assert len(active) == 1


def test_new_request_allowed_after_previous_is_closed(db, factory):
    owner = factory.ready_owner()
    tenant = factory.ready_tenant()
    prop = factory.property(owner)

    first = create_request(db, actor_user_id=tenant.id, property_id=prop.id, tenant_id=tenant.id)
    first.status = ContractRequestStatus.REJECTED.value
    db.commit()

    second = create_request(db, actor_user_id=tenant.id, property_id=prop.id, tenant_id=tenant.id)
    db.commit()
    assert second.id != first.id


def test_partial_unique_index_blocks_duplicate_insert(db, factory):
    # the index backs the service check when two inserts race
    from sqlalchemy.exc import IntegrityError

    owner = factory.ready_owner()
    tenant = factory.ready_tenant()
    prop = factory.property(owner)

    for _ in range(2):
        db.add(ContractRequest(property_id=prop.id, tenant_id=tenant.id, owner_id=owner.id, status="pending"))
    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()


def test_preconditions(db, factory):
    owner = factory.ready_owner()
    tenant = factory.ready_tenant()
    free_tenant = factory.user(plan="tenant_free")
    published = factory.property(owner)
    draft = factory.property(owner, status="draft")

    with pytest.raises(Forbidden):
        create_request(db, actor_user_id=owner.id, property_id=published.id, tenant_id=tenant.id)
    with pytest.raises(NotEntitled):
        create_request(db, actor_user_id=free_tenant.id, property_id=published.id, tenant_id=free_tenant.id)
    with pytest.raises(NotFound):
        create_request(db, actor_user_id=tenant.id, property_id="missing", tenant_id=tenant.id)
    with pytest.raises(InvalidState):
        create_request(db, actor_user_id=tenant.id, property_id=draft.id, tenant_id=tenant.id)


def test_owner_cannot_request_own_property(db, factory):
    owner = factory.user(user_type="landlord", plan="tenant_pro")
    prop = factory.property(owner)
    with pytest.raises(Forbidden):
        create_request(db, actor_user_id=owner.id, property_id=prop.id, tenant_id=owner.id)


def test_expired_request_is_not_eligible(db, factory):
    owner = factory.ready_owner()
    tenant = factory.ready_tenant()
    prop = factory.property(owner)

    req = create_request(db, actor_user_id=tenant.id, property_id=prop.id, tenant_id=tenant.id)
    assert is_eligible_for_contract(req)
    assert not is_eligible_for_contract(req, now=req.expires_at + timedelta(seconds=1))


def test_listing_is_self_only_and_carries_display_data(db, factory):
    owner = factory.ready_owner(name="Olga")
    tenant = factory.ready_tenant(name="Tomás")
    prop = factory.property(owner, title="Casa en Laureles")
    req = create_request(db, actor_user_id=tenant.id, property_id=prop.id, tenant_id=tenant.id)
    db.commit()

    mine = list_for_tenant(db, actor_user_id=tenant.id, tenant_id=tenant.id)
    assert [r.id for r in mine] == [req.id]
    incoming = list_for_owner(db, actor_user_id=owner.id, owner_id=owner.id)
    assert [r.id for r in incoming] == [req.id]

    d = with_details(incoming[0])
    assert d["property_title"] == "Casa en Laureles"
    assert d["tenant_name"] == "Tomás"
    assert d["owner_name"] == "Olga"
    assert d["eligible_for_contract"] is True

    with pytest.raises(Forbidden):
        list_for_tenant(db, actor_user_id=owner.id, tenant_id=tenant.id)
    with pytest.raises(Forbidden):
        list_for_owner(db, actor_user_id=tenant.id, owner_id=owner.id)


def test_get_request_participants_only(db, factory):
    owner = factory.ready_owner()
    tenant = factory.ready_tenant()
    stranger = factory.user()
    prop = factory.property(owner)
    req = create_request(db, actor_user_id=tenant.id, property_id=prop.id, tenant_id=tenant.id)
    db.commit()

    assert get_request(db, actor_user_id=owner.id, request_id=req.id).id == req.id
    assert has_active_request(db, actor_user_id=tenant.id, tenant_id=tenant.id, property_id=prop.id)
    assert not has_active_request(db, actor_user_id=stranger.id, tenant_id=tenant.id, property_id=prop.id)
    with pytest.raises(Forbidden):
        get_request(db, actor_user_id=stranger.id, request_id=req.id)


def test_stale_pending_request_frees_the_pair(db, factory):
    owner = factory.ready_owner()
    tenant = factory.ready_tenant()
    prop = factory.property(owner)

    old = create_request(db, actor_user_id=tenant.id, property_id=prop.id, tenant_id=tenant.id)
    old.expires_at = utcnow() - timedelta(days=1)
    db.commit()

    assert not is_eligible_for_contract(old)
    assert not has_active_request(db, actor_user_id=tenant.id, tenant_id=tenant.id, property_id=prop.id)

    fresh = create_request(db, actor_user_id=tenant.id, property_id=prop.id, tenant_id=tenant.id)
    db.commit()
    db.refresh(old)

    assert old.status == ContractRequestStatus.EXPIRED.value
    assert fresh.id != old.id
    assert is_eligible_for_contract(fresh)
    actions = [e.action for e in audit_trail(db, entity_type="ContractRequest", entity_id=old.id)]
    assert actions == ["contract_request.create", "contract_request.expire"]


def test_index_race_discards_queued_notifications(db, factory, monkeypatch):
    owner = factory.ready_owner()
    tenant = factory.ready_tenant()
    prop = factory.property(owner)

    create_request(db, actor_user_id=tenant.id, property_id=prop.id, tenant_id=tenant.id)
    db.commit()
    take_pending_notifications(db)

    # the service check misses the existing row, as a concurrent insert would
    monkeypatch.setattr(contract_requests, "find_active_request", lambda *a, **kw: None)
    notify(db, user_id=owner.id, kind="contract.sent", title="x", message="y")

    with pytest.raises(Conflict):
        create_request(db, actor_user_id=tenant.id, property_id=prop.id, tenant_id=tenant.id)
    assert take_pending_notifications(db) == []

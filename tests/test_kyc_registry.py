# tests/test_kyc_registry.py
from __future__ import annotations

from datetime import timedelta

import pytest

from arriendo.domain.errors import Forbidden, InvalidState, NotEntitled, NotFound, ValidationError
from arriendo.domain.statuses import KYCStatus, KYCType
from arriendo.models import utcnow
from arriendo.services.kyc_providers import (
    MockVerificationProvider,
    VerificationDecision,
    VerificationProvider,
    get_provider,
)
from arriendo.domain.statuses import VerifiedBy
from arriendo.services.kyc_service import (
    complete_verification,
    effective_status,
    get_user_kyc_status,
    is_actively_verified,
    list_user_verifications,
    start_verification,
)

PERSON_PAYLOAD = {
    "document_type": "cc",
    "document_number": "1020304050",
    "document_front_url": "https://files.test/front.jpg",
    "selfie_url": "https://files.test/selfie.jpg",
}


def test_start_and_complete_person_verification(db, factory):
    u = factory.user(plan="tenant_pro")

    row = start_verification(db, actor_user_id=u.id, user_id=u.id, verification_type="person", payload=PERSON_PAYLOAD)
    assert row.status == KYCStatus.PENDING.value
    assert not is_actively_verified(db, user_id=u.id, verification_type=KYCType.PERSON)

    done = complete_verification(db, actor_user_id=u.id, verification_id=row.id)
    db.commit()

    assert done.status == KYCStatus.VERIFIED.value
    assert done.verified_by == "system"
    assert done.verified_at is not None
    assert done.expires_at > done.verified_at + timedelta(days=364)
    assert is_actively_verified(db, user_id=u.id, verification_type=KYCType.PERSON)


def test_start_requires_self(db, factory):
    u = factory.user(plan="tenant_pro")
    other = factory.user(plan="tenant_pro")
    with pytest.raises(Forbidden):
        start_verification(db, actor_user_id=other.id, user_id=u.id, verification_type="person", payload=PERSON_PAYLOAD)


def test_start_requires_pro_plan(db, factory):
    u = factory.user(plan="tenant_free")
    with pytest.raises(NotEntitled):
        start_verification(db, actor_user_id=u.id, user_id=u.id, verification_type="person", payload=PERSON_PAYLOAD)


def test_start_rejects_missing_fields(db, factory):
    u = factory.user(plan="tenant_pro")
    payload = dict(PERSON_PAYLOAD)
    payload.pop("selfie_url")
    with pytest.raises(ValidationError) as ei:
        start_verification(db, actor_user_id=u.id, user_id=u.id, verification_type="person", payload=payload)
    assert "selfie_url" in str(ei.value)


def test_start_rejects_unknown_type(db, factory):
    u = factory.user(plan="tenant_pro")
    with pytest.raises(ValidationError):
        start_verification(db, actor_user_id=u.id, user_id=u.id, verification_type="pet", payload=PERSON_PAYLOAD)


def test_property_verification_checks_ownership(db, factory):
    owner = factory.user(user_type="landlord", plan="landlord_pro")
    stranger = factory.user(user_type="landlord", plan="landlord_pro")
    prop = factory.property(owner)
    payload = {
        "property_id": prop.id,
        "property_document_type": "escritura",
        "property_document_url": "https://files.test/escritura.pdf",
    }

    with pytest.raises(Forbidden):
        start_verification(db, actor_user_id=stranger.id, user_id=stranger.id, verification_type="property", payload=payload)

    with pytest.raises(NotFound):
        start_verification(
            db,
            actor_user_id=owner.id,
            user_id=owner.id,
            verification_type="property",
            payload={**payload, "property_id": "missing"},
        )

    row = start_verification(db, actor_user_id=owner.id, user_id=owner.id, verification_type="property", payload=payload)
    assert row.property_id == prop.id


def test_complete_twice_is_invalid_state(db, factory):
    u = factory.user(plan="tenant_pro")
    row = start_verification(db, actor_user_id=u.id, user_id=u.id, verification_type="person", payload=PERSON_PAYLOAD)
    complete_verification(db, actor_user_id=u.id, verification_id=row.id)

    with pytest.raises(InvalidState) as ei:
        complete_verification(db, actor_user_id=u.id, verification_id=row.id)
    assert ei.value.expected == "pending"
    assert ei.value.actual == "verified"


def test_complete_only_by_record_owner(db, factory):
    u = factory.user(plan="tenant_pro")
    other = factory.user(plan="tenant_pro")
    row = start_verification(db, actor_user_id=u.id, user_id=u.id, verification_type="person", payload=PERSON_PAYLOAD)
    with pytest.raises(Forbidden):
        complete_verification(db, actor_user_id=other.id, verification_id=row.id)
    with pytest.raises(NotFound):
        complete_verification(db, actor_user_id=u.id, verification_id="nope")


def test_provider_rejection_is_recorded(db, factory):
    class RejectAll(VerificationProvider):
        name = "reject_all"

        def review(self, record):
            return VerificationDecision(approved=False, verified_by=VerifiedBy.MANUAL, rejection_reason="documento ilegible")

    u = factory.user(plan="tenant_pro")
    row = start_verification(db, actor_user_id=u.id, user_id=u.id, verification_type="person", payload=PERSON_PAYLOAD)
    done = complete_verification(db, actor_user_id=u.id, verification_id=row.id, provider=RejectAll())

    assert done.status == KYCStatus.REJECTED.value
    assert done.rejection_reason == "documento ilegible"
    assert not is_actively_verified(db, user_id=u.id, verification_type=KYCType.PERSON)


def test_default_provider_is_mock():
    assert isinstance(get_provider(), MockVerificationProvider)
    with pytest.raises(RuntimeError):
        get_provider("acme-biometrics")


def test_expired_verified_record_is_not_active(db, factory):
    u = factory.user(plan="tenant_pro")
    row = factory.verified(u, KYCType.PERSON, expires_at=utcnow() - timedelta(minutes=1))

    # stored status still says verified
    assert row.status == KYCStatus.VERIFIED.value
    assert effective_status(row) == KYCStatus.EXPIRED
    assert not is_actively_verified(db, user_id=u.id, verification_type=KYCType.PERSON)


def test_latest_record_wins(db, factory):
    u = factory.user(plan="tenant_pro")
    factory.verified(u, KYCType.PERSON)
    start_verification(db, actor_user_id=u.id, user_id=u.id, verification_type="person", payload=PERSON_PAYLOAD)
    db.commit()

    # newest record is pending, so the user is not actively verified
    assert not is_actively_verified(db, user_id=u.id, verification_type=KYCType.PERSON)
    latest = get_user_kyc_status(db, actor_user_id=u.id, user_id=u.id, verification_type="person")
    assert latest.status == KYCStatus.PENDING.value
    assert len(list_user_verifications(db, actor_user_id=u.id, user_id=u.id)) == 2

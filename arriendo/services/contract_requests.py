# arriendo/services/contract_requests.py
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Optional

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..config import settings
from ..domain.audit import audit_write
from ..domain.errors import Conflict, Forbidden, InvalidState
from ..domain.statuses import (
    ACTIVE_REQUEST_STATUSES,
    ContractRequestStatus,
    KYCStatus,
    KYCType,
    PropertyStatus,
    values,
)
from ..models import ContractRequest, utcnow
from .kyc_service import effective_status, latest_verification
from .notifications import discard_pending_notifications, notify
from .ownership import must_get_property, must_get_request, require_participant, require_self
from .plan_service import Capability, require_entitled

log = logging.getLogger("arriendo.contract_requests")


def _snapshot(row: ContractRequest) -> dict[str, Any]:
    return {
        "status": row.status,
        "property_id": row.property_id,
        "tenant_id": row.tenant_id,
        "owner_id": row.owner_id,
        "tenant_kyc_status": row.tenant_kyc_status,
        "expires_at": row.expires_at,
    }


def tenant_kyc_snapshot(db: Session, *, tenant_id: str, now: Optional[datetime] = None) -> tuple[KYCStatus, Optional[datetime]]:
    """Current person-KYC status of the tenant, as stored on a request."""
    row = latest_verification(db, user_id=tenant_id, verification_type=KYCType.PERSON)
    if row is None:
        return KYCStatus.PENDING, None
    status = effective_status(row, now=now)
    return status, (row.verified_at if status == KYCStatus.VERIFIED else None)


def find_active_request(
    db: Session, *, tenant_id: str, property_id: str, now: Optional[datetime] = None
) -> Optional[ContractRequest]:
    """Pending (and unexpired) or approved request for the pair, if any."""
    now = now or utcnow()
    return db.scalar(
        select(ContractRequest)
        .where(
            ContractRequest.tenant_id == tenant_id,
            ContractRequest.property_id == property_id,
            ContractRequest.status.in_(values(ACTIVE_REQUEST_STATUSES)),
            or_(
                ContractRequest.status != ContractRequestStatus.PENDING.value,
                ContractRequest.expires_at.is_(None),
                ContractRequest.expires_at > now,
            ),
        )
        .limit(1)
    )


def expire_stale_requests(
    db: Session, *, actor_user_id: Optional[str], tenant_id: str, property_id: str, now: Optional[datetime] = None
) -> int:
    """
    Pending requests for the pair whose freshness window has closed move to
    expired, freeing the pair for a new request. Runs in the caller's transaction.
    """
    now = now or utcnow()
    stale = db.scalars(
        select(ContractRequest).where(
            ContractRequest.tenant_id == tenant_id,
            ContractRequest.property_id == property_id,
            ContractRequest.status == ContractRequestStatus.PENDING.value,
            ContractRequest.expires_at.is_not(None),
            ContractRequest.expires_at <= now,
        )
    ).all()
    for row in stale:
        before = _snapshot(row)
        row.status = ContractRequestStatus.EXPIRED.value
        db.add(row)
        audit_write(
            db,
            actor_user_id=actor_user_id,
            action="contract_request.expire",
            entity_type="ContractRequest",
            entity_id=row.id,
            before=before,
            after=_snapshot(row),
        )
    if stale:
        db.flush()
        log.info(
            "stale contract requests expired",
            extra={"user_id": tenant_id, "property_id": property_id, "status": ContractRequestStatus.EXPIRED.value},
        )
    return len(stale)


def is_eligible_for_contract(request: ContractRequest, *, now: Optional[datetime] = None) -> bool:
    """
    A request an owner may convert into a contract: still pending, tenant KYC
    verified, and inside its freshness window.
    """
    if request.status != ContractRequestStatus.PENDING.value:
        return False
    if request.tenant_kyc_status != KYCStatus.VERIFIED.value:
        return False
    now = now or utcnow()
    return request.expires_at is None or request.expires_at > now


def create_request(db: Session, *, actor_user_id: str, property_id: str, tenant_id: str) -> ContractRequest:
    require_self(actor_user_id, tenant_id, "No autorizado: solo puedes crear solicitudes para tu propio usuario")
    require_entitled(db, user_id=tenant_id, capability=Capability.CONTRACT_REQUEST)

    prop = must_get_property(db, property_id=property_id)
    if prop.status != PropertyStatus.PUBLISHED.value:
        raise InvalidState(
            "Solo puedes solicitar contratos para inmuebles publicados",
            expected=PropertyStatus.PUBLISHED.value,
            actual=prop.status,
        )

    if prop.owner_id == tenant_id:
        raise Forbidden("No puedes solicitar un contrato para tu propio inmueble")

    now = utcnow()
    # a pending request past its window no longer holds the pair
    expire_stale_requests(db, actor_user_id=actor_user_id, tenant_id=tenant_id, property_id=property_id, now=now)

    if find_active_request(db, tenant_id=tenant_id, property_id=property_id, now=now) is not None:
        raise Conflict("Ya tienes una solicitud activa para este inmueble")

    kyc_status, kyc_verified_at = tenant_kyc_snapshot(db, tenant_id=tenant_id, now=now)

    row = ContractRequest(
        property_id=prop.id,
        tenant_id=tenant_id,
        owner_id=prop.owner_id,
        status=ContractRequestStatus.PENDING.value,
        requested_at=now,
        expires_at=now + timedelta(days=int(settings.contract_request_ttl_days)),
        tenant_kyc_status=kyc_status.value,
        tenant_kyc_verified_at=kyc_verified_at,
    )
    db.add(row)
    try:
        db.flush()
    except IntegrityError:
        # lost the race against a concurrent insert for the same pair
        db.rollback()
        discard_pending_notifications(db)
        raise Conflict("Ya tienes una solicitud activa para este inmueble")

    audit_write(
        db,
        actor_user_id=actor_user_id,
        action="contract_request.create",
        entity_type="ContractRequest",
        entity_id=row.id,
        before=None,
        after=_snapshot(row),
    )
    notify(
        db,
        user_id=prop.owner_id,
        kind="contract_request.created",
        title="Nueva solicitud de contrato",
        message=f"Recibiste una solicitud de contrato para «{prop.title}».",
        related_entity_type="ContractRequest",
        related_entity_id=row.id,
    )
    log.info(
        "contract request created",
        extra={"user_id": tenant_id, "property_id": prop.id, "contract_request_id": row.id},
    )
    return row


def with_details(row: ContractRequest) -> dict[str, Any]:
    prop = row.property
    return {
        "id": row.id,
        "property_id": row.property_id,
        "tenant_id": row.tenant_id,
        "owner_id": row.owner_id,
        "status": row.status,
        "requested_at": row.requested_at,
        "expires_at": row.expires_at,
        "tenant_kyc_status": row.tenant_kyc_status,
        "tenant_kyc_verified_at": row.tenant_kyc_verified_at,
        "created_at": row.created_at,
        "updated_at": row.updated_at,
        "eligible_for_contract": is_eligible_for_contract(row),
        "property_title": prop.title if prop else "Sin título",
        "property_city": prop.city if prop else "",
        "property_neighborhood": prop.neighborhood if prop else None,
        "property_price": float(prop.price) if prop else 0.0,
        "tenant_name": row.tenant.full_name if row.tenant else None,
        "tenant_email": row.tenant.email if row.tenant else "",
        "owner_name": row.owner.display_name if row.owner else None,
        "owner_email": row.owner.email if row.owner else "",
    }


def list_for_tenant(db: Session, *, actor_user_id: str, tenant_id: str) -> list[ContractRequest]:
    require_self(actor_user_id, tenant_id, "No autorizado: solo puedes ver tus propias solicitudes")
    q = select(ContractRequest).where(ContractRequest.tenant_id == tenant_id).order_by(ContractRequest.created_at.desc())
    return list(db.scalars(q).all())


def list_for_owner(db: Session, *, actor_user_id: str, owner_id: str) -> list[ContractRequest]:
    require_self(actor_user_id, owner_id, "No autorizado: solo puedes ver tus propias solicitudes")
    q = select(ContractRequest).where(ContractRequest.owner_id == owner_id).order_by(ContractRequest.created_at.desc())
    return list(db.scalars(q).all())


def get_request(db: Session, *, actor_user_id: str, request_id: str) -> ContractRequest:
    row = must_get_request(db, request_id=request_id)
    require_participant(actor_user_id, row, "No autorizado: solo puedes ver solicitudes en las que participas")
    return row


def has_active_request(db: Session, *, actor_user_id: str, tenant_id: str, property_id: str) -> bool:
    if actor_user_id != tenant_id:
        return False
    return find_active_request(db, tenant_id=tenant_id, property_id=property_id) is not None

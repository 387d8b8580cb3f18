# arriendo/services/kyc_service.py
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..config import settings
from ..domain.audit import audit_write
from ..domain.errors import Forbidden, InvalidState, ValidationError
from ..domain.statuses import KYCStatus, KYCType
from ..models import KYCVerification, utcnow
from .kyc_providers import VerificationProvider, get_provider, missing_fields
from .ownership import must_get_property, must_get_verification, require_self
from .plan_service import Capability, require_entitled

log = logging.getLogger("arriendo.kyc")

_PAYLOAD_FIELDS = {
    KYCType.PERSON: ("document_type", "document_number", "document_front_url", "document_back_url", "selfie_url"),
    KYCType.COMPANY: ("company_name", "company_nit", "company_document_url"),
    KYCType.PROPERTY: ("property_id", "property_document_type", "property_document_url"),
}

_DOCUMENT_TYPES = {"cc", "ce", "passport", "nit"}
_PROPERTY_DOCUMENT_TYPES = {"escritura", "certificado", "otro"}


def _parse_type(raw: Any) -> KYCType:
    try:
        return KYCType(raw)
    except ValueError:
        raise ValidationError(f"tipo de verificación inválido: {raw}")


def _snapshot(row: KYCVerification) -> dict[str, Any]:
    return {
        "status": row.status,
        "verification_type": row.verification_type,
        "verified_at": row.verified_at,
        "verified_by": row.verified_by,
        "expires_at": row.expires_at,
        "rejection_reason": row.rejection_reason,
    }


def is_record_active(row: Optional[KYCVerification], *, now: Optional[datetime] = None) -> bool:
    """
    verified AND unexpired. A stored "verified" past its expires_at does not count.
    """
    if row is None or row.status != KYCStatus.VERIFIED.value:
        return False
    now = now or utcnow()
    return row.expires_at is None or row.expires_at > now


def effective_status(row: KYCVerification, *, now: Optional[datetime] = None) -> KYCStatus:
    status = KYCStatus(row.status)
    if status == KYCStatus.VERIFIED and not is_record_active(row, now=now):
        return KYCStatus.EXPIRED
    return status


def latest_verification(db: Session, *, user_id: str, verification_type: KYCType) -> Optional[KYCVerification]:
    return db.scalar(
        select(KYCVerification)
        .where(
            KYCVerification.user_id == user_id,
            KYCVerification.verification_type == verification_type.value,
        )
        .order_by(KYCVerification.created_at.desc(), KYCVerification.id.desc())
        .limit(1)
    )


def is_actively_verified(
    db: Session, *, user_id: str, verification_type: KYCType, now: Optional[datetime] = None
) -> bool:
    row = latest_verification(db, user_id=user_id, verification_type=KYCType(verification_type))
    return is_record_active(row, now=now)


def start_verification(
    db: Session,
    *,
    actor_user_id: str,
    user_id: str,
    verification_type: Any,
    payload: dict[str, Any],
) -> KYCVerification:
    vtype = _parse_type(verification_type)

    require_self(actor_user_id, user_id, "No autorizado: solo puedes iniciar verificaciones para tu propio usuario")
    require_entitled(db, user_id=user_id, capability=Capability.KYC)

    values = {f: payload.get(f) for f in _PAYLOAD_FIELDS[vtype]}
    missing = missing_fields(vtype, values)
    if missing:
        raise ValidationError(f"Faltan campos requeridos: {', '.join(missing)}")

    if vtype == KYCType.PERSON and values["document_type"] not in _DOCUMENT_TYPES:
        raise ValidationError(f"tipo de documento inválido: {values['document_type']}")

    if vtype == KYCType.PROPERTY:
        if values["property_document_type"] not in _PROPERTY_DOCUMENT_TYPES:
            raise ValidationError(f"tipo de documento de inmueble inválido: {values['property_document_type']}")
        prop = must_get_property(db, property_id=str(values["property_id"]))
        if prop.owner_id != user_id:
            raise Forbidden("No autorizado: solo puedes verificar tus propios inmuebles")

    row = KYCVerification(
        user_id=user_id,
        verification_type=vtype.value,
        status=KYCStatus.PENDING.value,
        **{k: v for k, v in values.items() if v is not None},
    )
    db.add(row)
    db.flush()

    audit_write(
        db,
        actor_user_id=actor_user_id,
        action="kyc.start",
        entity_type="KYCVerification",
        entity_id=row.id,
        before=None,
        after=_snapshot(row),
    )
    log.info("kyc verification started", extra={"user_id": user_id, "verification_id": row.id})
    return row


def complete_verification(
    db: Session,
    *,
    actor_user_id: str,
    verification_id: str,
    provider: Optional[VerificationProvider] = None,
) -> KYCVerification:
    row = must_get_verification(db, verification_id=verification_id)

    require_self(actor_user_id, row.user_id, "No autorizado: solo puedes completar tus propias verificaciones")
    require_entitled(db, user_id=row.user_id, capability=Capability.KYC)

    if row.status != KYCStatus.PENDING.value:
        raise InvalidState("La verificación debe estar pendiente para ser completada", expected=KYCStatus.PENDING.value, actual=row.status)

    before = _snapshot(row)
    decision = (provider or get_provider()).review(row)
    now = utcnow()

    if decision.approved:
        row.status = KYCStatus.VERIFIED.value
        row.verified_at = now
        row.verified_by = decision.verified_by.value
        row.rejection_reason = None
        row.expires_at = now + timedelta(days=int(settings.kyc_validity_days))
    else:
        row.status = KYCStatus.REJECTED.value
        row.rejection_reason = decision.rejection_reason

    db.add(row)
    db.flush()

    audit_write(
        db,
        actor_user_id=actor_user_id,
        action="kyc.complete",
        entity_type="KYCVerification",
        entity_id=row.id,
        before=before,
        after=_snapshot(row),
    )
    log.info(
        "kyc verification completed",
        extra={"user_id": row.user_id, "verification_id": row.id, "status": row.status},
    )
    return row


def get_user_kyc_status(
    db: Session, *, actor_user_id: str, user_id: str, verification_type: Any
) -> Optional[KYCVerification]:
    require_self(actor_user_id, user_id, "No autorizado: solo puedes ver tus propias verificaciones")
    return latest_verification(db, user_id=user_id, verification_type=_parse_type(verification_type))


def list_user_verifications(db: Session, *, actor_user_id: str, user_id: str) -> list[KYCVerification]:
    require_self(actor_user_id, user_id, "No autorizado: solo puedes ver tus propias verificaciones")
    q = (
        select(KYCVerification)
        .where(KYCVerification.user_id == user_id)
        .order_by(KYCVerification.created_at.desc(), KYCVerification.id.desc())
    )
    return list(db.scalars(q).all())

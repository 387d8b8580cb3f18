# arriendo/services/ownership.py
from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..domain.errors import Forbidden, NotFound
from ..models import AppUser, ContractRequest, KYCVerification, Property, PropertyIntention, RentalContract


def must_get_user(db: Session, *, user_id: str) -> AppUser:
    row = db.get(AppUser, user_id)
    if not row:
        raise NotFound("usuario no encontrado")
    return row


def must_get_property(db: Session, *, property_id: str, for_update: bool = False) -> Property:
    q = select(Property).where(Property.id == property_id)
    if for_update:
        # serializes concurrent lock/unlock of the same listing (no-op on SQLite)
        q = q.with_for_update()
    row = db.scalar(q)
    if not row:
        raise NotFound("Inmueble no encontrado")
    return row


def must_get_request(db: Session, *, request_id: str) -> ContractRequest:
    row = db.get(ContractRequest, request_id)
    if not row:
        raise NotFound("Solicitud de contrato no encontrada")
    return row


def must_get_contract(db: Session, *, contract_id: str, for_update: bool = False) -> RentalContract:
    q = select(RentalContract).where(RentalContract.id == contract_id)
    if for_update:
        q = q.with_for_update()
    row = db.scalar(q)
    if not row:
        raise NotFound("Contrato no encontrado")
    return row


def must_get_verification(db: Session, *, verification_id: str) -> KYCVerification:
    row = db.get(KYCVerification, verification_id)
    if not row:
        raise NotFound("Verificación no encontrada")
    return row


def must_get_intention(db: Session, *, intention_id: str) -> PropertyIntention:
    row = db.get(PropertyIntention, intention_id)
    if not row:
        raise NotFound("Interés no encontrado")
    return row


def require_self(actor_user_id: str, user_id: str, message: str) -> None:
    if not actor_user_id or actor_user_id != user_id:
        raise Forbidden(message)


def require_participant(actor_user_id: str, row, message: str) -> None:
    if actor_user_id not in (row.tenant_id, row.owner_id):
        raise Forbidden(message)

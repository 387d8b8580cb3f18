# arriendo/services/rental_contracts.py
from __future__ import annotations

import calendar
import json
import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..config import settings
from ..domain.audit import audit_write
from ..domain.contract_templates import build_bindings, get_template, render
from ..domain.errors import Conflict, Forbidden, InvalidState, KYCRequired, ValidationError
from ..domain.statuses import (
    CANCELLABLE_CONTRACT_STATUSES,
    LOCKABLE_PROPERTY_STATUSES,
    NON_TERMINAL_CONTRACT_STATUSES,
    ContractRequestStatus,
    KYCType,
    PropertyStatus,
    RentalContractStatus,
    assert_contract_transition,
    require_contract_status,
    values,
)
from ..models import RentalContract, utcnow
from .contract_requests import tenant_kyc_snapshot
from .kyc_service import is_actively_verified
from .notifications import discard_pending_notifications, notify
from .ownership import (
    must_get_contract,
    must_get_property,
    must_get_request,
    must_get_user,
    require_participant,
    require_self,
)
from .plan_service import Capability, require_entitled

log = logging.getLogger("arriendo.contracts")


@dataclass(frozen=True)
class ContractTerms:
    monthly_rent: Optional[float] = None
    deposit_amount: Optional[float] = None
    contract_duration_months: Optional[int] = None
    start_date: Optional[date] = None
    template_id: Optional[str] = None


def add_months(d: date, months: int) -> date:
    """Calendar month arithmetic; the day is clamped to the target month's length."""
    idx = d.month - 1 + int(months)
    year = d.year + idx // 12
    month = idx % 12 + 1
    day = min(d.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def _snapshot(c: RentalContract) -> dict[str, Any]:
    return {
        "status": c.status,
        "property_id": c.property_id,
        "tenant_id": c.tenant_id,
        "owner_id": c.owner_id,
        "contract_request_id": c.contract_request_id,
        "monthly_rent": c.monthly_rent,
        "owner_approved_at": c.owner_approved_at,
        "tenant_approved_at": c.tenant_approved_at,
        "legal_disclaimer_accepted_at": c.legal_disclaimer_accepted_at,
        "tenant_disclaimer_accepted_at": c.tenant_disclaimer_accepted_at,
        "cancelled_at": c.cancelled_at,
    }


def find_open_contract(db: Session, *, property_id: str) -> Optional[RentalContract]:
    return db.scalar(
        select(RentalContract)
        .where(
            RentalContract.property_id == property_id,
            RentalContract.status.in_(values(NON_TERMINAL_CONTRACT_STATUSES)),
        )
        .limit(1)
    )


def has_active_contract(db: Session, *, property_id: str) -> bool:
    return find_open_contract(db, property_id=property_id) is not None


def _validate_terms(terms: ContractTerms) -> None:
    if terms.monthly_rent is not None and terms.monthly_rent <= 0:
        raise ValidationError("El canon mensual debe ser mayor que cero")
    if terms.deposit_amount is not None and terms.deposit_amount < 0:
        raise ValidationError("El depósito no puede ser negativo")
    if terms.contract_duration_months is not None and terms.contract_duration_months <= 0:
        raise ValidationError("La duración del contrato debe ser de al menos un mes")


def start_contract(
    db: Session,
    *,
    actor_user_id: str,
    property_id: str,
    tenant_id: str,
    contract_request_id: Optional[str] = None,
    terms: Optional[ContractTerms] = None,
) -> RentalContract:
    """
    Owner opens a draft contract with a tenant and locks the property.

    Every check runs before the first write; the contract insert, the property
    lock and the request approval land in one transaction.
    """
    terms = terms or ContractTerms()
    _validate_terms(terms)

    prop = must_get_property(db, property_id=property_id, for_update=True)
    if prop.owner_id != actor_user_id:
        raise Forbidden("No autorizado: solo puedes iniciar contratos para tus propios inmuebles")
    if tenant_id == prop.owner_id:
        raise Forbidden("No puedes iniciar un contrato contigo mismo como inquilino")

    require_entitled(db, user_id=actor_user_id, capability=Capability.START_CONTRACT)

    now = utcnow()
    owner_verified = is_actively_verified(
        db, user_id=actor_user_id, verification_type=KYCType.PERSON, now=now
    ) or is_actively_verified(db, user_id=actor_user_id, verification_type=KYCType.COMPANY, now=now)
    if not owner_verified:
        raise KYCRequired("Debes tener una verificación KYC activa (persona o empresa) para iniciar contratos")

    tenant = must_get_user(db, user_id=tenant_id)
    if not is_actively_verified(db, user_id=tenant.id, verification_type=KYCType.PERSON, now=now):
        raise KYCRequired("El inquilino debe tener una verificación KYC activa para iniciar contratos")

    prior = PropertyStatus(prop.status)
    if prior not in LOCKABLE_PROPERTY_STATUSES:
        raise InvalidState(
            "Solo puedes iniciar contratos para inmuebles publicados o pausados",
            expected=values(LOCKABLE_PROPERTY_STATUSES),
            actual=prop.status,
        )

    if find_open_contract(db, property_id=prop.id) is not None:
        raise Conflict("Ya existe un contrato activo para este inmueble")

    req = None
    if contract_request_id:
        req = must_get_request(db, request_id=contract_request_id)
        if req.property_id != prop.id or req.tenant_id != tenant.id:
            raise ValidationError("La solicitud no corresponde a este inmueble e inquilino")
        if req.status != ContractRequestStatus.PENDING.value:
            raise InvalidState(
                "La solicitud no es elegible para iniciar un contrato",
                expected=ContractRequestStatus.PENDING.value,
                actual=req.status,
            )
        if req.expires_at is not None and req.expires_at <= now:
            raise InvalidState(
                "La solicitud de contrato ya expiró",
                expected=ContractRequestStatus.PENDING.value,
                actual=ContractRequestStatus.EXPIRED.value,
            )
        # the stored snapshot may predate the tenant's current verification
        req_kyc_status, req_kyc_verified_at = tenant_kyc_snapshot(db, tenant_id=tenant.id, now=now)

    owner = must_get_user(db, user_id=prop.owner_id)
    monthly_rent = float(terms.monthly_rent if terms.monthly_rent is not None else prop.price)
    # unknown ids fall back to the default; store what was actually rendered
    template_id = get_template(terms.template_id or settings.default_contract_template).id
    content = render(
        template_id,
        build_bindings(
            landlord_name=owner.display_name,
            landlord_email=owner.email,
            tenant_name=tenant.full_name,
            tenant_email=tenant.email,
            property_address=prop.address,
            monthly_price=monthly_rent,
        ),
    )

    end_date = None
    if terms.start_date is not None and terms.contract_duration_months:
        end_date = add_months(terms.start_date, terms.contract_duration_months)

    contract = RentalContract(
        contract_request_id=req.id if req is not None else None,
        property_id=prop.id,
        tenant_id=tenant.id,
        owner_id=prop.owner_id,
        status=RentalContractStatus.DRAFT.value,
        contract_template_id=template_id,
        contract_content=content,
        monthly_rent=monthly_rent,
        deposit_amount=terms.deposit_amount,
        contract_duration_months=terms.contract_duration_months,
        start_date=terms.start_date,
        end_date=end_date,
        property_prior_status=prior.value,
    )
    db.add(contract)

    prop.status = PropertyStatus.LOCKED_FOR_CONTRACT.value
    db.add(prop)

    if req is not None:
        req.tenant_kyc_status = req_kyc_status.value
        req.tenant_kyc_verified_at = req_kyc_verified_at
        req.status = ContractRequestStatus.APPROVED.value
        db.add(req)

    try:
        db.flush()
    except IntegrityError:
        # a concurrent start for the same property won
        db.rollback()
        discard_pending_notifications(db)
        raise Conflict("Ya existe un contrato activo para este inmueble")

    audit_write(
        db,
        actor_user_id=actor_user_id,
        action="contract.start",
        entity_type="RentalContract",
        entity_id=contract.id,
        before=None,
        after=_snapshot(contract),
    )
    audit_write(
        db,
        actor_user_id=actor_user_id,
        action="property.lock",
        entity_type="Property",
        entity_id=prop.id,
        before={"status": prior.value},
        after={"status": prop.status},
    )
    log.info(
        "contract started",
        extra={"user_id": actor_user_id, "property_id": prop.id, "contract_id": contract.id},
    )
    return contract


def update_contract_content(
    db: Session,
    *,
    actor_user_id: str,
    contract_id: str,
    content: str,
    clauses: Optional[list[dict[str, Any]]] = None,
) -> RentalContract:
    c = must_get_contract(db, contract_id=contract_id)
    if c.owner_id != actor_user_id:
        raise Forbidden("No autorizado: solo puedes editar tus propios contratos")
    require_contract_status(c.status, RentalContractStatus.DRAFT, "edit")

    if not content or not content.strip():
        raise ValidationError("El contenido del contrato no puede estar vacío")

    c.contract_content = content
    if clauses is not None:
        c.clauses_json = json.dumps(clauses, ensure_ascii=False)
    db.add(c)
    db.flush()

    audit_write(
        db,
        actor_user_id=actor_user_id,
        action="contract.update_content",
        entity_type="RentalContract",
        entity_id=c.id,
        before=None,
        after={"content_length": len(content), "clauses": len(clauses) if clauses is not None else None},
    )
    return c


def approve_and_send_contract(
    db: Session, *, actor_user_id: str, contract_id: str, disclaimer_accepted: bool
) -> RentalContract:
    c = must_get_contract(db, contract_id=contract_id, for_update=True)
    if c.owner_id != actor_user_id:
        raise Forbidden("No autorizado: solo puedes aprobar y enviar tus propios contratos")
    require_contract_status(c.status, RentalContractStatus.DRAFT, "send")
    if disclaimer_accepted is not True:
        raise ValidationError("Debes aceptar el disclaimer legal antes de enviar el contrato al inquilino")

    assert_contract_transition(c.status, RentalContractStatus.PENDING_TENANT)
    before = _snapshot(c)
    now = utcnow()

    c.status = RentalContractStatus.PENDING_TENANT.value
    c.owner_approved_at = now
    c.legal_disclaimer_accepted_at = now
    db.add(c)
    db.flush()

    audit_write(
        db,
        actor_user_id=actor_user_id,
        action="contract.approve_and_send",
        entity_type="RentalContract",
        entity_id=c.id,
        before=before,
        after=_snapshot(c),
    )
    notify(
        db,
        user_id=c.tenant_id,
        kind="contract.sent",
        title="Tienes un contrato por revisar",
        message=f"El propietario te envió el contrato de «{c.property.title}» para tu aprobación.",
        related_entity_type="RentalContract",
        related_entity_id=c.id,
    )
    log.info(
        "contract sent to tenant",
        extra={"user_id": actor_user_id, "property_id": c.property_id, "contract_id": c.id},
    )
    return c


def tenant_approve_contract(
    db: Session, *, actor_user_id: str, contract_id: str, disclaimer_accepted: bool
) -> RentalContract:
    c = must_get_contract(db, contract_id=contract_id, for_update=True)
    if c.tenant_id != actor_user_id:
        raise Forbidden("No autorizado: solo puedes aprobar tus propios contratos")
    require_contract_status(c.status, RentalContractStatus.PENDING_TENANT, "approve")
    if disclaimer_accepted is not True:
        raise ValidationError("Debes aceptar el disclaimer legal antes de aprobar el contrato")

    assert_contract_transition(c.status, RentalContractStatus.APPROVED)
    before = _snapshot(c)
    now = utcnow()

    c.status = RentalContractStatus.APPROVED.value
    c.tenant_approved_at = now
    c.tenant_disclaimer_accepted_at = now
    db.add(c)
    db.flush()

    audit_write(
        db,
        actor_user_id=actor_user_id,
        action="contract.tenant_approve",
        entity_type="RentalContract",
        entity_id=c.id,
        before=before,
        after=_snapshot(c),
    )
    notify(
        db,
        user_id=c.owner_id,
        kind="contract.tenant_approved",
        title="El inquilino aprobó el contrato",
        message=f"El contrato de «{c.property.title}» fue aprobado por el inquilino.",
        related_entity_type="RentalContract",
        related_entity_id=c.id,
    )
    log.info(
        "contract approved by tenant",
        extra={"user_id": actor_user_id, "property_id": c.property_id, "contract_id": c.id},
    )
    return c


def cancel_contract_and_reactivate_property(
    db: Session, *, actor_user_id: str, contract_id: str
) -> RentalContract:
    c = must_get_contract(db, contract_id=contract_id, for_update=True)
    # terminal contracts reject every caller the same way
    require_contract_status(c.status, CANCELLABLE_CONTRACT_STATUSES, "cancel")
    if c.owner_id != actor_user_id:
        raise Forbidden("No autorizado: solo puedes cancelar tus propios contratos")
    assert_contract_transition(c.status, RentalContractStatus.CANCELLED)

    prop = must_get_property(db, property_id=c.property_id, for_update=True)
    before = _snapshot(c)
    property_before = prop.status

    c.status = RentalContractStatus.CANCELLED.value
    c.cancelled_at = utcnow()
    db.add(c)

    # only undo our own lock; a property moved elsewhere meanwhile stays put
    if prop.status == PropertyStatus.LOCKED_FOR_CONTRACT.value:
        prop.status = c.property_prior_status or PropertyStatus.PUBLISHED.value
        db.add(prop)
    db.flush()

    audit_write(
        db,
        actor_user_id=actor_user_id,
        action="contract.cancel",
        entity_type="RentalContract",
        entity_id=c.id,
        before=before,
        after=_snapshot(c),
    )
    audit_write(
        db,
        actor_user_id=actor_user_id,
        action="property.unlock",
        entity_type="Property",
        entity_id=prop.id,
        before={"status": property_before},
        after={"status": prop.status},
    )
    notify(
        db,
        user_id=c.tenant_id,
        kind="contract.cancelled",
        title="Contrato cancelado",
        message=f"El propietario canceló el contrato de «{prop.title}».",
        related_entity_type="RentalContract",
        related_entity_id=c.id,
    )
    log.info(
        "contract cancelled",
        extra={
            "user_id": actor_user_id,
            "property_id": prop.id,
            "contract_id": c.id,
            "property_status": prop.status,
        },
    )
    return c


def get_contract(db: Session, *, actor_user_id: str, contract_id: str) -> RentalContract:
    c = must_get_contract(db, contract_id=contract_id)
    require_participant(actor_user_id, c, "No autorizado: solo puedes ver contratos en los que participas")
    return c


def list_owner_contracts(db: Session, *, actor_user_id: str, owner_id: str) -> list[RentalContract]:
    require_self(actor_user_id, owner_id, "No autorizado: solo puedes ver tus propios contratos")
    q = select(RentalContract).where(RentalContract.owner_id == owner_id).order_by(RentalContract.created_at.desc())
    return list(db.scalars(q).all())


def list_tenant_contracts(db: Session, *, actor_user_id: str, tenant_id: str) -> list[RentalContract]:
    require_self(actor_user_id, tenant_id, "No autorizado: solo puedes ver tus propios contratos")
    q = select(RentalContract).where(RentalContract.tenant_id == tenant_id).order_by(RentalContract.created_at.desc())
    return list(db.scalars(q).all())


def clauses(c: RentalContract) -> list[dict[str, Any]]:
    if not c.clauses_json:
        return []
    try:
        v = json.loads(c.clauses_json)
    except ValueError:
        return []
    return v if isinstance(v, list) else []


def with_details(c: RentalContract) -> dict[str, Any]:
    prop = c.property
    return {
        "id": c.id,
        "contract_request_id": c.contract_request_id,
        "property_id": c.property_id,
        "tenant_id": c.tenant_id,
        "owner_id": c.owner_id,
        "status": c.status,
        "version": c.version,
        "contract_template_id": c.contract_template_id,
        "contract_content": c.contract_content,
        "contract_pdf_url": c.contract_pdf_url,
        "clauses": clauses(c),
        "monthly_rent": c.monthly_rent,
        "deposit_amount": c.deposit_amount,
        "contract_duration_months": c.contract_duration_months,
        "start_date": c.start_date,
        "end_date": c.end_date,
        "owner_approved_at": c.owner_approved_at,
        "tenant_approved_at": c.tenant_approved_at,
        "legal_disclaimer_accepted_at": c.legal_disclaimer_accepted_at,
        "tenant_disclaimer_accepted_at": c.tenant_disclaimer_accepted_at,
        "cancelled_at": c.cancelled_at,
        "created_at": c.created_at,
        "updated_at": c.updated_at,
        "property_title": prop.title if prop else "Sin título",
        "property_city": prop.city if prop else "",
        "property_neighborhood": prop.neighborhood if prop else None,
        "property_status": prop.status if prop else None,
        "tenant_name": c.tenant.full_name if c.tenant else None,
        "tenant_email": c.tenant.email if c.tenant else "",
        "owner_name": c.owner.display_name if c.owner else None,
        "owner_email": c.owner.email if c.owner else "",
    }

# arriendo/services/intentions.py
"""
Property intentions: a tenant's lightweight "I'm interested" on a listing,
which the owner works through as leads. No plan gate and no KYC; a contract
request is the formal step that follows.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..domain.audit import audit_write
from ..domain.errors import Forbidden, InvalidState, ValidationError
from ..domain.statuses import IntentionStatus, PropertyStatus, assert_intention_transition, values
from ..models import PropertyIntention
from .notifications import discard_pending_notifications, notify
from .ownership import must_get_intention, must_get_property, require_self

log = logging.getLogger("arriendo.intentions")


def _snapshot(row: PropertyIntention) -> dict[str, Any]:
    return {
        "status": row.status,
        "property_id": row.property_id,
        "tenant_id": row.tenant_id,
        "owner_id": row.owner_id,
    }


def find_intention(db: Session, *, tenant_id: str, property_id: str) -> Optional[PropertyIntention]:
    return db.scalar(
        select(PropertyIntention).where(
            PropertyIntention.tenant_id == tenant_id,
            PropertyIntention.property_id == property_id,
        )
    )


def create_intention(db: Session, *, actor_user_id: str, property_id: str, tenant_id: str) -> PropertyIntention:
    """Idempotent: a second call for the same pair returns the existing row untouched."""
    require_self(actor_user_id, tenant_id, "No autorizado: solo puedes registrar interés para tu propio usuario")

    existing = find_intention(db, tenant_id=tenant_id, property_id=property_id)
    if existing is not None:
        return existing

    prop = must_get_property(db, property_id=property_id)
    if prop.status != PropertyStatus.PUBLISHED.value:
        raise InvalidState(
            "Solo puedes mostrar interés en inmuebles publicados",
            expected=PropertyStatus.PUBLISHED.value,
            actual=prop.status,
        )
    if prop.owner_id == tenant_id:
        raise Forbidden("No puedes mostrar interés en tu propio inmueble")

    row = PropertyIntention(
        property_id=prop.id,
        tenant_id=tenant_id,
        owner_id=prop.owner_id,
        status=IntentionStatus.PENDING.value,
    )
    db.add(row)
    try:
        db.flush()
    except IntegrityError:
        # a concurrent call inserted the pair first
        db.rollback()
        discard_pending_notifications(db)
        return find_intention(db, tenant_id=tenant_id, property_id=property_id)

    audit_write(
        db,
        actor_user_id=actor_user_id,
        action="intention.create",
        entity_type="PropertyIntention",
        entity_id=row.id,
        before=None,
        after=_snapshot(row),
    )
    notify(
        db,
        user_id=prop.owner_id,
        kind="intention.created",
        title="Nuevo interesado",
        message=f"Un inquilino mostró interés en «{prop.title}».",
        related_entity_type="PropertyIntention",
        related_entity_id=row.id,
    )
    log.info("intention created", extra={"user_id": tenant_id, "property_id": prop.id, "intention_id": row.id})
    return row


def update_intention_status(db: Session, *, actor_user_id: str, intention_id: str, status: str) -> PropertyIntention:
    try:
        target = IntentionStatus(status)
    except ValueError:
        raise ValidationError(f"Estado inválido; usa uno de: {', '.join(values(IntentionStatus))}")

    row = must_get_intention(db, intention_id=intention_id)
    if row.owner_id != actor_user_id:
        raise Forbidden("No autorizado: solo el propietario puede actualizar el interés")

    assert_intention_transition(row.status, target)
    if row.status == target.value:
        return row

    before = _snapshot(row)
    row.status = target.value
    db.add(row)
    db.flush()
    audit_write(
        db,
        actor_user_id=actor_user_id,
        action="intention.status",
        entity_type="PropertyIntention",
        entity_id=row.id,
        before=before,
        after=_snapshot(row),
    )
    log.info("intention status updated", extra={"user_id": actor_user_id, "intention_id": row.id, "status": row.status})
    return row


def list_tenant_intentions(db: Session, *, actor_user_id: str, tenant_id: str) -> list[PropertyIntention]:
    require_self(actor_user_id, tenant_id, "No autorizado: solo puedes ver tus propios intereses")
    q = select(PropertyIntention).where(PropertyIntention.tenant_id == tenant_id).order_by(PropertyIntention.created_at.desc())
    return list(db.scalars(q).all())


def list_owner_intentions(db: Session, *, actor_user_id: str, owner_id: str) -> list[PropertyIntention]:
    require_self(actor_user_id, owner_id, "No autorizado: solo puedes ver los interesados en tus inmuebles")
    q = select(PropertyIntention).where(PropertyIntention.owner_id == owner_id).order_by(PropertyIntention.created_at.desc())
    return list(db.scalars(q).all())


def has_intention_for_property(db: Session, *, actor_user_id: str, property_id: str) -> bool:
    return find_intention(db, tenant_id=actor_user_id, property_id=property_id) is not None


def with_details(row: PropertyIntention) -> dict[str, Any]:
    prop = row.property
    return {
        "id": row.id,
        "property_id": row.property_id,
        "tenant_id": row.tenant_id,
        "owner_id": row.owner_id,
        "status": row.status,
        "created_at": row.created_at,
        "updated_at": row.updated_at,
        "property_title": prop.title if prop else "Sin título",
        "property_city": prop.city if prop else "",
        "property_neighborhood": prop.neighborhood if prop else None,
        "property_price": float(prop.price) if prop else 0.0,
        "tenant_name": row.tenant.full_name if row.tenant else None,
        "tenant_email": row.tenant.email if row.tenant else "",
    }

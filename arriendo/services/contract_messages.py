# arriendo/services/contract_messages.py
from __future__ import annotations

import json
import logging
from typing import Any, Optional

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from ..domain.errors import Forbidden, NotFound, ValidationError
from ..domain.statuses import ContractMessageType
from ..models import ContractMessage, RentalContract
from .notifications import notify
from .ownership import must_get_contract, require_participant

log = logging.getLogger("arriendo.contract_messages")

_PARTICIPANTS_ONLY = "No autorizado: solo los participantes del contrato pueden ver o enviar mensajes"


def _parse_type(raw: Any) -> ContractMessageType:
    try:
        return ContractMessageType(raw)
    except ValueError:
        raise ValidationError(f"tipo de mensaje inválido: {raw}")


def parse_change_request(m: ContractMessage) -> Optional[dict[str, Any]]:
    if not m.change_request_json:
        return None
    try:
        v = json.loads(m.change_request_json)
    except ValueError:
        return None
    return v if isinstance(v, dict) else None


def send_message(
    db: Session,
    *,
    actor_user_id: str,
    contract_id: str,
    content: str,
    message_type: Any = ContractMessageType.COMMENT,
    change_request_data: Optional[dict[str, Any]] = None,
) -> ContractMessage:
    contract = must_get_contract(db, contract_id=contract_id)
    require_participant(actor_user_id, contract, _PARTICIPANTS_ONLY)

    mtype = _parse_type(message_type)
    if not content or not content.strip():
        raise ValidationError("El mensaje no puede estar vacío")
    if mtype == ContractMessageType.CHANGE_REQUEST and not (change_request_data or {}).get("field"):
        raise ValidationError("Una solicitud de cambio debe indicar el campo a modificar")

    row = ContractMessage(
        contract_id=contract.id,
        sender_id=actor_user_id,
        message_type=mtype.value,
        content=content.strip(),
        change_request_json=json.dumps(change_request_data, ensure_ascii=False, default=str) if change_request_data else None,
    )
    db.add(row)
    db.flush()

    recipient = contract.tenant_id if actor_user_id == contract.owner_id else contract.owner_id
    notify(
        db,
        user_id=recipient,
        kind="contract.message",
        title="Nuevo mensaje en tu contrato",
        message=row.content[:200],
        related_entity_type="RentalContract",
        related_entity_id=contract.id,
    )
    log.info(
        "contract message sent",
        extra={"user_id": actor_user_id, "contract_id": contract.id, "message_type": mtype.value},
    )
    return row


def list_messages(db: Session, *, actor_user_id: str, contract_id: str) -> list[ContractMessage]:
    contract = must_get_contract(db, contract_id=contract_id)
    require_participant(actor_user_id, contract, _PARTICIPANTS_ONLY)
    q = (
        select(ContractMessage)
        .where(ContractMessage.contract_id == contract.id)
        .order_by(ContractMessage.created_at.asc(), ContractMessage.id.asc())
    )
    return list(db.scalars(q).all())


def mark_message_read(db: Session, *, actor_user_id: str, message_id: str) -> ContractMessage:
    row = db.get(ContractMessage, message_id)
    if row is None:
        raise NotFound("Mensaje no encontrado")
    contract = row.contract
    require_participant(actor_user_id, contract, _PARTICIPANTS_ONLY)
    if row.sender_id == actor_user_id:
        raise Forbidden("No puedes marcar como leído un mensaje que enviaste")
    row.is_read = True
    db.add(row)
    return row


def mark_all_read(db: Session, *, actor_user_id: str, contract_id: str) -> int:
    contract = must_get_contract(db, contract_id=contract_id)
    require_participant(actor_user_id, contract, _PARTICIPANTS_ONLY)
    res = db.execute(
        update(ContractMessage)
        .where(
            ContractMessage.contract_id == contract.id,
            ContractMessage.sender_id != actor_user_id,
            ContractMessage.is_read.is_(False),
        )
        .values(is_read=True)
    )
    return int(res.rowcount or 0)


def unread_count(db: Session, *, actor_user_id: str, contract_id: Optional[str] = None) -> int:
    """
    Unread messages addressed to the caller (own messages never count).
    Without contract_id, counts across every contract the caller takes part in.
    """
    q = select(func.count(ContractMessage.id)).where(
        ContractMessage.sender_id != actor_user_id,
        ContractMessage.is_read.is_(False),
    )
    if contract_id is not None:
        contract = must_get_contract(db, contract_id=contract_id)
        require_participant(actor_user_id, contract, _PARTICIPANTS_ONLY)
        q = q.where(ContractMessage.contract_id == contract.id)
    else:
        mine = select(RentalContract.id).where(
            (RentalContract.owner_id == actor_user_id) | (RentalContract.tenant_id == actor_user_id)
        )
        q = q.where(ContractMessage.contract_id.in_(mine))
    return int(db.scalar(q) or 0)

# arriendo/routers/contracts.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal
from ..db import get_db
from ..models import ContractMessage
from ..schemas import (
    ApproveAndSendOut,
    CancelContractOut,
    ContractContentIn,
    ContractMessageIn,
    ContractMessageOut,
    CountOut,
    DisclaimerIn,
    RentalContractOut,
    StartContractIn,
    TenantApproveOut,
)
from ..services.contract_messages import (
    list_messages,
    mark_all_read,
    mark_message_read,
    parse_change_request,
    send_message,
    unread_count,
)
from ..services.notifications import commit_and_dispatch
from ..services.rental_contracts import (
    ContractTerms,
    approve_and_send_contract,
    cancel_contract_and_reactivate_property,
    get_contract,
    has_active_contract,
    list_owner_contracts,
    list_tenant_contracts,
    start_contract,
    tenant_approve_contract,
    update_contract_content,
    with_details,
)

router = APIRouter(prefix="/contracts", tags=["contracts"])


def _message_out(m: ContractMessage) -> ContractMessageOut:
    return ContractMessageOut(
        id=m.id,
        contract_id=m.contract_id,
        sender_id=m.sender_id,
        message_type=m.message_type,
        content=m.content,
        change_request_data=parse_change_request(m),
        is_read=m.is_read,
        created_at=m.created_at,
        sender_name=m.sender.display_name if m.sender else None,
        sender_email=m.sender.email if m.sender else None,
    )


# -------------------- lifecycle --------------------

@router.post("", response_model=RentalContractOut)
def start(payload: StartContractIn, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    row = start_contract(
        db,
        actor_user_id=p.user_id,
        property_id=payload.property_id,
        tenant_id=payload.tenant_id,
        contract_request_id=payload.contract_request_id,
        terms=ContractTerms(
            monthly_rent=payload.monthly_rent,
            deposit_amount=payload.deposit_amount,
            contract_duration_months=payload.contract_duration_months,
            start_date=payload.start_date,
            template_id=payload.template_id,
        ),
    )
    commit_and_dispatch(db)
    db.refresh(row)
    return with_details(row)


@router.put("/{contract_id}/content", response_model=RentalContractOut)
def update_content(
    contract_id: str,
    payload: ContractContentIn,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    clauses = [c.model_dump() for c in payload.clauses] if payload.clauses is not None else None
    row = update_contract_content(
        db, actor_user_id=p.user_id, contract_id=contract_id, content=payload.content, clauses=clauses
    )
    commit_and_dispatch(db)
    db.refresh(row)
    return with_details(row)


@router.post("/{contract_id}/approve-and-send", response_model=ApproveAndSendOut)
def approve_and_send(
    contract_id: str,
    payload: DisclaimerIn,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    row = approve_and_send_contract(
        db, actor_user_id=p.user_id, contract_id=contract_id, disclaimer_accepted=payload.disclaimer_accepted
    )
    commit_and_dispatch(db)
    db.refresh(row)
    return ApproveAndSendOut(
        id=row.id,
        status=row.status,
        legal_disclaimer_accepted_at=row.legal_disclaimer_accepted_at,
        updated_at=row.updated_at,
        notification_sent=True,
    )


@router.post("/{contract_id}/tenant-approve", response_model=TenantApproveOut)
def tenant_approve(
    contract_id: str,
    payload: DisclaimerIn,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    row = tenant_approve_contract(
        db, actor_user_id=p.user_id, contract_id=contract_id, disclaimer_accepted=payload.disclaimer_accepted
    )
    commit_and_dispatch(db)
    db.refresh(row)
    return TenantApproveOut(
        id=row.id,
        status=row.status,
        tenant_approved_at=row.tenant_approved_at,
        tenant_disclaimer_accepted_at=row.tenant_disclaimer_accepted_at,
        updated_at=row.updated_at,
        notification_sent=True,
    )


@router.post("/{contract_id}/cancel", response_model=CancelContractOut)
def cancel(contract_id: str, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    row = cancel_contract_and_reactivate_property(db, actor_user_id=p.user_id, contract_id=contract_id)
    commit_and_dispatch(db)
    db.refresh(row)
    return CancelContractOut(
        contract_id=row.id,
        contract_status=row.status,
        property_id=row.property_id,
        property_status=row.property.status,
        updated_at=row.updated_at,
    )


# -------------------- reads --------------------

@router.get("/owner", response_model=list[RentalContractOut])
def as_owner(db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return [with_details(c) for c in list_owner_contracts(db, actor_user_id=p.user_id, owner_id=p.user_id)]


@router.get("/tenant", response_model=list[RentalContractOut])
def as_tenant(db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return [with_details(c) for c in list_tenant_contracts(db, actor_user_id=p.user_id, tenant_id=p.user_id)]


@router.get("/active", response_model=dict)
def active(property_id: str = Query(...), db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return {"property_id": property_id, "has_active_contract": has_active_contract(db, property_id=property_id)}


@router.get("/messages/unread-count", response_model=CountOut)
def all_unread(db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return CountOut(count=unread_count(db, actor_user_id=p.user_id))


@router.post("/messages/{message_id}/read", response_model=ContractMessageOut)
def read_message(message_id: str, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    row = mark_message_read(db, actor_user_id=p.user_id, message_id=message_id)
    db.commit()
    db.refresh(row)
    return _message_out(row)


@router.get("/{contract_id}", response_model=RentalContractOut)
def detail(contract_id: str, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return with_details(get_contract(db, actor_user_id=p.user_id, contract_id=contract_id))


# -------------------- messages --------------------

@router.get("/{contract_id}/messages", response_model=list[ContractMessageOut])
def messages(contract_id: str, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return [_message_out(m) for m in list_messages(db, actor_user_id=p.user_id, contract_id=contract_id)]


@router.post("/{contract_id}/messages", response_model=ContractMessageOut)
def post_message(
    contract_id: str,
    payload: ContractMessageIn,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    row = send_message(
        db,
        actor_user_id=p.user_id,
        contract_id=contract_id,
        content=payload.content,
        message_type=payload.message_type,
        change_request_data=payload.change_request_data.model_dump() if payload.change_request_data else None,
    )
    commit_and_dispatch(db)
    db.refresh(row)
    return _message_out(row)


@router.post("/{contract_id}/messages/read-all", response_model=CountOut)
def read_all(contract_id: str, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    n = mark_all_read(db, actor_user_id=p.user_id, contract_id=contract_id)
    db.commit()
    return CountOut(count=n)


@router.get("/{contract_id}/messages/unread-count", response_model=CountOut)
def contract_unread(contract_id: str, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return CountOut(count=unread_count(db, actor_user_id=p.user_id, contract_id=contract_id))

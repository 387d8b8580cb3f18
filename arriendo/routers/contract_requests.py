# arriendo/routers/contract_requests.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal
from ..db import get_db
from ..schemas import ActiveRequestOut, ContractRequestCreate, ContractRequestDetailOut
from ..services.contract_requests import (
    create_request,
    get_request,
    has_active_request,
    list_for_owner,
    list_for_tenant,
    with_details,
)
from ..services.notifications import commit_and_dispatch

router = APIRouter(prefix="/contract-requests", tags=["contract-requests"])


@router.post("", response_model=ContractRequestDetailOut)
def create(payload: ContractRequestCreate, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    row = create_request(
        db,
        actor_user_id=p.user_id,
        property_id=payload.property_id,
        tenant_id=payload.tenant_id or p.user_id,
    )
    commit_and_dispatch(db)
    db.refresh(row)
    return with_details(row)


@router.get("/tenant", response_model=list[ContractRequestDetailOut])
def as_tenant(db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return [with_details(r) for r in list_for_tenant(db, actor_user_id=p.user_id, tenant_id=p.user_id)]


@router.get("/owner", response_model=list[ContractRequestDetailOut])
def as_owner(db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return [with_details(r) for r in list_for_owner(db, actor_user_id=p.user_id, owner_id=p.user_id)]


@router.get("/active", response_model=ActiveRequestOut)
def active(
    property_id: str = Query(...),
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    found = has_active_request(db, actor_user_id=p.user_id, tenant_id=p.user_id, property_id=property_id)
    return ActiveRequestOut(property_id=property_id, has_active_request=found)


@router.get("/{request_id}", response_model=ContractRequestDetailOut)
def detail(request_id: str, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return with_details(get_request(db, actor_user_id=p.user_id, request_id=request_id))

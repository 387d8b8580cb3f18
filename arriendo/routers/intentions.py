# arriendo/routers/intentions.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal
from ..db import get_db
from ..schemas import IntentionCreate, IntentionDetailOut, IntentionExistsOut, IntentionStatusIn
from ..services.intentions import (
    create_intention,
    has_intention_for_property,
    list_owner_intentions,
    list_tenant_intentions,
    update_intention_status,
    with_details,
)
from ..services.notifications import commit_and_dispatch

router = APIRouter(prefix="/intentions", tags=["intentions"])


@router.post("", response_model=IntentionDetailOut)
def create(payload: IntentionCreate, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    row = create_intention(
        db,
        actor_user_id=p.user_id,
        property_id=payload.property_id,
        tenant_id=payload.tenant_id or p.user_id,
    )
    commit_and_dispatch(db)
    db.refresh(row)
    return with_details(row)


@router.get("/tenant", response_model=list[IntentionDetailOut])
def as_tenant(db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return [with_details(r) for r in list_tenant_intentions(db, actor_user_id=p.user_id, tenant_id=p.user_id)]


@router.get("/owner", response_model=list[IntentionDetailOut])
def as_owner(db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return [with_details(r) for r in list_owner_intentions(db, actor_user_id=p.user_id, owner_id=p.user_id)]


@router.get("/exists", response_model=IntentionExistsOut)
def exists(
    property_id: str = Query(...),
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    found = has_intention_for_property(db, actor_user_id=p.user_id, property_id=property_id)
    return IntentionExistsOut(property_id=property_id, has_intention=found)


@router.patch("/{intention_id}/status", response_model=IntentionDetailOut)
def set_status(
    intention_id: str,
    payload: IntentionStatusIn,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    row = update_intention_status(db, actor_user_id=p.user_id, intention_id=intention_id, status=payload.status)
    commit_and_dispatch(db)
    db.refresh(row)
    return with_details(row)

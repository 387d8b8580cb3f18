# arriendo/routers/kyc.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal
from ..db import get_db
from ..models import KYCVerification
from ..schemas import KYCStartIn, KYCStatusOut, KYCVerificationOut
from ..services.kyc_service import (
    complete_verification,
    effective_status,
    get_user_kyc_status,
    is_record_active,
    list_user_verifications,
    start_verification,
)
from ..services.notifications import commit_and_dispatch

router = APIRouter(prefix="/kyc", tags=["kyc"])


def _out(row: KYCVerification) -> KYCVerificationOut:
    out = KYCVerificationOut.model_validate(row)
    out.effective_status = effective_status(row).value
    return out


@router.post("/verifications", response_model=KYCVerificationOut)
def start(payload: KYCStartIn, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    data = payload.model_dump(exclude={"user_id", "verification_type"})
    row = start_verification(
        db,
        actor_user_id=p.user_id,
        user_id=payload.user_id or p.user_id,
        verification_type=payload.verification_type,
        payload=data,
    )
    commit_and_dispatch(db)
    db.refresh(row)
    return _out(row)


@router.post("/verifications/{verification_id}/complete", response_model=KYCVerificationOut)
def complete(verification_id: str, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    row = complete_verification(db, actor_user_id=p.user_id, verification_id=verification_id)
    commit_and_dispatch(db)
    db.refresh(row)
    return _out(row)


@router.get("/verifications", response_model=list[KYCVerificationOut])
def my_verifications(db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    rows = list_user_verifications(db, actor_user_id=p.user_id, user_id=p.user_id)
    return [_out(r) for r in rows]


@router.get("/status", response_model=KYCStatusOut)
def status(
    verification_type: str = Query(default="person"),
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    row = get_user_kyc_status(db, actor_user_id=p.user_id, user_id=p.user_id, verification_type=verification_type)
    return KYCStatusOut(
        user_id=p.user_id,
        verification_type=verification_type,
        is_verified=is_record_active(row),
        verification=_out(row) if row is not None else None,
    )

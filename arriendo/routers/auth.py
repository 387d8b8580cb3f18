# arriendo/routers/auth.py
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal
from ..config import settings
from ..db import get_db
from ..models import AppUser
from ..schemas import DevTokenIn, PrincipalOut, TokenOut
from ..services.auth_service import create_access_token

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/me", response_model=PrincipalOut)
def me(p: Principal = Depends(get_principal)):
    return PrincipalOut(user_id=p.user_id, email=p.email, user_type=p.user_type)


@router.post("/dev-token", response_model=TokenOut)
def dev_token(payload: DevTokenIn, db: Session = Depends(get_db)):
    # local tooling only; real tokens come from the identity provider
    if settings.auth_mode != "dev":
        raise HTTPException(status_code=404, detail="Not found")
    user = db.get(AppUser, payload.user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="Unknown user")
    return TokenOut(access_token=create_access_token(user_id=user.id, email=user.email))

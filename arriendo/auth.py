# arriendo/auth.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import jwt
from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.orm import Session

from .config import settings
from .db import get_db
from .models import AppUser
from .services.auth_service import decode_access_token


@dataclass(frozen=True)
class Principal:
    user_id: str
    email: str
    user_type: str


def _principal_from_user(user: AppUser) -> Principal:
    return Principal(user_id=str(user.id), email=str(user.email), user_type=str(user.user_type))


def get_principal(
    request: Request,
    db: Session = Depends(get_db),
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> Principal:
    """
    Auth modes supported (in priority order):
      1) Authorization: Bearer <token>  (HS256, sub = user id)
      2) dev header (ONLY if settings.auth_mode == "dev")

    The principal is always re-read from the database; ids in request bodies
    are compared against it, never trusted on their own.
    """
    token = None
    if authorization and str(authorization).lower().startswith("bearer "):
        token = str(authorization).split(" ", 1)[1].strip()

    if token:
        try:
            claims = decode_access_token(token)
        except jwt.ExpiredSignatureError:
            raise HTTPException(status_code=401, detail="Token expired")
        except jwt.InvalidTokenError:
            raise HTTPException(status_code=401, detail="Invalid token")

        sub = str(claims.get("sub") or "")
        if not sub:
            raise HTTPException(status_code=401, detail="Token missing sub")

        user = db.get(AppUser, sub)
        if user is None:
            raise HTTPException(status_code=401, detail="Unknown user")
        return _principal_from_user(user)

    if settings.auth_mode == "dev":
        user_id = (request.headers.get(settings.dev_header_user_id) or "").strip()
        if not user_id:
            raise HTTPException(status_code=401, detail=f"Missing {settings.dev_header_user_id} for dev auth")
        user = db.get(AppUser, user_id)
        if user is None:
            raise HTTPException(status_code=401, detail="Unknown user")
        return _principal_from_user(user)

    raise HTTPException(status_code=401, detail="Not authenticated")

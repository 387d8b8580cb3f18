# arriendo/routers/notifications.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal
from ..db import get_db
from ..schemas import CountOut, NotificationOut
from ..services.notifications import (
    delete_notification,
    list_notifications,
    mark_all_notifications_read,
    mark_notification_read,
    unread_notification_count,
)

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=list[NotificationOut])
def notifications(
    unread_only: bool = Query(default=False),
    limit: int = Query(default=100, ge=1, le=500),
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    return list_notifications(db, user_id=p.user_id, unread_only=unread_only, limit=limit)


@router.get("/unread-count", response_model=CountOut)
def unread(db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return CountOut(count=unread_notification_count(db, user_id=p.user_id))


@router.post("/read-all", response_model=CountOut)
def read_all(db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    n = mark_all_notifications_read(db, user_id=p.user_id)
    db.commit()
    return CountOut(count=n)


@router.post("/{notification_id}/read", response_model=NotificationOut)
def read(notification_id: str, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    row = mark_notification_read(db, user_id=p.user_id, notification_id=notification_id)
    db.commit()
    db.refresh(row)
    return row


@router.delete("/{notification_id}")
def delete(notification_id: str, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    delete_notification(db, user_id=p.user_id, notification_id=notification_id)
    db.commit()
    return {"ok": True}

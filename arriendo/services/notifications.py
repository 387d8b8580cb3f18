# arriendo/services/notifications.py
from __future__ import annotations

import logging
from typing import Iterable, Optional

from sqlalchemy import select, func, update
from sqlalchemy.orm import Session

from ..domain.errors import Forbidden, NotFound
from ..models import AppUser, Notification

log = logging.getLogger("arriendo.notifications")

_PENDING_KEY = "pending_notifications"


def notify(
    db: Session,
    *,
    user_id: str,
    kind: str,
    title: str,
    message: str,
    related_entity_type: Optional[str] = None,
    related_entity_id: Optional[str] = None,
) -> Notification:
    """
    In-app notification, added to the caller's transaction.
    Email delivery is queued separately after commit (dispatch_emails).
    """
    row = Notification(
        user_id=user_id,
        kind=kind,
        title=title,
        message=message,
        related_entity_type=related_entity_type,
        related_entity_id=related_entity_id,
    )
    db.add(row)
    db.flush()
    db.info.setdefault(_PENDING_KEY, []).append(row)
    return row


def take_pending_notifications(db: Session) -> list[Notification]:
    """Notifications created in this session since the last call; clears the list."""
    return db.info.pop(_PENDING_KEY, [])


def discard_pending_notifications(db: Session) -> None:
    """After a rollback the queued rows no longer exist; never email them."""
    db.info.pop(_PENDING_KEY, None)


def dispatch_emails(db: Session, notifications: Iterable[Notification]) -> int:
    """
    Fire-and-forget: enqueue one email task per notification. Must run after
    commit. Broker failures are logged, never raised; the in-app row is the
    durable record that the event happened.
    """
    from ..workers.notification_tasks import send_notification_email

    sent = 0
    for n in notifications:
        user = db.get(AppUser, n.user_id)
        if user is None:
            continue
        try:
            send_notification_email.delay(
                to_email=user.email,
                to_name=user.display_name,
                subject=n.title,
                body=n.message,
                notification_id=n.id,
            )
            sent += 1
        except Exception:
            log.exception("email enqueue failed", extra={"user_id": n.user_id, "notification_id": n.id})
    return sent


def commit_and_dispatch(db: Session) -> int:
    """Commit the unit of work, then queue emails for what it notified."""
    pending = take_pending_notifications(db)
    db.commit()
    return dispatch_emails(db, pending)


def list_notifications(db: Session, *, user_id: str, unread_only: bool = False, limit: int = 100) -> list[Notification]:
    q = select(Notification).where(Notification.user_id == user_id)
    if unread_only:
        q = q.where(Notification.is_read.is_(False))
    q = q.order_by(Notification.created_at.desc()).limit(int(limit))
    return list(db.scalars(q).all())


def unread_notification_count(db: Session, *, user_id: str) -> int:
    n = db.scalar(
        select(func.count(Notification.id)).where(Notification.user_id == user_id, Notification.is_read.is_(False))
    )
    return int(n or 0)


def _must_get_own(db: Session, *, user_id: str, notification_id: str) -> Notification:
    row = db.get(Notification, notification_id)
    if row is None:
        raise NotFound("Notificación no encontrada")
    if row.user_id != user_id:
        raise Forbidden("No autorizado: la notificación pertenece a otro usuario")
    return row


def mark_notification_read(db: Session, *, user_id: str, notification_id: str) -> Notification:
    row = _must_get_own(db, user_id=user_id, notification_id=notification_id)
    row.is_read = True
    db.add(row)
    return row


def mark_all_notifications_read(db: Session, *, user_id: str) -> int:
    res = db.execute(
        update(Notification)
        .where(Notification.user_id == user_id, Notification.is_read.is_(False))
        .values(is_read=True)
    )
    return int(res.rowcount or 0)


def delete_notification(db: Session, *, user_id: str, notification_id: str) -> None:
    row = _must_get_own(db, user_id=user_id, notification_id=notification_id)
    db.delete(row)

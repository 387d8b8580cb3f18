# tests/test_notifications.py
from __future__ import annotations

import httpx
import pytest

from arriendo.config import settings
from arriendo.domain.errors import Forbidden, NotFound
from arriendo.services.notifications import (
    commit_and_dispatch,
    delete_notification,
    list_notifications,
    mark_all_notifications_read,
    mark_notification_read,
    notify,
    take_pending_notifications,
    unread_notification_count,
)
from arriendo.workers import notification_tasks
from arriendo.workers.notification_tasks import deliver_email, send_notification_email


def _notify(db, user, kind="contract.sent"):
    return notify(db, user_id=user.id, kind=kind, title="Aviso", message="Tienes novedades")


def test_notify_queues_until_dispatch(db, factory):
    u = factory.user()
    n = _notify(db, u)
    assert take_pending_notifications(db) == [n]
    assert take_pending_notifications(db) == []
    db.rollback()


def test_commit_and_dispatch_runs_email_task_after_commit(db, factory, monkeypatch):
    monkeypatch.setattr(settings, "email_webhook_url", None)
    calls = []
    real = notification_tasks.deliver_email

    def _spy(**kw):
        calls.append(kw)
        return real(**kw)

    monkeypatch.setattr(notification_tasks, "deliver_email", _spy)

    u = factory.user(name="Tomás", email="tomas@test.local")
    _notify(db, u)
    _notify(db, u, kind="contract.cancelled")

    assert commit_and_dispatch(db) == 2
    assert [c["to_email"] for c in calls] == ["tomas@test.local", "tomas@test.local"]
    assert unread_notification_count(db, user_id=u.id) == 2
    assert db.info.get("pending_notifications") is None


def test_dispatch_failure_does_not_undo_commit(db, factory, monkeypatch):
    def _boom(**kw):
        raise RuntimeError("broker down")

    monkeypatch.setattr(send_notification_email, "delay", _boom)
    u = factory.user()
    _notify(db, u)

    assert commit_and_dispatch(db) == 0
    assert unread_notification_count(db, user_id=u.id) == 1


def test_deliver_email_without_webhook_only_logs(monkeypatch):
    monkeypatch.setattr(settings, "email_webhook_url", None)
    out = deliver_email(to_email="a@test.local", to_name=None, subject="s", body="b")
    assert out["sent"] is False


def test_deliver_email_posts_to_webhook(monkeypatch):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = request.content.decode()
        return httpx.Response(202)

    transport = httpx.MockTransport(handler)
    real_client = httpx.Client
    monkeypatch.setattr(settings, "email_webhook_url", "https://mail.test/send")
    monkeypatch.setattr(
        notification_tasks.httpx, "Client", lambda **kw: real_client(transport=transport, **kw)
    )

    out = deliver_email(to_email="a@test.local", to_name="Ana", subject="Hola", body="Cuerpo")
    assert out == {"sent": True, "status_code": 202}
    assert seen["url"] == "https://mail.test/send"
    assert "a@test.local" in seen["body"]


def test_owner_only_read_and_delete(db, factory):
    me = factory.user()
    other = factory.user()
    a = _notify(db, me)
    b = _notify(db, me)
    theirs = _notify(db, other)
    db.commit()

    with pytest.raises(Forbidden):
        mark_notification_read(db, user_id=me.id, notification_id=theirs.id)
    with pytest.raises(Forbidden):
        delete_notification(db, user_id=me.id, notification_id=theirs.id)
    with pytest.raises(NotFound):
        mark_notification_read(db, user_id=me.id, notification_id="missing")

    mark_notification_read(db, user_id=me.id, notification_id=a.id)
    db.commit()
    assert unread_notification_count(db, user_id=me.id) == 1
    assert [n.id for n in list_notifications(db, user_id=me.id, unread_only=True)] == [b.id]

    assert mark_all_notifications_read(db, user_id=me.id) == 1
    delete_notification(db, user_id=me.id, notification_id=b.id)
    db.commit()
    assert [n.id for n in list_notifications(db, user_id=me.id)] == [a.id]
    assert unread_notification_count(db, user_id=other.id) == 1

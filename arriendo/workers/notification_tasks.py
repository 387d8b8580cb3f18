# arriendo/workers/notification_tasks.py
from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from ..config import settings
from .celery_app import celery_app

log = logging.getLogger("arriendo.workers.email")


def deliver_email(*, to_email: str, to_name: Optional[str], subject: str, body: str) -> dict[str, Any]:
    """
    Posts one message to the configured email webhook.
    Without a webhook the message is only logged (local/dev).
    """
    if not settings.email_webhook_url:
        log.info("email not sent: no webhook configured", extra={"to_email": to_email})
        return {"sent": False, "reason": "email_webhook_url not set"}

    payload = {
        "from": settings.email_from,
        "to": [{"email": to_email, "name": to_name or to_email}],
        "subject": subject,
        "text": body,
    }
    with httpx.Client(timeout=float(settings.email_timeout_seconds)) as client:
        r = client.post(settings.email_webhook_url, json=payload)
        r.raise_for_status()

    return {"sent": True, "status_code": r.status_code}


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=30,
    name="arriendo.workers.notification_tasks.send_notification_email",
)
def send_notification_email(
    self,
    *,
    to_email: str,
    to_name: Optional[str],
    subject: str,
    body: str,
    notification_id: Optional[str] = None,
) -> dict:
    try:
        out = deliver_email(to_email=to_email, to_name=to_name, subject=subject, body=body)
    except httpx.HTTPError as e:
        log.warning("email delivery failed", extra={"notification_id": notification_id, "to_email": to_email})
        raise self.retry(exc=e)

    out["notification_id"] = notification_id
    return out

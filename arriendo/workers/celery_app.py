# arriendo/workers/celery_app.py
from __future__ import annotations

from celery import Celery

from ..config import settings

celery_app = Celery(
    "arriendo",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["arriendo.workers.notification_tasks"],
)

celery_app.conf.update(
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_reject_on_worker_lost=True,
    task_track_started=True,
    timezone="UTC",
)

# email fan-out never competes with anything else
celery_app.conf.task_routes = {
    "arriendo.workers.notification_tasks.*": {"queue": "notifications"},
}

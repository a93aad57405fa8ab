"""
Celery app for the Dispatcher service.
"""

from celery import Celery
from shared.broker import create_celery_app as _create_app


def create_celery_app() -> Celery:
    return _create_app(
        "dispatcher",
        task_track_started=True,
        task_acks_late=True,
        worker_prefetch_multiplier=1,
        task_reject_on_worker_lost=True,
    )

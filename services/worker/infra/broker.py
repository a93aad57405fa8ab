"""
Celery app for the Worker service.
"""

from celery import Celery
from shared.broker import create_celery_app as _create_app
from shared.constants import MAX_ACTION_TIMEOUT_SECONDS


def create_celery_app() -> Celery:
    # Per-task limits come from the dispatcher; this only caps runaway tasks
    return _create_app(
        "worker",
        task_acks_late=True,
        worker_prefetch_multiplier=1,
        task_reject_on_worker_lost=True,
        task_time_limit=MAX_ACTION_TIMEOUT_SECONDS,
    )

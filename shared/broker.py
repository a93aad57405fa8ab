"""Celery app factory shared by the services."""

import os
from celery import Celery

TASK_ROUTES = {
    "dispatcher.*": {"queue": "dispatcher"},
    "worker.*": {"queue": "worker"},
}


def create_celery_app(service_name: str, broker_url: str = None, **conf) -> Celery:
    """JSON-only Celery app; ``conf`` overrides per-service settings"""
    redis_url = broker_url or os.getenv("REDIS_URL", "redis://localhost:6379/0")

    app = Celery(
        service_name,
        broker=redis_url,
        backend=redis_url
    )

    app.conf.update(
        task_serializer="json",
        accept_content=["json"],
        result_serializer="json",
        timezone="UTC",
        enable_utc=True,
        task_routes=TASK_ROUTES,
    )
    app.conf.update(conf)

    return app

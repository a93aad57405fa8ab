"""
Tests for Celery wiring between the services.
"""

from unittest.mock import patch
from services.api.infra.broker import BrokerClient
from services.dispatcher.infra.broker import create_celery_app
from shared.logging_config import set_correlation_id
from tests.unit.factories import event


def test_publish_event_routes_to_dispatcher():
    broker = BrokerClient("redis://localhost:6379/15")
    inbound = event("price?")
    set_correlation_id("corr-9")

    with patch.object(broker.app, "send_task") as send_task:
        broker.publish_event(inbound)

    call = send_task.call_args
    assert call.args[0] == "dispatcher.process_event"
    assert call.kwargs["queue"] == "dispatcher"
    assert call.kwargs["kwargs"]["event"]["event_id"] == inbound.event_id
    assert call.kwargs["kwargs"]["correlation_id"] == "corr-9"


def test_dispatcher_routes_actions_to_worker_queue():
    app = create_celery_app()

    assert app.conf.task_routes["worker.*"] == {"queue": "worker"}
    assert app.conf.task_routes["dispatcher.*"] == {"queue": "dispatcher"}

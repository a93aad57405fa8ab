"""Dispatcher service matching inbound events against active automations."""

import logging
from services.dispatcher.infra.broker import create_celery_app
from services.dispatcher.infra.redis_store import ActiveWorkflowStore
from services.dispatcher.engine.dispatcher import AutomationDispatcher
from shared.logging_config import setup_logging, set_correlation_id
from shared.types import ActionDispatch, InboundEvent

setup_logging("dispatcher")

celery_app = create_celery_app()
dispatcher = AutomationDispatcher(ActiveWorkflowStore(), celery_app)


@celery_app.task(name="dispatcher.process_event", bind=True)
def process_event(self, event: dict, correlation_id: str = ""):
    if correlation_id:
        set_correlation_id(correlation_id)

    inbound = InboundEvent.model_validate(event)
    logging.info("Processing inbound event", extra={"event_id": inbound.event_id, "kind": inbound.kind.value})
    return dispatcher.process_event(inbound).to_dict()


@celery_app.task(name="dispatcher.on_action_failure", bind=True)
def on_action_failure(self, dispatch: dict, event: dict, error: str = None, correlation_id: str = ""):
    if correlation_id:
        set_correlation_id(correlation_id)

    action = ActionDispatch.model_validate(dispatch)
    logging.error("Action failed", extra={
        "workflow_id": action.workflow_id,
        "node_id": action.node_id,
        "error": error
    })
    dispatcher.on_action_failure(action, InboundEvent.model_validate(event), error or "Unknown error")


if __name__ == "__main__":
    celery_app.worker_main([
        "worker",
        "--loglevel=info",
        "-Q", "dispatcher",
        "--concurrency=4"
    ])

"""Worker service executing the action nodes of matched workflows."""

import json
import logging
from celery.exceptions import SoftTimeLimitExceeded
from services.worker.infra.broker import create_celery_app
from services.worker.handlers.registry import execute_action, is_done, list_action_types, mark_done
from shared.exceptions import TaskError
from shared.logging_config import setup_logging, set_correlation_id, set_workflow_id
from shared.types import ActionDispatch, InboundEvent
import services.worker.handlers.outbound
import services.worker.handlers.messaging
import services.worker.handlers.llm

setup_logging("worker")

celery_app = create_celery_app()


def report_failure(dispatch: dict, event: dict, error: str, correlation_id: str = "") -> None:
    """Hands a failed action back to the dispatcher for a retry decision"""
    celery_app.send_task(
        "dispatcher.on_action_failure",
        kwargs={
            "dispatch": dispatch,
            "event": event,
            "error": error,
            "correlation_id": correlation_id
        },
        queue="dispatcher"
    )


@celery_app.task(name="worker.execute_action", bind=True)
def execute_action_task(self, dispatch: dict, event: dict, correlation_id: str = ""):
    if correlation_id:
        set_correlation_id(correlation_id)

    action = ActionDispatch.model_validate(dispatch)
    inbound = InboundEvent.model_validate(event)
    set_workflow_id(action.workflow_id)
    task_id = self.request.id
    context = {
        "task_id": task_id,
        "node_id": action.node_id,
        "action_type": action.action.action_type.value
    }

    if task_id and is_done(task_id):
        logging.warning("Duplicate action delivery skipped", extra=context)
        return {"outputs": {}, "skipped": True}

    logging.info("Starting action execution", extra=context)
    try:
        result = execute_action(action, inbound)
    except SoftTimeLimitExceeded:
        logging.error("Action timed out", extra=context)
        error = TaskError(
            error_type="TIMEOUT",
            error_message=f"Action {context['action_type']} exceeded time limit for node {action.node_id}",
            is_retryable=False,
            context=context
        )
        report_failure(dispatch, event, json.dumps(error.to_dict()), correlation_id)
        raise Exception(error.error_message)
    except Exception as e:
        logging.error("Action execution failed", extra={**context, "error": str(e)})
        report_failure(dispatch, event, str(e), correlation_id)
        raise

    if task_id:
        mark_done(task_id)
    logging.info("Action execution completed", extra=context)
    return result


logging.info("Registered action handlers", extra={"action_types": list_action_types()})


if __name__ == "__main__":
    celery_app.worker_main([
        "worker",
        "--loglevel=info",
        "-Q", "worker",
        "--concurrency=8"
    ])

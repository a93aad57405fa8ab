"""Outbound HTTP with TaskError classification, and the webhook action."""

import json
from typing import Any, Dict, Optional
import requests
from requests.exceptions import RequestException, Timeout, ConnectionError
from services.worker.handlers.registry import register_action
from shared.constants import DEFAULT_HTTP_TIMEOUT_SECONDS, RETRYABLE_HTTP_STATUS_CODES
from shared.exceptions import TaskError
from shared.types import ActionDispatch, InboundEvent


def _retry_after(response: requests.Response) -> Optional[int]:
    # Only the delta-seconds form; HTTP dates fall back to backoff
    header = response.headers.get("Retry-After")
    if header and header.isdigit():
        return int(header)
    return None


def post_json(
    url: str,
    payload: Dict[str, Any],
    headers: Optional[Dict[str, str]] = None,
    timeout: int = DEFAULT_HTTP_TIMEOUT_SECONDS,
    error_type: str = "HTTP_ERROR",
) -> requests.Response:
    """POSTs ``payload``; failures are raised as serialized ``TaskError``s"""
    try:
        response = requests.post(url, json=payload, headers=headers or {}, timeout=timeout)
    except (Timeout, ConnectionError) as e:
        error = TaskError(
            error_type="NETWORK_ERROR",
            error_message=f"Network error: {str(e)}",
            is_retryable=True,
            context={"url": url, "error_class": type(e).__name__}
        )
        raise Exception(json.dumps(error.to_dict()))
    except RequestException as e:
        error = TaskError(
            error_type="REQUEST_ERROR",
            error_message=f"Request failed: {str(e)}",
            is_retryable=False,
            context={"url": url}
        )
        raise Exception(json.dumps(error.to_dict()))

    if response.status_code >= 400:
        retryable = response.status_code in RETRYABLE_HTTP_STATUS_CODES
        error = TaskError(
            error_type=error_type,
            error_message=f"HTTP {response.status_code}: {response.reason}",
            http_status_code=response.status_code,
            is_retryable=retryable,
            retry_after_seconds=_retry_after(response) if response.status_code == 429 else None,
            context={"url": url}
        )
        raise Exception(json.dumps(error.to_dict()))

    return response


def response_body(response: requests.Response) -> Any:
    if "application/json" in response.headers.get("content-type", ""):
        return response.json()
    return response.text


@register_action("webhook")
def webhook_handler(dispatch: ActionDispatch, event: InboundEvent) -> Dict[str, Any]:
    url = dispatch.action.webhook_url
    if not url:
        raise ValueError("Webhook URL required")

    payload = {
        "workflow_id": dispatch.workflow_id,
        "node_id": dispatch.node_id,
        "event": event.model_dump(mode="json"),
    }
    response = post_json(url, payload, error_type="WEBHOOK_ERROR")
    return {
        "outputs": {
            "result": response_body(response),
            "status_code": response.status_code
        }
    }

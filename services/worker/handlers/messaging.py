"""
Messaging actions delivered through the channel provider's API.

Direct messages go to the sender. For comment events ``send_message`` is
delivered as a private reply to the comment, while ``reply_comment``
answers publicly under it.
"""

import logging
import os
from typing import Any, Dict
from services.worker.handlers.outbound import post_json, response_body
from services.worker.handlers.registry import register_action
from shared.types import ActionDispatch, InboundEvent, TriggerType

DEFAULT_PLATFORM_API_URL = "https://graph.instagram.com/v21.0"


def platform_api_url() -> str:
    return os.getenv("PLATFORM_API_URL", DEFAULT_PLATFORM_API_URL).rstrip("/")


def _auth_headers() -> Dict[str, str]:
    token = os.getenv("PLATFORM_ACCESS_TOKEN", "")
    return {"Authorization": f"Bearer {token}"} if token else {}


def send_direct_message(event: InboundEvent, text: str) -> Dict[str, Any]:
    if event.kind == TriggerType.POST_COMMENT and event.comment_id:
        recipient = {"comment_id": event.comment_id}
    elif event.sender_id:
        recipient = {"id": event.sender_id}
    else:
        raise ValueError("Event has no sender to message")

    response = post_json(
        f"{platform_api_url()}/me/messages",
        {"recipient": recipient, "message": {"text": text}},
        headers=_auth_headers(),
        error_type="PLATFORM_ERROR",
    )
    return {"result": response_body(response), "status_code": response.status_code}


@register_action("send_message")
def send_message_handler(dispatch: ActionDispatch, event: InboundEvent) -> Dict[str, Any]:
    outputs = send_direct_message(event, dispatch.action.message_template)
    logging.info("Message sent", extra={
        "workflow_id": dispatch.workflow_id,
        "node_id": dispatch.node_id,
        "private_reply": event.kind == TriggerType.POST_COMMENT
    })
    return {"outputs": outputs}


@register_action("reply_comment")
def reply_comment_handler(dispatch: ActionDispatch, event: InboundEvent) -> Dict[str, Any]:
    if not event.comment_id:
        raise ValueError("reply_comment requires a comment event")

    response = post_json(
        f"{platform_api_url()}/{event.comment_id}/replies",
        {"message": dispatch.action.message_template},
        headers=_auth_headers(),
        error_type="PLATFORM_ERROR",
    )
    return {"outputs": {"result": response_body(response), "status_code": response.status_code}}

"""AI response action."""

import os
from typing import Any, Dict
from services.worker.handlers.outbound import post_json
from services.worker.handlers.messaging import send_direct_message
from services.worker.handlers.registry import register_action
from shared.exceptions import ActionExecutionError
from shared.types import ActionDispatch, InboundEvent

DEFAULT_AI_SERVICE_URL = "http://localhost:8100/v1/generate"
DEFAULT_AI_MODEL = "gpt-4o-mini"


def generate_reply(prompt: str, model: str) -> str:
    url = os.getenv("AI_SERVICE_URL", DEFAULT_AI_SERVICE_URL)
    response = post_json(url, {"prompt": prompt, "model": model}, error_type="AI_SERVICE_ERROR")
    text = response.json().get("text", "").strip()
    if not text:
        raise ActionExecutionError("AI service returned an empty response", model=model)
    return text


@register_action("ai_response")
def ai_response_handler(dispatch: ActionDispatch, event: InboundEvent) -> Dict[str, Any]:
    model = dispatch.action.ai_model or DEFAULT_AI_MODEL
    reply = generate_reply(dispatch.action.ai_prompt, model)
    outputs = send_direct_message(event, reply)
    return {
        "outputs": {
            **outputs,
            "reply": reply,
            "model": model,
        }
    }

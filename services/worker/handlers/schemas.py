"""Pydantic schemas for action configuration validation."""

from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from shared.constants import MAX_TEMPLATE_LENGTH
from shared.types import AIModel


class _ActionConfig(BaseModel):
    # Action payloads carry the fields of every subtype
    model_config = ConfigDict(extra="ignore")

    channel_id: Optional[str] = None
    delay_seconds: int = Field(default=0, ge=0)


class SendMessageConfig(_ActionConfig):
    """Config schema for send_message handler"""
    message_template: str = Field(min_length=1, max_length=MAX_TEMPLATE_LENGTH)


class ReplyCommentConfig(_ActionConfig):
    """Config schema for reply_comment handler"""
    message_template: str = Field(min_length=1, max_length=MAX_TEMPLATE_LENGTH)


class AIResponseConfig(_ActionConfig):
    """Config schema for ai_response handler"""
    ai_prompt: str = Field(min_length=1, max_length=10000)
    ai_model: AIModel = "gpt-4o-mini"


class WebhookConfig(_ActionConfig):
    """Config schema for webhook handler"""
    webhook_url: str = Field(pattern=r"^https?://")


ACTION_SCHEMAS = {
    "send_message": SendMessageConfig,
    "reply_comment": ReplyCommentConfig,
    "ai_response": AIResponseConfig,
    "webhook": WebhookConfig,
}


def validate_action_config(action_type: str, config: Dict[str, Any]) -> None:
    """Validates action config against its Pydantic schema"""
    if action_type not in ACTION_SCHEMAS:
        raise ValueError(f"Unknown action type: {action_type}")

    config = {k: v for k, v in config.items() if v is not None}
    try:
        ACTION_SCHEMAS[action_type](**config)
    except ValidationError as e:
        raise ValueError(f"Invalid configuration for action '{action_type}': {str(e)}")

"""Message template rendering for {{ username }}-style placeholders using Jinja2."""

from typing import Any, Dict
from jinja2 import BaseLoader, TemplateSyntaxError, UndefinedError
from jinja2.sandbox import SandboxedEnvironment, SecurityError
from shared.constants import DEFAULT_RESPONSE_MESSAGE, DEFAULT_USERNAME_PLACEHOLDER, MAX_TEMPLATE_LENGTH
from shared.types import ActionData, ActionType, InboundEvent


class TemplateResolutionError(Exception):
    pass


class TemplateRenderer:

    def __init__(self):
        # Sandboxed: templates are written by end users
        self.jinja_env = SandboxedEnvironment(
            loader=BaseLoader(),
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def context_for(self, event: InboundEvent) -> Dict[str, Any]:
        return {
            "message": event.text,
            "username": event.sender_username or DEFAULT_USERNAME_PLACEHOLDER,
            "sender_id": event.sender_id,
            "post_id": event.post_id or "",
            "comment_id": event.comment_id or "",
            "channel_id": event.channel_id or "",
        }

    def render(self, template: str, event: InboundEvent) -> str:
        if '{{' not in template and '{%' not in template:
            return template
        if len(template) > MAX_TEMPLATE_LENGTH:
            raise TemplateResolutionError(
                f"Template exceeds length limit: {len(template)} > {MAX_TEMPLATE_LENGTH}"
            )
        try:
            return self.jinja_env.from_string(template).render(self.context_for(event))
        except (TemplateSyntaxError, UndefinedError, SecurityError) as e:
            raise TemplateResolutionError(f"Template resolution failed: {str(e)}")

    def render_action(self, action: ActionData, event: InboundEvent) -> ActionData:
        """Returns a copy of ``action`` with its text fields resolved for ``event``"""
        updates: Dict[str, Any] = {}

        if action.action_type in (ActionType.SEND_MESSAGE, ActionType.REPLY_COMMENT):
            template = action.message_template or ""
            updates["message_template"] = (
                self.render(template, event) if template.strip() else DEFAULT_RESPONSE_MESSAGE
            )
        elif action.action_type == ActionType.AI_RESPONSE and action.ai_prompt:
            updates["ai_prompt"] = self.render(action.ai_prompt, event)

        return action.model_copy(update=updates)

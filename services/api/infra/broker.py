"""
Message broker client for API service.
"""

from shared.broker import create_celery_app
from shared.logging_config import get_correlation_id
from shared.types import InboundEvent


class BrokerClient:
    """Publishes inbound events for the dispatcher"""

    def __init__(self, broker_url: str = None):
        self.app = create_celery_app("api", broker_url)

    def publish_event(self, event: InboundEvent) -> None:
        """Hand an inbound event to the dispatcher for trigger matching"""
        self.app.send_task(
            "dispatcher.process_event",
            kwargs={"event": event.model_dump(mode="json"), "correlation_id": get_correlation_id()},
            queue="dispatcher"
        )

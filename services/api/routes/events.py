"""Inbound event intake routes."""

import logging
from fastapi import APIRouter, Depends, status
from services.api.deps import get_broker
from services.api.domain.models import EventAcceptedResponse
from services.api.infra.broker import BrokerClient
from shared.types import InboundEvent


router = APIRouter()


@router.post("/events", response_model=EventAcceptedResponse, status_code=status.HTTP_202_ACCEPTED)
async def receive_event(event: InboundEvent, broker: BrokerClient = Depends(get_broker)):
    logging.info("Inbound event received", extra={
        "event_id": event.event_id,
        "kind": event.kind.value,
        "organization_id": event.organization_id,
        "channel_id": event.channel_id
    })
    broker.publish_event(event)
    return EventAcceptedResponse(
        event_id=event.event_id,
        status="QUEUED",
        message="Event queued for automation matching"
    )

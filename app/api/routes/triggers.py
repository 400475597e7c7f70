from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Body, Depends, status

from app.api.deps import get_dispatcher
from app.api.models import TriggerEventModel, TriggerResponse
from app.core.security import require_internal_key
from app.notifications.dispatcher import TriggerDispatcher

router = APIRouter(prefix="/notifications", tags=["internal"], dependencies=[Depends(require_internal_key)])
logger = logging.getLogger(__name__)


@router.post("/trigger", status_code=status.HTTP_201_CREATED, response_model=TriggerResponse)
async def trigger_notifications(event: Annotated[TriggerEventModel, Body()], dispatcher: Annotated[TriggerDispatcher, Depends(get_dispatcher)]) -> TriggerResponse:
  """Enqueue notifications for a domain event raised by another marketplace service."""
  ids = await dispatcher.dispatch(event.to_event())
  return TriggerResponse(notification_ids=ids)

from __future__ import annotations

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, status

from app.api.deps import get_dispatcher, get_letter_request_store, get_notification_repo, get_processor
from app.config import Settings, get_settings
from app.core.security import require_task_secret
from app.notifications.dispatcher import TriggerDispatcher
from app.notifications.processor import QueueProcessor
from app.notifications.repo import NotificationRepository
from app.services.notification_jobs import run_auto_cancel, run_cleanup, run_processing, run_reminders
from app.services.reminders import LetterRequestStore

router = APIRouter(prefix="/tasks", tags=["tasks"], dependencies=[Depends(require_task_secret)])
logger = logging.getLogger(__name__)


@router.post("/process-notifications", status_code=status.HTTP_200_OK)
async def process_notifications_task(settings: Annotated[Settings, Depends(get_settings)], processor: Annotated[QueueProcessor, Depends(get_processor)]) -> dict[str, int]:
  """
  Scheduler entry point: reclaim stuck rows, then deliver one batch.
  Runs inline so the scheduler sees the summary and any failure.
  """
  summary = await run_processing(processor, settings=settings)
  logger.info("process-notifications finished: %s", summary)
  return summary


@router.post("/cleanup-notifications", status_code=status.HTTP_200_OK)
async def cleanup_notifications_task(settings: Annotated[Settings, Depends(get_settings)], repo: Annotated[NotificationRepository, Depends(get_notification_repo)]) -> dict[str, int]:
  return await run_cleanup(repo, settings=settings)


@router.post("/send-reminders", status_code=status.HTTP_200_OK)
async def send_reminders_task(
  settings: Annotated[Settings, Depends(get_settings)], store: Annotated[LetterRequestStore, Depends(get_letter_request_store)], dispatcher: Annotated[TriggerDispatcher, Depends(get_dispatcher)]
) -> dict[str, Any]:
  return await run_reminders(store, dispatcher, settings=settings)


@router.post("/auto-cancel", status_code=status.HTTP_200_OK)
async def auto_cancel_task(
  settings: Annotated[Settings, Depends(get_settings)], store: Annotated[LetterRequestStore, Depends(get_letter_request_store)], dispatcher: Annotated[TriggerDispatcher, Depends(get_dispatcher)]
) -> dict[str, int]:
  return await run_auto_cancel(store, dispatcher, settings=settings)

"""Entry points the scheduler calls through the internal task routes."""

from __future__ import annotations

import datetime
import logging
from datetime import UTC
from typing import Any

from app.config import Settings
from app.notifications.cleanup import cleanup
from app.notifications.dispatcher import TriggerDispatcher
from app.notifications.processor import QueueProcessor
from app.notifications.repo import NotificationRepository
from app.services.reminders import LetterRequestStore, process_auto_cancel, send_deadline_reminders, send_pending_reminders

logger = logging.getLogger(__name__)


def _utcnow() -> datetime.datetime:
  return datetime.datetime.now(UTC)


async def run_processing(processor: QueueProcessor, *, settings: Settings, now: datetime.datetime | None = None) -> dict[str, int]:
  """Reclaim stuck rows, then process one batch."""
  now = now or _utcnow()
  reclaimed = await processor.reconcile_stuck(stuck_after=datetime.timedelta(seconds=settings.notify_stuck_timeout_seconds), now=now)
  summary = await processor.process_batch(batch_size=settings.notify_batch_size, now=now)
  summary.reclaimed = len(reclaimed)
  return summary.as_dict()


async def run_cleanup(repo: NotificationRepository, *, settings: Settings, now: datetime.datetime | None = None) -> dict[str, int]:
  deleted = await cleanup(repo, now=now or _utcnow(), retention=datetime.timedelta(days=settings.notify_retention_days))
  return {"deleted": deleted}


async def run_reminders(store: LetterRequestStore, dispatcher: TriggerDispatcher, *, settings: Settings, now: datetime.datetime | None = None) -> dict[str, Any]:
  now = now or _utcnow()
  pending = await send_pending_reminders(store, dispatcher, settings=settings, now=now)
  deadline = await send_deadline_reminders(store, dispatcher, settings=settings, now=now, already_reminded=frozenset(pending.request_ids))
  return {"pending": pending.as_dict(), "deadline": deadline.as_dict()}


async def run_auto_cancel(store: LetterRequestStore, dispatcher: TriggerDispatcher, *, settings: Settings, now: datetime.datetime | None = None) -> dict[str, int]:
  summary = await process_auto_cancel(store, dispatcher, settings=settings, now=now or _utcnow())
  return summary.as_dict()

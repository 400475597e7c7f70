"""Retention sweep for finished notifications."""

from __future__ import annotations

import datetime
import logging

from app.notifications.repo import NotificationRepository

logger = logging.getLogger(__name__)


async def cleanup(repo: NotificationRepository, *, now: datetime.datetime, retention: datetime.timedelta) -> int:
  """Delete delivered and failed rows whose last update is older than `retention`.

  Queued, in-flight and partially delivered rows are never touched, regardless of age.
  """
  if retention <= datetime.timedelta(0):
    raise ValueError("Retention must be positive.")

  cutoff = now - retention
  deleted = await repo.delete_terminal(older_than=cutoff)
  logger.info("Notification cleanup removed %d row(s) last updated before %s", deleted, cutoff.isoformat())
  return deleted

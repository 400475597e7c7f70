"""User-facing reads and read-flag updates on the notification feed."""

from __future__ import annotations

import logging
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from app.notifications.bus import NotificationBus, NotificationChange, Subscription
from app.notifications.contracts import NotificationNotFound
from app.notifications.models import NotificationRecord, NotificationView, UserContext
from app.notifications.repo import NotificationRepository
from app.notifications.template_renderer import render_in_app

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


class NotificationReadService:
  """Scopes every read and update to the calling user."""

  def __init__(self, *, repo: NotificationRepository, bus: NotificationBus | None = None) -> None:
    self._repo = repo
    self._bus = bus

  async def list(self, ctx: UserContext, *, limit: int = 50, offset: int = 0) -> list[NotificationView]:
    """Newest-first page of the caller's notifications."""
    if limit < 1 or limit > MAX_PAGE_SIZE:
      raise ValueError(f"limit must be between 1 and {MAX_PAGE_SIZE}")
    if offset < 0:
      raise ValueError("offset must not be negative")

    records = await self._repo.list_for_user(ctx.user_id, limit=limit, offset=offset)
    return [_to_view(record) for record in records]

  async def unread_count(self, ctx: UserContext) -> int:
    return await self._repo.count_unread(ctx.user_id)

  async def mark_read(self, ctx: UserContext, notification_id: uuid.UUID) -> None:
    """Mark one notification read; repeating the call is a no-op."""
    flipped = await self._repo.mark_read(ctx.user_id, notification_id)
    if flipped is None:
      # Other users' rows look exactly like missing rows.
      raise NotificationNotFound(f"Notification {notification_id} not found")
    if flipped and self._bus is not None:
      self._bus.publish(NotificationChange(kind="update", notification_id=notification_id, user_id=ctx.user_id))

  async def mark_all_read(self, ctx: UserContext) -> int:
    """Mark every unread notification of the caller read and return how many changed."""
    ids = await self._repo.mark_all_read(ctx.user_id)
    if ids and self._bus is not None:
      self._bus.publish_many([NotificationChange(kind="update", notification_id=notification_id, user_id=ctx.user_id) for notification_id in ids])
    logger.debug("Marked %d notification(s) read for user_id=%s", len(ids), ctx.user_id)
    return len(ids)

  @asynccontextmanager
  async def subscribe(self, ctx: UserContext) -> AsyncIterator[Subscription]:
    """Stream inserts and updates of the caller's own rows until the context exits."""
    if self._bus is None:
      raise RuntimeError("Realtime notifications are not configured")
    async with self._bus.subscribe(ctx.user_id) as subscription:
      yield subscription


def _to_view(record: NotificationRecord) -> NotificationView:
  try:
    title, message = render_in_app(notification_type=record.type, payload=record.payload)
  except ValueError:
    # Rows of a retired type still show up with a generic title.
    logger.warning("No in-app template for notification type=%s id=%s", record.type, record.id)
    title, message = record.type.replace("_", " ").capitalize(), ""
  return NotificationView(id=record.id, type=record.type, title=title, message=message, data=dict(record.payload), read=record.read, created_at=record.created_at)

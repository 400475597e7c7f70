"""In-process publish/subscribe for notification row changes.

Delivery is best-effort: a subscriber whose queue is full misses the change and is
expected to re-fetch the unread count or the feed.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections import defaultdict
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Literal

logger = logging.getLogger(__name__)

ChangeKind = Literal["insert", "update"]


@dataclass(frozen=True)
class NotificationChange:
  """A single insert or update of a user's notification row."""

  kind: ChangeKind
  notification_id: uuid.UUID
  user_id: uuid.UUID


class Subscription:
  """Async iterator over the changes for one subscriber."""

  def __init__(self, queue: asyncio.Queue[NotificationChange]) -> None:
    self._queue = queue

  def __aiter__(self) -> Subscription:
    return self

  async def __anext__(self) -> NotificationChange:
    return await self._queue.get()

  async def get(self, timeout: float | None = None) -> NotificationChange | None:
    """Wait for the next change, or return None after `timeout` seconds."""
    try:
      return await asyncio.wait_for(self._queue.get(), timeout=timeout)
    except TimeoutError:
      return None


class NotificationBus:
  """Fan out row changes to per-user subscriber queues."""

  def __init__(self, *, queue_size: int = 100) -> None:
    self._queue_size = queue_size
    self._subscribers: defaultdict[uuid.UUID, set[asyncio.Queue[NotificationChange]]] = defaultdict(set)

  def publish(self, change: NotificationChange) -> None:
    """Deliver a change to every current subscriber of its user without blocking."""
    for queue in list(self._subscribers.get(change.user_id, ())):
      try:
        queue.put_nowait(change)
      except asyncio.QueueFull:
        logger.debug("Dropping notification change for slow subscriber user_id=%s notification_id=%s", change.user_id, change.notification_id)

  def publish_many(self, changes: list[NotificationChange]) -> None:
    for change in changes:
      self.publish(change)

  def subscriber_count(self, user_id: uuid.UUID) -> int:
    return len(self._subscribers.get(user_id, ()))

  @asynccontextmanager
  async def subscribe(self, user_id: uuid.UUID) -> AsyncIterator[Subscription]:
    """Register a subscriber for a user's changes for the lifetime of the context."""
    queue: asyncio.Queue[NotificationChange] = asyncio.Queue(maxsize=self._queue_size)
    self._subscribers[user_id].add(queue)
    try:
      yield Subscription(queue)
    finally:
      subscribers = self._subscribers.get(user_id)
      if subscribers is not None:
        subscribers.discard(queue)
        if not subscribers:
          self._subscribers.pop(user_id, None)


_bus: NotificationBus | None = None


def get_notification_bus() -> NotificationBus:
  """Process-wide bus shared by the dispatcher, processor and websocket route."""
  global _bus
  if _bus is None:
    _bus = NotificationBus()
  return _bus

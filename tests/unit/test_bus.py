from __future__ import annotations

import uuid

import pytest

from app.notifications.bus import NotificationBus, NotificationChange


@pytest.mark.anyio
async def test_changes_reach_only_the_owning_user():
  bus = NotificationBus()
  owner, other = uuid.uuid4(), uuid.uuid4()

  async with bus.subscribe(owner) as mine, bus.subscribe(other) as theirs:
    bus.publish(NotificationChange(kind="insert", notification_id=uuid.uuid4(), user_id=owner))
    assert await mine.get(timeout=1) is not None
    assert await theirs.get(timeout=0.05) is None


@pytest.mark.anyio
async def test_full_queue_drops_changes_without_blocking():
  bus = NotificationBus(queue_size=1)
  user_id = uuid.uuid4()

  async with bus.subscribe(user_id) as subscription:
    first = NotificationChange(kind="insert", notification_id=uuid.uuid4(), user_id=user_id)
    bus.publish_many([first, NotificationChange(kind="update", notification_id=uuid.uuid4(), user_id=user_id)])
    assert await subscription.get(timeout=1) == first
    assert await subscription.get(timeout=0.05) is None


@pytest.mark.anyio
async def test_subscription_is_removed_on_exit():
  bus = NotificationBus()
  user_id = uuid.uuid4()
  async with bus.subscribe(user_id):
    assert bus.subscriber_count(user_id) == 1
  assert bus.subscriber_count(user_id) == 0
  # Publishing with no subscribers is a no-op.
  bus.publish(NotificationChange(kind="update", notification_id=uuid.uuid4(), user_id=user_id))

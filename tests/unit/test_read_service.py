from __future__ import annotations

import asyncio
import datetime
import uuid

import pytest

from app.notifications.bus import NotificationBus
from app.notifications.contracts import NotificationNotFound
from app.notifications.models import UserContext
from app.notifications.read_service import NotificationReadService
from tests.doubles import NOW, make_record


def _seed(repo, user_id: uuid.UUID, count: int) -> list:
  return [repo.add(make_record(user_id=user_id, channels=["in_app"], created_at=NOW + datetime.timedelta(minutes=index))) for index in range(count)]


@pytest.mark.anyio
async def test_list_is_newest_first_and_rendered(repo):
  ctx = UserContext(user_id=uuid.uuid4())
  records = _seed(repo, ctx.user_id, 3)
  _seed(repo, uuid.uuid4(), 2)

  views = await NotificationReadService(repo=repo).list(ctx, limit=2)

  assert [view.id for view in views] == [records[2].id, records[1].id]
  assert views[0].title == "Request Accepted"
  assert views[0].message == "Dr. Obi has accepted your recommendation letter request for MSc application"
  assert views[0].data["student_name"] == "Ada"


@pytest.mark.anyio
async def test_list_rejects_out_of_range_limit(repo):
  service = NotificationReadService(repo=repo)
  ctx = UserContext(user_id=uuid.uuid4())
  with pytest.raises(ValueError):
    await service.list(ctx, limit=0)
  with pytest.raises(ValueError):
    await service.list(ctx, limit=101)


@pytest.mark.anyio
async def test_mark_all_read_with_concurrent_mark_read(repo):
  ctx = UserContext(user_id=uuid.uuid4())
  records = _seed(repo, ctx.user_id, 5)
  service = NotificationReadService(repo=repo)
  assert await service.unread_count(ctx) == 5

  updated, _ = await asyncio.gather(service.mark_all_read(ctx), service.mark_read(ctx, records[0].id))

  assert await service.unread_count(ctx) == 0
  assert updated in (4, 5)
  # Repeating either call changes nothing.
  await service.mark_read(ctx, records[0].id)
  assert await service.mark_all_read(ctx) == 0


@pytest.mark.anyio
async def test_mark_read_on_someone_elses_row_is_not_found(repo):
  owner = UserContext(user_id=uuid.uuid4())
  (record,) = _seed(repo, owner.user_id, 1)
  service = NotificationReadService(repo=repo)

  with pytest.raises(NotificationNotFound):
    await service.mark_read(UserContext(user_id=uuid.uuid4()), record.id)
  with pytest.raises(NotificationNotFound):
    await service.mark_read(owner, uuid.uuid4())

  assert repo.rows[record.id].read is False


@pytest.mark.anyio
async def test_subscribe_receives_read_updates(repo):
  ctx = UserContext(user_id=uuid.uuid4())
  (record,) = _seed(repo, ctx.user_id, 1)
  service = NotificationReadService(repo=repo, bus=NotificationBus())

  async with service.subscribe(ctx) as subscription:
    await service.mark_read(ctx, record.id)
    change = await subscription.get(timeout=1)
    # Already read, so nothing new is published.
    await service.mark_read(ctx, record.id)
    assert await subscription.get(timeout=0.05) is None

  assert change is not None
  assert change.notification_id == record.id


@pytest.mark.anyio
async def test_subscribe_without_bus_fails(repo):
  service = NotificationReadService(repo=repo)
  with pytest.raises(RuntimeError):
    async with service.subscribe(UserContext(user_id=uuid.uuid4())):
      pass

from __future__ import annotations

import datetime
import uuid

import pytest

from app.notifications.cleanup import cleanup
from tests.doubles import NOW, make_record

RETENTION = datetime.timedelta(days=30)


def _aged(status: str, days: int):
  stamp = NOW - datetime.timedelta(days=days)
  return make_record(user_id=uuid.uuid4(), channels=["in_app"], status=status, created_at=stamp)


@pytest.mark.anyio
async def test_only_old_terminal_rows_are_deleted(repo):
  old_delivered = repo.add(_aged("delivered", 40))
  recent_failed = repo.add(_aged("failed", 10))

  deleted = await cleanup(repo, now=NOW, retention=RETENTION)

  assert deleted == 1
  assert old_delivered.id not in repo.rows
  assert recent_failed.id in repo.rows


@pytest.mark.anyio
@pytest.mark.parametrize("status", ["pending", "processing", "partially_delivered"])
async def test_non_terminal_rows_survive_regardless_of_age(repo, status):
  row = repo.add(_aged(status, 400))
  assert await cleanup(repo, now=NOW, retention=RETENTION) == 0
  assert row.id in repo.rows


@pytest.mark.anyio
async def test_cleanup_is_idempotent(repo):
  repo.add(_aged("failed", 31))
  assert await cleanup(repo, now=NOW, retention=RETENTION) == 1
  assert await cleanup(repo, now=NOW, retention=RETENTION) == 0


@pytest.mark.anyio
async def test_non_positive_retention_is_rejected(repo):
  with pytest.raises(ValueError):
    await cleanup(repo, now=NOW, retention=datetime.timedelta(0))

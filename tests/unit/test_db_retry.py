from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from app.utils.db_retry import classify_db_failure, execute_with_retry


class _DriverError(Exception):
  def __init__(self, sqlstate: str) -> None:
    super().__init__(f"sqlstate {sqlstate}")
    self.sqlstate = sqlstate


def test_classification():
  assert classify_db_failure(OperationalError("UPDATE", {}, _DriverError("40001"))).retryable is True
  assert classify_db_failure(OperationalError("UPDATE", {}, _DriverError("40P01"))).category == "deadlock"
  assert classify_db_failure(IntegrityError("INSERT", {}, _DriverError("23505"))).retryable is False
  assert classify_db_failure(OperationalError("SELECT", {}, _DriverError("42P01"))).category == "schema_error"
  assert classify_db_failure(ConnectionError("reset")).retryable is True
  assert classify_db_failure(ValueError("bad")).retryable is False


@pytest.mark.anyio
async def test_retries_transient_failures_then_succeeds():
  func = AsyncMock(side_effect=[ConnectionError("connection reset"), True])
  assert await execute_with_retry(operation_name="notification_outcome", func=func, initial_backoff_ms=1, jitter=False) is True
  assert func.await_count == 2


@pytest.mark.anyio
async def test_permanent_failure_is_raised_immediately():
  func = AsyncMock(side_effect=ValueError("bad statement"))
  with pytest.raises(ValueError):
    await execute_with_retry(operation_name="notification_outcome", func=func, initial_backoff_ms=1)
  assert func.await_count == 1


@pytest.mark.anyio
async def test_gives_up_after_max_attempts():
  func = AsyncMock(side_effect=ConnectionError("connection reset"))
  with pytest.raises(ConnectionError):
    await execute_with_retry(operation_name="notification_outcome", func=func, max_attempts=3, initial_backoff_ms=1)
  assert func.await_count == 3

"""Bounded retry for notification store writes, split into retryable and permanent failures."""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from sqlalchemy.exc import DBAPIError, IntegrityError, InterfaceError, OperationalError

T = TypeVar("T")
logger = logging.getLogger(__name__)

# Postgres SQLSTATEs that describe a transient conflict rather than a bad statement.
_RETRYABLE_SQLSTATES = {"40001": "serialization_conflict", "40P01": "deadlock", "08000": "connection_exception", "08003": "connection_does_not_exist", "08006": "connection_failure", "57P01": "admin_shutdown"}
_CONNECTION_HINTS = ("connection", "timeout", "reset", "network", "broken pipe", "closed")


@dataclass(frozen=True)
class DBFailureClassification:
  """Classification result for a database failure."""

  retryable: bool
  reason: str
  sqlstate: str | None
  category: str


def _extract_sqlstate(exc: Exception) -> str | None:
  """Extract the Postgres SQLSTATE from a SQLAlchemy-wrapped driver error."""
  if isinstance(exc, DBAPIError) and exc.orig is not None:
    for attribute in ("sqlstate", "pgcode"):
      value = getattr(exc.orig, attribute, None)
      if value:
        return str(value)
  return None


def classify_db_failure(exc: Exception) -> DBFailureClassification:
  """
  Classify a database failure as retryable or not.

  Primary signal is the SQLSTATE; connection-level errors without one fall back to
  the exception type and message. Integrity, schema and permission errors are never
  retried because the same statement will fail again.
  """
  sqlstate = _extract_sqlstate(exc)

  if sqlstate in _RETRYABLE_SQLSTATES:
    return DBFailureClassification(retryable=True, reason=f"Transient database failure ({sqlstate})", sqlstate=sqlstate, category=_RETRYABLE_SQLSTATES[sqlstate])

  if (sqlstate and sqlstate.startswith("23")) or isinstance(exc, IntegrityError):
    return DBFailureClassification(retryable=False, reason="Integrity constraint violation", sqlstate=sqlstate, category="integrity_error")

  if sqlstate and sqlstate.startswith("42"):
    return DBFailureClassification(retryable=False, reason="Schema/SQL error", sqlstate=sqlstate, category="schema_error")

  if sqlstate and sqlstate.startswith("28"):
    return DBFailureClassification(retryable=False, reason="Authentication/permission error", sqlstate=sqlstate, category="permission_error")

  if isinstance(exc, OperationalError | InterfaceError | ConnectionError):
    message = str(exc).lower()
    if isinstance(exc, ConnectionError) or any(hint in message for hint in _CONNECTION_HINTS):
      return DBFailureClassification(retryable=True, reason="Transient connection/network error", sqlstate=sqlstate, category="connectivity_error")
    return DBFailureClassification(retryable=False, reason="Operational error (unknown cause)", sqlstate=sqlstate, category="operational_error_unknown")

  return DBFailureClassification(retryable=False, reason=f"Unknown error type: {type(exc).__name__}", sqlstate=sqlstate, category="unknown_error")


async def execute_with_retry(*, operation_name: str, func: Callable[[], Awaitable[T]], max_attempts: int = 3, initial_backoff_ms: int = 100, max_backoff_ms: int = 2000, jitter: bool = True) -> T:
  """
  Run an idempotent async database operation, retrying transient failures.

  Args:
    operation_name: Label used in logs (e.g. "notification_outcome").
    func: Zero-argument coroutine factory; called once per attempt.
    max_attempts: Total attempts including the first.
    initial_backoff_ms: Delay before the first retry; doubles per retry.
    max_backoff_ms: Upper bound for a single delay.
    jitter: Spread retries by +/-25% to avoid synchronized retries.

  Raises:
    The last exception when it is not retryable or attempts are exhausted.
  """
  attempt = 0
  while True:
    attempt += 1
    try:
      result = await func()
    except Exception as exc:
      classification = classify_db_failure(exc)
      logger.warning(
        "DB operation failed: operation=%s, attempt=%d/%d, category=%s, sqlstate=%s, retryable=%s",
        operation_name,
        attempt,
        max_attempts,
        classification.category,
        classification.sqlstate or "none",
        classification.retryable,
        exc_info=not classification.retryable,
      )
      if not classification.retryable or attempt >= max_attempts:
        raise

      backoff_ms = min(initial_backoff_ms * (2 ** (attempt - 1)), max_backoff_ms)
      if jitter:
        backoff_ms += random.uniform(-0.25, 0.25) * backoff_ms
      await asyncio.sleep(max(backoff_ms, 0) / 1000.0)
      continue

    if attempt > 1:
      logger.info("DB operation succeeded after retry: operation=%s, attempt=%d/%d", operation_name, attempt, max_attempts)
    return result

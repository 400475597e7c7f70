"""Batch processing of queued notifications.

Each run selects due rows oldest first, claims every row with a conditional update,
then attempts the row's open channels one after another. Channel failures are isolated
and recorded per channel; the row's status, attempt count and next retry time are
written back with a second conditional update that only succeeds while the claim holds.
"""

from __future__ import annotations

import asyncio
import datetime
import logging
import uuid
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import UTC
from typing import Any

from starlette.concurrency import run_in_threadpool

from app.notifications.bus import NotificationBus, NotificationChange
from app.notifications.contracts import ChannelSender, NotificationProviderError, PermanentDeliveryError
from app.notifications.directory import RecipientContact, RecipientDirectory
from app.notifications.models import Channel, ChannelResultStatus, NotificationRecord, NotificationStatus, OutcomeUpdate, ProcessingSummary
from app.notifications.repo import NotificationRepository
from app.notifications.template_renderer import render_message
from app.utils.db_retry import execute_with_retry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
  """Attempt budget and exponential backoff for failing notifications."""

  max_attempts: int = 3
  base_delay: datetime.timedelta = datetime.timedelta(minutes=1)
  max_delay: datetime.timedelta = datetime.timedelta(hours=1)

  def delay_after(self, attempts: int) -> datetime.timedelta:
    """Delay before the next attempt once `attempts` attempts have been made."""
    return min(self.base_delay * (2**attempts), self.max_delay)


@dataclass(frozen=True)
class _ChannelAttempt:
  status: ChannelResultStatus
  error: str | None = None
  provider: str | None = None
  message_id: str | None = None


class QueueProcessor:
  """Delivers queued notifications through their channel senders."""

  def __init__(
    self,
    *,
    repo: NotificationRepository,
    directory: RecipientDirectory,
    senders: Mapping[Channel, ChannelSender],
    policy: RetryPolicy | None = None,
    send_timeout_seconds: float = 15.0,
    write_attempts: int = 3,
    write_backoff_ms: int = 100,
    bus: NotificationBus | None = None,
    clock: Callable[[], datetime.datetime] | None = None,
  ) -> None:
    self._repo = repo
    self._directory = directory
    self._senders = dict(senders)
    self._policy = policy or RetryPolicy()
    self._send_timeout_seconds = send_timeout_seconds
    self._write_attempts = write_attempts
    self._write_backoff_ms = write_backoff_ms
    self._bus = bus
    self._clock = clock or (lambda: datetime.datetime.now(UTC))

  @property
  def policy(self) -> RetryPolicy:
    return self._policy

  async def process_batch(self, *, batch_size: int, now: datetime.datetime | None = None) -> ProcessingSummary:
    """Process up to `batch_size` due notifications and report what happened."""
    now = now or self._clock()
    summary = ProcessingSummary()

    records = await self._repo.select_due(now=now, limit=batch_size, max_attempts=self._policy.max_attempts)
    summary.selected = len(records)
    if not records:
      return summary

    try:
      contacts = await self._directory.get_contacts(record.user_id for record in records)
    except Exception as exc:  # noqa: BLE001
      # Treat the whole batch as a transient failure rather than rejecting channels.
      logger.error("Recipient lookup failed for batch of %d: %s", len(records), exc, exc_info=True)
      contacts = None

    for record in records:
      await self._process_one(record, contacts=contacts, now=now, summary=summary)

    logger.info("Notification batch finished: %s", summary.as_dict())
    return summary

  async def reconcile_stuck(self, *, stuck_after: datetime.timedelta, now: datetime.datetime | None = None) -> list[uuid.UUID]:
    """Return rows left in `processing` past `stuck_after` to `pending`.

    A row only stays in `processing` when a run crashed mid-send or could not persist
    its outcome, so every reclaimed id is logged as an operational warning.
    """
    now = now or self._clock()
    reclaimed = await self._repo.reclaim_stuck(now=now, older_than=now - stuck_after)
    if reclaimed:
      logger.warning("Reclaimed %d notification(s) stuck in processing: %s", len(reclaimed), ", ".join(str(notification_id) for notification_id in reclaimed))
    return reclaimed

  async def _process_one(self, record: NotificationRecord, *, contacts: dict[uuid.UUID, RecipientContact] | None, now: datetime.datetime, summary: ProcessingSummary) -> None:
    if not await self._repo.claim(record, now=now):
      # Another run holds or already finished this row.
      summary.skipped += 1
      return
    summary.claimed += 1

    channel_results: dict[str, dict[str, Any]] = {channel: dict(result) for channel, result in record.channel_results.items()}
    errors: list[str] = []
    for channel in record.open_channels():
      attempt = await self._attempt_channel(record, channel, contacts=contacts)
      channel_results[channel] = {"status": attempt.status, "error": attempt.error, "provider": attempt.provider, "message_id": attempt.message_id, "at": self._clock().isoformat()}
      if attempt.error:
        errors.append(f"{channel}: {attempt.error}")

    outcome = self._decide_outcome(record, channel_results=channel_results, errors=errors, now=now)
    try:
      written = await execute_with_retry(
        operation_name="notification_outcome",
        func=lambda: self._repo.record_outcome(record.id, claimed_attempts=record.attempts, outcome=outcome),
        max_attempts=self._write_attempts,
        initial_backoff_ms=self._write_backoff_ms,
      )
    except Exception as exc:  # noqa: BLE001
      summary.stuck += 1
      logger.error("Could not persist outcome for notification %s; row left in processing: %s", record.id, exc, exc_info=True)
      return

    if not written:
      summary.stuck += 1
      logger.error("Outcome for notification %s was not written; the claim no longer holds", record.id)
      return

    _tally(summary, outcome.status)
    if self._bus is not None:
      self._bus.publish(NotificationChange(kind="update", notification_id=record.id, user_id=record.user_id))

  async def _attempt_channel(self, record: NotificationRecord, channel: Channel, *, contacts: dict[uuid.UUID, RecipientContact] | None) -> _ChannelAttempt:
    sender = self._senders.get(channel)
    if sender is None:
      return _ChannelAttempt(status="rejected", error="no sender configured")

    if contacts is None:
      return _ChannelAttempt(status="failed", error="recipient lookup failed")

    contact = contacts.get(record.user_id)
    address = contact.address_for(channel) if contact is not None else None
    if not address:
      return _ChannelAttempt(status="rejected", error="recipient has no address for channel")

    try:
      message = render_message(notification_type=record.type, channel=channel, payload=record.payload)
    except ValueError as exc:
      logger.error("Render failed notification=%s channel=%s: %s", record.id, channel, exc)
      return _ChannelAttempt(status="rejected", error=f"render failed: {exc}")

    try:
      result = await asyncio.wait_for(run_in_threadpool(sender.send, address, message), timeout=self._send_timeout_seconds)
    except TimeoutError:
      logger.warning("Send timed out notification=%s channel=%s after %.1fs", record.id, channel, self._send_timeout_seconds)
      return _ChannelAttempt(status="failed", error=f"timed out after {self._send_timeout_seconds:g}s")
    except PermanentDeliveryError as exc:
      logger.warning("Permanent delivery failure notification=%s channel=%s: %s", record.id, channel, exc)
      return _ChannelAttempt(status="rejected", error=str(exc) or type(exc).__name__)
    except NotificationProviderError as exc:
      logger.warning("Delivery failed notification=%s channel=%s: %s", record.id, channel, exc)
      return _ChannelAttempt(status="failed", error=str(exc) or type(exc).__name__)
    except Exception as exc:  # noqa: BLE001
      logger.error("Unexpected sender failure notification=%s channel=%s: %s", record.id, channel, exc, exc_info=True)
      return _ChannelAttempt(status="failed", error=f"{type(exc).__name__}: {exc}")

    return _ChannelAttempt(status="succeeded", provider=result.provider, message_id=result.message_id)

  def _decide_outcome(self, record: NotificationRecord, *, channel_results: dict[str, dict[str, Any]], errors: list[str], now: datetime.datetime) -> OutcomeUpdate:
    attempts = record.attempts + 1
    statuses = [channel_results.get(channel, {}).get("status") for channel in record.channels]
    succeeded = statuses.count("succeeded")
    retryable = statuses.count("failed")

    status: NotificationStatus
    next_attempt_at: datetime.datetime | None = None
    if succeeded == len(record.channels):
      status = "delivered"
    elif retryable and attempts < self._policy.max_attempts:
      status = "pending"
      next_attempt_at = now + self._policy.delay_after(attempts)
    elif succeeded:
      status = "partially_delivered"
    else:
      status = "failed"

    last_error = "; ".join(errors) if errors else None
    if status != "delivered" and last_error is None:
      last_error = record.last_error
    return OutcomeUpdate(status=status, attempts=attempts, channel_results=channel_results, last_error=last_error, next_attempt_at=next_attempt_at, updated_at=now)


def _tally(summary: ProcessingSummary, status: NotificationStatus) -> None:
  if status == "delivered":
    summary.delivered += 1
  elif status == "partially_delivered":
    summary.partially_delivered += 1
  elif status == "failed":
    summary.failed += 1
  else:
    summary.pending += 1

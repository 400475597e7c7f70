"""In-memory doubles for the notification store, directory and channel senders."""

from __future__ import annotations

import asyncio
import datetime
import uuid
from collections.abc import Iterable, Sequence
from dataclasses import replace
from datetime import UTC

from app.notifications.contracts import RenderedMessage, SendResult
from app.notifications.directory import RecipientContact
from app.notifications.models import QUEUED_STATUSES, TERMINAL_STATUSES, NotificationDraft, NotificationRecord, OutcomeUpdate

NOW = datetime.datetime(2026, 3, 2, 9, 0, tzinfo=UTC)


class InMemoryNotificationRepository:
  """Dict-backed store with the same conditional-update semantics as Postgres."""

  def __init__(self) -> None:
    self.rows: dict[uuid.UUID, NotificationRecord] = {}
    self.fail_inserts = False
    self.outcome_failures: list[Exception] = []
    self._lock = asyncio.Lock()

  def add(self, record: NotificationRecord) -> NotificationRecord:
    self.rows[record.id] = record
    return record

  async def insert_many(self, drafts: Sequence[NotificationDraft], *, now: datetime.datetime) -> list[NotificationRecord]:
    if self.fail_inserts:
      raise ConnectionError("connection reset by peer")
    records = [
      NotificationRecord(
        id=uuid.uuid4(), user_id=draft.user_id, type=draft.type, payload=dict(draft.payload), channels=list(draft.channels), status="pending", attempts=0, created_at=now, updated_at=now, next_attempt_at=now
      )
      for draft in drafts
    ]
    for record in records:
      self.rows[record.id] = record
    return [replace(record) for record in records]

  async def select_due(self, *, now: datetime.datetime, limit: int, max_attempts: int) -> list[NotificationRecord]:
    due = [
      row for row in self.rows.values() if row.status in QUEUED_STATUSES and row.next_attempt_at is not None and row.next_attempt_at <= now and row.attempts < max_attempts
    ]
    due.sort(key=lambda row: (row.created_at, row.id))
    return [replace(row, channel_results=dict(row.channel_results)) for row in due[:limit]]

  async def claim(self, record: NotificationRecord, *, now: datetime.datetime) -> bool:
    async with self._lock:
      # Yield so concurrent claimers interleave like separate connections would.
      await asyncio.sleep(0)
      current = self.rows.get(record.id)
      if current is None or current.status != record.status or current.attempts != record.attempts:
        return False
      self.rows[record.id] = replace(current, status="processing", updated_at=now)
      return True

  async def record_outcome(self, notification_id: uuid.UUID, *, claimed_attempts: int, outcome: OutcomeUpdate) -> bool:
    if self.outcome_failures:
      raise self.outcome_failures.pop(0)
    current = self.rows.get(notification_id)
    if current is None or current.status != "processing" or current.attempts != claimed_attempts:
      return False
    self.rows[notification_id] = replace(
      current,
      status=outcome.status,
      attempts=outcome.attempts,
      channel_results=dict(outcome.channel_results),
      last_error=outcome.last_error,
      next_attempt_at=outcome.next_attempt_at,
      updated_at=outcome.updated_at,
    )
    return True

  async def reclaim_stuck(self, *, now: datetime.datetime, older_than: datetime.datetime) -> list[uuid.UUID]:
    ids = [row.id for row in self.rows.values() if row.status == "processing" and row.updated_at < older_than]
    for notification_id in ids:
      self.rows[notification_id] = replace(self.rows[notification_id], status="pending", next_attempt_at=now, updated_at=now)
    return ids

  async def delete_terminal(self, *, older_than: datetime.datetime) -> int:
    ids = [row.id for row in self.rows.values() if row.status in TERMINAL_STATUSES and row.updated_at < older_than]
    for notification_id in ids:
      del self.rows[notification_id]
    return len(ids)

  async def list_for_user(self, user_id: uuid.UUID, *, limit: int, offset: int) -> list[NotificationRecord]:
    rows = sorted((row for row in self.rows.values() if row.user_id == user_id), key=lambda row: (row.created_at, row.id), reverse=True)
    return [replace(row) for row in rows[offset : offset + limit]]

  async def count_unread(self, user_id: uuid.UUID) -> int:
    return sum(1 for row in self.rows.values() if row.user_id == user_id and not row.read)

  async def mark_read(self, user_id: uuid.UUID, notification_id: uuid.UUID) -> bool | None:
    current = self.rows.get(notification_id)
    if current is None or current.user_id != user_id:
      return None
    if current.read:
      return False
    self.rows[notification_id] = replace(current, read=True)
    return True

  async def mark_all_read(self, user_id: uuid.UUID) -> list[uuid.UUID]:
    ids = [row.id for row in self.rows.values() if row.user_id == user_id and not row.read]
    for notification_id in ids:
      self.rows[notification_id] = replace(self.rows[notification_id], read=True)
    return ids


class InMemoryDirectory:
  def __init__(self, contacts: Iterable[RecipientContact] = ()) -> None:
    self.contacts = {contact.user_id: contact for contact in contacts}
    self.fail = False

  def add(self, contact: RecipientContact) -> RecipientContact:
    self.contacts[contact.user_id] = contact
    return contact

  async def get_contacts(self, user_ids: Iterable[uuid.UUID]) -> dict[uuid.UUID, RecipientContact]:
    if self.fail:
      raise ConnectionError("directory unavailable")
    return {user_id: self.contacts[user_id] for user_id in user_ids if user_id in self.contacts}

  async def list_admin_ids(self) -> list[uuid.UUID]:
    if self.fail:
      raise ConnectionError("directory unavailable")
    return [contact.user_id for contact in self.contacts.values() if contact.role == "admin"]


class RecordingSender:
  """Channel sender that records calls and can be told to fail."""

  def __init__(self, provider: str = "fake", *, error: Exception | None = None) -> None:
    self.provider = provider
    self.error = error
    self.calls: list[tuple[str, RenderedMessage]] = []

  def send(self, address: str, message: RenderedMessage) -> SendResult:
    self.calls.append((address, message))
    if self.error is not None:
      raise self.error
    return SendResult(provider=self.provider, message_id=f"{self.provider}-{len(self.calls)}")


def make_contact(role: str = "student", **overrides) -> RecipientContact:
  user_id = overrides.pop("user_id", uuid.uuid4())
  defaults = {"full_name": f"{role.title()} User", "email": f"{user_id.hex[:8]}@example.com", "phone_number": "+2348000000000", "whatsapp_number": "+2348000000001", "preferences": None}
  defaults.update(overrides)
  return RecipientContact(user_id=user_id, role=role, **defaults)


def make_record(*, user_id: uuid.UUID, channels: list[str], status: str = "pending", attempts: int = 0, created_at: datetime.datetime = NOW, **overrides) -> NotificationRecord:
  values = {
    "id": uuid.uuid4(),
    "user_id": user_id,
    "type": "request_accepted",
    "payload": {"student_name": "Ada", "lecturer_name": "Dr. Obi", "purpose": "MSc application"},
    "channels": channels,
    "status": status,
    "attempts": attempts,
    "created_at": created_at,
    "updated_at": created_at,
    "next_attempt_at": created_at,
  }
  values.update(overrides)
  return NotificationRecord(**values)



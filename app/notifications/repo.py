"""Notification store contract and its Postgres implementation."""

from __future__ import annotations

import datetime
import logging
import uuid
from collections.abc import Sequence
from typing import Protocol

from sqlalchemy import delete, func, select, update

from app.core.database import get_session_factory
from app.notifications.models import QUEUED_STATUSES, TERMINAL_STATUSES, NotificationDraft, NotificationRecord, OutcomeUpdate
from app.schema.notifications import Notification

logger = logging.getLogger(__name__)


class NotificationRepository(Protocol):
  """Repository contract for notification persistence.

  Every mutation is a single-row conditional update or one set-based statement, so
  overlapping processor, cleanup and read calls never need a lock.
  """

  async def insert_many(self, drafts: Sequence[NotificationDraft], *, now: datetime.datetime) -> list[NotificationRecord]:
    """Persist drafts as `pending` rows in one transaction."""

  async def select_due(self, *, now: datetime.datetime, limit: int, max_attempts: int) -> list[NotificationRecord]:
    """Oldest-first queued rows whose retry time has come."""

  async def claim(self, record: NotificationRecord, *, now: datetime.datetime) -> bool:
    """Move a row to `processing` if it still has the observed status and attempts."""

  async def record_outcome(self, notification_id: uuid.UUID, *, claimed_attempts: int, outcome: OutcomeUpdate) -> bool:
    """Write an attempt's outcome if the row is still held by this claim."""

  async def reclaim_stuck(self, *, now: datetime.datetime, older_than: datetime.datetime) -> list[uuid.UUID]:
    """Return `processing` rows untouched since `older_than` to `pending`."""

  async def delete_terminal(self, *, older_than: datetime.datetime) -> int:
    """Delete delivered/failed rows last updated before `older_than`."""

  async def list_for_user(self, user_id: uuid.UUID, *, limit: int, offset: int) -> list[NotificationRecord]:
    """Newest-first page of a user's notifications."""

  async def count_unread(self, user_id: uuid.UUID) -> int:
    """Count a user's unread notifications."""

  async def mark_read(self, user_id: uuid.UUID, notification_id: uuid.UUID) -> bool | None:
    """True when flipped to read, False when already read, None when not the user's."""

  async def mark_all_read(self, user_id: uuid.UUID) -> list[uuid.UUID]:
    """Flip every unread row of a user in one statement and return their ids."""


class PostgresNotificationRepository:
  """Persist notifications to Postgres using SQLAlchemy."""

  def __init__(self) -> None:
    self._session_factory = get_session_factory()
    if self._session_factory is None:
      raise RuntimeError("Database not initialized")

  async def insert_many(self, drafts: Sequence[NotificationDraft], *, now: datetime.datetime) -> list[NotificationRecord]:
    rows = [
      Notification(
        id=uuid.uuid4(),
        user_id=draft.user_id,
        type=draft.type,
        payload=dict(draft.payload),
        channels=list(draft.channels),
        channel_results={},
        status="pending",
        attempts=0,
        read=False,
        created_at=now,
        updated_at=now,
        next_attempt_at=now,
      )
      for draft in drafts
    ]
    if not rows:
      return []

    async with self._session_factory() as session:
      session.add_all(rows)
      await session.commit()

    return [_to_record(row) for row in rows]

  async def select_due(self, *, now: datetime.datetime, limit: int, max_attempts: int) -> list[NotificationRecord]:
    stmt = (
      select(Notification)
      .where(Notification.status.in_(QUEUED_STATUSES), Notification.next_attempt_at <= now, Notification.attempts < max_attempts)
      .order_by(Notification.created_at.asc(), Notification.id.asc())
      .limit(limit)
    )
    async with self._session_factory() as session:
      result = await session.execute(stmt)
      return [_to_record(row) for row in result.scalars().all()]

  async def claim(self, record: NotificationRecord, *, now: datetime.datetime) -> bool:
    # Compare-and-set on (status, attempts) so only one concurrent run wins the row.
    stmt = (
      update(Notification)
      .where(Notification.id == record.id, Notification.status == record.status, Notification.attempts == record.attempts)
      .values(status="processing", updated_at=now)
      .returning(Notification.id)
      .execution_options(synchronize_session=False)
    )
    async with self._session_factory() as session:
      result = await session.execute(stmt)
      claimed = result.first() is not None
      await session.commit()
    return claimed

  async def record_outcome(self, notification_id: uuid.UUID, *, claimed_attempts: int, outcome: OutcomeUpdate) -> bool:
    stmt = (
      update(Notification)
      .where(Notification.id == notification_id, Notification.status == "processing", Notification.attempts == claimed_attempts)
      .values(
        status=outcome.status,
        attempts=outcome.attempts,
        channel_results=outcome.channel_results,
        last_error=outcome.last_error,
        next_attempt_at=outcome.next_attempt_at,
        updated_at=outcome.updated_at,
      )
      .returning(Notification.id)
      .execution_options(synchronize_session=False)
    )
    async with self._session_factory() as session:
      result = await session.execute(stmt)
      written = result.first() is not None
      await session.commit()
    return written

  async def reclaim_stuck(self, *, now: datetime.datetime, older_than: datetime.datetime) -> list[uuid.UUID]:
    stmt = (
      update(Notification)
      .where(Notification.status == "processing", Notification.updated_at < older_than)
      .values(status="pending", next_attempt_at=now, updated_at=now)
      .returning(Notification.id)
      .execution_options(synchronize_session=False)
    )
    async with self._session_factory() as session:
      result = await session.execute(stmt)
      ids = list(result.scalars().all())
      await session.commit()
    return ids

  async def delete_terminal(self, *, older_than: datetime.datetime) -> int:
    stmt = delete(Notification).where(Notification.status.in_(TERMINAL_STATUSES), Notification.updated_at < older_than).returning(Notification.id).execution_options(synchronize_session=False)
    async with self._session_factory() as session:
      result = await session.execute(stmt)
      deleted = len(result.scalars().all())
      await session.commit()
    return deleted

  async def list_for_user(self, user_id: uuid.UUID, *, limit: int, offset: int) -> list[NotificationRecord]:
    stmt = select(Notification).where(Notification.user_id == user_id).order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit).offset(offset)
    async with self._session_factory() as session:
      result = await session.execute(stmt)
      return [_to_record(row) for row in result.scalars().all()]

  async def count_unread(self, user_id: uuid.UUID) -> int:
    stmt = select(func.count()).select_from(Notification).where(Notification.user_id == user_id, Notification.read.is_(False))
    async with self._session_factory() as session:
      result = await session.execute(stmt)
      return int(result.scalar_one())

  async def mark_read(self, user_id: uuid.UUID, notification_id: uuid.UUID) -> bool | None:
    # Only unread rows are touched so a repeated call never rewrites anything.
    stmt = (
      update(Notification)
      .where(Notification.id == notification_id, Notification.user_id == user_id, Notification.read.is_(False))
      .values(read=True)
      .returning(Notification.id)
      .execution_options(synchronize_session=False)
    )
    async with self._session_factory() as session:
      result = await session.execute(stmt)
      flipped = result.first() is not None
      await session.commit()
      if flipped:
        return True

      exists = await session.execute(select(Notification.id).where(Notification.id == notification_id, Notification.user_id == user_id))
      return False if exists.first() is not None else None

  async def mark_all_read(self, user_id: uuid.UUID) -> list[uuid.UUID]:
    stmt = (
      update(Notification)
      .where(Notification.user_id == user_id, Notification.read.is_(False))
      .values(read=True)
      .returning(Notification.id)
      .execution_options(synchronize_session=False)
    )
    async with self._session_factory() as session:
      result = await session.execute(stmt)
      ids = list(result.scalars().all())
      await session.commit()
    return ids


def _to_record(row: Notification) -> NotificationRecord:
  return NotificationRecord(
    id=row.id,
    user_id=row.user_id,
    type=row.type,  # type: ignore[arg-type]
    payload=dict(row.payload or {}),
    channels=list(row.channels or []),
    status=row.status,  # type: ignore[arg-type]
    attempts=int(row.attempts or 0),
    created_at=row.created_at,
    updated_at=row.updated_at,
    next_attempt_at=row.next_attempt_at,
    last_error=row.last_error,
    read=bool(row.read),
    channel_results=dict(row.channel_results or {}),
  )

"""Scheduled reminder and auto-cancel passes over letter requests.

These jobs are intended to be executed by the scheduler through the internal task
routes. They never deliver anything themselves; they only raise trigger events.
"""

from __future__ import annotations

import datetime
import logging
import uuid
from collections.abc import Collection
from dataclasses import dataclass, field
from typing import Protocol

import sqlalchemy as sa
from sqlalchemy import select, update

from app.config import Settings
from app.core.database import get_session_factory
from app.notifications.dispatcher import TriggerDispatcher
from app.notifications.events import ReminderKind, RequestReminder, RequestStatusChanged
from app.schema.letter_requests import LetterRequest
from app.schema.users import User

logger = logging.getLogger(__name__)

PENDING_ACCEPTANCE = "pending_acceptance"
_DEADLINE_WATCH_STATUSES = (PENDING_ACCEPTANCE, "accepted", "in_progress")


@dataclass(frozen=True)
class RequestSnapshot:
  """The request fields reminders and auto-cancel need."""

  request_id: uuid.UUID
  student_id: uuid.UUID
  student_name: str
  lecturer_ids: tuple[uuid.UUID, ...]
  purpose: str
  status: str
  created_at: datetime.datetime
  deadline: datetime.datetime | None = None


@dataclass
class ReminderSummary:
  considered: int = 0
  sent: int = 0
  failed: int = 0
  skipped: int = 0
  notification_ids: list[uuid.UUID] = field(default_factory=list)
  # Requests that were notified in this pass.
  request_ids: list[uuid.UUID] = field(default_factory=list)

  def as_dict(self) -> dict[str, int]:
    return {"considered": self.considered, "sent": self.sent, "failed": self.failed, "skipped": self.skipped, "notifications": len(self.notification_ids)}


class LetterRequestStore(Protocol):
  async def list_unanswered(self, *, created_before: datetime.datetime, reminded_before: datetime.datetime) -> list[RequestSnapshot]:
    """Requests awaiting acceptance, created and last reminded before the given times."""

  async def list_deadline_due(self, *, now: datetime.datetime, until: datetime.datetime, reminded_before: datetime.datetime) -> list[RequestSnapshot]:
    """Open requests whose deadline falls in [now, until] and had no deadline reminder since `reminded_before`."""

  async def list_expired(self, *, created_before: datetime.datetime) -> list[RequestSnapshot]:
    """Requests still awaiting acceptance that were created before the cutoff."""

  async def mark_reminded(self, request_id: uuid.UUID, *, at: datetime.datetime) -> None: ...

  async def mark_deadline_reminded(self, request_id: uuid.UUID, *, at: datetime.datetime) -> None: ...

  async def auto_cancel(self, request_id: uuid.UUID, *, at: datetime.datetime) -> bool:
    """Cancel the request if it is still awaiting acceptance."""


class PostgresLetterRequestStore:
  """Letter requests and their students read from the shared marketplace tables."""

  def __init__(self) -> None:
    self._session_factory = get_session_factory()
    if self._session_factory is None:
      raise RuntimeError("Database not initialized")

  async def list_unanswered(self, *, created_before: datetime.datetime, reminded_before: datetime.datetime) -> list[RequestSnapshot]:
    stmt = self._base_query().where(
      LetterRequest.status == PENDING_ACCEPTANCE,
      LetterRequest.created_at < created_before,
      sa.or_(LetterRequest.last_reminder_at.is_(None), LetterRequest.last_reminder_at < reminded_before),
    )
    return await self._fetch(stmt)

  async def list_deadline_due(self, *, now: datetime.datetime, until: datetime.datetime, reminded_before: datetime.datetime) -> list[RequestSnapshot]:
    stmt = self._base_query().where(
      LetterRequest.status.in_(_DEADLINE_WATCH_STATUSES),
      LetterRequest.deadline.is_not(None),
      LetterRequest.deadline >= now,
      LetterRequest.deadline <= until,
      sa.or_(LetterRequest.last_deadline_reminder_at.is_(None), LetterRequest.last_deadline_reminder_at < reminded_before),
    )
    return await self._fetch(stmt)

  async def list_expired(self, *, created_before: datetime.datetime) -> list[RequestSnapshot]:
    stmt = self._base_query().where(LetterRequest.status == PENDING_ACCEPTANCE, LetterRequest.created_at < created_before)
    return await self._fetch(stmt)

  async def mark_reminded(self, request_id: uuid.UUID, *, at: datetime.datetime) -> None:
    async with self._session_factory() as session:
      await session.execute(update(LetterRequest).where(LetterRequest.id == request_id).values(last_reminder_at=at))
      await session.commit()

  async def mark_deadline_reminded(self, request_id: uuid.UUID, *, at: datetime.datetime) -> None:
    async with self._session_factory() as session:
      await session.execute(update(LetterRequest).where(LetterRequest.id == request_id).values(last_deadline_reminder_at=at))
      await session.commit()

  async def auto_cancel(self, request_id: uuid.UUID, *, at: datetime.datetime) -> bool:
    # Conditional on the old status so a concurrent acceptance always wins.
    stmt = (
      update(LetterRequest)
      .where(LetterRequest.id == request_id, LetterRequest.status == PENDING_ACCEPTANCE)
      .values(status="auto_cancelled", updated_at=at)
      .returning(LetterRequest.id)
      .execution_options(synchronize_session=False)
    )
    async with self._session_factory() as session:
      result = await session.execute(stmt)
      cancelled = result.first() is not None
      await session.commit()
    return cancelled

  def _base_query(self) -> sa.Select:
    return select(LetterRequest, User.full_name).join(User, User.id == LetterRequest.student_id, isouter=True).order_by(LetterRequest.created_at.asc())

  async def _fetch(self, stmt: sa.Select) -> list[RequestSnapshot]:
    async with self._session_factory() as session:
      result = await session.execute(stmt)
      return [_to_snapshot(row, student_name) for row, student_name in result.all()]


def _to_snapshot(row: LetterRequest, student_name: str | None) -> RequestSnapshot:
  lecturer_ids = tuple(uuid.UUID(str(value)) for value in (row.lecturer_ids or []))
  return RequestSnapshot(
    request_id=row.id,
    student_id=row.student_id,
    student_name=student_name or "A student",
    lecturer_ids=lecturer_ids,
    purpose=row.purpose,
    status=row.status,
    created_at=row.created_at,
    deadline=row.deadline,
  )


async def send_pending_reminders(store: LetterRequestStore, dispatcher: TriggerDispatcher, *, settings: Settings, now: datetime.datetime) -> ReminderSummary:
  """Nudge lecturers about requests they have not answered yet and tell the student they were nudged."""
  window = datetime.timedelta(days=settings.reminder_after_days)
  requests = await store.list_unanswered(created_before=now - window, reminded_before=now - window)
  summary = ReminderSummary(considered=len(requests))

  for request in requests:
    try:
      summary.notification_ids.extend(await dispatcher.dispatch(_reminder_event(request, now=now, reminder="pending")))
      await store.mark_reminded(request.request_id, at=now)
      summary.sent += 1
      summary.request_ids.append(request.request_id)
    except Exception as exc:  # noqa: BLE001
      summary.failed += 1
      logger.error("Pending reminder failed for request %s: %s", request.request_id, exc, exc_info=True)

  logger.info("Pending reminders: %s", summary.as_dict())
  return summary


async def send_deadline_reminders(
  store: LetterRequestStore, dispatcher: TriggerDispatcher, *, settings: Settings, now: datetime.datetime, already_reminded: Collection[uuid.UUID] = ()
) -> ReminderSummary:
  """Warn the lecturers and the student once per request when its deadline gets close.

  Requests in `already_reminded` got a pending reminder in the same run, which carries the
  deadline too; they are only stamped so later runs do not warn again.
  """
  window = datetime.timedelta(days=settings.deadline_warning_days)
  requests = await store.list_deadline_due(now=now, until=now + window, reminded_before=now - window)
  summary = ReminderSummary(considered=len(requests))

  for request in requests:
    try:
      if request.request_id in already_reminded:
        await store.mark_deadline_reminded(request.request_id, at=now)
        summary.skipped += 1
        continue
      summary.notification_ids.extend(await dispatcher.dispatch(_reminder_event(request, now=now, reminder="deadline")))
      await store.mark_deadline_reminded(request.request_id, at=now)
      summary.sent += 1
      summary.request_ids.append(request.request_id)
    except Exception as exc:  # noqa: BLE001
      summary.failed += 1
      logger.error("Deadline reminder failed for request %s: %s", request.request_id, exc, exc_info=True)

  logger.info("Deadline reminders: %s", summary.as_dict())
  return summary


async def process_auto_cancel(store: LetterRequestStore, dispatcher: TriggerDispatcher, *, settings: Settings, now: datetime.datetime) -> ReminderSummary:
  """Cancel requests nobody accepted in time and notify the people involved."""
  requests = await store.list_expired(created_before=now - datetime.timedelta(days=settings.auto_cancel_after_days))
  summary = ReminderSummary(considered=len(requests))

  for request in requests:
    try:
      if not await store.auto_cancel(request.request_id, at=now):
        logger.info("Request %s left %s before auto-cancel; skipping", request.request_id, PENDING_ACCEPTANCE)
        summary.skipped += 1
        continue
      event = RequestStatusChanged(
        request_id=request.request_id,
        student_id=request.student_id,
        student_name=request.student_name,
        lecturer_ids=request.lecturer_ids,
        purpose=request.purpose,
        new_status="auto_cancelled",
        old_status=request.status,
        deadline=request.deadline,
        cause="system",
      )
      summary.notification_ids.extend(await dispatcher.dispatch(event))
      summary.sent += 1
    except Exception as exc:  # noqa: BLE001
      summary.failed += 1
      logger.error("Auto-cancel failed for request %s: %s", request.request_id, exc, exc_info=True)

  logger.info("Auto-cancel: %s", summary.as_dict())
  return summary


def _days_remaining(request: RequestSnapshot, now: datetime.datetime) -> int | None:
  if request.deadline is None:
    return None
  return max((request.deadline - now).days, 0)


def _reminder_event(request: RequestSnapshot, *, now: datetime.datetime, reminder: ReminderKind) -> RequestReminder:
  return RequestReminder(
    request_id=request.request_id,
    student_name=request.student_name,
    lecturer_ids=request.lecturer_ids,
    purpose=request.purpose,
    deadline=request.deadline,
    days_remaining=_days_remaining(request, now),
    student_id=request.student_id,
    reminder=reminder,
  )

"""Turn domain events into durable notification rows."""

from __future__ import annotations

import datetime
import logging
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC
from decimal import Decimal
from typing import Any

from app.notifications.bus import NotificationBus, NotificationChange
from app.notifications.catalog import get_template
from app.notifications.contracts import EnqueueFailed, UnknownEventKind
from app.notifications.directory import RecipientContact, RecipientDirectory
from app.notifications.events import (
  AdminAlert,
  ComplaintFiled,
  PaymentStatusChanged,
  PayoutCompleted,
  RequestCreated,
  RequestReassigned,
  RequestReminder,
  RequestStatusChanged,
  TriggerEvent,
)
from app.notifications.models import NotificationDraft, NotificationType
from app.notifications.preferences import eligible_channels
from app.notifications.repo import NotificationRepository

logger = logging.getLogger(__name__)

_STUDENT_FACING_STATUSES: dict[str, NotificationType] = {"accepted": "request_accepted", "declined": "request_declined", "completed": "request_completed"}
_CANCELLED_STATUSES = frozenset({"cancelled", "auto_cancelled"})


@dataclass(frozen=True)
class _Intent:
  """One recipient's share of an event before preferences are applied."""

  user_id: uuid.UUID
  type: NotificationType
  payload: dict[str, Any]
  # Payload key that should carry the recipient's own display name when the event lacks it.
  name_key: str | None = None


def _format_date(value: datetime.date | None) -> str:
  if value is None:
    return ""
  if isinstance(value, datetime.datetime):
    return value.date().isoformat()
  return value.isoformat()


def _format_amount(amount: Decimal) -> str:
  return f"{Decimal(amount):.2f}"


def _unique(ids: tuple[uuid.UUID, ...] | list[uuid.UUID]) -> list[uuid.UUID]:
  return list(dict.fromkeys(ids))


class TriggerDispatcher:
  """Maps each trigger event to zero or more `pending` notifications.

  Routing is static per event class. Preferences then gate which of the template's
  candidate channels each recipient actually gets; a recipient left with no channel
  gets no row. Repeated dispatch of the same event is not deduplicated here.
  """

  def __init__(self, *, repo: NotificationRepository, directory: RecipientDirectory, bus: NotificationBus | None = None, clock: Callable[[], datetime.datetime] | None = None) -> None:
    self._repo = repo
    self._directory = directory
    self._bus = bus
    self._clock = clock or (lambda: datetime.datetime.now(UTC))
    self._routes: dict[type, Callable[[Any], Awaitable[list[_Intent]]]] = {
      RequestCreated: self._route_request_created,
      RequestStatusChanged: self._route_status_changed,
      RequestReassigned: self._route_reassigned,
      PaymentStatusChanged: self._route_payment,
      PayoutCompleted: self._route_payout,
      ComplaintFiled: self._route_complaint,
      AdminAlert: self._route_admin_alert,
      RequestReminder: self._route_reminder,
    }

  async def dispatch(self, event: TriggerEvent) -> list[uuid.UUID]:
    """Enqueue notifications for an event and return the created ids."""
    route = self._routes.get(type(event))
    if route is None:
      raise UnknownEventKind(f"Unsupported trigger event: {type(event).__name__}")

    try:
      intents = await route(event)
      drafts = await self._build_drafts(intents)
    except Exception as exc:  # noqa: BLE001
      logger.error("Recipient resolution failed for event=%s: %s", event.kind, exc, exc_info=True)
      raise EnqueueFailed(f"Could not resolve recipients for {event.kind}") from exc

    if not drafts:
      logger.info("Event %s produced no notifications", event.kind)
      return []

    try:
      records = await self._repo.insert_many(drafts, now=self._clock())
    except Exception as exc:  # noqa: BLE001
      logger.error("Enqueue failed for event=%s drafts=%d: %s", event.kind, len(drafts), exc, exc_info=True)
      raise EnqueueFailed(f"Could not enqueue notifications for {event.kind}") from exc

    # Realtime fan-out is an optimisation; clients recover by re-fetching.
    if self._bus is not None:
      self._bus.publish_many([NotificationChange(kind="insert", notification_id=record.id, user_id=record.user_id) for record in records])

    logger.info("Enqueued %d notification(s) for event=%s", len(records), event.kind)
    return [record.id for record in records]

  async def _build_drafts(self, intents: list[_Intent]) -> list[NotificationDraft]:
    if not intents:
      return []

    contacts = await self._directory.get_contacts(intent.user_id for intent in intents)
    drafts: list[NotificationDraft] = []
    for intent in intents:
      contact = contacts.get(intent.user_id)
      if contact is None:
        logger.warning("Skipping %s notification for unknown user_id=%s", intent.type, intent.user_id)
        continue

      channels = eligible_channels(contact, get_template(intent.type).channels)
      if not channels:
        logger.info("User %s has no eligible channel for %s; nothing enqueued", intent.user_id, intent.type)
        continue

      drafts.append(NotificationDraft(user_id=intent.user_id, type=intent.type, payload=_personalize(intent, contact), channels=channels))
    return drafts

  async def _route_request_created(self, event: RequestCreated) -> list[_Intent]:
    payload = {"request_id": str(event.request_id), "student_name": event.student_name, "purpose": event.purpose, "deadline": _format_date(event.deadline), "details": event.details or "N/A"}
    return [_Intent(user_id=lecturer_id, type="request_created", payload=payload, name_key="lecturer_name") for lecturer_id in _unique(event.lecturer_ids)]

  async def _route_status_changed(self, event: RequestStatusChanged) -> list[_Intent]:
    payload = {
      "request_id": str(event.request_id),
      "student_name": event.student_name,
      "lecturer_name": event.lecturer_name or "",
      "purpose": event.purpose,
      "deadline": _format_date(event.deadline),
      "status": event.new_status,
      "reason": event.reason or "",
    }

    notification_type = _STUDENT_FACING_STATUSES.get(event.new_status)
    if notification_type is not None:
      intents = [_Intent(user_id=event.student_id, type=notification_type, payload=payload)]
      # Lecturers only hear about their own request changes when an admin made them.
      if event.cause == "administrative":
        intents.extend(_Intent(user_id=lecturer_id, type=notification_type, payload=payload) for lecturer_id in _unique(event.lecturer_ids))
      return intents

    if event.new_status in _CANCELLED_STATUSES:
      if not event.reason:
        payload["reason"] = "Request was automatically cancelled after no response" if event.new_status == "auto_cancelled" else "Request was cancelled"
      intents = [_Intent(user_id=lecturer_id, type="request_cancelled", payload=payload) for lecturer_id in _unique(event.lecturer_ids)]
      # The student already knows about a cancellation they made themselves.
      if event.cause != "user":
        intents.append(_Intent(user_id=event.student_id, type="request_cancelled", payload=payload))
      return intents

    logger.debug("Status %s on request %s has no notification route", event.new_status, event.request_id)
    return []

  async def _route_reassigned(self, event: RequestReassigned) -> list[_Intent]:
    base = {"request_id": str(event.request_id), "student_name": event.student_name, "purpose": event.purpose, "deadline": _format_date(event.deadline)}
    intents = [_Intent(user_id=event.new_lecturer_id, type="request_reassigned", payload=dict(base), name_key="lecturer_name")]
    if event.old_lecturer_id != event.new_lecturer_id:
      intents.append(_Intent(user_id=event.old_lecturer_id, type="request_cancelled", payload={**base, "reason": "Request has been reassigned to another lecturer"}, name_key="lecturer_name"))
    return intents

  async def _route_payment(self, event: PaymentStatusChanged) -> list[_Intent]:
    payload = {
      "payment_id": str(event.payment_id),
      "request_id": str(event.request_id),
      "student_name": event.student_name,
      "lecturer_name": event.lecturer_name or "your lecturer",
      "purpose": event.purpose or "",
      "amount": _format_amount(event.amount),
    }
    if event.status == "succeeded":
      return [_Intent(user_id=event.student_id, type="payment_received", payload=payload)]
    if event.status == "failed":
      payload["reason"] = event.reason or "Payment processing failed"
      return [_Intent(user_id=event.student_id, type="payment_failed", payload=payload)]
    logger.debug("Payment status %s for payment %s has no notification route", event.status, event.payment_id)
    return []

  async def _route_payout(self, event: PayoutCompleted) -> list[_Intent]:
    payload = {"request_id": str(event.request_id), "amount": _format_amount(event.amount), "student_name": event.student_name or "", "purpose": event.purpose or ""}
    return [_Intent(user_id=event.lecturer_id, type="payout_completed", payload=payload, name_key="lecturer_name")]

  async def _route_complaint(self, event: ComplaintFiled) -> list[_Intent]:
    payload = {"complaint_id": str(event.complaint_id), "student_name": event.student_name, "complaint_type": event.complaint_type, "subject": event.subject, "priority": event.priority}
    admin_ids = await self._directory.list_admin_ids()
    return [_Intent(user_id=admin_id, type="complaint_filed", payload=payload) for admin_id in _unique(admin_ids)]

  async def _route_admin_alert(self, event: AdminAlert) -> list[_Intent]:
    occurred_at = event.occurred_at or self._clock()
    payload = {"alert_type": event.alert_type, "message": event.message, "timestamp": occurred_at.isoformat()}
    admin_ids = await self._directory.list_admin_ids()
    return [_Intent(user_id=admin_id, type="admin_alert", payload=payload) for admin_id in _unique(admin_ids)]

  async def _route_reminder(self, event: RequestReminder) -> list[_Intent]:
    payload = {
      "request_id": str(event.request_id),
      "student_name": event.student_name,
      "purpose": event.purpose,
      "deadline": _format_date(event.deadline),
      "days_remaining": "" if event.days_remaining is None else str(event.days_remaining),
    }
    intents = [_Intent(user_id=lecturer_id, type="reminder_pending", payload=payload, name_key="lecturer_name") for lecturer_id in _unique(event.lecturer_ids)]
    if event.student_id is not None:
      student_type: NotificationType = "reminder_student_deadline" if event.reminder == "deadline" else "reminder_student_pending"
      intents.append(_Intent(user_id=event.student_id, type=student_type, payload=payload))
    return intents


def _personalize(intent: _Intent, contact: RecipientContact) -> dict[str, Any]:
  payload = dict(intent.payload)
  display_name = contact.full_name or contact.role.capitalize()
  payload["recipient_name"] = display_name
  if intent.name_key and not payload.get(intent.name_key):
    payload[intent.name_key] = display_name
  return payload

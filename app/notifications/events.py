"""Trigger events accepted by the dispatcher.

Each domain occurrence is its own frozen dataclass carrying exactly the fields its
routing rule and templates need. `TriggerEvent` is the closed union of all of them.
"""

from __future__ import annotations

import datetime
import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import ClassVar, Literal

StatusChangeCause = Literal["user", "administrative", "system"]
ReminderKind = Literal["pending", "deadline"]


@dataclass(frozen=True)
class RequestCreated:
  kind: ClassVar[str] = "request_created"

  request_id: uuid.UUID
  student_id: uuid.UUID
  student_name: str
  lecturer_ids: tuple[uuid.UUID, ...]
  purpose: str
  deadline: datetime.date | None = None
  details: str | None = None


@dataclass(frozen=True)
class RequestStatusChanged:
  kind: ClassVar[str] = "request_status_changed"

  request_id: uuid.UUID
  student_id: uuid.UUID
  student_name: str
  lecturer_ids: tuple[uuid.UUID, ...]
  purpose: str
  new_status: str
  old_status: str | None = None
  lecturer_name: str | None = None
  reason: str | None = None
  deadline: datetime.date | None = None
  cause: StatusChangeCause = "user"


@dataclass(frozen=True)
class RequestReassigned:
  kind: ClassVar[str] = "request_reassigned"

  request_id: uuid.UUID
  student_id: uuid.UUID
  student_name: str
  purpose: str
  old_lecturer_id: uuid.UUID
  new_lecturer_id: uuid.UUID
  deadline: datetime.date | None = None


@dataclass(frozen=True)
class PaymentStatusChanged:
  kind: ClassVar[str] = "payment_status_changed"

  payment_id: uuid.UUID
  request_id: uuid.UUID
  student_id: uuid.UUID
  student_name: str
  amount: Decimal
  status: str
  purpose: str | None = None
  lecturer_name: str | None = None
  reason: str | None = None


@dataclass(frozen=True)
class PayoutCompleted:
  kind: ClassVar[str] = "payout_completed"

  lecturer_id: uuid.UUID
  request_id: uuid.UUID
  amount: Decimal
  student_name: str | None = None
  purpose: str | None = None


@dataclass(frozen=True)
class ComplaintFiled:
  kind: ClassVar[str] = "complaint_filed"

  complaint_id: uuid.UUID
  student_id: uuid.UUID
  student_name: str
  complaint_type: str
  subject: str
  priority: str = "medium"


@dataclass(frozen=True)
class AdminAlert:
  kind: ClassVar[str] = "admin_alert"

  alert_type: str
  message: str
  occurred_at: datetime.datetime | None = None


@dataclass(frozen=True)
class RequestReminder:
  kind: ClassVar[str] = "request_reminder"

  request_id: uuid.UUID
  student_name: str
  lecturer_ids: tuple[uuid.UUID, ...]
  purpose: str
  deadline: datetime.date | None = None
  days_remaining: int | None = None
  # Set to also tell the student which reminder went out.
  student_id: uuid.UUID | None = None
  reminder: ReminderKind = "pending"


TriggerEvent = RequestCreated | RequestStatusChanged | RequestReassigned | PaymentStatusChanged | PayoutCompleted | ComplaintFiled | AdminAlert | RequestReminder

EVENT_TYPES: tuple[type, ...] = (RequestCreated, RequestStatusChanged, RequestReassigned, PaymentStatusChanged, PayoutCompleted, ComplaintFiled, AdminAlert, RequestReminder)

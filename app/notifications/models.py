"""Domain models for queued notifications."""

from __future__ import annotations

import datetime
import uuid
from dataclasses import asdict, dataclass, field
from typing import Any, Literal

Channel = Literal["email", "sms", "whatsapp", "in_app"]
CHANNELS: tuple[Channel, ...] = ("email", "sms", "whatsapp", "in_app")

NotificationStatus = Literal["pending", "processing", "delivered", "partially_delivered", "failed"]
TERMINAL_STATUSES: tuple[NotificationStatus, ...] = ("delivered", "failed")
QUEUED_STATUSES: tuple[NotificationStatus, ...] = ("pending", "partially_delivered")

# "rejected" marks a channel the provider refused permanently; it is never retried.
ChannelResultStatus = Literal["succeeded", "failed", "rejected"]

NotificationType = Literal[
  "request_created",
  "request_accepted",
  "request_declined",
  "request_completed",
  "request_reassigned",
  "request_cancelled",
  "payment_received",
  "payment_failed",
  "payout_completed",
  "reminder_pending",
  "reminder_student_pending",
  "reminder_student_deadline",
  "complaint_filed",
  "admin_alert",
]

UserRole = Literal["student", "lecturer", "admin"]


@dataclass
class NotificationRecord:
  """Represents a persisted notification row."""

  id: uuid.UUID
  user_id: uuid.UUID
  type: NotificationType
  payload: dict[str, Any]
  channels: list[Channel]
  status: NotificationStatus
  attempts: int
  created_at: datetime.datetime
  updated_at: datetime.datetime
  next_attempt_at: datetime.datetime | None
  last_error: str | None = None
  read: bool = False
  channel_results: dict[str, dict[str, Any]] = field(default_factory=dict)

  def channel_status(self, channel: Channel) -> ChannelResultStatus | None:
    result = self.channel_results.get(channel)
    if not result:
      return None
    return result.get("status")

  def open_channels(self) -> list[Channel]:
    """Channels that still need a send attempt."""
    return [channel for channel in self.channels if self.channel_status(channel) not in ("succeeded", "rejected")]


@dataclass(frozen=True)
class NotificationDraft:
  """A notification about to be enqueued by the dispatcher."""

  user_id: uuid.UUID
  type: NotificationType
  payload: dict[str, Any]
  channels: tuple[Channel, ...]


@dataclass(frozen=True)
class OutcomeUpdate:
  """Fields the processor writes back after one attempt."""

  status: NotificationStatus
  attempts: int
  channel_results: dict[str, dict[str, Any]]
  last_error: str | None
  next_attempt_at: datetime.datetime | None
  updated_at: datetime.datetime


@dataclass
class ProcessingSummary:
  """Counts reported by one processor batch run."""

  selected: int = 0
  claimed: int = 0
  skipped: int = 0
  delivered: int = 0
  partially_delivered: int = 0
  failed: int = 0
  pending: int = 0
  stuck: int = 0
  reclaimed: int = 0

  def as_dict(self) -> dict[str, int]:
    return asdict(self)


@dataclass(frozen=True)
class UserContext:
  """The authenticated caller every read operation is scoped to."""

  user_id: uuid.UUID
  role: UserRole = "student"


@dataclass(frozen=True)
class NotificationView:
  """User-facing projection; retry bookkeeping never leaves the service."""

  id: uuid.UUID
  type: NotificationType
  title: str
  message: str
  data: dict[str, Any]
  read: bool
  created_at: datetime.datetime

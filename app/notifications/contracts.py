"""Contracts for notification delivery channels and dispatch failures."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class RenderedMessage:
  """A message rendered for one channel."""

  subject: str
  text: str
  html: str | None = None


@dataclass(frozen=True)
class SendResult:
  """Provider identifiers returned by a successful send."""

  provider: str
  message_id: str | None = None


class NotificationError(Exception):
  """Base class for all notification failures."""


class UnknownEventKind(NotificationError):
  """Raised when a trigger event is not one of the supported kinds."""


class EnqueueFailed(NotificationError):
  """Raised when notifications could not be written to the store."""


class NotificationNotFound(NotificationError):
  """Raised when a notification does not exist for the calling user."""


class NotificationProviderError(NotificationError):
  """A provider (e.g. MailerSend, Twilio) failed; the send may be retried."""


class PermanentDeliveryError(NotificationProviderError):
  """The provider rejected the recipient or message; retrying cannot help."""


class ChannelSender(Protocol):
  """Delivery contract for a single channel.

  Implementations are synchronous and may be called more than once for the same
  notification, so providers must tolerate duplicates.
  """

  def send(self, address: str, message: RenderedMessage) -> SendResult:
    """Deliver a rendered message or raise a NotificationProviderError."""

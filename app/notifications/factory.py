"""Factory helpers for notification services."""

from __future__ import annotations

import datetime

from app.config import Settings
from app.notifications.bus import NotificationBus, get_notification_bus
from app.notifications.contracts import ChannelSender
from app.notifications.directory import PostgresRecipientDirectory, RecipientDirectory
from app.notifications.dispatcher import TriggerDispatcher
from app.notifications.email_sender import MailerSendConfig, MailerSendEmailSender, NullChannelSender
from app.notifications.in_app_sender import InAppSender
from app.notifications.models import Channel
from app.notifications.processor import QueueProcessor, RetryPolicy
from app.notifications.read_service import NotificationReadService
from app.notifications.repo import NotificationRepository, PostgresNotificationRepository
from app.notifications.twilio_sender import TwilioConfig, TwilioMessageSender


def build_senders(settings: Settings) -> dict[Channel, ChannelSender]:
  """Construct one sender per channel based on environment configuration."""
  senders: dict[Channel, ChannelSender] = {"in_app": InAppSender()}

  # Email is disabled by default to avoid accidental delivery in dev/test.
  if settings.email_notifications_enabled:
    mailersend_config = MailerSendConfig(
      api_key=settings.mailersend_api_key or "", from_address=settings.email_from_address or "", from_name=settings.email_from_name, timeout_seconds=settings.mailersend_timeout_seconds, base_url=settings.mailersend_base_url
    )
    senders["email"] = MailerSendEmailSender(config=mailersend_config)
  else:
    senders["email"] = NullChannelSender("email")

  if settings.sms_notifications_enabled:
    senders["sms"] = TwilioMessageSender(config=_twilio_config(settings, from_number=settings.twilio_sms_from or ""))
  else:
    senders["sms"] = NullChannelSender("sms")

  if settings.whatsapp_notifications_enabled:
    senders["whatsapp"] = TwilioMessageSender(config=_twilio_config(settings, from_number=settings.twilio_whatsapp_from or ""), whatsapp=True)
  else:
    senders["whatsapp"] = NullChannelSender("whatsapp")

  return senders


def build_retry_policy(settings: Settings) -> RetryPolicy:
  return RetryPolicy(
    max_attempts=settings.notify_max_attempts, base_delay=datetime.timedelta(seconds=settings.notify_base_delay_seconds), max_delay=datetime.timedelta(seconds=settings.notify_max_delay_seconds)
  )


def build_repository() -> NotificationRepository:
  return PostgresNotificationRepository()


def build_directory() -> RecipientDirectory:
  return PostgresRecipientDirectory()


def build_dispatcher(*, repo: NotificationRepository | None = None, directory: RecipientDirectory | None = None, bus: NotificationBus | None = None) -> TriggerDispatcher:
  return TriggerDispatcher(repo=repo or build_repository(), directory=directory or build_directory(), bus=bus or get_notification_bus())


def build_processor(
  settings: Settings,
  *,
  repo: NotificationRepository | None = None,
  directory: RecipientDirectory | None = None,
  senders: dict[Channel, ChannelSender] | None = None,
  bus: NotificationBus | None = None,
) -> QueueProcessor:
  """Wire a queue processor with the configured retry policy and providers."""
  return QueueProcessor(
    repo=repo or build_repository(),
    directory=directory or build_directory(),
    senders=senders if senders is not None else build_senders(settings),
    policy=build_retry_policy(settings),
    send_timeout_seconds=settings.notify_send_timeout_seconds,
    write_attempts=settings.notify_write_attempts,
    bus=bus or get_notification_bus(),
  )


def build_read_service(*, repo: NotificationRepository | None = None, bus: NotificationBus | None = None) -> NotificationReadService:
  return NotificationReadService(repo=repo or build_repository(), bus=bus or get_notification_bus())


def _twilio_config(settings: Settings, *, from_number: str) -> TwilioConfig:
  return TwilioConfig(
    account_sid=settings.twilio_account_sid or "", auth_token=settings.twilio_auth_token or "", from_number=from_number, timeout_seconds=settings.twilio_timeout_seconds, base_url=settings.twilio_base_url
  )

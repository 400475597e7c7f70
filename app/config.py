"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from app.utils.env import default_env_path, load_env_file

load_env_file(default_env_path(), override=False)


@dataclass(frozen=True)
class Settings:
  """Typed settings for the GetReference notification service."""

  environment: str
  allowed_origins: tuple[str, ...]
  debug: bool
  log_max_bytes: int
  log_backup_count: int
  log_http_4xx: bool
  pg_dsn: str | None
  pg_connect_timeout: int
  task_secret: str | None
  internal_api_key: str | None
  notify_batch_size: int
  notify_max_attempts: int
  notify_base_delay_seconds: int
  notify_max_delay_seconds: int
  notify_send_timeout_seconds: float
  notify_stuck_timeout_seconds: int
  notify_retention_days: int
  notify_write_attempts: int
  reminder_after_days: int
  auto_cancel_after_days: int
  deadline_warning_days: int
  email_notifications_enabled: bool
  email_from_address: str | None
  email_from_name: str | None
  mailersend_api_key: str | None
  mailersend_timeout_seconds: int
  mailersend_base_url: str
  sms_notifications_enabled: bool
  whatsapp_notifications_enabled: bool
  twilio_account_sid: str | None
  twilio_auth_token: str | None
  twilio_sms_from: str | None
  twilio_whatsapp_from: str | None
  twilio_base_url: str
  twilio_timeout_seconds: int
  firebase_project_id: str | None
  firebase_service_account_json_path: str | None


@dataclass(frozen=True)
class DatabaseSettings:
  """Typed settings for database connectivity."""

  debug: bool
  pg_dsn: str | None
  pg_connect_timeout: int


def _parse_origins(raw: str | None) -> tuple[str, ...]:
  if not raw:
    raise ValueError("GETREF_ALLOWED_ORIGINS must be set to one or more origins.")

  origins = [origin.strip() for origin in raw.split(",") if origin.strip()]

  if not origins:
    raise ValueError("GETREF_ALLOWED_ORIGINS must include at least one origin.")

  if "*" in origins:
    raise ValueError("GETREF_ALLOWED_ORIGINS must not include wildcard origins.")

  return tuple(origins)


def _parse_bool(raw: str | None) -> bool:
  """Parse a boolean-ish string from environment variables."""

  if raw is None:
    return False

  normalized = raw.strip().lower()
  return normalized in {"1", "true", "yes", "on"}


def _positive_int(name: str, default: str) -> int:
  value = int(os.getenv(name, default))
  if value <= 0:
    raise ValueError(f"{name} must be a positive integer.")
  return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
  """Load settings once per process."""

  environment = os.getenv("GETREF_ENV", "development").lower()

  # Toggle verbose error output and diagnostics in non-production environments.
  debug = _parse_bool(os.getenv("GETREF_DEBUG"))

  log_max_bytes = _positive_int("GETREF_LOG_MAX_BYTES", "5242880")  # 5MB default
  log_backup_count = int(os.getenv("GETREF_LOG_BACKUP_COUNT", "10"))
  if log_backup_count < 0:
    raise ValueError("GETREF_LOG_BACKUP_COUNT must be zero or a positive integer.")

  # Allow opt-in logging of 4xx HTTPExceptions for diagnostics.
  log_http_4xx = _parse_bool(os.getenv("GETREF_LOG_HTTP_4XX"))

  # Queue policy knobs shared by the processor and the cleanup job.
  notify_batch_size = _positive_int("GETREF_NOTIFY_BATCH_SIZE", "100")
  notify_max_attempts = _positive_int("GETREF_NOTIFY_MAX_ATTEMPTS", "3")
  notify_base_delay_seconds = _positive_int("GETREF_NOTIFY_BASE_DELAY_SECONDS", "60")
  notify_max_delay_seconds = _positive_int("GETREF_NOTIFY_MAX_DELAY_SECONDS", "3600")
  if notify_max_delay_seconds < notify_base_delay_seconds:
    raise ValueError("GETREF_NOTIFY_MAX_DELAY_SECONDS must be >= GETREF_NOTIFY_BASE_DELAY_SECONDS.")
  notify_send_timeout_seconds = float(os.getenv("GETREF_NOTIFY_SEND_TIMEOUT_SECONDS", "15"))
  if notify_send_timeout_seconds <= 0:
    raise ValueError("GETREF_NOTIFY_SEND_TIMEOUT_SECONDS must be positive.")
  notify_stuck_timeout_seconds = _positive_int("GETREF_NOTIFY_STUCK_TIMEOUT_SECONDS", "900")
  notify_retention_days = _positive_int("GETREF_NOTIFY_RETENTION_DAYS", "30")
  notify_write_attempts = _positive_int("GETREF_NOTIFY_WRITE_ATTEMPTS", "3")

  reminder_after_days = _positive_int("GETREF_REMINDER_AFTER_DAYS", "7")
  auto_cancel_after_days = _positive_int("GETREF_AUTO_CANCEL_AFTER_DAYS", "14")
  deadline_warning_days = _positive_int("GETREF_DEADLINE_WARNING_DAYS", "3")

  email_notifications_enabled = _parse_bool(os.getenv("GETREF_EMAIL_NOTIFICATIONS_ENABLED"))
  email_from_address = _optional_str(os.getenv("GETREF_EMAIL_FROM_ADDRESS"))
  email_from_name = _optional_str(os.getenv("GETREF_EMAIL_FROM_NAME"))
  mailersend_api_key = _optional_str(os.getenv("GETREF_MAILERSEND_API_KEY"))
  mailersend_timeout_seconds = int(os.getenv("GETREF_MAILERSEND_TIMEOUT_SECONDS", "10"))
  mailersend_base_url = (os.getenv("GETREF_MAILERSEND_BASE_URL") or "https://api.mailersend.com/v1").strip()

  sms_notifications_enabled = _parse_bool(os.getenv("GETREF_SMS_NOTIFICATIONS_ENABLED"))
  whatsapp_notifications_enabled = _parse_bool(os.getenv("GETREF_WHATSAPP_NOTIFICATIONS_ENABLED"))
  twilio_account_sid = _optional_str(os.getenv("GETREF_TWILIO_ACCOUNT_SID"))
  twilio_auth_token = _optional_str(os.getenv("GETREF_TWILIO_AUTH_TOKEN"))
  twilio_sms_from = _optional_str(os.getenv("GETREF_TWILIO_SMS_FROM"))
  twilio_whatsapp_from = _optional_str(os.getenv("GETREF_TWILIO_WHATSAPP_FROM"))
  twilio_base_url = (os.getenv("GETREF_TWILIO_BASE_URL") or "https://api.twilio.com/2010-04-01").strip()
  twilio_timeout_seconds = int(os.getenv("GETREF_TWILIO_TIMEOUT_SECONDS", "10"))

  # Validate email settings only when the channel is enabled.
  if email_notifications_enabled:
    if not email_from_address:
      raise ValueError("GETREF_EMAIL_FROM_ADDRESS must be set when email notifications are enabled.")

    if not mailersend_api_key:
      raise ValueError("GETREF_MAILERSEND_API_KEY must be set when email notifications are enabled.")

    if mailersend_timeout_seconds <= 0:
      raise ValueError("GETREF_MAILERSEND_TIMEOUT_SECONDS must be a positive integer.")

  # SMS and WhatsApp share one Twilio account.
  if sms_notifications_enabled or whatsapp_notifications_enabled:
    if not twilio_account_sid or not twilio_auth_token:
      raise ValueError("GETREF_TWILIO_ACCOUNT_SID and GETREF_TWILIO_AUTH_TOKEN must be set when SMS or WhatsApp notifications are enabled.")

    if twilio_timeout_seconds <= 0:
      raise ValueError("GETREF_TWILIO_TIMEOUT_SECONDS must be a positive integer.")

  if sms_notifications_enabled and not twilio_sms_from:
    raise ValueError("GETREF_TWILIO_SMS_FROM must be set when SMS notifications are enabled.")

  if whatsapp_notifications_enabled and not twilio_whatsapp_from:
    raise ValueError("GETREF_TWILIO_WHATSAPP_FROM must be set when WhatsApp notifications are enabled.")

  return Settings(
    environment=environment,
    allowed_origins=_parse_origins(os.getenv("GETREF_ALLOWED_ORIGINS")),
    debug=debug,
    log_max_bytes=log_max_bytes,
    log_backup_count=log_backup_count,
    log_http_4xx=log_http_4xx,
    pg_dsn=os.getenv("GETREF_PG_DSN") or os.getenv("DATABASE_URL"),
    pg_connect_timeout=int(os.getenv("GETREF_PG_CONNECT_TIMEOUT", "5")),
    task_secret=_optional_str(os.getenv("GETREF_TASK_SECRET")),
    internal_api_key=_optional_str(os.getenv("GETREF_INTERNAL_API_KEY")),
    notify_batch_size=notify_batch_size,
    notify_max_attempts=notify_max_attempts,
    notify_base_delay_seconds=notify_base_delay_seconds,
    notify_max_delay_seconds=notify_max_delay_seconds,
    notify_send_timeout_seconds=notify_send_timeout_seconds,
    notify_stuck_timeout_seconds=notify_stuck_timeout_seconds,
    notify_retention_days=notify_retention_days,
    notify_write_attempts=notify_write_attempts,
    reminder_after_days=reminder_after_days,
    auto_cancel_after_days=auto_cancel_after_days,
    deadline_warning_days=deadline_warning_days,
    email_notifications_enabled=email_notifications_enabled,
    email_from_address=email_from_address,
    email_from_name=email_from_name,
    mailersend_api_key=mailersend_api_key,
    mailersend_timeout_seconds=mailersend_timeout_seconds,
    mailersend_base_url=mailersend_base_url,
    sms_notifications_enabled=sms_notifications_enabled,
    whatsapp_notifications_enabled=whatsapp_notifications_enabled,
    twilio_account_sid=twilio_account_sid,
    twilio_auth_token=twilio_auth_token,
    twilio_sms_from=twilio_sms_from,
    twilio_whatsapp_from=twilio_whatsapp_from,
    twilio_base_url=twilio_base_url,
    twilio_timeout_seconds=twilio_timeout_seconds,
    firebase_project_id=_optional_str(os.getenv("GETREF_FIREBASE_PROJECT_ID")),
    firebase_service_account_json_path=_optional_str(os.getenv("GETREF_FIREBASE_SERVICE_ACCOUNT_JSON_PATH")),
  )


@lru_cache(maxsize=1)
def get_database_settings() -> DatabaseSettings:
  """Load database settings without requiring web-runtime configuration like CORS."""
  # Keep database configuration isolated so offline scripts don't require unrelated env vars.
  debug = _parse_bool(os.getenv("GETREF_DEBUG"))
  pg_connect_timeout = _positive_int("GETREF_PG_CONNECT_TIMEOUT", "5")
  pg_dsn = os.getenv("GETREF_PG_DSN") or os.getenv("DATABASE_URL")

  return DatabaseSettings(debug=debug, pg_dsn=pg_dsn, pg_connect_timeout=pg_connect_timeout)


def _optional_str(raw: str | None) -> str | None:
  if raw is None:
    return None
  value = raw.strip()
  if value == "":
    return None
  return value

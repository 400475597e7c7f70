"""Email delivery implementations.

MailerSend is used via its HTTP API (not SMTP) so credentials are never shared with clients.
The implementation uses the standard library to avoid additional runtime dependencies.
"""

from __future__ import annotations

import json
import logging
import urllib.error
import urllib.request
from dataclasses import dataclass

from app.notifications.contracts import NotificationProviderError, PermanentDeliveryError, RenderedMessage, SendResult

logger = logging.getLogger(__name__)

# Client errors that will not change on retry; 408 and 429 are rate/timeout signals and stay retryable.
_PERMANENT_STATUS_CODES = frozenset({400, 401, 403, 404, 422})


@dataclass(frozen=True)
class MailerSendConfig:
  """MailerSend configuration needed to send emails."""

  api_key: str
  from_address: str
  from_name: str | None
  timeout_seconds: int
  base_url: str = "https://api.mailersend.com/v1"


class MailerSendEmailSender:
  """MailerSend-backed email sender using the provider API."""

  def __init__(self, *, config: MailerSendConfig) -> None:
    self._config = config

  def send(self, address: str, message: RenderedMessage) -> SendResult:
    """Send an email using the MailerSend API and return provider identifiers."""
    from_payload: dict[str, str] = {"email": self._config.from_address}
    if self._config.from_name:
      from_payload["name"] = self._config.from_name

    payload: dict[str, object] = {"from": from_payload, "to": [{"email": address}], "subject": message.subject, "text": message.text}
    if message.html:
      payload["html"] = message.html

    request = urllib.request.Request(
      url=f"{self._config.base_url}/email", data=json.dumps(payload).encode("utf-8"), method="POST", headers={"Authorization": f"Bearer {self._config.api_key}", "Content-Type": "application/json", "Accept": "application/json"}
    )

    try:
      with urllib.request.urlopen(request, timeout=self._config.timeout_seconds) as response:
        headers = dict(response.headers.items()) if response else {}
        message_id = headers.get("X-Message-Id") or headers.get("X-Message-ID")
        raw_body = response.read().decode("utf-8") if response else ""

        if raw_body and not message_id:
          try:
            body_json = json.loads(raw_body)
            message_id = str(body_json.get("message_id") or body_json.get("messageId") or body_json.get("id") or "") or None
          except (json.JSONDecodeError, AttributeError):
            message_id = None

        return SendResult(provider="mailersend", message_id=message_id)

    except urllib.error.HTTPError as exc:
      raw_error = exc.read().decode("utf-8") if exc.fp else ""
      logger.error("MailerSend email request failed status=%s body=%s", exc.code, raw_error)
      if exc.code in _PERMANENT_STATUS_CODES:
        raise PermanentDeliveryError(f"MailerSend rejected email (status {exc.code})") from exc
      raise NotificationProviderError(f"MailerSend request failed (status {exc.code})") from exc

    except (urllib.error.URLError, TimeoutError) as exc:
      logger.error("MailerSend email request failed: %s", exc)
      raise NotificationProviderError(f"MailerSend unreachable: {exc}") from exc


class NullChannelSender:
  """Sender used when a channel is disabled; every send is refused permanently."""

  def __init__(self, channel: str) -> None:
    self._channel = channel

  def send(self, address: str, message: RenderedMessage) -> SendResult:
    """Drop the message while recording a debug log."""
    logger.debug("%s notifications disabled; dropping message subject=%s", self._channel, message.subject)
    raise PermanentDeliveryError(f"{self._channel} channel disabled")

"""SMS and WhatsApp delivery through the Twilio Messages API."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from app.notifications.contracts import NotificationProviderError, PermanentDeliveryError, RenderedMessage, SendResult

logger = logging.getLogger(__name__)

# Twilio error codes for numbers that can never receive the message.
_PERMANENT_ERROR_CODES = frozenset({21211, 21408, 21610, 21612, 21614, 63003, 63016})


@dataclass(frozen=True)
class TwilioConfig:
  """Twilio account credentials and sender identity for one channel."""

  account_sid: str
  auth_token: str
  from_number: str
  timeout_seconds: int
  base_url: str = "https://api.twilio.com/2010-04-01"


class TwilioMessageSender:
  """Send SMS or WhatsApp messages; WhatsApp addresses carry the `whatsapp:` prefix."""

  def __init__(self, *, config: TwilioConfig, whatsapp: bool = False, transport: httpx.BaseTransport | None = None) -> None:
    self._config = config
    self._whatsapp = whatsapp
    self._transport = transport

  @property
  def provider(self) -> str:
    return "twilio_whatsapp" if self._whatsapp else "twilio_sms"

  def send(self, address: str, message: RenderedMessage) -> SendResult:
    url = f"{self._config.base_url.rstrip('/')}/Accounts/{self._config.account_sid}/Messages.json"
    form = {"From": self._format(self._config.from_number), "To": self._format(address), "Body": message.text}

    try:
      with httpx.Client(auth=(self._config.account_sid, self._config.auth_token), timeout=self._config.timeout_seconds, transport=self._transport, trust_env=False) as client:
        response = client.post(url, data=form)
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
      code = _twilio_error_code(exc.response)
      logger.error("Twilio %s request failed status=%s code=%s body=%s", self.provider, exc.response.status_code, code, exc.response.text)
      if code in _PERMANENT_ERROR_CODES or exc.response.status_code in (400, 401, 403, 404):
        raise PermanentDeliveryError(f"Twilio rejected message (status {exc.response.status_code}, code {code})") from exc
      raise NotificationProviderError(f"Twilio request failed (status {exc.response.status_code})") from exc
    except httpx.RequestError as exc:
      logger.error("Twilio %s request failed: %s", self.provider, exc)
      raise NotificationProviderError(f"Twilio unreachable: {exc}") from exc

    try:
      body = response.json()
    except ValueError:
      body = None
    sid = body.get("sid") if isinstance(body, dict) else None
    return SendResult(provider=self.provider, message_id=sid)

  def _format(self, number: str) -> str:
    if self._whatsapp and not number.startswith("whatsapp:"):
      return f"whatsapp:{number}"
    return number


def _twilio_error_code(response: httpx.Response) -> int | None:
  try:
    body = response.json()
  except ValueError:
    return None
  code = body.get("code") if isinstance(body, dict) else None
  return int(code) if isinstance(code, int) else None

from __future__ import annotations

import io
import json
import urllib.error
from unittest.mock import MagicMock, patch

import httpx
import pytest

from app.notifications.contracts import NotificationProviderError, PermanentDeliveryError, RenderedMessage
from app.notifications.email_sender import MailerSendConfig, MailerSendEmailSender, NullChannelSender
from app.notifications.in_app_sender import InAppSender
from app.notifications.twilio_sender import TwilioConfig, TwilioMessageSender

MESSAGE = RenderedMessage(subject="Request Accepted", text="Dr. Obi accepted your request.", html="<p>Dr. Obi accepted your request.</p>")
MAILERSEND = MailerSendConfig(api_key="key", from_address="noreply@getreference.test", from_name="GetReference", timeout_seconds=5)
TWILIO = TwilioConfig(account_sid="AC123", auth_token="token", from_number="+15550000000", timeout_seconds=5)


def _http_error(code: int) -> urllib.error.HTTPError:
  return urllib.error.HTTPError(url="https://api.mailersend.com/v1/email", code=code, msg="error", hdrs=None, fp=io.BytesIO(b'{"message":"nope"}'))


def test_mailersend_posts_message_and_returns_message_id():
  response = MagicMock()
  response.headers.items.return_value = [("X-Message-Id", "msg-1")]
  response.read.return_value = b""
  response.__enter__.return_value = response

  with patch("urllib.request.urlopen", return_value=response) as urlopen:
    result = MailerSendEmailSender(config=MAILERSEND).send("ada@example.com", MESSAGE)

  request = urlopen.call_args[0][0]
  body = json.loads(request.data)
  assert body["to"] == [{"email": "ada@example.com"}]
  assert body["html"] == MESSAGE.html
  assert request.get_header("Authorization") == "Bearer key"
  assert (result.provider, result.message_id) == ("mailersend", "msg-1")


def test_mailersend_client_error_is_permanent():
  with patch("urllib.request.urlopen", side_effect=_http_error(422)):
    with pytest.raises(PermanentDeliveryError):
      MailerSendEmailSender(config=MAILERSEND).send("bad-address", MESSAGE)


def test_mailersend_server_error_is_retryable():
  with patch("urllib.request.urlopen", side_effect=_http_error(503)):
    with pytest.raises(NotificationProviderError) as excinfo:
      MailerSendEmailSender(config=MAILERSEND).send("ada@example.com", MESSAGE)
  assert not isinstance(excinfo.value, PermanentDeliveryError)


def test_mailersend_network_error_is_retryable():
  with patch("urllib.request.urlopen", side_effect=urllib.error.URLError("connection refused")):
    with pytest.raises(NotificationProviderError):
      MailerSendEmailSender(config=MAILERSEND).send("ada@example.com", MESSAGE)


def test_twilio_whatsapp_prefixes_numbers():
  seen: list[httpx.Request] = []

  def handler(request: httpx.Request) -> httpx.Response:
    seen.append(request)
    return httpx.Response(201, json={"sid": "SM1"})

  sender = TwilioMessageSender(config=TWILIO, whatsapp=True, transport=httpx.MockTransport(handler))
  result = sender.send("+2348000000001", MESSAGE)

  form = dict(httpx.QueryParams(seen[0].content.decode()))
  assert form["To"] == "whatsapp:+2348000000001"
  assert form["From"] == "whatsapp:+15550000000"
  assert form["Body"] == MESSAGE.text
  assert seen[0].url.path == "/2010-04-01/Accounts/AC123/Messages.json"
  assert (result.provider, result.message_id) == ("twilio_whatsapp", "SM1")


def test_twilio_invalid_number_is_permanent():
  transport = httpx.MockTransport(lambda request: httpx.Response(400, json={"code": 21211, "message": "Invalid 'To' Phone Number"}))
  with pytest.raises(PermanentDeliveryError):
    TwilioMessageSender(config=TWILIO, transport=transport).send("123", MESSAGE)


def test_twilio_rate_limit_is_retryable():
  transport = httpx.MockTransport(lambda request: httpx.Response(429, json={"code": 20429}))
  with pytest.raises(NotificationProviderError) as excinfo:
    TwilioMessageSender(config=TWILIO, transport=transport).send("+2348000000000", MESSAGE)
  assert not isinstance(excinfo.value, PermanentDeliveryError)


def test_twilio_connection_error_is_retryable():
  def handler(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("connection refused", request=request)

  with pytest.raises(NotificationProviderError):
    TwilioMessageSender(config=TWILIO, transport=httpx.MockTransport(handler)).send("+2348000000000", MESSAGE)


def test_disabled_channel_is_rejected_and_in_app_always_succeeds():
  with pytest.raises(PermanentDeliveryError):
    NullChannelSender("sms").send("+2348000000000", MESSAGE)
  assert InAppSender().send("user-id", MESSAGE).provider == "in_app"

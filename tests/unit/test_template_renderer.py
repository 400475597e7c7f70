from __future__ import annotations

import pytest

from app.notifications.catalog import TEMPLATES, get_template
from app.notifications.models import CHANNELS
from app.notifications.template_renderer import render_in_app, render_message


def test_every_type_renders_on_every_candidate_channel():
  for notification_type, template in TEMPLATES.items():
    for channel in template.channels:
      message = render_message(notification_type=notification_type, channel=channel, payload={})
      assert message.subject
      assert "{{" not in message.text


def test_email_escapes_values_and_uses_layout():
  message = render_message(notification_type="request_accepted", channel="email", payload={"student_name": "<script>x</script>", "lecturer_name": "Dr. Obi", "purpose": "MSc"})
  assert message.html is not None
  assert "&lt;script&gt;" in message.html
  assert "<script>" not in message.html
  assert "GetReference Team" in message.html
  # Plain text is never escaped.
  assert "<script>x</script>" in message.text


def test_whatsapp_and_sms_use_their_own_copy():
  payload = {"student_name": "Ada", "lecturer_name": "Dr. Obi", "purpose": "MSc", "deadline": "2026-04-01"}
  sms = render_message(notification_type="request_accepted", channel="sms", payload=payload)
  whatsapp = render_message(notification_type="request_accepted", channel="whatsapp", payload=payload)
  assert sms.text != whatsapp.text
  assert "2026-04-01" in sms.text


def test_in_app_copy():
  title, message = render_in_app(notification_type="payout_completed", payload={"amount": "22.50"})
  assert title == "Payout Completed"
  assert message == "Your payout of $22.50 has been processed successfully"


def test_unknown_type_raises():
  with pytest.raises(ValueError):
    get_template("letter_downloaded")
  with pytest.raises(ValueError):
    render_message(notification_type="request_accepted", channel="pager", payload={})  # type: ignore[arg-type]


def test_channels_are_known():
  assert all(set(template.channels) <= set(CHANNELS) for template in TEMPLATES.values())

from __future__ import annotations

from app.notifications.catalog import get_template
from app.notifications.preferences import eligible_channels, resolve_preferences
from tests.doubles import make_contact


def test_role_defaults():
  assert resolve_preferences(make_contact("lecturer")) == {"email": True, "sms": False, "whatsapp": False, "in_app": True}
  assert resolve_preferences(make_contact("admin"))["sms"] is True


def test_stored_preferences_override_defaults():
  contact = make_contact("student", preferences={"email": False, "whatsapp": True, "unknown": True})
  assert resolve_preferences(contact) == {"email": False, "sms": False, "whatsapp": True, "in_app": True}


def test_channel_needs_preference_and_address():
  contact = make_contact("admin", phone_number=None)
  assert eligible_channels(contact, get_template("request_created").channels) == ("email", "in_app")

"""Per-user channel preferences and channel eligibility."""

from __future__ import annotations

from app.notifications.directory import RecipientContact
from app.notifications.models import CHANNELS, Channel, UserRole

DEFAULT_PREFERENCES: dict[UserRole, dict[Channel, bool]] = {
  "lecturer": {"email": True, "sms": False, "whatsapp": False, "in_app": True},
  "student": {"email": True, "sms": False, "whatsapp": False, "in_app": True},
  "admin": {"email": True, "sms": True, "whatsapp": False, "in_app": True},
}


def resolve_preferences(contact: RecipientContact) -> dict[Channel, bool]:
  """Merge stored preferences over the role defaults."""
  resolved = dict(DEFAULT_PREFERENCES.get(contact.role, DEFAULT_PREFERENCES["student"]))
  stored = contact.preferences or {}
  for channel in CHANNELS:
    if channel in stored:
      resolved[channel] = bool(stored[channel])
  return resolved


def eligible_channels(contact: RecipientContact, candidates: tuple[Channel, ...]) -> tuple[Channel, ...]:
  """Candidate channels the user opted into and has an address for, in candidate order."""
  preferences = resolve_preferences(contact)
  return tuple(channel for channel in candidates if preferences.get(channel) and contact.address_for(channel))

"""Recipient lookup for routing and addressing notifications."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any, Protocol

from sqlalchemy import select

from app.core.database import get_session_factory
from app.notifications.models import Channel, UserRole
from app.schema.users import User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecipientContact:
  """Addresses and stored preferences for one user."""

  user_id: uuid.UUID
  role: UserRole
  full_name: str | None = None
  email: str | None = None
  phone_number: str | None = None
  whatsapp_number: str | None = None
  preferences: dict[str, Any] | None = None

  def address_for(self, channel: Channel) -> str | None:
    if channel == "email":
      return self.email
    if channel == "sms":
      return self.phone_number
    if channel == "whatsapp":
      return self.whatsapp_number
    # In-app delivery is addressed by the owning user.
    return str(self.user_id)


class RecipientDirectory(Protocol):
  """Read-only access to the users notifications are addressed to."""

  async def get_contacts(self, user_ids: Iterable[uuid.UUID]) -> dict[uuid.UUID, RecipientContact]:
    """Return contacts keyed by id; unknown ids are omitted."""

  async def list_admin_ids(self) -> list[uuid.UUID]:
    """Return every admin-role user id."""


class PostgresRecipientDirectory:
  """Resolve recipients from the shared `users` table."""

  async def get_contacts(self, user_ids: Iterable[uuid.UUID]) -> dict[uuid.UUID, RecipientContact]:
    ids = list(dict.fromkeys(user_ids))
    session_factory = get_session_factory()
    if session_factory is None or not ids:
      return {}

    async with session_factory() as session:
      result = await session.execute(select(User).where(User.id.in_(ids)))
      rows = result.scalars().all()

    return {row.id: _to_contact(row) for row in rows}

  async def list_admin_ids(self) -> list[uuid.UUID]:
    session_factory = get_session_factory()
    if session_factory is None:
      return []

    async with session_factory() as session:
      result = await session.execute(select(User.id).where(User.role == "admin").order_by(User.created_at))
      return list(result.scalars().all())


def _to_contact(row: User) -> RecipientContact:
  role = row.role if row.role in ("student", "lecturer", "admin") else "student"
  if role != row.role:
    logger.warning("User %s has unexpected role=%s; treating as student for notification defaults", row.id, row.role)
  return RecipientContact(user_id=row.id, role=role, full_name=row.full_name, email=row.email, phone_number=row.phone_number, whatsapp_number=row.whatsapp_number, preferences=row.notification_preferences)

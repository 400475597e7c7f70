"""Read-only view of marketplace users needed to address notifications."""

from __future__ import annotations

import datetime
import uuid

from sqlalchemy import DateTime, String, func
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base


class User(Base):
  __tablename__ = "users"

  id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
  firebase_uid: Mapped[str] = mapped_column(String, unique=True, index=True, nullable=False)
  email: Mapped[str | None] = mapped_column(String, nullable=True)
  full_name: Mapped[str | None] = mapped_column(String, nullable=True)
  # student | lecturer | admin
  role: Mapped[str] = mapped_column(String, nullable=False, index=True)
  phone_number: Mapped[str | None] = mapped_column(String, nullable=True)
  whatsapp_number: Mapped[str | None] = mapped_column(String, nullable=True)
  notification_preferences: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
  created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

"""SQLAlchemy model for queued multi-channel notifications."""

from __future__ import annotations

import datetime
import uuid

from sqlalchemy import Boolean, DateTime, Index, Integer, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base


class Notification(Base):
  """One message owed to one user across one or more channels."""

  __tablename__ = "notifications"
  __table_args__ = (
    Index("ix_notifications_queue", "status", "next_attempt_at", "created_at"),
    Index("ix_notifications_user_feed", "user_id", "created_at", "id"),
    Index("ix_notifications_user_unread", "user_id", "read"),
  )

  id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
  user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
  type: Mapped[str] = mapped_column(String, nullable=False)
  payload: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
  channels: Mapped[list[str]] = mapped_column(JSONB, nullable=False)
  channel_results: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict, server_default="{}")
  status: Mapped[str] = mapped_column(String, nullable=False, default="pending", server_default="pending")
  attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
  last_error: Mapped[str | None] = mapped_column(Text, nullable=True)
  read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
  created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
  updated_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
  next_attempt_at: Mapped[datetime.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

"""SQLAlchemy model for recommendation letter requests used by scheduled reminders."""

from __future__ import annotations

import datetime
import uuid

from sqlalchemy import DateTime, Index, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base


class LetterRequest(Base):
  """A student's request for a recommendation letter from one or more lecturers."""

  __tablename__ = "letter_requests"
  __table_args__ = (Index("ix_letter_requests_status_created", "status", "created_at"),)

  id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
  student_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), index=True, nullable=False)
  lecturer_ids: Mapped[list[str]] = mapped_column(JSONB, nullable=False, default=list)
  purpose: Mapped[str] = mapped_column(Text, nullable=False)
  deadline: Mapped[datetime.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
  status: Mapped[str] = mapped_column(String, nullable=False)
  created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
  updated_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
  last_reminder_at: Mapped[datetime.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
  last_deadline_reminder_at: Mapped[datetime.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

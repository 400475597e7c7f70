"""Request and response models for the notification HTTP surface."""

from __future__ import annotations

import datetime
import uuid
from decimal import Decimal
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, StrictStr

from app.notifications.events import (
  AdminAlert,
  ComplaintFiled,
  PaymentStatusChanged,
  PayoutCompleted,
  RequestCreated,
  RequestReassigned,
  RequestReminder,
  ReminderKind,
  RequestStatusChanged,
  StatusChangeCause,
)
from app.notifications.models import NotificationView


class _TriggerModel(BaseModel):
  model_config = ConfigDict(extra="forbid")


class RequestCreatedModel(_TriggerModel):
  type: Literal["request_created"]
  request_id: uuid.UUID
  student_id: uuid.UUID
  student_name: StrictStr = Field(min_length=1)
  lecturer_ids: list[uuid.UUID] = Field(min_length=1)
  purpose: StrictStr = Field(min_length=1)
  deadline: datetime.date | None = None
  details: StrictStr | None = None

  def to_event(self) -> RequestCreated:
    return RequestCreated(
      request_id=self.request_id, student_id=self.student_id, student_name=self.student_name, lecturer_ids=tuple(self.lecturer_ids), purpose=self.purpose, deadline=self.deadline, details=self.details
    )


class RequestStatusChangedModel(_TriggerModel):
  type: Literal["request_status_changed"]
  request_id: uuid.UUID
  student_id: uuid.UUID
  student_name: StrictStr = Field(min_length=1)
  lecturer_ids: list[uuid.UUID] = Field(default_factory=list)
  purpose: StrictStr = Field(min_length=1)
  new_status: StrictStr = Field(min_length=1)
  old_status: StrictStr | None = None
  lecturer_name: StrictStr | None = None
  reason: StrictStr | None = None
  deadline: datetime.date | None = None
  cause: StatusChangeCause = "user"

  def to_event(self) -> RequestStatusChanged:
    return RequestStatusChanged(
      request_id=self.request_id,
      student_id=self.student_id,
      student_name=self.student_name,
      lecturer_ids=tuple(self.lecturer_ids),
      purpose=self.purpose,
      new_status=self.new_status,
      old_status=self.old_status,
      lecturer_name=self.lecturer_name,
      reason=self.reason,
      deadline=self.deadline,
      cause=self.cause,
    )


class RequestReassignedModel(_TriggerModel):
  type: Literal["request_reassigned"]
  request_id: uuid.UUID
  student_id: uuid.UUID
  student_name: StrictStr = Field(min_length=1)
  purpose: StrictStr = Field(min_length=1)
  old_lecturer_id: uuid.UUID
  new_lecturer_id: uuid.UUID
  deadline: datetime.date | None = None

  def to_event(self) -> RequestReassigned:
    return RequestReassigned(
      request_id=self.request_id,
      student_id=self.student_id,
      student_name=self.student_name,
      purpose=self.purpose,
      old_lecturer_id=self.old_lecturer_id,
      new_lecturer_id=self.new_lecturer_id,
      deadline=self.deadline,
    )


class PaymentStatusChangedModel(_TriggerModel):
  type: Literal["payment_status_changed"]
  payment_id: uuid.UUID
  request_id: uuid.UUID
  student_id: uuid.UUID
  student_name: StrictStr = Field(min_length=1)
  amount: Decimal = Field(ge=0)
  status: StrictStr = Field(min_length=1)
  purpose: StrictStr | None = None
  lecturer_name: StrictStr | None = None
  reason: StrictStr | None = None

  def to_event(self) -> PaymentStatusChanged:
    return PaymentStatusChanged(
      payment_id=self.payment_id,
      request_id=self.request_id,
      student_id=self.student_id,
      student_name=self.student_name,
      amount=self.amount,
      status=self.status,
      purpose=self.purpose,
      lecturer_name=self.lecturer_name,
      reason=self.reason,
    )


class PayoutCompletedModel(_TriggerModel):
  type: Literal["payout_completed"]
  lecturer_id: uuid.UUID
  request_id: uuid.UUID
  amount: Decimal = Field(ge=0)
  student_name: StrictStr | None = None
  purpose: StrictStr | None = None

  def to_event(self) -> PayoutCompleted:
    return PayoutCompleted(lecturer_id=self.lecturer_id, request_id=self.request_id, amount=self.amount, student_name=self.student_name, purpose=self.purpose)


class ComplaintFiledModel(_TriggerModel):
  type: Literal["complaint_filed"]
  complaint_id: uuid.UUID
  student_id: uuid.UUID
  student_name: StrictStr = Field(min_length=1)
  complaint_type: StrictStr = Field(min_length=1)
  subject: StrictStr = Field(min_length=1)
  priority: Literal["low", "medium", "high", "urgent"] = "medium"

  def to_event(self) -> ComplaintFiled:
    return ComplaintFiled(complaint_id=self.complaint_id, student_id=self.student_id, student_name=self.student_name, complaint_type=self.complaint_type, subject=self.subject, priority=self.priority)


class AdminAlertModel(_TriggerModel):
  type: Literal["admin_alert"]
  alert_type: StrictStr = Field(min_length=1)
  message: StrictStr = Field(min_length=1)
  occurred_at: datetime.datetime | None = None

  def to_event(self) -> AdminAlert:
    return AdminAlert(alert_type=self.alert_type, message=self.message, occurred_at=self.occurred_at)


class RequestReminderModel(_TriggerModel):
  type: Literal["request_reminder"]
  request_id: uuid.UUID
  student_name: StrictStr = Field(min_length=1)
  lecturer_ids: list[uuid.UUID] = Field(min_length=1)
  purpose: StrictStr = Field(min_length=1)
  deadline: datetime.date | None = None
  days_remaining: int | None = Field(default=None, ge=0)
  student_id: uuid.UUID | None = None
  reminder: ReminderKind = "pending"

  def to_event(self) -> RequestReminder:
    return RequestReminder(request_id=self.request_id, student_name=self.student_name, lecturer_ids=tuple(self.lecturer_ids), purpose=self.purpose, deadline=self.deadline, days_remaining=self.days_remaining, student_id=self.student_id, reminder=self.reminder)


TriggerEventModel = Annotated[
  RequestCreatedModel | RequestStatusChangedModel | RequestReassignedModel | PaymentStatusChangedModel | PayoutCompletedModel | ComplaintFiledModel | AdminAlertModel | RequestReminderModel,
  Field(discriminator="type"),
]


class TriggerResponse(BaseModel):
  notification_ids: list[uuid.UUID]


class NotificationResponse(BaseModel):
  id: uuid.UUID
  type: str
  title: str
  message: str
  data: dict[str, Any]
  read: bool
  created_at: datetime.datetime

  @classmethod
  def from_view(cls, view: NotificationView) -> NotificationResponse:
    return cls(id=view.id, type=view.type, title=view.title, message=view.message, data=view.data, read=view.read, created_at=view.created_at)


class UnreadCountResponse(BaseModel):
  unread_count: int


class MarkAllReadResponse(BaseModel):
  updated: int

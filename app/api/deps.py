"""Shared FastAPI dependencies wiring the notification services."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends

from app.config import Settings, get_settings
from app.notifications.bus import NotificationBus, get_notification_bus
from app.notifications.dispatcher import TriggerDispatcher
from app.notifications.factory import build_dispatcher, build_processor, build_read_service, build_repository
from app.notifications.processor import QueueProcessor
from app.notifications.read_service import NotificationReadService
from app.notifications.repo import NotificationRepository
from app.services.reminders import LetterRequestStore, PostgresLetterRequestStore


def get_bus() -> NotificationBus:
  return get_notification_bus()


def get_notification_repo() -> NotificationRepository:
  return build_repository()


def get_read_service(repo: Annotated[NotificationRepository, Depends(get_notification_repo)], bus: Annotated[NotificationBus, Depends(get_bus)]) -> NotificationReadService:
  return build_read_service(repo=repo, bus=bus)


def get_dispatcher(repo: Annotated[NotificationRepository, Depends(get_notification_repo)], bus: Annotated[NotificationBus, Depends(get_bus)]) -> TriggerDispatcher:
  return build_dispatcher(repo=repo, bus=bus)


def get_processor(
  settings: Annotated[Settings, Depends(get_settings)], repo: Annotated[NotificationRepository, Depends(get_notification_repo)], bus: Annotated[NotificationBus, Depends(get_bus)]
) -> QueueProcessor:
  return build_processor(settings, repo=repo, bus=bus)


def get_letter_request_store() -> LetterRequestStore:
  return PostgresLetterRequestStore()

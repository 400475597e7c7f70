"""Test configuration for importing the application package."""

from __future__ import annotations

import os

# Settings are read once per process, so the environment must be ready before app imports.
os.environ.setdefault("GETREF_ALLOWED_ORIGINS", "http://localhost:3000")
os.environ.setdefault("GETREF_TASK_SECRET", "task-secret")
os.environ.setdefault("GETREF_INTERNAL_API_KEY", "internal-key")
os.environ.setdefault("GETREF_ENV", "test")

import pytest  # noqa: E402

from app.notifications.contracts import NotificationProviderError  # noqa: E402
from tests.doubles import InMemoryDirectory, InMemoryNotificationRepository, RecordingSender  # noqa: E402


@pytest.fixture
def anyio_backend():
  return "asyncio"


@pytest.fixture
def repo() -> InMemoryNotificationRepository:
  return InMemoryNotificationRepository()


@pytest.fixture
def directory() -> InMemoryDirectory:
  return InMemoryDirectory()


@pytest.fixture
def failing_sender() -> RecordingSender:
  return RecordingSender("flaky", error=NotificationProviderError("HTTP Error 503: Service Unavailable"))

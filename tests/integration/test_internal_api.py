from __future__ import annotations

import datetime
import uuid

import pytest
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient

from app.api.deps import get_dispatcher, get_letter_request_store, get_notification_repo, get_processor
from app.main import app
from app.notifications.dispatcher import TriggerDispatcher
from app.notifications.processor import QueueProcessor, RetryPolicy
from tests.doubles import NOW, RecordingSender, make_contact, make_record

TASK_HEADERS = {"X-GetRef-Task-Secret": "task-secret"}
INTERNAL_HEADERS = {"X-GetRef-Internal-Key": "internal-key"}


class _EmptyRequestStore:
  async def list_unanswered(self, *, created_before, reminded_before):
    return []

  async def list_deadline_due(self, *, now, until, reminded_before):
    return []

  async def list_expired(self, *, created_before):
    return []


@pytest.fixture
def wired(repo, directory):
  dispatcher = TriggerDispatcher(repo=repo, directory=directory)
  processor = QueueProcessor(repo=repo, directory=directory, senders={"email": RecordingSender("mailersend"), "in_app": RecordingSender("in_app")}, policy=RetryPolicy())
  app.dependency_overrides[get_notification_repo] = lambda: repo
  app.dependency_overrides[get_dispatcher] = lambda: dispatcher
  app.dependency_overrides[get_processor] = lambda: processor
  app.dependency_overrides[get_letter_request_store] = lambda: _EmptyRequestStore()
  yield
  app.dependency_overrides.clear()


@pytest.mark.parametrize("path", ["process-notifications", "cleanup-notifications", "send-reminders", "auto-cancel"])
def test_task_routes_require_the_task_secret(wired, path):
  client = TestClient(app)
  assert client.post(f"/internal/tasks/{path}").status_code == 401
  assert client.post(f"/internal/tasks/{path}", headers={"X-GetRef-Task-Secret": "wrong"}).status_code == 401


@pytest.mark.anyio
async def test_process_notifications_delivers_due_rows(wired, repo, directory):
  student = directory.add(make_contact("student"))
  record = repo.add(make_record(user_id=student.user_id, channels=["email", "in_app"], created_at=NOW))

  async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
    response = await client.post("/internal/tasks/process-notifications", headers=TASK_HEADERS)

  assert response.status_code == 200
  assert response.json()["delivered"] == 1
  assert response.json()["reclaimed"] == 0
  assert repo.rows[record.id].status == "delivered"


@pytest.mark.anyio
async def test_cleanup_accepts_bearer_task_secret(wired, repo):
  old = NOW - datetime.timedelta(days=400)
  repo.add(make_record(user_id=uuid.uuid4(), channels=["in_app"], status="delivered", created_at=old))

  async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
    response = await client.post("/internal/tasks/cleanup-notifications", headers={"Authorization": "Bearer task-secret"})

  assert response.status_code == 200
  assert response.json() == {"deleted": 1}


@pytest.mark.anyio
async def test_reminder_tasks_report_summaries(wired):
  async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
    reminders = await client.post("/internal/tasks/send-reminders", headers=TASK_HEADERS)
    auto_cancel = await client.post("/internal/tasks/auto-cancel", headers=TASK_HEADERS)

  assert reminders.json()["pending"]["considered"] == 0
  assert auto_cancel.json() == {"considered": 0, "sent": 0, "failed": 0, "skipped": 0, "notifications": 0}


@pytest.mark.anyio
async def test_trigger_enqueues_and_returns_ids(wired, repo, directory):
  lecturer = directory.add(make_contact("lecturer"))
  event = {"type": "payout_completed", "lecturer_id": str(lecturer.user_id), "request_id": str(uuid.uuid4()), "amount": "22.50"}

  async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
    response = await client.post("/internal/notifications/trigger", json=event, headers=INTERNAL_HEADERS)

  assert response.status_code == 201
  (notification_id,) = response.json()["notification_ids"]
  assert repo.rows[uuid.UUID(notification_id)].payload["amount"] == "22.50"


@pytest.mark.anyio
async def test_deadline_reminder_trigger_also_notifies_the_student(wired, repo, directory):
  student = directory.add(make_contact("student"))
  lecturer = directory.add(make_contact("lecturer"))
  event = {
    "type": "request_reminder",
    "request_id": str(uuid.uuid4()),
    "student_id": str(student.user_id),
    "student_name": "Ada",
    "lecturer_ids": [str(lecturer.user_id)],
    "purpose": "MSc",
    "deadline": "2026-03-05",
    "days_remaining": 3,
    "reminder": "deadline",
  }

  async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
    response = await client.post("/internal/notifications/trigger", json=event, headers=INTERNAL_HEADERS)

  assert response.status_code == 201
  assert {row.user_id: row.type for row in repo.rows.values()} == {lecturer.user_id: "reminder_pending", student.user_id: "reminder_student_deadline"}


@pytest.mark.anyio
async def test_trigger_rejects_unknown_event_type(wired):
  async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
    response = await client.post("/internal/notifications/trigger", json={"type": "letter_downloaded"}, headers=INTERNAL_HEADERS)
  assert response.status_code == 422


@pytest.mark.anyio
async def test_trigger_store_failure_is_503(wired, repo, directory):
  lecturer = directory.add(make_contact("lecturer"))
  repo.fail_inserts = True
  event = {"type": "payout_completed", "lecturer_id": str(lecturer.user_id), "request_id": str(uuid.uuid4()), "amount": "5"}

  async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
    response = await client.post("/internal/notifications/trigger", json=event, headers=INTERNAL_HEADERS)

  assert response.status_code == 503
  assert repo.rows == {}


def test_trigger_requires_internal_key(wired):
  response = TestClient(app).post("/internal/notifications/trigger", json={"type": "admin_alert", "alert_type": "x", "message": "y"})
  assert response.status_code == 401


def test_health():
  assert TestClient(app).get("/health").json()["status"] == "ok"

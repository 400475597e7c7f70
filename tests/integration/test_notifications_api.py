from __future__ import annotations

import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient
from starlette.websockets import WebSocketDisconnect

from app.api.deps import get_bus, get_notification_repo
from app.core.database import get_db
from app.core.security import get_user_context
from app.main import app
from app.notifications.bus import NotificationBus
from app.notifications.models import UserContext
from tests.doubles import NOW, InMemoryNotificationRepository, make_record


@pytest.fixture
def ctx() -> UserContext:
  return UserContext(user_id=uuid.uuid4(), role="student")


@pytest.fixture
def api(repo: InMemoryNotificationRepository, ctx: UserContext):
  bus = NotificationBus()
  app.dependency_overrides[get_notification_repo] = lambda: repo
  app.dependency_overrides[get_bus] = lambda: bus
  app.dependency_overrides[get_user_context] = lambda: ctx
  yield bus
  app.dependency_overrides.clear()


@pytest.mark.anyio
async def test_feed_unread_count_and_mark_read(api, repo, ctx):
  records = [repo.add(make_record(user_id=ctx.user_id, channels=["in_app"])) for _ in range(3)]
  repo.add(make_record(user_id=uuid.uuid4(), channels=["in_app"]))

  async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
    feed = await client.get("/v1/notifications/", params={"limit": 2})
    assert feed.status_code == 200
    assert len(feed.json()) == 2
    assert {"id", "type", "title", "message", "data", "read", "created_at"} <= set(feed.json()[0])

    assert (await client.get("/v1/notifications/unread-count")).json() == {"unread_count": 3}

    response = await client.post(f"/v1/notifications/{records[0].id}/read")
    assert response.status_code == 204
    # Repeating is harmless.
    assert (await client.post(f"/v1/notifications/{records[0].id}/read")).status_code == 204

    assert (await client.post("/v1/notifications/mark-all-read")).json() == {"updated": 2}
    assert (await client.get("/v1/notifications/unread-count")).json() == {"unread_count": 0}


@pytest.mark.anyio
async def test_mark_read_on_foreign_row_is_404(api, repo):
  foreign = repo.add(make_record(user_id=uuid.uuid4(), channels=["in_app"]))

  async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
    response = await client.post(f"/v1/notifications/{foreign.id}/read")

  assert response.status_code == 404
  assert response.json()["detail"] == "Notification not found"
  assert "requestId" in response.json()


@pytest.mark.anyio
@pytest.mark.parametrize("params", [{"limit": 0}, {"limit": 101}, {"offset": -1}])
async def test_paging_bounds_are_validated(api, params):
  async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
    response = await client.get("/v1/notifications/", params=params)
  assert response.status_code == 422


def test_feed_requires_auth(repo):
  session = AsyncMock()
  session.execute.return_value = MagicMock()

  async def _get_db():
    yield session

  app.dependency_overrides[get_db] = _get_db
  app.dependency_overrides[get_notification_repo] = lambda: repo
  try:
    response = TestClient(app).get("/v1/notifications/")
    assert response.status_code == 401
  finally:
    app.dependency_overrides.clear()


def test_websocket_sends_init_answers_ping_and_pushes_updates(api, repo, ctx, monkeypatch):
  record = repo.add(make_record(user_id=ctx.user_id, channels=["in_app"], created_at=NOW))
  monkeypatch.setattr("app.api.routes.notifications.resolve_websocket_context", AsyncMock(return_value=ctx))

  with TestClient(app) as client:
    with client.websocket_connect("/v1/notifications/ws?token=id-token") as websocket:
      assert websocket.receive_json() == {"type": "init", "unread_count": 1}

      websocket.send_json({"type": "ping"})
      assert websocket.receive_json() == {"type": "pong"}

      assert client.post(f"/v1/notifications/{record.id}/read").status_code == 204
      assert websocket.receive_json() == {"type": "update", "notification_id": str(record.id), "unread_count": 0}


def test_websocket_without_valid_token_is_closed(api, monkeypatch):
  monkeypatch.setattr("app.api.routes.notifications.resolve_websocket_context", AsyncMock(return_value=None))

  with pytest.raises(WebSocketDisconnect):
    with TestClient(app).websocket_connect("/v1/notifications/ws") as websocket:
      websocket.receive_json()

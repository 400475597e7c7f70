from __future__ import annotations

import asyncio
import json
import logging
import uuid

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status

from app.api.deps import get_read_service
from app.api.models import MarkAllReadResponse, NotificationResponse, UnreadCountResponse
from app.core.security import get_user_context, resolve_websocket_context
from app.notifications.models import UserContext
from app.notifications.read_service import MAX_PAGE_SIZE, NotificationReadService

router = APIRouter()
logger = logging.getLogger(__name__)

# Keep the socket alive through idle proxies.
_WS_IDLE_SECONDS = 30.0


@router.get("/", response_model=list[NotificationResponse])
async def list_notifications(
  ctx: UserContext = Depends(get_user_context),  # noqa: B008
  service: NotificationReadService = Depends(get_read_service),  # noqa: B008
  limit: int = Query(50, ge=1, le=MAX_PAGE_SIZE),  # noqa: B008
  offset: int = Query(0, ge=0),  # noqa: B008
) -> list[NotificationResponse]:
  """
  Newest-first notifications for the current user.

  - **limit**: Max number of notifications to return (1-100).
  - **offset**: Number of notifications to skip (for pagination).
  """
  views = await service.list(ctx, limit=limit, offset=offset)
  return [NotificationResponse.from_view(view) for view in views]


@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(ctx: UserContext = Depends(get_user_context), service: NotificationReadService = Depends(get_read_service)) -> UnreadCountResponse:  # noqa: B008
  return UnreadCountResponse(unread_count=await service.unread_count(ctx))


@router.post("/mark-all-read", response_model=MarkAllReadResponse)
async def mark_all_read(ctx: UserContext = Depends(get_user_context), service: NotificationReadService = Depends(get_read_service)) -> MarkAllReadResponse:  # noqa: B008
  return MarkAllReadResponse(updated=await service.mark_all_read(ctx))


@router.post("/{notification_id}/read", status_code=status.HTTP_204_NO_CONTENT)
async def mark_read(notification_id: uuid.UUID, ctx: UserContext = Depends(get_user_context), service: NotificationReadService = Depends(get_read_service)) -> None:  # noqa: B008
  """Mark one notification read; NotificationNotFound maps to 404."""
  await service.mark_read(ctx, notification_id)


@router.websocket("/ws")
async def notifications_socket(websocket: WebSocket, token: str | None = None, service: NotificationReadService = Depends(get_read_service)) -> None:  # noqa: B008
  """Push inserts and updates of the caller's rows; the client re-fetches on each change."""
  ctx = await resolve_websocket_context(token)
  if ctx is None:
    await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
    return

  await websocket.accept()
  async with service.subscribe(ctx) as subscription:
    await websocket.send_json({"type": "init", "unread_count": await service.unread_count(ctx)})
    receiver = asyncio.create_task(_answer_pings(websocket))
    try:
      while True:
        getter = asyncio.create_task(subscription.get(timeout=_WS_IDLE_SECONDS))
        done, _ = await asyncio.wait({getter, receiver}, return_when=asyncio.FIRST_COMPLETED)
        if receiver in done:
          getter.cancel()
          break
        change = getter.result()
        if change is None:
          continue
        await websocket.send_json({"type": change.kind, "notification_id": str(change.notification_id), "unread_count": await service.unread_count(ctx)})
    except WebSocketDisconnect:
      logger.debug("Notification socket closed by user_id=%s", ctx.user_id)
    finally:
      receiver.cancel()


async def _answer_pings(websocket: WebSocket) -> None:
  try:
    while True:
      raw = await websocket.receive_text()
      try:
        message = json.loads(raw)
      except ValueError:
        continue
      if isinstance(message, dict) and message.get("type") == "ping":
        await websocket.send_json({"type": "pong"})
  except WebSocketDisconnect:
    return

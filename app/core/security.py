"""Authentication dependencies: Firebase users, scheduler tasks and internal callers."""

from __future__ import annotations

import logging
import secrets
from typing import Annotated

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from app.config import Settings, get_settings
from app.core.database import get_db, get_session_factory
from app.core.firebase import verify_id_token
from app.notifications.models import UserContext
from app.schema.users import User

logger = logging.getLogger(__name__)

security_scheme = HTTPBearer(auto_error=False)

_ROLES = ("student", "lecturer", "admin")


async def _user_for_firebase_uid(db: AsyncSession, firebase_uid: str) -> User | None:
  result = await db.execute(select(User).where(User.firebase_uid == firebase_uid))
  return result.scalar_one_or_none()


def _to_context(user: User) -> UserContext:
  role = user.role if user.role in _ROLES else "student"
  return UserContext(user_id=user.id, role=role)


async def get_user_context(token: Annotated[HTTPAuthorizationCredentials | None, Depends(security_scheme)], db: AsyncSession = Depends(get_db)) -> UserContext:  # noqa: B008
  """Verify the Firebase ID token and resolve the caller to a `UserContext`."""
  if token is None or not token.credentials:
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated", headers={"WWW-Authenticate": "Bearer"})

  decoded_claims = await run_in_threadpool(verify_id_token, token.credentials)
  if not decoded_claims:
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid authentication credentials", headers={"WWW-Authenticate": "Bearer"})

  firebase_uid = decoded_claims.get("uid")
  if not firebase_uid:
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token claims")

  user = await _user_for_firebase_uid(db, firebase_uid)
  if user is None:
    # Users must exist in the marketplace before they have a feed.
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")

  return _to_context(user)


async def resolve_websocket_context(id_token: str | None) -> UserContext | None:
  """Resolve a websocket's `token` query parameter; None means reject the socket."""
  if not id_token:
    return None

  decoded_claims = await run_in_threadpool(verify_id_token, id_token)
  firebase_uid = (decoded_claims or {}).get("uid")
  if not firebase_uid:
    return None

  session_factory = get_session_factory()
  if session_factory is None:
    logger.error("Websocket auth failed: database not initialized")
    return None

  async with session_factory() as session:
    user = await _user_for_firebase_uid(session, firebase_uid)
  return _to_context(user) if user is not None else None


def require_task_secret(
  settings: Annotated[Settings, Depends(get_settings)], authorization: str | None = Header(default=None), x_getref_task_secret: str | None = Header(default=None)
) -> None:
  """Only the scheduler may run queue jobs."""
  if not settings.task_secret:
    logger.warning("Task endpoint called but GETREF_TASK_SECRET is not configured")
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Task authentication is not configured.")

  # Schedulers that use Authorization for their own identity send the dedicated header instead.
  shared_secret_valid = secrets.compare_digest(x_getref_task_secret or "", settings.task_secret)
  bearer_valid = secrets.compare_digest(authorization or "", f"Bearer {settings.task_secret}")
  if not shared_secret_valid and not bearer_valid:
    logger.warning("Unauthorized task request")
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid task secret.")


def require_internal_key(settings: Annotated[Settings, Depends(get_settings)], x_getref_internal_key: str | None = Header(default=None)) -> None:
  """Only other marketplace services may raise trigger events."""
  if not settings.internal_api_key or not secrets.compare_digest(x_getref_internal_key or "", settings.internal_api_key):
    logger.warning("Unauthorized trigger request")
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid internal key.")

from __future__ import annotations

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from app.api.routes import notifications, tasks, triggers
from app.config import get_settings
from app.core.exceptions import (
  enqueue_failed_handler,
  global_exception_handler,
  http_exception_handler,
  notification_not_found_handler,
  request_validation_exception_handler,
  unknown_event_handler,
)
from app.core.json import DecimalJSONResponse
from app.core.lifespan import lifespan
from app.core.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware
from app.notifications.contracts import EnqueueFailed, NotificationNotFound, UnknownEventKind

settings = get_settings()

app = FastAPI(default_response_class=DecimalJSONResponse, lifespan=lifespan, docs_url=None, redoc_url=None, openapi_url=None)

app.add_middleware(CORSMiddleware, allow_origins=settings.allowed_origins, allow_credentials=True, allow_methods=["GET", "POST", "OPTIONS"], allow_headers=["content-type", "authorization"], expose_headers=["content-length", "x-request-id"])


# Add exception handlers
app.add_exception_handler(Exception, global_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
app.add_exception_handler(NotificationNotFound, notification_not_found_handler)
app.add_exception_handler(UnknownEventKind, unknown_event_handler)
app.add_exception_handler(EnqueueFailed, enqueue_failed_handler)

# Add middleware
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(SecurityHeadersMiddleware)


@app.get("/health", include_in_schema=False)
async def health_check() -> dict[str, str]:
  """Return a simple health status."""
  return {"status": "ok", "version": "0.1.0"}


app.include_router(notifications.router, prefix="/v1/notifications", tags=["notifications"])
app.include_router(tasks.router, prefix="/internal", tags=["tasks"])
app.include_router(triggers.router, prefix="/internal", tags=["internal"])

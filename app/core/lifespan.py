import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.core.database import get_db_engine
from app.core.firebase import initialize_firebase
from app.core.logging import _initialize_logging


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
  """Ensure logging is correctly set up after uvicorn starts."""
  from app.config import get_settings

  settings = get_settings()
  logger = logging.getLogger("app.core.lifespan")

  try:
    _initialize_logging(settings)
    logger.info("Startup complete - logging verified.")
    # Initialize Firebase before handling requests.
    initialize_firebase()
  except Exception:  # noqa: BLE001
    # Log initialization failures but allow the app to continue starting.
    logger.warning("Initial startup setup failed; continuing.", exc_info=True)

  if not settings.pg_dsn:
    logger.warning("GETREF_PG_DSN is not set; notification routes will fail until a database is configured.")

  yield

  # Release pooled connections on shutdown.
  engine = get_db_engine()
  if engine is not None:
    await engine.dispose()

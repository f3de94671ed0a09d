import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from urllib.parse import urlparse

from fastapi import FastAPI
from sqlalchemy.exc import SQLAlchemyError

from app.config import Settings, get_settings
from app.core.database import dispose_engine, init_models
from app.core.logging import _initialize_logging
from app.services.maintenance import fail_stale_jobs
from app.services.tasks.in_process import drain_running_tasks

_PRODUCTION_ENVIRONMENTS = frozenset({"production", "prod", "stage", "staging"})
_SHUTDOWN_DRAIN_SECONDS = 30.0


def _redact_dsn(raw: str | None) -> str:
  """Redact credentials from a DSN while keeping host/db visible."""
  if not raw:
    return "<unset>"
  parsed = urlparse(raw)
  if not parsed.scheme:
    return "<invalid>"
  host = parsed.hostname or ""
  port = f":{parsed.port}" if parsed.port else ""
  netloc = f"{parsed.username}@{host}{port}" if parsed.username else f"{host}{port}"
  return f"{parsed.scheme}://{netloc}{parsed.path}"


def _should_create_tables(settings: Settings) -> bool:
  """Create tables directly only outside production; production runs Alembic."""
  if settings.environment in _PRODUCTION_ENVIRONMENTS:
    return False
  return bool(settings.db_dsn)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
  """Prepare logging, storage and crash recovery before serving requests."""
  settings = get_settings()
  _initialize_logging(settings)
  logger = logging.getLogger("app.core.lifespan")
  logger.info("Starting meal plan engine environment=%s db=%s tasks=%s", settings.environment, _redact_dsn(settings.db_dsn), settings.task_service_provider)

  if not settings.gemini_api_keys:
    logger.warning("No Gemini API key configured; plan generation jobs will fail.")

  Path(settings.shares_dir).mkdir(parents=True, exist_ok=True)

  if _should_create_tables(settings):
    await init_models()

  if settings.db_dsn:
    try:
      await fail_stale_jobs(settings)
    except SQLAlchemyError:
      # A missing schema must not keep the API from starting; migrations may still be pending.
      logger.warning("Stale job sweep failed at startup", exc_info=True)

  yield

  await drain_running_tasks(timeout=_SHUTDOWN_DRAIN_SECONDS)
  await dispose_engine()
  logger.info("Shutdown complete.")

"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from app.utils.env import default_env_path, load_env_file

load_env_file(default_env_path(), override=False)

_TASK_PROVIDERS = {"in-process", "local-http", "gcp"}


@dataclass(frozen=True)
class Settings:
  """Typed settings for the meal plan service."""

  environment: str
  allowed_origins: tuple[str, ...]
  debug: bool
  log_max_bytes: int
  log_backup_count: int
  log_http_4xx: bool
  log_http_bodies: bool
  log_http_body_bytes: int
  db_dsn: str | None
  gemini_api_keys: tuple[str, ...]
  plan_model: str
  shares_dir: str
  share_url_prefix: str
  task_service_provider: str
  base_url: str | None
  task_secret: str | None
  cloud_tasks_queue_path: str | None
  jobs_auto_process: bool
  stale_job_ttl_seconds: int


@dataclass(frozen=True)
class DatabaseSettings:
  """Typed settings for database connectivity."""

  debug: bool
  db_dsn: str | None


def _parse_origins(raw: str | None) -> tuple[str, ...]:
  if not raw:
    raise ValueError("MEALPLAN_ALLOWED_ORIGINS must be set to one or more origins.")

  origins = [origin.strip() for origin in raw.split(",") if origin.strip()]

  if not origins:
    raise ValueError("MEALPLAN_ALLOWED_ORIGINS must include at least one origin.")

  if "*" in origins:
    raise ValueError("MEALPLAN_ALLOWED_ORIGINS must not include wildcard origins.")

  return tuple(origins)


def _parse_bool(raw: str | None, *, default: bool = False) -> bool:
  """Parse a boolean-ish string from environment variables."""

  if raw is None or raw.strip() == "":
    return default

  normalized = raw.strip().lower()
  return normalized in {"1", "true", "yes", "on"}


def _optional_str(raw: str | None) -> str | None:
  if raw is None:
    return None
  value = raw.strip()
  if value == "":
    return None
  return value


def _parse_positive_int(name: str, default: str) -> int:
  value = int(os.getenv(name, default))
  if value <= 0:
    raise ValueError(f"{name} must be a positive integer.")
  return value


def _parse_api_keys() -> tuple[str, ...]:
  """Collect Gemini credentials in priority order: primary first, then fallbacks."""

  keys: list[str] = []
  primary = _optional_str(os.getenv("MEALPLAN_GEMINI_API_KEY")) or _optional_str(os.getenv("GEMINI_API_KEY"))
  if primary:
    keys.append(primary)

  for raw in (os.getenv("MEALPLAN_GEMINI_API_KEY_FALLBACK") or "").split(","):
    candidate = raw.strip()
    # Skip duplicates so a misconfigured fallback does not double the retry budget for one key.
    if candidate and candidate not in keys:
      keys.append(candidate)

  return tuple(keys)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
  """Load settings once per process."""

  environment = os.getenv("MEALPLAN_ENV", "development").lower()

  # Toggle SQL echo and verbose diagnostics in non-production environments.
  debug = _parse_bool(os.getenv("MEALPLAN_DEBUG"))

  log_max_bytes = _parse_positive_int("MEALPLAN_LOG_MAX_BYTES", "5242880")  # 5MB default
  log_backup_count = int(os.getenv("MEALPLAN_LOG_BACKUP_COUNT", "10"))
  if log_backup_count < 0:
    raise ValueError("MEALPLAN_LOG_BACKUP_COUNT must be zero or a positive integer.")

  # Allow opt-in logging of 4xx HTTPExceptions for diagnostics.
  log_http_4xx = _parse_bool(os.getenv("MEALPLAN_LOG_HTTP_4XX"))
  # Allow opt-in logging of HTTP request/response bodies with a size cap.
  log_http_bodies = _parse_bool(os.getenv("MEALPLAN_LOG_HTTP_BODIES"))
  log_http_body_bytes = _parse_positive_int("MEALPLAN_LOG_HTTP_BODY_BYTES", "2048")

  task_service_provider = (os.getenv("MEALPLAN_TASK_SERVICE_PROVIDER") or "in-process").strip().lower()
  if task_service_provider not in _TASK_PROVIDERS:
    raise ValueError(f"MEALPLAN_TASK_SERVICE_PROVIDER must be one of: {', '.join(sorted(_TASK_PROVIDERS))}.")

  share_url_prefix = (os.getenv("MEALPLAN_SHARE_URL_PREFIX") or "/shares").strip().rstrip("/")

  return Settings(
    environment=environment,
    allowed_origins=_parse_origins(os.getenv("MEALPLAN_ALLOWED_ORIGINS")),
    debug=debug,
    log_max_bytes=log_max_bytes,
    log_backup_count=log_backup_count,
    log_http_4xx=log_http_4xx,
    log_http_bodies=log_http_bodies,
    log_http_body_bytes=log_http_body_bytes,
    db_dsn=get_database_settings().db_dsn,
    gemini_api_keys=_parse_api_keys(),
    plan_model=(os.getenv("MEALPLAN_PLAN_MODEL") or "gemini-2.5-flash").strip(),
    shares_dir=(os.getenv("MEALPLAN_SHARES_DIR") or "./public/shares").strip(),
    share_url_prefix=share_url_prefix or "/shares",
    task_service_provider=task_service_provider,
    base_url=_optional_str(os.getenv("MEALPLAN_BASE_URL")),
    task_secret=_optional_str(os.getenv("MEALPLAN_TASK_SECRET")),
    cloud_tasks_queue_path=_optional_str(os.getenv("MEALPLAN_CLOUD_TASKS_QUEUE_PATH")),
    jobs_auto_process=_parse_bool(os.getenv("MEALPLAN_JOBS_AUTO_PROCESS"), default=True),
    stale_job_ttl_seconds=_parse_positive_int("MEALPLAN_STALE_JOB_TTL_SECONDS", "1800"),
  )


def get_database_settings() -> DatabaseSettings:
  """Load database settings without requiring web-runtime configuration like CORS."""
  # Keep database configuration isolated so migrations and offline scripts don't require unrelated env vars.
  debug = _parse_bool(os.getenv("MEALPLAN_DEBUG"))
  db_dsn = _optional_str(os.getenv("MEALPLAN_DB_DSN")) or _optional_str(os.getenv("DATABASE_URL"))
  return DatabaseSettings(debug=debug, db_dsn=db_dsn)

from app.config import Settings
from app.storage.jobs_repo import JobsRepository
from app.storage.plans_repo import PlansRepository
from app.storage.postgres_jobs_repo import PostgresJobsRepository
from app.storage.postgres_plans_repo import PostgresPlansRepository


def _require_database(settings: Settings) -> None:
  if not settings.db_dsn:
    raise ValueError("MEALPLAN_DB_DSN must be set to enable persistence.")


def _get_plans_repo(settings: Settings) -> PlansRepository:
  """Return the active plans repository."""
  _require_database(settings)
  return PostgresPlansRepository()


def _get_jobs_repo(settings: Settings) -> JobsRepository:
  """Return the active jobs repository."""
  _require_database(settings)
  return PostgresJobsRepository()

from __future__ import annotations

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from app.config import get_database_settings


class Base(DeclarativeBase):
  pass


engine: AsyncEngine | None = None
SessionLocal: async_sessionmaker[AsyncSession] | None = None


def _database_url() -> str | None:
  """Build the SQLAlchemy database URL while keeping settings evaluation minimal."""
  settings = get_database_settings()
  return normalize_database_url(settings.db_dsn)


def normalize_database_url(database_url: str | None) -> str | None:
  """Rewrite plain driver schemes to their async counterparts."""
  if not database_url:
    return None
  if database_url.startswith("postgresql://"):
    return database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
  if database_url.startswith("sqlite://"):
    return database_url.replace("sqlite://", "sqlite+aiosqlite://", 1)
  return database_url


DATABASE_URL = _database_url()


def _enable_sqlite_foreign_keys(db_engine: AsyncEngine) -> None:
  """SQLite ignores ON DELETE CASCADE unless foreign keys are switched on per connection."""
  if db_engine.dialect.name != "sqlite":
    return

  @event.listens_for(db_engine.sync_engine, "connect")
  def _on_connect(dbapi_connection, _connection_record) -> None:  # type: ignore[no-untyped-def]
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def init_engine(database_url: str | None = None, *, echo: bool | None = None) -> AsyncEngine | None:
  """Create (or replace) the process-wide engine and session factory."""
  global engine, SessionLocal
  settings = get_database_settings()
  url = normalize_database_url(database_url) if database_url else _database_url()
  if url is None:
    engine = None
    SessionLocal = None
    return None

  engine = create_async_engine(url, echo=settings.debug if echo is None else echo, future=True)
  _enable_sqlite_foreign_keys(engine)
  SessionLocal = async_sessionmaker(bind=engine, expire_on_commit=False, class_=AsyncSession)
  return engine


def get_db_engine() -> AsyncEngine | None:
  if engine is None:
    init_engine()
  return engine


def get_session_factory() -> async_sessionmaker[AsyncSession] | None:
  if SessionLocal is None:
    get_db_engine()
  return SessionLocal


async def init_models() -> None:
  """Create tables for local and test databases; production schemas are managed by Alembic."""
  # Import models so they are attached to Base.metadata.
  import app.schema.jobs  # noqa: F401
  import app.schema.plans  # noqa: F401

  db_engine = get_db_engine()
  if db_engine is None:
    raise RuntimeError("Database connection is not configured (MEALPLAN_DB_DSN is missing).")
  async with db_engine.begin() as connection:
    await connection.run_sync(Base.metadata.create_all)


async def dispose_engine() -> None:
  """Close pooled connections and forget the current engine."""
  global engine, SessionLocal
  if engine is not None:
    await engine.dispose()
  engine = None
  SessionLocal = None

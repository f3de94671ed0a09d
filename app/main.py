from __future__ import annotations

from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from app.api.models import HealthResponse
from app.api.routes import generation, jobs, plans, tasks
from app.config import get_settings
from app.core.exceptions import register_exception_handlers
from app.core.lifespan import lifespan
from app.core.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware

settings = get_settings()

app = FastAPI(title="Meal Plan Engine", version="0.1.0", lifespan=lifespan, docs_url=None, redoc_url=None, openapi_url=None)

app.add_middleware(CORSMiddleware, allow_origins=settings.allowed_origins, allow_credentials=True, allow_methods=["GET", "POST", "DELETE", "OPTIONS"], allow_headers=["content-type", "authorization", "x-request-id"], expose_headers=["content-length", "x-request-id"])

register_exception_handlers(app)

app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(SecurityHeadersMiddleware)


@app.get("/health", response_model=HealthResponse, include_in_schema=False)
async def health_check() -> HealthResponse:
  """Return a simple health status."""
  return HealthResponse(status="ok")


app.include_router(generation.router, prefix="/api", tags=["generation"])
app.include_router(jobs.router, prefix="/api/jobs", tags=["jobs"])
app.include_router(plans.router, prefix="/api", tags=["plans"])
app.include_router(tasks.router, prefix="/internal", tags=["tasks"])

# Share documents are plain files; an absolute prefix means another host serves them.
if settings.share_url_prefix.startswith("/"):
  Path(settings.shares_dir).mkdir(parents=True, exist_ok=True)
  app.mount(settings.share_url_prefix, StaticFiles(directory=settings.shares_dir), name="shares")

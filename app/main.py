"""FastAPI application entrypoint."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from app.api.v1 import v1_router
from app.core.config import get_settings
from app.core.database import init_db
from app.core.errors import DirectoryError, ValidationFailedError

_settings = get_settings()

logging.basicConfig(
    level=getattr(logging, _settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    # Startup: ensure tables exist (use Alembic in production)
    await init_db()
    yield
    # Shutdown: nothing to clean up yet


app = FastAPI(
    title="Company Directory",
    version="0.1.0",
    description="Subscription-gated business directory with SEO landing pages",
    lifespan=lifespan,
)

# ── CORS ─────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in _settings.allowed_origins.split(",")],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Domain errors ────────────────────────────────────────────
@app.exception_handler(DirectoryError)
async def directory_error_handler(_request: Request, exc: DirectoryError) -> JSONResponse:
    body: dict = {"detail": exc.detail}
    if isinstance(exc, ValidationFailedError):
        body["errors"] = [{"field": e.field, "message": e.message} for e in exc.errors]
    return JSONResponse(status_code=exc.status_code, content=body)


# ── API routes ───────────────────────────────────────────────
app.include_router(v1_router)


@app.get("/health", tags=["system"])
async def health_check() -> dict:
    return {"status": "ok"}


# ── Uploaded media ───────────────────────────────────────────
app.mount(
    _settings.media_url,
    StaticFiles(directory=_settings.media_dir, check_dir=False),
    name="media",
)

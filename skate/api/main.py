"""
skate.api.main — FastAPI application entry point
==================================================

Run with::

    uvicorn skate.api.main:app --reload --port 8000

or ``python -m skate serve``.
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

load_dotenv()

from skate import __version__  # noqa: E402
from skate.api.auth import router as auth_router  # noqa: E402
from skate.api.deps import get_config, get_service  # noqa: E402
from skate.api.errors import install_error_handlers  # noqa: E402
from skate.api.routes.admin import router as admin_router  # noqa: E402
from skate.api.routes.challenges import router as challenges_router  # noqa: E402
from skate.api.routes.users import router as users_router  # noqa: E402
from skate.services.expiry_service import ExpirySweeper  # noqa: E402

logger = logging.getLogger(__name__)


def _cors_origins() -> list[str]:
    """Resolve allowed CORS origins from env with safe defaults.

    Priority:
      1) CORS_ALLOW_ORIGINS (comma-separated)
      2) FRONTEND_URL (single origin)
    """
    raw = os.getenv("CORS_ALLOW_ORIGINS", "").strip()
    if raw:
        return [origin.strip().rstrip("/") for origin in raw.split(",") if origin.strip()]

    frontend_url = os.getenv("FRONTEND_URL", "").strip()
    if frontend_url:
        return [frontend_url.rstrip("/")]

    return []


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle — build the store and start the expiry sweep."""
    cfg = get_config()
    service = app.dependency_overrides.get(get_service, get_service)()
    sweeper = ExpirySweeper(service, interval=cfg.expiry_sweep_seconds)
    sweeper.start()
    logger.info("SKATE API started — %s (%s store)", cfg.service_name, cfg.storage_backend)
    yield
    await sweeper.stop()
    logger.info("SKATE API shutting down")


app = FastAPI(
    title="SKATE Challenges API",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

install_error_handlers(app)

# Mount routers
app.include_router(challenges_router, prefix="/api")
app.include_router(users_router, prefix="/api")
app.include_router(auth_router, prefix="/api")
app.include_router(admin_router, prefix="/api")


@app.get("/api/health")
def health():
    return {"status": "ok"}

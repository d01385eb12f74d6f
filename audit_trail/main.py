"""
FastAPI application factory.

Uses lifespan context manager (preferred over on_event decorators in FastAPI 0.93+)
to handle startup/shutdown tasks cleanly.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from audit_trail.routers import admin, auth, health
from audit_trail.settings import settings

# ── Logging ───────────────────────────────────────────────────────────────────
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s — %(message)s",
)
logger = logging.getLogger(__name__)


# ── Lifespan ──────────────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown logic."""
    logger.info(
        "Starting Audit Trail API [env=%s, store=%s, dispatch=%s]",
        settings.environment,
        settings.store_backend,
        settings.audit_dispatch,
    )

    if settings.store_backend == "disabled":
        logger.warning(
            "Document store disabled — audit writes skipped, admin checks policy-only"
        )
    elif settings.store_backend == "sql":
        # Verify DB connectivity on startup; keep serving in degraded mode if down
        from audit_trail.database import check_db_connection

        if not check_db_connection():
            logger.error("Database is not reachable on startup — check DATABASE_URL")
        else:
            logger.info("Database connection verified")

    if not settings.admin_emails:
        logger.info("No ADMIN_EMAILS configured — only stored grants and the email marker apply")

    yield  # ── Application runs here ──

    logger.info("Shutting down Audit Trail API")


# ── App factory ───────────────────────────────────────────────────────────────
def create_app() -> FastAPI:
    app = FastAPI(
        title="Procurement Audit Trail",
        description=(
            "Admin authorization and immutable audit trail for the procurement "
            "platform: privilege decisions, entity mutation history and "
            "compliance queries."
        ),
        version="1.0.0",
        lifespan=lifespan,
        # Disable docs in production (enable for internal use or with auth)
        docs_url="/docs" if not settings.is_production else None,
        redoc_url="/redoc" if not settings.is_production else None,
    )

    # ── Routers ───────────────────────────────────────────────────────────────
    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(admin.router)

    return app


app = create_app()

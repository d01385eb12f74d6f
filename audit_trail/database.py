"""
Engine and session factory behind SqlDocumentStore.

Only imported when STORE_BACKEND=sql, so the memory and disabled backends
never open a connection. Sessions are short-lived: the store opens one per
call with `with SessionLocal() as db:`.
"""

import logging

from sqlalchemy import create_engine, text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from audit_trail.settings import settings

logger = logging.getLogger(__name__)


def _engine_options(database_url: str) -> dict:
    options = {"echo": settings.is_development}
    if make_url(database_url).get_backend_name() == "sqlite":
        # Request handlers run in FastAPI's threadpool
        options["connect_args"] = {"check_same_thread": False}
    else:
        options["pool_pre_ping"] = True
    return options


engine = create_engine(settings.database_url, **_engine_options(settings.database_url))

# Stored bodies are copied out before the session closes, so nothing needs
# to stay attached after commit.
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def check_db_connection() -> bool:
    """True if the documents database answers a trivial query."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.warning("Document database unreachable — %s", exc)
        return False
    return True

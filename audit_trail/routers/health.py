"""Health check endpoint — used by the platform for service health monitoring."""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from audit_trail.dependencies import get_store
from audit_trail.services.store.base import DocumentStore
from audit_trail.settings import settings

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    status: str
    environment: str
    store: str
    version: str = "1.0.0"


@router.get("/health", response_model=HealthResponse, include_in_schema=False)
def health_check(store: Optional[DocumentStore] = Depends(get_store)) -> HealthResponse:
    """
    Returns "degraded" when the document store is disabled or unreachable.
    The service keeps answering in that state: admin checks fall back to the
    email policy and audit writes are skipped.
    """
    if store is None:
        store_state = "disabled"
    elif settings.store_backend == "sql":
        from audit_trail.database import check_db_connection

        store_state = "connected" if check_db_connection() else "unreachable"
    else:
        store_state = settings.store_backend

    return HealthResponse(
        status="degraded" if store_state in ("disabled", "unreachable") else "ok",
        environment=settings.environment,
        store=store_state,
    )

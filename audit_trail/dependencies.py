"""
Service wiring — builds the audit trail services from settings.

Used as FastAPI dependencies:
    from audit_trail.dependencies import get_audit_writer
    def my_route(audit: AuditWriter = Depends(get_audit_writer)): ...

Tests override get_store via app.dependency_overrides to inject an
InMemoryDocumentStore.
"""

from typing import Optional

from fastapi import Depends

from audit_trail.services.audit.logger import AuditWriter
from audit_trail.services.audit.query import AuditQuery
from audit_trail.services.authz.admin import AdminAuthorizer
from audit_trail.services.store.base import DocumentStore, get_document_store
from audit_trail.settings import settings


def get_store() -> Optional[DocumentStore]:
    return get_document_store()


def get_authorizer(store: Optional[DocumentStore] = Depends(get_store)) -> AdminAuthorizer:
    return AdminAuthorizer(store, settings.admin_emails)


def get_audit_writer(store: Optional[DocumentStore] = Depends(get_store)) -> AuditWriter:
    if settings.audit_dispatch == "queue":
        from audit_trail.workers.queue import enqueue_audit_document

        return AuditWriter(store, dispatch=enqueue_audit_document)
    return AuditWriter(store)


def get_audit_query(store: Optional[DocumentStore] = Depends(get_store)) -> AuditQuery:
    return AuditQuery(
        store,
        default_limit=settings.audit_query_default_limit,
        max_limit=settings.audit_query_max_limit,
    )

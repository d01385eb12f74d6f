"""RQ queue setup — shared by API (enqueue) and worker (dequeue)."""

from typing import Any

import redis
from rq import Queue

from audit_trail.settings import settings

_redis_conn: redis.Redis | None = None
_queue: Queue | None = None


def get_redis() -> redis.Redis:
    global _redis_conn
    if _redis_conn is None:
        _redis_conn = redis.from_url(settings.redis_url)
    return _redis_conn


def get_queue() -> Queue:
    global _queue
    if _queue is None:
        _queue = Queue(settings.rq_queue_name, connection=get_redis())
    return _queue


def enqueue_audit_document(document: dict[str, Any]) -> str:
    """
    Enqueue an already-serialized audit document for append by the worker.
    Returns the job ID. Used as AuditWriter's dispatch when AUDIT_DISPATCH=queue.
    """
    from audit_trail.workers.audit_jobs import append_audit_document  # avoid circular import

    job = get_queue().enqueue(
        append_audit_document,
        args=(document,),
        job_timeout=30,
        result_ttl=0,  # nothing worth keeping on success
        failure_ttl=86400,  # keep failed job info for 24 hours
    )
    return job.id

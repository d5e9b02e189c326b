"""
Mise en file des réconciliations de commandes (RQ).
"""
from typing import List, Optional

import redis
from rq import Queue

from app.core.config import REDIS_URL, RECONCILE_QUEUE
from app.core.logging import get_logger
from app.utils.retry import retry

logger = get_logger(__name__)

_queue: Optional[Queue] = None


def get_queue() -> Queue:
    global _queue
    if _queue is None:
        _queue = Queue(RECONCILE_QUEUE, connection=redis.from_url(REDIS_URL))
    return _queue


def is_redis_unavailable(exc: Exception) -> bool:
    return isinstance(exc, (redis.ConnectionError, redis.TimeoutError))


@retry(retries=2, base_delay=0.2, should_retry=is_redis_unavailable, step="enqueue")
def request_reconciliation(order_id: str, failed_steps: List[str]) -> str:
    """Enfile la réconciliation d'une commande. Retourne l'id du job."""
    from app.jobs_loyalty import reconcile_order

    job = get_queue().enqueue(
        reconcile_order,
        order_id,
        job_timeout=120,
        result_ttl=3600,
        failure_ttl=86400,
    )
    logger.info(
        "Reconciliation enqueued",
        order_id=order_id,
        job_id=job.id,
        failed_steps=failed_steps,
    )
    return job.id

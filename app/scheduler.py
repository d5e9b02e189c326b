"""
Scheduler - Jobs planifiés (rq-scheduler).
"""
from datetime import datetime, timedelta, timezone

from rq_scheduler import Scheduler
import redis

from app.core.config import REDIS_URL, RECONCILE_QUEUE, RECONCILE_INTERVAL_SEC
from app.core.logging import get_logger

logger = get_logger(__name__)


def setup_scheduled_jobs():
    redis_conn = redis.from_url(REDIS_URL)
    scheduler = Scheduler(connection=redis_conn, queue_name=RECONCILE_QUEUE)

    # Annuler les jobs existants
    for job in scheduler.get_jobs():
        scheduler.cancel(job)

    from app.jobs_loyalty import reconcile_pending_orders
    scheduler.schedule(
        scheduled_time=datetime.now(timezone.utc) + timedelta(minutes=1),
        func=reconcile_pending_orders,
        interval=RECONCILE_INTERVAL_SEC,
        repeat=None,
        result_ttl=3600,
        queue_name=RECONCILE_QUEUE,
    )
    logger.info(f"Scheduled: pending orders sweep every {RECONCILE_INTERVAL_SEC}s")
    return scheduler


if __name__ == "__main__":
    from app.core.config import LOG_LEVEL
    from app.core.logging import setup_logging

    setup_logging(level=LOG_LEVEL)
    setup_scheduled_jobs()

"""
Jobs RQ de réconciliation des effets de commande.

- reconcile_order: rejoue les effets manquants d'une commande
- reconcile_pending_orders: balayage des commandes confirmées incomplètes
"""
from datetime import timedelta

from sqlalchemy.exc import SQLAlchemyError

from app.core.config import RECONCILE_OLDER_THAN_MINUTES
from app.core.exceptions import OrderError
from app.core.logging import get_logger, timed
from app.db.session import get_db_session
from app.models.profile import utcnow
from app.repositories.order_repository import OrderRepository
from app.services.order_service import OrderService
from app.utils.retry import with_retry

logger = get_logger(__name__)


def reconcile_order(order_id: str, retries: int = 3, base_delay: float = 0.5):
    """Applique les effets manquants d'une commande, avec retry."""
    with get_db_session() as session:
        service = OrderService(session)
        if service.orders.get(order_id) is None:
            logger.warning("Reconcile: order not found", order_id=order_id)
            return {"order_id": order_id, "status": "not_found"}

        applied = with_retry(
            lambda: service.apply_effects(order_id),
            retries=retries,
            base_delay=base_delay,
            step="reconcile",
        )

    logger.info("Order reconciled", order_id=order_id, applied=applied)
    return {"order_id": order_id, "status": "reconciled", "applied": applied}


@timed(logger)
def reconcile_pending_orders(
    older_than_minutes: int = RECONCILE_OLDER_THAN_MINUTES,
    limit: int = 100,
    retries: int = 3,
    base_delay: float = 0.5,
):
    """Reprend les commandes dont les effets ne sont pas complets."""
    cutoff = utcnow() - timedelta(minutes=older_than_minutes)
    with get_db_session() as session:
        order_ids = OrderRepository(session).list_pending_effects(cutoff, limit=limit)

    results = {"checked": len(order_ids), "reconciled": 0, "failed": 0}
    for order_id in order_ids:
        try:
            reconcile_order(order_id, retries=retries, base_delay=base_delay)
            results["reconciled"] += 1
        except (OrderError, SQLAlchemyError) as e:
            # Une commande en échec ne bloque pas le reste du balayage
            results["failed"] += 1
            logger.error(
                f"Reconcile failed: {e}",
                order_id=order_id,
                step=getattr(e, "step", "reconcile"),
                error_type=type(e).__name__,
                exc_info=False,
            )

    logger.info("Pending orders sweep done", **results)
    return results

from datetime import datetime
from typing import Optional, List, Dict

from sqlalchemy import func, update
from sqlalchemy.orm import Session, joinedload

from app.models.order import Order, OrderEffect, OrderStatus
from app.models.profile import utcnow


class OrderRepository:
    """
    Repository des commandes et du registre d'effets.

    Le registre (order_id, effect) est unique: un effet enregistré dans la
    même transaction que son écriture n'est appliqué qu'une fois.
    """

    def __init__(self, session: Session):
        self.session = session

    def create(self, **fields) -> Order:
        order = Order(**fields)
        self.session.add(order)
        self.session.flush()
        return order

    def get(self, order_id: str) -> Optional[Order]:
        return self.session.get(Order, order_id)

    def get_for_user(self, user_id: str, order_id: str) -> Optional[Order]:
        return self.session.query(Order).filter(
            Order.id == order_id,
            Order.user_id == user_id,
        ).first()

    def count_confirmed(self, user_id: str) -> int:
        return self.session.query(func.count(Order.id)).filter(
            Order.user_id == user_id,
            Order.status == OrderStatus.CONFIRMED.value,
        ).scalar() or 0

    def list_for_user(self, user_id: str) -> List[Order]:
        return (
            self.session.query(Order)
            .filter(Order.user_id == user_id)
            .order_by(Order.created_at.desc())
            .all()
        )

    def list_all_with_details(self) -> List[Order]:
        return (
            self.session.query(Order)
            .options(joinedload(Order.profile), joinedload(Order.basket))
            .order_by(Order.created_at.desc())
            .all()
        )

    def count_by_status(self) -> Dict[str, int]:
        rows = self.session.query(Order.status, func.count(Order.id)).group_by(Order.status).all()
        return {status: count for status, count in rows}

    def totals(self) -> Dict[str, float]:
        """Sommes globales (chiffre d'affaires, impact)."""
        revenue, food, co2, count = self.session.query(
            func.coalesce(func.sum(Order.total_price), 0.0),
            func.coalesce(func.sum(Order.food_saved), 0.0),
            func.coalesce(func.sum(Order.co2_saved), 0.0),
            func.count(Order.id),
        ).one()
        return {"revenue": revenue, "food_saved": food, "co2_saved": co2, "count": count}

    # Registre d'effets

    def has_effect(self, order_id: str, effect: str) -> bool:
        return self.session.query(OrderEffect.id).filter(
            OrderEffect.order_id == order_id,
            OrderEffect.effect == effect,
        ).first() is not None

    def record_effect(self, order_id: str, effect: str) -> None:
        self.session.add(OrderEffect(order_id=order_id, effect=effect))
        self.session.flush()

    def list_effects(self, order_id: str) -> List[str]:
        rows = self.session.query(OrderEffect.effect).filter(OrderEffect.order_id == order_id).all()
        return [r.effect for r in rows]

    def mark_effects_completed(self, order_id: str) -> None:
        stmt = (
            update(Order)
            .where(Order.id == order_id, Order.effects_completed_at.is_(None))
            .values(effects_completed_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        self.session.execute(stmt)

    def list_pending_effects(self, created_before: datetime, limit: int = 100) -> List[str]:
        """Commandes confirmées dont les effets ne sont pas tous appliqués."""
        rows = (
            self.session.query(Order.id)
            .filter(
                Order.status == OrderStatus.CONFIRMED.value,
                Order.effects_completed_at.is_(None),
                Order.created_at < created_before,
            )
            .order_by(Order.created_at.asc())
            .limit(limit)
            .all()
        )
        return [r.id for r in rows]

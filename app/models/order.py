"""Order model - Commandes et registre des effets de fidélité."""
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import (
    String, Float, Integer, Boolean, DateTime, ForeignKey, UniqueConstraint, CheckConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.profile import Base, Profile, new_id, utcnow
from app.models.basket import Basket


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    READY = "ready"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PickupMethod(str, Enum):
    CLICK_COLLECT = "click_collect"
    DELIVERY = "delivery"


class Order(Base):
    """
    Une commande = une transaction d'achat sur un panier.

    first_order: aucune commande confirmée n'existait au moment de l'écriture.
    effects_completed_at: tous les effets (points, badge, défis) sont appliqués.
    """
    __tablename__ = "orders"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)
    basket_id: Mapped[str] = mapped_column(String(36), ForeignKey("baskets.id"), nullable=False, index=True)

    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    total_price: Mapped[float] = mapped_column(Float, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=OrderStatus.PENDING.value, index=True)
    pickup_method: Mapped[str] = mapped_column(String(20), nullable=False)
    pickup_time: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    points_earned: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    co2_saved: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    food_saved: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    first_order: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    effects_completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)

    profile: Mapped[Profile] = relationship()
    basket: Mapped[Basket] = relationship()

    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_orders_quantity_positive"),
    )

    def __repr__(self):
        return f"<Order {self.id} user={self.user_id} status={self.status}>"


class OrderEffect(Base):
    """
    Effet de fidélité appliqué pour une commande.

    Clés: "points", "badge:<badge_id>", "challenge:<challenge_id>".
    """
    __tablename__ = "order_effects"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    order_id: Mapped[str] = mapped_column(String(36), ForeignKey("orders.id"), nullable=False, index=True)
    effect: Mapped[str] = mapped_column(String(80), nullable=False)
    applied_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    # Un effet ne s'applique qu'une fois par commande
    __table_args__ = (
        UniqueConstraint("order_id", "effect", name="uq_order_effect"),
    )

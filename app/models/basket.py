"""Basket model - Paniers anti-gaspillage vendus aux étudiants."""
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import String, Float, Integer, Text, DateTime, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.models.profile import Base, new_id, utcnow


class BasketCategory(str, Enum):
    ALIMENTAIRE = "alimentaire"
    HYGIENE = "hygiène"
    FOURNITURES = "fournitures"
    MIXTE = "mixte"


CATEGORY_LABELS = {
    BasketCategory.ALIMENTAIRE: "Alimentaire",
    BasketCategory.HYGIENE: "Hygiène",
    BasketCategory.FOURNITURES: "Fournitures",
    BasketCategory.MIXTE: "Mixte",
}


class Basket(Base):
    """
    Panier de produits invendus.

    co2_saved / food_saved sont exprimés en kg par unité.
    Le stock est décrémenté hors du workflow de commande.
    """
    __tablename__ = "baskets"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    category: Mapped[str] = mapped_column(String(20), nullable=False, index=True)

    original_price: Mapped[float] = mapped_column(Float, nullable=False)
    discounted_price: Mapped[float] = mapped_column(Float, nullable=False)
    stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    store_name: Mapped[str] = mapped_column(String(255), nullable=False)
    store_location: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    image_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    available_until: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    co2_saved: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    food_saved: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("stock >= 0", name="ck_baskets_stock_positive"),
        CheckConstraint("discounted_price <= original_price", name="ck_baskets_discount"),
    )

    def __repr__(self):
        return f"<Basket {self.title} stock={self.stock}>"

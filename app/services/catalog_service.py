"""
Service catalogue: paniers disponibles et conversion API.
"""
from typing import Optional, List, Dict, Any

from sqlalchemy.orm import Session

from app.models.basket import Basket, BasketCategory, CATEGORY_LABELS
from app.repositories.basket_repository import BasketRepository
from app.services.order_service import compute_order_totals


def parse_category(category: Optional[str]) -> Optional[BasketCategory]:
    """None / "all" = pas de filtre. Lève ValueError si inconnue."""
    if category is None or category == "all":
        return None
    return BasketCategory(category)


def list_categories() -> List[Dict[str, str]]:
    return [{"id": "all", "label": "Tous"}] + [
        {"id": c.value, "label": CATEGORY_LABELS[c]} for c in BasketCategory
    ]


def list_available_baskets(session: Session, category: Optional[BasketCategory] = None) -> List[Dict[str, Any]]:
    repo = BasketRepository(session)
    baskets = repo.list_available(category.value if category else None)
    return [basket_to_api_dict(b) for b in baskets]


def basket_to_api_dict(basket: Basket) -> Dict[str, Any]:
    discount_pct = 0.0
    if basket.original_price:
        discount_pct = round((1 - basket.discounted_price / basket.original_price) * 100, 1)

    return {
        "id": basket.id,
        "title": basket.title,
        "description": basket.description,
        "category": basket.category,
        "original_price": basket.original_price,
        "discounted_price": basket.discounted_price,
        "discount_pct": discount_pct,
        "stock": basket.stock,
        "store_name": basket.store_name,
        "store_location": basket.store_location,
        "image_url": basket.image_url,
        "available_until": basket.available_until.isoformat() if basket.available_until else None,
        "co2_saved": basket.co2_saved,
        "food_saved": basket.food_saved,
        "points_preview": compute_order_totals(basket, 1).points_earned,
        "created_at": basket.created_at.isoformat() if basket.created_at else None,
    }

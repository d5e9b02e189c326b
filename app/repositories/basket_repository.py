from typing import Optional, List

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.basket import Basket


class BasketRepository:
    """
    Repository lecture seule du catalogue.
    Le stock n'est jamais modifié ici.
    """

    def __init__(self, session: Session):
        self.session = session

    def get(self, basket_id: str) -> Optional[Basket]:
        return self.session.get(Basket, basket_id)

    def list_available(self, category: Optional[str] = None) -> List[Basket]:
        """Paniers en stock, les plus récents d'abord."""
        query = self.session.query(Basket).filter(Basket.stock > 0)
        if category is not None:
            query = query.filter(Basket.category == category)
        return query.order_by(Basket.created_at.desc()).all()

    def list_all(self) -> List[Basket]:
        return self.session.query(Basket).order_by(Basket.created_at.desc()).all()

    def total_stock(self) -> int:
        return self.session.query(func.coalesce(func.sum(Basket.stock), 0)).scalar() or 0

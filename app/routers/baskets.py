"""
Baskets Router - Catalogue des paniers.
Endpoints: /v1/baskets/*
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.db.deps import get_db
from app.repositories.basket_repository import BasketRepository
from app.services.catalog_service import (
    parse_category,
    list_categories,
    list_available_baskets,
    basket_to_api_dict,
)

router = APIRouter(prefix="/v1/baskets", tags=["baskets"])


@router.get("")
def list_baskets(
    category: Optional[str] = Query(None, description="alimentaire, hygiène, fournitures, mixte"),
    db: Session = Depends(get_db),
):
    """Paniers en stock, les plus récents d'abord."""
    try:
        parsed = parse_category(category)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid category: {category}")

    baskets = list_available_baskets(db, parsed)
    return {"count": len(baskets), "category": category or "all", "baskets": baskets}


@router.get("/categories")
def get_categories():
    return {"categories": list_categories()}


@router.get("/{basket_id}")
def get_basket(basket_id: str, db: Session = Depends(get_db)):
    basket = BasketRepository(db).get(basket_id)
    if not basket:
        raise HTTPException(status_code=404, detail="Basket not found")
    return basket_to_api_dict(basket)

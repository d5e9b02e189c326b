"""
Orders Router - Passage et suivi des commandes.
Endpoints: /v1/orders/*
"""
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.db.deps import get_db
from app.core.exceptions import (
    OrderError,
    Unauthenticated,
    BasketNotFound,
    InputError,
)
from app.core.logging import get_logger
from app.core.rate_limiter import rate_limit_orders
from app.models.order import PickupMethod
from app.models.profile import Profile
from app.repositories.order_repository import OrderRepository
from app.routers.auth import get_current_profile
from app.services.dashboard_service import order_to_api_dict
from app.services.order_service import OrderService
from app.services.reconciliation_service import request_reconciliation

logger = get_logger(__name__)

router = APIRouter(prefix="/v1/orders", tags=["orders"])

ORDER_FAILED_MESSAGE = "Erreur lors de la commande. Veuillez réessayer."


class PlaceOrderIn(BaseModel):
    basket_id: str
    quantity: int = 1
    pickup_method: str = PickupMethod.CLICK_COLLECT.value


@router.post("", status_code=201)
def place_order(
    payload: PlaceOrderIn,
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db),
):
    """Passe une commande et retourne les points gagnés."""
    rate_limit_orders(profile.id)

    service = OrderService(db, on_partial_failure=request_reconciliation)
    try:
        placed = service.place_order(
            user_id=profile.id,
            basket_id=payload.basket_id,
            quantity=payload.quantity,
            pickup_method=payload.pickup_method,
        )
    except Unauthenticated as e:
        raise HTTPException(status_code=401, detail=str(e.args[0]))
    except BasketNotFound:
        raise HTTPException(status_code=404, detail="Basket not found")
    except InputError as e:
        raise HTTPException(status_code=400, detail=str(e.args[0]))
    except OrderError as e:
        # L'étape en échec reste dans les logs, l'utilisateur voit un message générique
        logger.error(
            f"Order failed: {e}",
            user_id=profile.id,
            order_id=e.order_id,
            step=e.step,
            error_type=type(e).__name__,
            exc_info=False,
        )
        raise HTTPException(status_code=500, detail=ORDER_FAILED_MESSAGE)

    return {
        "order_id": placed.order_id,
        "points_earned": placed.points_earned,
        "message": f"Vous avez gagné {placed.points_earned} points !",
    }


@router.get("")
def list_my_orders(
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db),
):
    orders = OrderRepository(db).list_for_user(profile.id)
    return {"count": len(orders), "orders": [order_to_api_dict(o) for o in orders]}


@router.get("/{order_id}")
def get_my_order(
    order_id: str,
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db),
):
    order = OrderRepository(db).get_for_user(profile.id, order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return order_to_api_dict(order)

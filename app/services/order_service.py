"""
Workflow de commande et progression fidélité.

Saga en deux temps:
1. Écriture de la commande (ancre). Si elle échoue, rien d'autre n'a lieu.
2. Effets de fidélité idempotents, chacun enregistré dans le registre
   (order_id, effect) dans la même transaction que son écriture:
   - "points": points += points_earned
   - "badge:<id>": badge "Premier Pas" si c'est la première commande
   - "challenge:<id>": progression +1 sur chaque défi actif

Un effet qui échoue n'annule pas la commande: les autres effets sont
tentés, puis la réconciliation rejoue ce qui manque.
"""
import time
from dataclasses import dataclass
from decimal import Decimal, ROUND_FLOOR, ROUND_HALF_UP
from typing import Callable, Dict, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import POINTS_PER_EURO, FIRST_ORDER_BADGE_CODE, FIRST_ORDER_BADGE_NAME
from app.core.exceptions import (
    OrderError,
    PostAnchorError,
    Unauthenticated,
    InvalidQuantity,
    InvalidPickupMethod,
    BasketNotFound,
    OrderWriteFailed,
    PointsUpdateFailed,
    BadgeAwardFailed,
    ChallengeUpdateFailed,
)
from app.core.logging import get_logger
from app.models.basket import Basket
from app.models.order import OrderStatus, PickupMethod
from app.models.profile import utcnow
from app.repositories.basket_repository import BasketRepository
from app.repositories.loyalty_repository import LoyaltyRepository
from app.repositories.order_repository import OrderRepository
from app.repositories.profile_repository import ProfileRepository

logger = get_logger(__name__)

POINTS_EFFECT = "points"

# Appelé avec (order_id, failed_steps) quand un effet échoue après l'ancre
PartialFailureHook = Callable[[str, List[str]], None]

_STEP_ERRORS = {
    "points": PointsUpdateFailed,
    "badge": BadgeAwardFailed,
    "challenges": ChallengeUpdateFailed,
}


@dataclass
class OrderTotals:
    total_price: float
    co2_saved: float
    food_saved: float
    points_earned: int


@dataclass
class PlacedOrder:
    order_id: str
    points_earned: int


def compute_order_totals(basket: Basket, quantity: int) -> OrderTotals:
    """
    Montants dérivés d'une commande.

    points_earned = floor(total_price * POINTS_PER_EURO), calculé en décimal
    pour qu'une erreur d'arrondi binaire ne fasse jamais perdre un point.
    """
    price = Decimal(str(basket.discounted_price)) * quantity
    points = (price * POINTS_PER_EURO).to_integral_value(rounding=ROUND_FLOOR)
    return OrderTotals(
        total_price=float(price.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)),
        co2_saved=float(Decimal(str(basket.co2_saved)) * quantity),
        food_saved=float(Decimal(str(basket.food_saved)) * quantity),
        points_earned=int(points),
    )


class OrderService:
    """
    Orchestration d'un achat: validation, commande, points, badge, défis.
    """

    def __init__(self, session: Session, on_partial_failure: Optional[PartialFailureHook] = None):
        self.session = session
        self.orders = OrderRepository(session)
        self.profiles = ProfileRepository(session)
        self.baskets = BasketRepository(session)
        self.loyalty = LoyaltyRepository(session)
        self.on_partial_failure = on_partial_failure

    # =========================================================================
    # COMMANDE
    # =========================================================================

    def place_order(
        self,
        user_id: Optional[str],
        basket_id: str,
        quantity: int,
        pickup_method: str,
    ) -> PlacedOrder:
        """
        Enregistre un achat et met à jour la fidélité.

        Raises:
            Unauthenticated, BasketNotFound, InvalidQuantity, InvalidPickupMethod:
                avant toute écriture.
            OrderWriteFailed: la commande n'a pas été créée.
            PointsUpdateFailed, BadgeAwardFailed, ChallengeUpdateFailed:
                la commande existe, un effet reste à appliquer.
        """
        start = time.perf_counter()

        try:
            basket, method = self._validate(user_id, basket_id, quantity, pickup_method)
        except OrderError as e:
            logger.order_rejected(user_id, e)
            raise

        totals = compute_order_totals(basket, quantity)

        try:
            prior_orders = self.orders.count_confirmed(user_id)
            order = self.orders.create(
                user_id=user_id,
                basket_id=basket.id,
                quantity=quantity,
                total_price=totals.total_price,
                pickup_method=method.value,
                points_earned=totals.points_earned,
                co2_saved=totals.co2_saved,
                food_saved=totals.food_saved,
                status=OrderStatus.CONFIRMED.value,
                first_order=prior_orders == 0,
            )
            order_id = order.id
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Order insert failed: {e}", user_id=user_id, step="order", exc_info=False)
            raise OrderWriteFailed(str(e)) from e

        self.apply_effects(order_id)

        logger.order_placed(
            user_id=user_id,
            order_id=order_id,
            points_earned=totals.points_earned,
            duration_ms=(time.perf_counter() - start) * 1000,
        )
        return PlacedOrder(order_id=order_id, points_earned=totals.points_earned)

    def _validate(self, user_id, basket_id, quantity, pickup_method):
        if not user_id or self.profiles.get_points(user_id) is None:
            raise Unauthenticated()

        basket = self.baskets.get(basket_id)
        if basket is None:
            raise BasketNotFound(basket_id)

        # Stock lu à l'instant T: vérification indicative, le décrément est fait ailleurs
        if not isinstance(quantity, int) or isinstance(quantity, bool) or not 1 <= quantity <= basket.stock:
            raise InvalidQuantity(quantity, basket.stock)

        try:
            method = PickupMethod(pickup_method)
        except ValueError:
            raise InvalidPickupMethod(str(pickup_method))

        return basket, method

    # =========================================================================
    # EFFETS (rejouables)
    # =========================================================================

    def apply_effects(self, order_id: str) -> List[str]:
        """
        Applique les effets manquants d'une commande.

        Tous les effets sont tentés même si l'un échoue. Retourne les clés
        appliquées lors de cet appel.
        """
        order = self.orders.get(order_id)
        if order is None:
            raise OrderError(f"Order not found: {order_id}", step="effects", order_id=order_id)

        user_id = order.user_id
        points_earned = order.points_earned
        first_order = order.first_order

        applied: List[str] = []
        failures: Dict[str, Exception] = {}
        steps = (
            ("points", lambda: self._apply_points(order_id, user_id, points_earned)),
            ("badge", lambda: self._apply_first_order_badge(order_id, user_id, first_order)),
            ("challenges", lambda: self._apply_challenges(order_id, user_id)),
        )

        for step, run in steps:
            try:
                applied.extend(run())
            except (SQLAlchemyError, PostAnchorError) as e:
                self.session.rollback()
                logger.effect_failed(order_id, step, e)
                failures[step] = e

        if failures:
            failed_steps = list(failures)
            self._notify_partial_failure(order_id, failed_steps)
            first_step = failed_steps[0]
            first_error = failures[first_step]
            raise _STEP_ERRORS[first_step](
                str(first_error),
                order_id=order_id,
                failed_steps=failed_steps,
            ) from first_error

        try:
            self.orders.mark_effects_completed(order_id)
            self.session.commit()
        except SQLAlchemyError as e:
            # Effets appliqués; le balayage posera le marqueur
            self.session.rollback()
            logger.warning(
                f"Could not mark effects completed: {e}",
                order_id=order_id,
                error_type=type(e).__name__,
            )
        return applied

    def _run_effect(self, order_id: str, effect: str, apply: Callable[[], None]) -> bool:
        """
        Applique un effet une seule fois.

        Le registre et l'écriture partagent la transaction. Sur conflit
        d'unicité (exécution concurrente), on annule et on rejoue une fois:
        les vérifications d'existence voient alors la ligne concurrente.
        """
        for attempt in range(2):
            if self.orders.has_effect(order_id, effect):
                return False
            try:
                self.orders.record_effect(order_id, effect)
                apply()
                self.session.commit()
            except IntegrityError:
                self.session.rollback()
                if attempt:
                    raise
                continue
            logger.effect_applied(order_id, effect)
            return True
        return False

    def _apply_points(self, order_id: str, user_id: str, points_earned: int) -> List[str]:
        def apply():
            if not self.profiles.increment_points(user_id, points_earned):
                raise PointsUpdateFailed(f"Profile not found: {user_id}", order_id=order_id)

        return [POINTS_EFFECT] if self._run_effect(order_id, POINTS_EFFECT, apply) else []

    def _apply_first_order_badge(self, order_id: str, user_id: str, first_order: bool) -> List[str]:
        if not first_order:
            return []

        badge = self.loyalty.find_badge(FIRST_ORDER_BADGE_CODE, FIRST_ORDER_BADGE_NAME)
        if badge is None:
            logger.warning(
                "First order badge not configured",
                order_id=order_id,
                step="badge",
                badge_code=FIRST_ORDER_BADGE_CODE,
            )
            return []

        badge_id = badge.id
        effect = f"badge:{badge_id}"

        def apply():
            if self.loyalty.find_user_badge(user_id, badge_id) is None:
                self.loyalty.create_user_badge(user_id, badge_id)

        return [effect] if self._run_effect(order_id, effect, apply) else []

    def _apply_challenges(self, order_id: str, user_id: str) -> List[str]:
        """+1 sur chaque défi actif, quelle que soit la quantité commandée."""
        applied = []
        failed = []

        for challenge in self.loyalty.list_active_challenges():
            effect = f"challenge:{challenge.id}"

            def apply(challenge=challenge):
                now = utcnow()
                if not self.loyalty.increment_user_challenge(user_id, challenge, now):
                    self.loyalty.create_user_challenge(user_id, challenge, now)

            try:
                if self._run_effect(order_id, effect, apply):
                    applied.append(effect)
            except SQLAlchemyError as e:
                self.session.rollback()
                logger.effect_failed(order_id, effect, e)
                failed.append(effect)

        if failed:
            raise ChallengeUpdateFailed(
                f"{len(failed)} challenge update(s) failed: {', '.join(failed)}",
                order_id=order_id,
            )
        return applied

    def _notify_partial_failure(self, order_id: str, failed_steps: List[str]) -> None:
        logger.reconcile_requested(order_id, failed_steps)
        if self.on_partial_failure is None:
            return
        try:
            self.on_partial_failure(order_id, failed_steps)
        except Exception as e:
            # Le balayage périodique reprendra la commande
            logger.error(
                f"Reconciliation enqueue failed: {e}",
                order_id=order_id,
                error_type=type(e).__name__,
                exc_info=False,
            )

"""
Workflow de commande: validation, écriture, effets de fidélité.
"""
import pytest
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from app.core.exceptions import (
    Unauthenticated,
    BasketNotFound,
    InvalidQuantity,
    InvalidPickupMethod,
    OrderWriteFailed,
    PointsUpdateFailed,
    ChallengeUpdateFailed,
)
from app.models import Order, OrderEffect, UserBadge, UserChallenge, Challenge
from app.repositories.loyalty_repository import LoyaltyRepository
from app.repositories.profile_repository import ProfileRepository
from app.services.order_service import OrderService


def points_of(db, profile_id):
    return ProfileRepository(db).get_points(profile_id)


def user_challenge(db, user_id, challenge_id):
    db.expire_all()
    return LoyaltyRepository(db).find_user_challenge(user_id, challenge_id)


def db_down(*args, **kwargs):
    raise OperationalError("UPDATE", {}, Exception("connection lost"))


# =============================================================================
# COMMANDE NOMINALE
# =============================================================================

def test_place_order_credits_points(db, student, basket):
    placed = OrderService(db).place_order(student.id, basket.id, 3, "click_collect")

    assert placed.points_earned == 150
    assert points_of(db, student.id) == 150

    order = db.get(Order, placed.order_id)
    assert order.status == "confirmed"
    assert order.total_price == 15.0
    assert order.co2_saved == 7.5
    assert order.first_order is True
    assert order.effects_completed_at is not None


def test_points_accumulate_across_orders(db, student, basket):
    service = OrderService(db)
    service.place_order(student.id, basket.id, 1, "click_collect")
    service.place_order(student.id, basket.id, 2, "delivery")

    assert points_of(db, student.id) == 150


def test_stock_is_not_decremented(db, student, basket):
    OrderService(db).place_order(student.id, basket.id, 2, "click_collect")
    db.expire_all()
    assert basket.stock == 10


def test_quantity_equal_to_stock_is_accepted(db, student, basket):
    placed = OrderService(db).place_order(student.id, basket.id, 10, "click_collect")
    assert placed.points_earned == 500


# =============================================================================
# BADGE PREMIÈRE COMMANDE
# =============================================================================

def test_first_order_badge_granted_once(db, student, basket, first_order_badge):
    service = OrderService(db)
    first = service.place_order(student.id, basket.id, 1, "click_collect")
    second = service.place_order(student.id, basket.id, 1, "click_collect")

    badges = db.query(UserBadge).filter(UserBadge.user_id == student.id).all()
    assert len(badges) == 1
    assert badges[0].badge_id == first_order_badge.id
    assert db.get(Order, first.order_id).first_order is True
    assert db.get(Order, second.order_id).first_order is False


def test_badge_found_by_name_when_code_differs(db, student, basket):
    from app.models import Badge

    badge = Badge(code="legacy_first", name="Premier Pas")
    db.add(badge)
    db.commit()

    OrderService(db).place_order(student.id, basket.id, 1, "click_collect")

    assert LoyaltyRepository(db).earned_badge_ids(student.id) == {badge.id}


def test_missing_badge_does_not_block_order(db, student, basket):
    placed = OrderService(db).place_order(student.id, basket.id, 1, "click_collect")

    assert db.query(UserBadge).count() == 0
    assert db.get(Order, placed.order_id).effects_completed_at is not None


def test_two_first_orders_yield_single_badge(db, student, basket, first_order_badge):
    # Deux commandes simultanées ont chacune vu 0 commande antérieure
    orders = [
        Order(
            user_id=student.id,
            basket_id=basket.id,
            quantity=1,
            total_price=5.0,
            status="confirmed",
            pickup_method="click_collect",
            points_earned=50,
            first_order=True,
        )
        for _ in range(2)
    ]
    db.add_all(orders)
    db.commit()

    service = OrderService(db)
    for order in orders:
        service.apply_effects(order.id)

    assert db.query(UserBadge).filter(UserBadge.user_id == student.id).count() == 1
    assert points_of(db, student.id) == 100



def test_concurrent_badge_insert_retries_and_keeps_single_row(db, student, basket, first_order_badge):
    service = OrderService(db)
    service.place_order(student.id, basket.id, 1, "click_collect")

    # Seconde commande qui a lu 0 commande antérieure avant le commit de la première
    late = Order(
        user_id=student.id,
        basket_id=basket.id,
        quantity=1,
        total_price=5.0,
        status="confirmed",
        pickup_method="click_collect",
        points_earned=50,
        first_order=True,
    )
    db.add(late)
    db.commit()

    real_find = service.loyalty.find_user_badge
    stale_reads = {"left": 1}

    def find_user_badge(user_id, badge_id):
        if stale_reads["left"]:
            stale_reads["left"] -= 1
            return None
        return real_find(user_id, badge_id)

    service.loyalty.find_user_badge = find_user_badge
    applied = service.apply_effects(late.id)

    assert stale_reads["left"] == 0
    assert f"badge:{first_order_badge.id}" in applied
    assert db.query(UserBadge).filter(UserBadge.user_id == student.id).count() == 1
    assert db.get(Order, late.id).effects_completed_at is not None


# =============================================================================
# DÉFIS
# =============================================================================

def test_challenge_completes_at_goal_and_stays_completed(db, student, basket, weekly_challenge):
    service = OrderService(db)
    for _ in range(2):
        service.place_order(student.id, basket.id, 1, "click_collect")

    uc = user_challenge(db, student.id, weekly_challenge.id)
    assert uc.progress == 2
    assert uc.completed is False
    assert uc.completed_at is None

    service.place_order(student.id, basket.id, 1, "click_collect")
    uc = user_challenge(db, student.id, weekly_challenge.id)
    assert uc.progress == 3
    assert uc.completed is True
    completed_at = uc.completed_at
    assert completed_at is not None

    service.place_order(student.id, basket.id, 1, "click_collect")
    uc = user_challenge(db, student.id, weekly_challenge.id)
    assert uc.progress == 4
    assert uc.completed is True
    assert uc.completed_at == completed_at


def test_challenge_progress_ignores_quantity(db, student, basket, weekly_challenge):
    OrderService(db).place_order(student.id, basket.id, 5, "click_collect")

    assert user_challenge(db, student.id, weekly_challenge.id).progress == 1


def test_single_step_challenge_completed_on_first_order(db, student, basket):
    challenge = Challenge(title="Premier panier", goal_value=1)
    db.add(challenge)
    db.commit()

    OrderService(db).place_order(student.id, basket.id, 1, "click_collect")

    uc = user_challenge(db, student.id, challenge.id)
    assert uc.completed is True
    assert uc.completed_at is not None


def test_completed_challenge_stays_completed_when_goal_raised(db, student, basket):
    challenge = Challenge(title="Premier panier", goal_value=1)
    db.add(challenge)
    db.commit()

    service = OrderService(db)
    service.place_order(student.id, basket.id, 1, "click_collect")
    completed_at = user_challenge(db, student.id, challenge.id).completed_at

    challenge.goal_value = 10
    db.commit()
    service.place_order(student.id, basket.id, 1, "click_collect")

    uc = user_challenge(db, student.id, challenge.id)
    assert uc.progress == 2
    assert uc.completed is True
    assert uc.completed_at == completed_at


def test_inactive_challenge_untouched(db, student, basket):
    challenge = Challenge(title="Ancien défi", goal_value=2, active=False)
    db.add(challenge)
    db.commit()

    OrderService(db).place_order(student.id, basket.id, 1, "click_collect")

    assert db.query(UserChallenge).count() == 0


# =============================================================================
# REJETS (aucune écriture)
# =============================================================================

@pytest.mark.parametrize("quantity", [0, -1, 11, True])
def test_invalid_quantity_rejected(db, student, basket, quantity):
    with pytest.raises(InvalidQuantity):
        OrderService(db).place_order(student.id, basket.id, quantity, "click_collect")

    assert db.query(Order).count() == 0
    assert points_of(db, student.id) == 0


def test_invalid_pickup_method_rejected(db, student, basket):
    with pytest.raises(InvalidPickupMethod) as excinfo:
        OrderService(db).place_order(student.id, basket.id, 1, "drone")

    assert excinfo.value.step == "validate"
    assert db.query(Order).count() == 0


def test_unknown_basket_rejected(db, student):
    with pytest.raises(BasketNotFound):
        OrderService(db).place_order(student.id, "missing-basket", 1, "click_collect")


@pytest.mark.parametrize("user_id", [None, "", "unknown-profile"])
def test_unauthenticated_rejected(db, basket, user_id):
    with pytest.raises(Unauthenticated):
        OrderService(db).place_order(user_id, basket.id, 1, "click_collect")

    assert db.query(Order).count() == 0


def test_order_write_failure_has_no_effects(db, student, basket, first_order_badge, weekly_challenge):
    hook_calls = []
    service = OrderService(db, on_partial_failure=lambda *args: hook_calls.append(args))

    def refuse(**fields):
        raise SQLAlchemyError("insert refused")

    service.orders.create = refuse

    with pytest.raises(OrderWriteFailed) as excinfo:
        service.place_order(student.id, basket.id, 1, "click_collect")

    assert excinfo.value.retryable is True
    assert db.query(Order).count() == 0
    assert db.query(OrderEffect).count() == 0
    assert db.query(UserBadge).count() == 0
    assert db.query(UserChallenge).count() == 0
    assert points_of(db, student.id) == 0
    assert hook_calls == []



def test_prior_order_count_failure_maps_to_write_failure(db, student, basket):
    service = OrderService(db)
    service.orders.count_confirmed = db_down

    with pytest.raises(OrderWriteFailed) as excinfo:
        service.place_order(student.id, basket.id, 1, "click_collect")

    assert excinfo.value.step == "order"
    assert db.query(Order).count() == 0


# =============================================================================
# ÉCHECS APRÈS ÉCRITURE
# =============================================================================

def test_points_failure_keeps_order_and_applies_other_effects(
    db, student, basket, first_order_badge, weekly_challenge
):
    hook_calls = []
    service = OrderService(db, on_partial_failure=lambda *args: hook_calls.append(args))
    service.profiles.increment_points = db_down

    with pytest.raises(PointsUpdateFailed) as excinfo:
        service.place_order(student.id, basket.id, 2, "click_collect")

    order_id = excinfo.value.order_id
    assert order_id is not None
    assert excinfo.value.failed_steps == ["points"]
    assert hook_calls == [(order_id, ["points"])]

    order = db.get(Order, order_id)
    assert order.status == "confirmed"
    assert order.effects_completed_at is None
    assert points_of(db, student.id) == 0
    assert db.query(UserBadge).count() == 1
    assert user_challenge(db, student.id, weekly_challenge.id).progress == 1


def test_challenge_failure_reports_step(db, student, basket, weekly_challenge, monkeypatch):
    monkeypatch.setattr(LoyaltyRepository, "increment_user_challenge", db_down)
    monkeypatch.setattr(LoyaltyRepository, "create_user_challenge", db_down)

    with pytest.raises(ChallengeUpdateFailed) as excinfo:
        OrderService(db).place_order(student.id, basket.id, 1, "click_collect")

    assert excinfo.value.failed_steps == ["challenges"]
    assert points_of(db, student.id) == 50


def test_hook_failure_does_not_mask_step_error(db, student, basket):
    def broken_hook(order_id, failed_steps):
        raise ConnectionError("redis unavailable")

    service = OrderService(db, on_partial_failure=broken_hook)
    service.profiles.increment_points = db_down

    with pytest.raises(PointsUpdateFailed):
        service.place_order(student.id, basket.id, 1, "click_collect")


def test_apply_effects_replays_only_missing_effects(db, student, basket, first_order_badge, weekly_challenge):
    service = OrderService(db)
    original_increment = service.profiles.increment_points
    service.profiles.increment_points = db_down

    with pytest.raises(PointsUpdateFailed) as excinfo:
        service.place_order(student.id, basket.id, 1, "click_collect")
    order_id = excinfo.value.order_id

    service.profiles.increment_points = original_increment
    applied = service.apply_effects(order_id)

    assert applied == ["points"]
    assert points_of(db, student.id) == 50
    assert user_challenge(db, student.id, weekly_challenge.id).progress == 1
    assert db.get(Order, order_id).effects_completed_at is not None


def test_apply_effects_is_idempotent(db, student, basket, first_order_badge, weekly_challenge):
    service = OrderService(db)
    placed = service.place_order(student.id, basket.id, 1, "click_collect")

    assert service.apply_effects(placed.order_id) == []
    assert service.apply_effects(placed.order_id) == []

    assert points_of(db, student.id) == 50
    assert db.query(UserBadge).count() == 1
    assert user_challenge(db, student.id, weekly_challenge.id).progress == 1
    assert sorted(service.orders.list_effects(placed.order_id)) == sorted([
        "points",
        f"badge:{first_order_badge.id}",
        f"challenge:{weekly_challenge.id}",
    ])

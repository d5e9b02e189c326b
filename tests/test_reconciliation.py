"""
Jobs de réconciliation: rejeu des effets manquants après un échec partiel.
"""
import pytest
from sqlalchemy.exc import OperationalError

from app import jobs_loyalty
from app.core.exceptions import ChallengeUpdateFailed, PointsUpdateFailed
from app.models import Order
from app.repositories.loyalty_repository import LoyaltyRepository
from app.repositories.profile_repository import ProfileRepository
from app.services.order_service import OrderService


def db_down(*args, **kwargs):
    raise OperationalError("UPDATE", {}, Exception("connection lost"))


@pytest.fixture
def partial_order(db, student, basket, weekly_challenge, monkeypatch):
    """Commande écrite dont la progression des défis a échoué."""
    with monkeypatch.context() as m:
        m.setattr(LoyaltyRepository, "increment_user_challenge", db_down)
        m.setattr(LoyaltyRepository, "create_user_challenge", db_down)
        with pytest.raises(ChallengeUpdateFailed) as excinfo:
            OrderService(db).place_order(student.id, basket.id, 2, "click_collect")
    return excinfo.value.order_id


def test_reconcile_order_applies_missing_challenge(db, student, weekly_challenge, partial_order):
    result = jobs_loyalty.reconcile_order(partial_order, base_delay=0)

    assert result["status"] == "reconciled"
    assert result["applied"] == [f"challenge:{weekly_challenge.id}"]

    db.expire_all()
    assert ProfileRepository(db).get_points(student.id) == 100
    assert LoyaltyRepository(db).find_user_challenge(student.id, weekly_challenge.id).progress == 1
    assert db.get(Order, partial_order).effects_completed_at is not None


def test_reconcile_order_twice_is_noop(db, student, partial_order):
    jobs_loyalty.reconcile_order(partial_order, base_delay=0)
    result = jobs_loyalty.reconcile_order(partial_order, base_delay=0)

    assert result["applied"] == []
    assert ProfileRepository(db).get_points(student.id) == 100


def test_reconcile_unknown_order(session_factory):
    result = jobs_loyalty.reconcile_order("missing-order", base_delay=0)
    assert result == {"order_id": "missing-order", "status": "not_found"}


def test_sweep_picks_up_incomplete_orders(db, student, basket, partial_order):
    complete = OrderService(db).place_order(student.id, basket.id, 1, "click_collect")

    results = jobs_loyalty.reconcile_pending_orders(older_than_minutes=0, base_delay=0)

    assert results == {"checked": 1, "reconciled": 1, "failed": 0}
    db.expire_all()
    assert db.get(Order, partial_order).effects_completed_at is not None
    assert db.get(Order, complete.order_id).effects_completed_at is not None


def test_sweep_ignores_recent_orders(partial_order):
    results = jobs_loyalty.reconcile_pending_orders(older_than_minutes=60, base_delay=0)
    assert results["checked"] == 0


def test_sweep_counts_orders_still_failing(db, student, basket, monkeypatch):
    service = OrderService(db)
    service.profiles.increment_points = db_down
    with pytest.raises(PointsUpdateFailed):
        service.place_order(student.id, basket.id, 1, "click_collect")

    monkeypatch.setattr(ProfileRepository, "increment_points", db_down)
    results = jobs_loyalty.reconcile_pending_orders(older_than_minutes=0, retries=1, base_delay=0)

    assert results == {"checked": 1, "reconciled": 0, "failed": 1}
    assert ProfileRepository(db).get_points(student.id) == 0


def test_sweep_continues_after_database_error(db, student, basket, monkeypatch):
    with monkeypatch.context() as m:
        m.setattr(ProfileRepository, "increment_points", db_down)
        order_ids = []
        for _ in range(2):
            with pytest.raises(PointsUpdateFailed) as excinfo:
                OrderService(db).place_order(student.id, basket.id, 1, "click_collect")
            order_ids.append(excinfo.value.order_id)

    real_apply = OrderService.apply_effects
    seen = []

    def apply_effects_once_down(self, order_id):
        seen.append(order_id)
        if len(seen) == 1:
            raise OperationalError("SELECT", {}, Exception("connection lost"))
        return real_apply(self, order_id)

    monkeypatch.setattr(OrderService, "apply_effects", apply_effects_once_down)

    results = jobs_loyalty.reconcile_pending_orders(older_than_minutes=0, retries=0, base_delay=0)

    assert results == {"checked": 2, "reconciled": 1, "failed": 1}
    assert sorted(seen) == sorted(order_ids)
    db.expire_all()
    assert db.get(Order, seen[0]).effects_completed_at is None
    assert db.get(Order, seen[1]).effects_completed_at is not None
    assert ProfileRepository(db).get_points(student.id) == 50

import pytest

from app.models.basket import Basket
from app.services.order_service import compute_order_totals


def make_basket(price, co2=1.0, food=2.0):
    return Basket(
        title="Panier",
        category="alimentaire",
        original_price=price * 2,
        discounted_price=price,
        stock=5,
        store_name="Monoprix",
        co2_saved=co2,
        food_saved=food,
    )


def test_totals_for_three_baskets():
    totals = compute_order_totals(make_basket(5.00, co2=2.5, food=3.0), 3)

    assert totals.total_price == 15.0
    assert totals.points_earned == 150
    assert totals.co2_saved == 7.5
    assert totals.food_saved == 9.0


@pytest.mark.parametrize("price,quantity,expected_points", [
    (4.99, 1, 49),
    (0.1, 3, 3),
    (3.33, 3, 99),
    (0.05, 1, 0),
])
def test_points_are_floored_on_exact_amount(price, quantity, expected_points):
    assert compute_order_totals(make_basket(price), quantity).points_earned == expected_points


def test_total_price_rounded_to_cents():
    assert compute_order_totals(make_basket(3.33), 3).total_price == 9.99

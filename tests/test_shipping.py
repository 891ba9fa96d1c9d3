import pytest

from factories import add_cart_line
from storefront import shipping
from storefront.errors import InvalidInput
from storefront.models import SiteSetting


def test_empty_cart_progress():
    result = shipping.progress(0, 100)
    assert result.percentage == 0
    assert result.left_money == 100
    assert result.left_percentage == 100
    assert result.complete is False


def test_threshold_reached():
    result = shipping.progress(120, 100)
    assert result.percentage == 100
    assert result.left_money == 0
    assert result.left_percentage == 0
    assert result.complete is True


def test_partial_progress():
    result = shipping.progress(40, 200)
    assert result.percentage == pytest.approx(20)
    assert result.left_percentage == pytest.approx(80)
    assert result.left_money == 160
    assert not result.complete


def test_exact_threshold_is_complete():
    assert shipping.progress(100, 100).complete


@pytest.mark.parametrize("subtotal,threshold", [(10, 0), (10, -5), (-1, 100)])
def test_rejects_bad_inputs(subtotal, threshold):
    with pytest.raises(InvalidInput):
        shipping.progress(subtotal, threshold)


def test_no_cart_uses_default_threshold(db, seed):
    result = shipping.cart_progress(db, seed.alice)
    assert result.threshold == 100
    assert result.left_money == 100
    assert shipping.cart_progress(db, None).percentage == 0


def test_cart_progress_with_configured_threshold(db, seed):
    shipping.set_shipping_threshold(db, 200)
    add_cart_line(db, seed.alice, seed.runner, 2)  # 2 x 50
    result = shipping.cart_progress(db, seed.alice)
    assert result.threshold == 200
    assert result.left_money == 100
    assert result.percentage == pytest.approx(50)


def test_threshold_is_updated_in_place(db, seed):
    shipping.set_shipping_threshold(db, 150)
    shipping.set_shipping_threshold(db, 75.5)
    assert shipping.shipping_threshold(db) == 75.5
    assert db.query(SiteSetting).count() == 1
    with pytest.raises(InvalidInput):
        shipping.set_shipping_threshold(db, 0)

# storefront/shipping.py
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from . import pricing
from .config import DEFAULT_SHIPPING_THRESHOLD
from .db import store_guard
from .errors import InvalidInput
from .models import Cart, User
from .schemas import ShippingProgress
from .site_settings import SHIPPING_THRESHOLD, get_setting, set_setting


def progress(cart_subtotal: float, threshold: float) -> ShippingProgress:
    """Progress of a cart subtotal towards the free-shipping threshold."""
    if threshold <= 0:
        raise InvalidInput("Shipping threshold must be positive")
    if cart_subtotal < 0:
        raise InvalidInput("Cart subtotal cannot be negative")

    left_money = max(threshold - cart_subtotal, 0)
    left_percentage = (left_money / threshold) * 100
    return ShippingProgress(
        percentage=min(100 - left_percentage, 100),
        left_percentage=left_percentage,
        left_money=left_money,
        complete=cart_subtotal >= threshold,
        threshold=threshold,
    )


def shipping_threshold(db: Session) -> float:
    raw = get_setting(db, SHIPPING_THRESHOLD)
    return float(raw) if raw is not None else DEFAULT_SHIPPING_THRESHOLD


def set_shipping_threshold(db: Session, amount: float) -> float:
    if amount <= 0:
        raise InvalidInput("Shipping threshold must be positive")
    set_setting(db, SHIPPING_THRESHOLD, repr(float(amount)))
    return float(amount)


def cart_progress(db: Session, viewer: Optional[User]) -> ShippingProgress:
    threshold = shipping_threshold(db)
    if viewer is None:
        return progress(0, threshold)

    with store_guard("load cart for shipping progress"):
        cart = db.execute(select(Cart).where(Cart.user_id == viewer.id)).scalar_one_or_none()
        subtotal = pricing.cart_subtotal(cart.items) if cart is not None else 0
    return progress(subtotal, threshold)

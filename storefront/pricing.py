# storefront/pricing.py
"""
Cart pricing engine.

Every line mutation goes through ``_reprice`` so the cached line total is
always ``quantity * effective_unit_price(product)`` for the product's current
price. Increment/decrement take the absolute target quantity callers already
computed; ``add_or_update_line`` is the only delta-based entry point.
"""
import logging
from datetime import datetime, timezone
from typing import Iterable, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .db import store_guard
from .errors import CouponInvalid, Forbidden, InvalidQuantity, NotFound
from .models import Cart, CartItem, Coupon, Product, User
from .schemas import CartLineOut, CartOut, CouponOut, CouponResult

logger = logging.getLogger(__name__)


def effective_unit_price(product: Product) -> float:
    """Offer price when present and non-zero, otherwise the unit price."""
    return product.offer if product.offer else product.price


def cart_subtotal(lines: Iterable[CartItem]) -> float:
    return sum(line.quantity * effective_unit_price(line.product) for line in lines)


def _reprice(line: CartItem, product: Product) -> CartItem:
    line.total_price = line.quantity * effective_unit_price(product)
    return line


def line_out(line: CartItem) -> CartLineOut:
    unit_price = effective_unit_price(line.product)
    return CartLineOut(
        product_id=line.product_id,
        name=line.product.name,
        quantity=line.quantity,
        unit_price=unit_price,
        total_price=line.quantity * unit_price,
    )


def _require_viewer(viewer: Optional[User]) -> User:
    if viewer is None:
        raise Forbidden("Must be logged in to modify cart")
    return viewer


def _find_cart(db: Session, user_id: str) -> Optional[Cart]:
    return db.execute(select(Cart).where(Cart.user_id == user_id)).scalar_one_or_none()


def _find_line(db: Session, cart: Cart, product_id: str) -> Optional[CartItem]:
    return db.execute(
        select(CartItem).where(CartItem.cart_id == cart.id, CartItem.product_id == product_id)
    ).scalar_one_or_none()


def _get_or_create_cart(db: Session, user_id: str) -> Cart:
    cart = _find_cart(db, user_id)
    if cart is not None:
        return cart
    # first write of the transaction, so a rollback discards nothing else
    cart = Cart(user_id=user_id)
    db.add(cart)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        logger.info(f"Cart for user {user_id} was created concurrently, reusing it")
        cart = _find_cart(db, user_id)
        if cart is None:
            raise
    return cart


def _get_product(db: Session, product_id: str) -> Product:
    product = db.get(Product, product_id)
    if product is None:
        raise NotFound("Product not found")
    return product


def _existing_line(db: Session, user_id: str, product_id: str) -> CartItem:
    cart = _find_cart(db, user_id)
    if cart is None:
        raise NotFound("Cart not found")
    line = _find_line(db, cart, product_id)
    if line is None:
        raise NotFound("Item not found in cart")
    return line


def add_or_update_line(db: Session, viewer: Optional[User], product_id: str,
                       quantity_delta: int = 1) -> CartItem:
    user = _require_viewer(viewer)
    if quantity_delta < 1:
        raise InvalidQuantity("Quantity to add must be at least 1")

    with store_guard("add to cart"):
        product = _get_product(db, product_id)

        cart = _get_or_create_cart(db, user.id)
        line = _find_line(db, cart, product_id)
        if line is None:
            line = CartItem(cart_id=cart.id, product_id=product.id, quantity=quantity_delta)
            db.add(line)
        else:
            line.quantity += quantity_delta
        _reprice(line, product)
        db.commit()
        db.refresh(line)

    logger.info(f"Cart line {product_id} now at quantity {line.quantity} for user {user.id}")
    return line


def _set_quantity(db: Session, viewer: Optional[User], product_id: str, quantity: int,
                  decrement: bool) -> CartItem:
    user = _require_viewer(viewer)
    if quantity < 1:
        raise InvalidQuantity("Quantity must be at least 1")

    with store_guard("update cart quantity"):
        line = _existing_line(db, user.id, product_id)
        if decrement and line.quantity == 1:
            raise InvalidQuantity("Can't decrement quantity below 1")
        if decrement and quantity >= line.quantity:
            raise InvalidQuantity(f"Decrement target must be below the current quantity {line.quantity}")
        product = _get_product(db, product_id)

        line.quantity = quantity
        _reprice(line, product)
        db.commit()
        db.refresh(line)
    return line


def increment_line(db: Session, viewer: Optional[User], product_id: str, quantity: int) -> CartItem:
    return _set_quantity(db, viewer, product_id, quantity, decrement=False)


def decrement_line(db: Session, viewer: Optional[User], product_id: str, quantity: int) -> CartItem:
    return _set_quantity(db, viewer, product_id, quantity, decrement=True)


def remove_line(db: Session, viewer: Optional[User], product_id: str) -> None:
    user = _require_viewer(viewer)
    with store_guard("remove cart line"):
        line = _existing_line(db, user.id, product_id)
        db.delete(line)
        db.commit()


def clear_cart(db: Session, viewer: Optional[User]) -> None:
    user = _require_viewer(viewer)
    with store_guard("clear cart"):
        cart = _find_cart(db, user.id)
        if cart is None:
            raise NotFound("Cart not found")
        db.execute(delete(CartItem).where(CartItem.cart_id == cart.id))
        db.commit()


def get_cart(db: Session, viewer: Optional[User]) -> CartOut:
    if viewer is None:
        return CartOut()

    with store_guard("load cart"):
        cart = _find_cart(db, viewer.id)
        if cart is None:
            return CartOut()
        lines = sorted(cart.items, key=lambda line: line.product.name, reverse=True)

    return CartOut(lines=[line_out(line) for line in lines], subtotal=round(cart_subtotal(lines), 2))


def purge_expired_coupons(db: Session, user_id: str, now: Optional[datetime] = None) -> int:
    """Delete the user's coupons whose expiration has passed; other users are untouched."""
    now = now or datetime.now(timezone.utc)
    result = db.execute(
        delete(Coupon).where(Coupon.user_id == user_id, Coupon.expiration_date < now)
    )
    db.commit()
    return result.rowcount or 0


def current_coupon(db: Session, viewer: Optional[User], now: Optional[datetime] = None) -> Optional[CouponOut]:
    user = _require_viewer(viewer)
    now = now or datetime.now(timezone.utc)
    with store_guard("load coupons"):
        purge_expired_coupons(db, user.id, now)
        coupon = db.execute(
            select(Coupon)
            .where(Coupon.user_id == user.id, Coupon.is_active.is_(True))
            .order_by(Coupon.expiration_date)
            .limit(1)
        ).scalar_one_or_none()
    return CouponOut.model_validate(coupon) if coupon else None


def apply_coupon(db: Session, viewer: Optional[User], code: str,
                 now: Optional[datetime] = None) -> CouponResult:
    """
    Price the viewer's cart with a percentage coupon.

    The coupon is not consumed: it stays usable until it expires.
    """
    user = _require_viewer(viewer)
    now = now or datetime.now(timezone.utc)

    with store_guard("apply coupon"):
        purge_expired_coupons(db, user.id, now)
        coupon = db.execute(
            select(Coupon).where(
                Coupon.code == code,
                Coupon.user_id == user.id,
                Coupon.is_active.is_(True),
                Coupon.expiration_date > now,
            )
        ).scalar_one_or_none()
        if coupon is None:
            logger.warning(f"Rejected coupon code '{code}' for user {user.id}")
            raise CouponInvalid("No valid coupon found")

        cart = _find_cart(db, user.id)
        if cart is None:
            raise NotFound("Cart not found")
        subtotal = cart_subtotal(cart.items)

    discount_amount = subtotal * (coupon.discount_percentage / 100)
    return CouponResult(
        discount_percentage=coupon.discount_percentage,
        discount_amount=discount_amount,
        new_total=round(subtotal - discount_amount, 2),
    )

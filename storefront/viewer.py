# storefront/viewer.py
import logging
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from .db import store_guard
from .errors import Forbidden, NotFound
from .models import Cart, CartItem, Product, User, Wishlist, WishlistItem
from .schemas import CategoryOut, ProductCard, ProductImage, WishlistToggleOut

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ViewerContext:
    """What the current viewer already holds: cart quantities and wishlist ids."""

    cart_quantities: Dict[str, int] = field(default_factory=dict)
    wishlist: FrozenSet[str] = frozenset()

    @classmethod
    def anonymous(cls) -> "ViewerContext":
        return cls()


def load_viewer_context(db: Session, viewer: Optional[User]) -> ViewerContext:
    # Anonymous browsing never touches the cart/wishlist tables
    if viewer is None:
        return ViewerContext.anonymous()

    with store_guard("load viewer context"):
        cart_rows = db.execute(
            select(CartItem.product_id, CartItem.quantity)
            .join(Cart, Cart.id == CartItem.cart_id)
            .where(Cart.user_id == viewer.id)
        ).all()
        wishlist_rows = db.execute(
            select(WishlistItem.product_id)
            .join(Wishlist, Wishlist.id == WishlistItem.wishlist_id)
            .where(Wishlist.user_id == viewer.id)
        ).scalars().all()

    return ViewerContext(
        cart_quantities={pid: qty for pid, qty in cart_rows},
        wishlist=frozenset(wishlist_rows),
    )


def to_card(product: Product, card_cls=ProductCard, **extra) -> ProductCard:
    category = None
    if product.category is not None:
        category = CategoryOut(id=product.category.id, name=product.category.name, image=product.category.image)
    images = [ProductImage(**img) if isinstance(img, dict) else ProductImage(image=str(img))
              for img in (product.images or [])]
    return card_cls(
        id=product.id,
        name=product.name,
        description=product.description,
        price=product.price,
        offer=product.offer,
        category=category,
        is_featured=bool(product.is_featured),
        rate=product.rate or 0,
        sizes=list(product.sizes or []),
        images=images,
        created_at=product.created_at,
        **extra,
    )


def annotate(cards: Iterable[ProductCard], context: ViewerContext) -> List[ProductCard]:
    """Return copies of ``cards`` carrying inCart / cartQuantity / inWishlist."""
    out: List[ProductCard] = []
    for card in cards:
        qty = context.cart_quantities.get(card.id, 0)
        out.append(card.model_copy(update={
            "in_cart": card.id in context.cart_quantities,
            "cart_quantity": qty,
            "in_wishlist": card.id in context.wishlist,
        }))
    return out


def toggle_wishlist(db: Session, viewer: Optional[User], product_id: str) -> WishlistToggleOut:
    if viewer is None:
        raise Forbidden("Must be logged in to use the wishlist")

    with store_guard("toggle wishlist"):
        if db.get(Product, product_id) is None:
            raise NotFound("Product not found")

        wishlist = db.execute(select(Wishlist).where(Wishlist.user_id == viewer.id)).scalar_one_or_none()
        if wishlist is None:
            wishlist = Wishlist(user_id=viewer.id)
            db.add(wishlist)
            db.flush()

        item = db.execute(
            select(WishlistItem).where(
                WishlistItem.wishlist_id == wishlist.id,
                WishlistItem.product_id == product_id,
            )
        ).scalar_one_or_none()

        if item is None:
            db.add(WishlistItem(wishlist_id=wishlist.id, product_id=product_id))
            in_wishlist = True
        else:
            db.delete(item)
            in_wishlist = False
        db.commit()

    return WishlistToggleOut(product_id=product_id, in_wishlist=in_wishlist)

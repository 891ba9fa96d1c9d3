# storefront/ratings.py
import logging
import math
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .db import store_guard
from .errors import Forbidden, InvalidInput, NotFound
from .models import Product, Rating, User
from .schemas import RatingOut, RatingsOut

logger = logging.getLogger(__name__)


def add_rating(db: Session, viewer: Optional[User], product_id: str, rate: int, comment: str = "") -> RatingOut:
    """
    Store the viewer's rating and refresh the product's rounded average.
    Both writes share one transaction.
    """
    if viewer is None:
        raise Forbidden("User not authenticated.")
    if rate < 1 or rate > 5:
        raise InvalidInput("Rating must be between 1 and 5.")

    with store_guard("add rating"):
        product = db.get(Product, product_id)
        if product is None:
            raise NotFound("Product not found")
        existing = db.execute(
            select(Rating.id).where(Rating.user_id == viewer.id, Rating.product_id == product_id)
        ).scalar_one_or_none()
        if existing is not None:
            raise InvalidInput("You have already rated this product.")

        rating = Rating(user_id=viewer.id, product_id=product_id, rating=rate, comment=comment)
        db.add(rating)
        try:
            db.flush()
        except IntegrityError as e:
            # a concurrent request stored this user's rating first
            db.rollback()
            raise InvalidInput("You have already rated this product.") from e

        avg = db.scalar(select(func.avg(Rating.rating)).where(Rating.product_id == product_id))
        product.rate = int(math.floor((avg or 0) + 0.5))  # half-up
        db.commit()
        db.refresh(rating)

    return RatingOut(id=rating.id, rating=rating.rating, comment=rating.comment,
                     author="You", created_at=rating.created_at)


def list_ratings(db: Session, product_id: str, viewer: Optional[User] = None) -> RatingsOut:
    with store_guard("list ratings"):
        rows = db.execute(
            select(Rating).where(Rating.product_id == product_id).order_by(Rating.created_at.desc())
        ).scalars().all()

    rates = []
    rated_by_viewer = False
    for r in rows:
        mine = viewer is not None and r.user_id == viewer.id
        rated_by_viewer = rated_by_viewer or mine
        rates.append(RatingOut(
            id=r.id,
            rating=r.rating,
            comment=r.comment,
            author="You" if mine else (r.user.name if r.user else None),
            created_at=r.created_at,
        ))
    return RatingsOut(rates=rates, rated_by_viewer=rated_by_viewer)

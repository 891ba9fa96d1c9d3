# storefront/catalog.py
"""
Catalog read path: filter request -> query spec -> page window -> viewer annotation.

``build_query`` is pure and only describes the query; the ``*_products``
functions run it against the store and annotate the result for the viewer.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from .config import MAX_PAGE_SIZE
from .db import store_guard
from .errors import InvalidInput, NotFound
from .models import Category, OrderItem, Product, Rating, User
from .pagination import paginate
from .schemas import (
    SORT_KEYS, AdminProductPage, AdminProductRow, BestSellerCard, CatalogPage, CategoryOut,
    FilterRequest, ProductCard,
)
from .viewer import annotate, load_viewer_context, to_card

logger = logging.getLogger(__name__)

NEW_PRODUCTS_LIMIT = 8
RELATED_PRODUCTS_LIMIT = 4
SEARCH_LIMIT = 12
BEST_SELLERS_LIMIT = 10

# NOTE: "popularity" orders by oldest first, not by sales. Kept as the storefront
# has always behaved; switch to the best-seller aggregation once confirmed.
SORT_ORDER = {
    None: (Product.created_at.desc(),),
    "latest": (Product.created_at.desc(),),
    "popularity": (Product.created_at.asc(),),
    "topOffer": (Product.offer.asc(),),
    "priceLow": (Product.price.asc(),),
    "priceHigh": (Product.price.desc(),),
    "rating": (),  # ordered by the rating aggregation
}


@dataclass
class QuerySpec:
    where: List[Any] = field(default_factory=list)
    order_by: List[Any] = field(default_factory=list)
    page: int = 1
    limit: int = 6
    by_rating: bool = False


def build_query(request: FilterRequest) -> QuerySpec:
    # a blank sort key from a cleared form field means the default order
    sort_by = (request.sort_by or "").strip() or None
    if sort_by is not None and sort_by not in SORT_KEYS:
        raise InvalidInput(f"Unknown sort key: {sort_by}")
    if request.page_size <= 0 or request.page_size > MAX_PAGE_SIZE:
        raise InvalidInput(f"Page size must be between 1 and {MAX_PAGE_SIZE}")

    where = []
    names = sorted({c.strip().lower() for c in request.categories if c and c.strip()})
    if names:
        where.append(Product.category.has(Category.name.in_(names)))

    if request.price_range is not None:
        low, high = request.price_range
        if low < 0 or high < 0 or low > high:
            raise InvalidInput("Malformed price range")
        where.append(Product.price.between(low, high))

    # id as the last key keeps windows stable between requests
    order_by = list(SORT_ORDER[sort_by]) + [Product.id.asc()]

    return QuerySpec(
        where=where,
        order_by=order_by,
        page=request.page,
        limit=request.page_size,
        by_rating=sort_by == "rating",
    )


def _rating_window(db: Session, spec: QuerySpec, offset: int) -> List[Product]:
    avg_rating = func.avg(Rating.rating)
    ranked = db.execute(
        select(Product.id, avg_rating.label("avg_rating"))
        .outerjoin(Rating, Rating.product_id == Product.id)
        .where(*spec.where)
        .group_by(Product.id, Product.created_at)
        .order_by(avg_rating.is_(None), avg_rating.desc(), Product.created_at.desc(), Product.id)
        .offset(offset)
        .limit(spec.limit)
    ).all()
    ids = [row.id for row in ranked]
    if not ids:
        return []

    fetched = {p.id: p for p in db.execute(select(Product).where(Product.id.in_(ids))).scalars()}
    # The aggregation order is authoritative, not the fetch order
    return [fetched[pid] for pid in ids if pid in fetched]


def filter_products(db: Session, request: FilterRequest, viewer: Optional[User] = None) -> CatalogPage:
    spec = build_query(request)

    with store_guard("filter products"):
        total = db.scalar(select(func.count(Product.id)).where(*spec.where)) or 0
        pages = paginate(total, spec.page, spec.limit)
        if spec.by_rating:
            products = _rating_window(db, spec, pages.offset)
        else:
            products = db.execute(
                select(Product)
                .where(*spec.where)
                .order_by(*spec.order_by)
                .offset(pages.offset)
                .limit(spec.limit)
            ).scalars().all()

    context = load_viewer_context(db, viewer)
    return CatalogPage(
        products=annotate([to_card(p) for p in products], context),
        current_page=pages.current_page,
        total_pages=pages.total_pages,
        total_products=total,
    )


def _annotated(db: Session, products, viewer: Optional[User]) -> List[ProductCard]:
    return annotate([to_card(p) for p in products], load_viewer_context(db, viewer))


def list_categories(db: Session) -> List[CategoryOut]:
    with store_guard("list categories"):
        rows = db.execute(select(Category).order_by(Category.name)).scalars().all()
    return [CategoryOut.model_validate(c) for c in rows]


def _like_pattern(q: str) -> str:
    """Substring pattern where the user's ``%`` and ``_`` match literally."""
    escaped = q.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def search_products(db: Session, q: str, viewer: Optional[User] = None) -> List[ProductCard]:
    q = (q or "").strip()
    if not q:
        return []
    pattern = _like_pattern(q)
    with store_guard("search products"):
        products = db.execute(
            select(Product)
            .where(
                Product.name.ilike(pattern, escape="\\")
                | Product.description.ilike(pattern, escape="\\")
                | Product.category.has(Category.name.ilike(pattern, escape="\\"))
            )
            .order_by(Product.created_at.desc(), Product.id)
            .limit(SEARCH_LIMIT)
        ).scalars().all()
    return _annotated(db, products, viewer)


def new_products(db: Session, viewer: Optional[User] = None) -> List[ProductCard]:
    with store_guard("fetch new products"):
        products = db.execute(
            select(Product).order_by(Product.created_at.desc(), Product.id).limit(NEW_PRODUCTS_LIMIT)
        ).scalars().all()
    return _annotated(db, products, viewer)


def related_products(db: Session, category_name: str, exclude_id: str,
                     viewer: Optional[User] = None) -> List[ProductCard]:
    with store_guard("fetch related products"):
        category = db.execute(
            select(Category).where(Category.name == category_name.strip().lower())
        ).scalar_one_or_none()
        if category is None:
            return []
        products = db.execute(
            select(Product)
            .where(Product.category_id == category.id, Product.id != exclude_id)
            .order_by(Product.created_at.desc(), Product.id)
            .limit(RELATED_PRODUCTS_LIMIT)
        ).scalars().all()
    return _annotated(db, products, viewer)


def featured_products(db: Session, viewer: Optional[User] = None) -> List[ProductCard]:
    with store_guard("fetch featured products"):
        products = db.execute(
            select(Product).where(Product.is_featured.is_(True)).order_by(Product.created_at.desc())
        ).scalars().all()
    return _annotated(db, products, viewer)


def offer_products(db: Session, viewer: Optional[User] = None) -> List[ProductCard]:
    with store_guard("fetch offer products"):
        products = db.execute(
            select(Product).where(Product.offer > 0).order_by(Product.offer.asc(), Product.id)
        ).scalars().all()
    return _annotated(db, products, viewer)


def _best_seller_totals(db: Session, limit: int = BEST_SELLERS_LIMIT):
    sold = func.sum(OrderItem.quantity)
    return db.execute(
        select(OrderItem.product_id, sold.label("sold"))
        .group_by(OrderItem.product_id)
        .order_by(sold.desc(), OrderItem.product_id)
        .limit(limit)
    ).all()


def best_sellers(db: Session, viewer: Optional[User] = None) -> List[BestSellerCard]:
    with store_guard("fetch best sellers"):
        totals = _best_seller_totals(db)
        ids = [row.product_id for row in totals]
        fetched = {p.id: p for p in db.execute(select(Product).where(Product.id.in_(ids))).scalars()} if ids else {}

    cards = [to_card(fetched[row.product_id], BestSellerCard, sold=int(row.sold or 0))
             for row in totals if row.product_id in fetched]
    return annotate(cards, load_viewer_context(db, viewer))


def admin_products(db: Session, page: int, page_size: int) -> AdminProductPage:
    """Back-office listing; the page number always comes from the request."""
    if page_size <= 0 or page_size > MAX_PAGE_SIZE:
        raise InvalidInput(f"Page size must be between 1 and {MAX_PAGE_SIZE}")
    with store_guard("list products for admin"):
        total = db.scalar(select(func.count(Product.id))) or 0
        pages = paginate(total, page, page_size)
        best_ids = {row.product_id for row in _best_seller_totals(db)}
        products = db.execute(
            select(Product)
            .order_by(Product.created_at.desc(), Product.id)
            .offset(pages.offset)
            .limit(page_size)
        ).scalars().all()

    return AdminProductPage(
        products=[to_card(p, AdminProductRow, best=p.id in best_ids) for p in products],
        current_page=pages.current_page,
        total_pages=pages.total_pages,
        count=total,
    )


def related_to_product(db: Session, product_id: str, viewer: Optional[User] = None) -> List[ProductCard]:
    with store_guard("load product"):
        product = db.get(Product, product_id)
    if product is None:
        raise NotFound("Product not found")
    if product.category is None:
        return []
    return related_products(db, product.category.name, product.id, viewer)

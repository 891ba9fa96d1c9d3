# storefront/main.py
import logging
from typing import List, Optional

from fastapi import FastAPI, Depends, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from . import catalog, dashboard, pricing, ratings, shipping, site_settings, viewer as viewer_ctx
from .config import ALLOWED_ORIGINS, DEFAULT_PAGE_SIZE, LOG_LEVEL, PORT
from .db import Base, engine, get_db
from .deps import add_cors, current_viewer, require_supervisor
from .errors import InvalidInput, StoreError
from .models import User
from .schemas import (
    AdminProductPage, AppbarTextPayload, BestSellerCard, CartLineOut, CartOut, CatalogPage,
    CategoryOut, CategoryStats, CouponOut, CouponPayload, CouponResult, DailySales, DashboardCounts,
    FilterRequest, Ok, OrderPage, OrderRow, OrderStatusPayload, ProductCard, QuantityPayload,
    RatingOut, RatingPayload, RatingsOut, ShippingProgress, ShippingThresholdPayload, WishlistToggleOut,
)

# ---------------------------------------------------------
# 🚀 Initialization
# ---------------------------------------------------------
logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s %(message)s")
logger = logging.getLogger("storefront")

Base.metadata.create_all(bind=engine)
app = FastAPI(title="Storefront Catalog & Pricing API", version="1.0.0")
add_cors(app, ALLOWED_ORIGINS)


# ---------------------------------------------------------
# ❗ Error boundary: every failure leaves as {errorKind, message}
# ---------------------------------------------------------
@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_result().model_dump(by_alias=True))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"❌ Unhandled error on {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"errorKind": "StoreError", "message": "Something went wrong!"})


# ---------------------------------------------------------
# 🩺 Health check
# ---------------------------------------------------------
@app.get("/health")
def health():
    return {"status": "ok"}


# ---------------------------------------------------------
# 🗂️ Catalog
# ---------------------------------------------------------
@app.get("/categories", response_model=List[CategoryOut])
def get_categories(db: Session = Depends(get_db)):
    return catalog.list_categories(db)


@app.get("/products", response_model=CatalogPage)
def get_products(
    categories: List[str] = Query(default=[]),
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
    sort_by: Optional[str] = None,
    page: int = 1,
    page_size: int = DEFAULT_PAGE_SIZE,
    db: Session = Depends(get_db),
    viewer: Optional[User] = Depends(current_viewer),
):
    # Filtering never fails the page: errors degrade to an empty listing
    try:
        if (min_price is None) != (max_price is None):
            raise InvalidInput("Price range needs both a minimum and a maximum")
        request = FilterRequest(
            categories=categories,
            price_range=(min_price, max_price) if min_price is not None else None,
            sort_by=sort_by,
            page=page,
            page_size=page_size,
        )
        return catalog.filter_products(db, request, viewer)
    except StoreError as e:
        logger.warning(f"Product filter degraded to empty result: {e.error_kind} {e.message}")
        return CatalogPage(current_page=max(page, 1), error=e.to_result())


@app.get("/products/search", response_model=List[ProductCard])
def search(q: str = "", db: Session = Depends(get_db), viewer: Optional[User] = Depends(current_viewer)):
    return catalog.search_products(db, q, viewer)


@app.get("/products/new", response_model=List[ProductCard])
def get_new_products(db: Session = Depends(get_db), viewer: Optional[User] = Depends(current_viewer)):
    return catalog.new_products(db, viewer)


@app.get("/products/best-sellers", response_model=List[BestSellerCard])
def get_best_sellers(db: Session = Depends(get_db), viewer: Optional[User] = Depends(current_viewer)):
    return catalog.best_sellers(db, viewer)


@app.get("/products/featured", response_model=List[ProductCard])
def get_featured(db: Session = Depends(get_db), viewer: Optional[User] = Depends(current_viewer)):
    return catalog.featured_products(db, viewer)


@app.get("/products/offers", response_model=List[ProductCard])
def get_offers(db: Session = Depends(get_db), viewer: Optional[User] = Depends(current_viewer)):
    return catalog.offer_products(db, viewer)


@app.get("/products/{product_id}/related", response_model=List[ProductCard])
def get_related(product_id: str, db: Session = Depends(get_db), viewer: Optional[User] = Depends(current_viewer)):
    return catalog.related_to_product(db, product_id, viewer)


# ---------------------------------------------------------
# ⭐ Ratings
# ---------------------------------------------------------
@app.get("/products/{product_id}/ratings", response_model=RatingsOut)
def get_ratings(product_id: str, db: Session = Depends(get_db), viewer: Optional[User] = Depends(current_viewer)):
    return ratings.list_ratings(db, product_id, viewer)


@app.post("/products/{product_id}/ratings", response_model=RatingOut, status_code=201)
def post_rating(product_id: str, payload: RatingPayload, db: Session = Depends(get_db),
                viewer: Optional[User] = Depends(current_viewer)):
    return ratings.add_rating(db, viewer, product_id, payload.rate, payload.comment)


# ---------------------------------------------------------
# 🛒 Cart & coupons
# ---------------------------------------------------------
@app.get("/cart", response_model=CartOut)
def get_cart(db: Session = Depends(get_db), viewer: Optional[User] = Depends(current_viewer)):
    return pricing.get_cart(db, viewer)


@app.post("/cart/items/{product_id}", response_model=CartLineOut)
def add_to_cart(product_id: str, quantity: int = 1, db: Session = Depends(get_db),
                viewer: Optional[User] = Depends(current_viewer)):
    return pricing.line_out(pricing.add_or_update_line(db, viewer, product_id, quantity))


@app.put("/cart/items/{product_id}/increment", response_model=CartLineOut)
def increment(product_id: str, payload: QuantityPayload, db: Session = Depends(get_db),
              viewer: Optional[User] = Depends(current_viewer)):
    return pricing.line_out(pricing.increment_line(db, viewer, product_id, payload.quantity))


@app.put("/cart/items/{product_id}/decrement", response_model=CartLineOut)
def decrement(product_id: str, payload: QuantityPayload, db: Session = Depends(get_db),
              viewer: Optional[User] = Depends(current_viewer)):
    return pricing.line_out(pricing.decrement_line(db, viewer, product_id, payload.quantity))


@app.delete("/cart/items/{product_id}", response_model=Ok)
def delete_from_cart(product_id: str, db: Session = Depends(get_db),
                     viewer: Optional[User] = Depends(current_viewer)):
    pricing.remove_line(db, viewer, product_id)
    return Ok()


@app.delete("/cart", response_model=Ok)
def empty_cart(db: Session = Depends(get_db), viewer: Optional[User] = Depends(current_viewer)):
    pricing.clear_cart(db, viewer)
    return Ok()


@app.post("/cart/coupon", response_model=CouponResult)
def apply_coupon(payload: CouponPayload, db: Session = Depends(get_db),
                 viewer: Optional[User] = Depends(current_viewer)):
    return pricing.apply_coupon(db, viewer, payload.code.strip())


@app.get("/coupons/current", response_model=Optional[CouponOut])
def get_current_coupon(db: Session = Depends(get_db), viewer: Optional[User] = Depends(current_viewer)):
    return pricing.current_coupon(db, viewer)


# ---------------------------------------------------------
# 🚚 Shipping
# ---------------------------------------------------------
@app.get("/shipping/progress", response_model=ShippingProgress)
def get_shipping_progress(db: Session = Depends(get_db), viewer: Optional[User] = Depends(current_viewer)):
    return shipping.cart_progress(db, viewer)


@app.get("/shipping")
def get_shipping(db: Session = Depends(get_db)):
    return {"threshold": shipping.shipping_threshold(db)}


# ---------------------------------------------------------
# 💜 Wishlist & site text
# ---------------------------------------------------------
@app.post("/wishlist/{product_id}", response_model=WishlistToggleOut)
def toggle_wishlist(product_id: str, db: Session = Depends(get_db),
                    viewer: Optional[User] = Depends(current_viewer)):
    return viewer_ctx.toggle_wishlist(db, viewer, product_id)


@app.get("/appbar-text")
def get_appbar_text(db: Session = Depends(get_db)):
    return {"text": site_settings.get_appbar_text(db)}


# ---------------------------------------------------------
# 🛠️ Back office (admin / manager)
# ---------------------------------------------------------
@app.put("/admin/shipping")
def update_shipping(payload: ShippingThresholdPayload, db: Session = Depends(get_db),
                    supervisor: User = Depends(require_supervisor)):
    return {"threshold": shipping.set_shipping_threshold(db, payload.threshold)}


@app.put("/admin/appbar-text")
def update_appbar_text(payload: AppbarTextPayload, db: Session = Depends(get_db),
                       supervisor: User = Depends(require_supervisor)):
    return {"text": site_settings.set_appbar_text(db, payload.text)}


@app.get("/admin/stats", response_model=DashboardCounts)
def get_stats(db: Session = Depends(get_db), supervisor: User = Depends(require_supervisor)):
    return dashboard.dashboard_counts(db)


@app.get("/admin/products", response_model=AdminProductPage)
def get_admin_products(page: int = 1, page_size: int = 10, db: Session = Depends(get_db),
                       supervisor: User = Depends(require_supervisor)):
    return catalog.admin_products(db, page, page_size)


@app.get("/admin/sales/last-7-days", response_model=List[DailySales])
def get_weekly_sales(db: Session = Depends(get_db), supervisor: User = Depends(require_supervisor)):
    return dashboard.sales_last_7_days(db)


@app.get("/admin/categories/stats", response_model=CategoryStats)
def get_category_stats(db: Session = Depends(get_db), supervisor: User = Depends(require_supervisor)):
    return dashboard.category_stats(db)


@app.get("/admin/orders", response_model=OrderPage)
def get_orders(page: int = 1, page_size: int = 10, db: Session = Depends(get_db),
               supervisor: User = Depends(require_supervisor)):
    return dashboard.list_orders(db, page, page_size)


@app.put("/admin/orders/{order_id}/status", response_model=OrderRow)
def update_order_status(order_id: str, payload: OrderStatusPayload, db: Session = Depends(get_db),
                        supervisor: User = Depends(require_supervisor)):
    return dashboard.update_order_status(db, order_id, payload.status)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("storefront.main:app", host="0.0.0.0", port=PORT, log_level="info")

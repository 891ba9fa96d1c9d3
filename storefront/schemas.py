from datetime import datetime
from typing import List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .config import DEFAULT_PAGE_SIZE

SortKey = Literal["latest", "popularity", "rating", "priceLow", "priceHigh", "topOffer"]
SORT_KEYS = ("latest", "popularity", "rating", "priceLow", "priceHigh", "topOffer")


class Schema(BaseModel):
    """camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class ErrorResult(Schema):
    error_kind: str
    message: str


# ---- Catalog ----

class FilterRequest(Schema):
    categories: List[str] = []
    price_range: Optional[Tuple[float, float]] = None
    sort_by: Optional[str] = None  # validated against SORT_KEYS by the query builder
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE


class CategoryOut(Schema):
    id: str
    name: str
    image: Optional[str] = None


class ProductImage(Schema):
    type: Optional[str] = None
    image: str


class ProductCard(Schema):
    id: str
    name: str
    description: Optional[str] = None
    price: float
    offer: Optional[float] = None
    category: Optional[CategoryOut] = None
    is_featured: bool = False
    rate: int = 0
    sizes: List[str] = []
    images: List[ProductImage] = []
    created_at: Optional[datetime] = None
    # viewer context
    in_cart: bool = False
    cart_quantity: int = 0
    in_wishlist: bool = False


class BestSellerCard(ProductCard):
    sold: int = 0


class AdminProductRow(ProductCard):
    best: bool = False


class Pagination(Schema):
    current_page: int
    total_pages: int
    offset: int


class CatalogPage(Schema):
    products: List[ProductCard] = []
    current_page: int = 1
    total_pages: int = 0
    total_products: int = 0
    error: Optional[ErrorResult] = None


class AdminProductPage(Schema):
    products: List[AdminProductRow] = []
    current_page: int = 1
    total_pages: int = 0
    count: int = 0


# ---- Cart / pricing ----

class CartLineOut(Schema):
    product_id: str
    name: str
    quantity: int
    unit_price: float
    total_price: float


class CartOut(Schema):
    lines: List[CartLineOut] = []
    subtotal: float = 0.0


class QuantityPayload(Schema):
    quantity: int


class CouponPayload(Schema):
    code: str


class CouponOut(Schema):
    code: str
    discount_percentage: float
    expiration_date: datetime
    is_active: bool


class CouponResult(Schema):
    discount_percentage: float
    discount_amount: float
    new_total: float
    message: str = "Coupon applied successfully"


# ---- Shipping ----

class ShippingProgress(Schema):
    percentage: float
    left_percentage: float
    left_money: float
    complete: bool
    threshold: float


class ShippingThresholdPayload(Schema):
    threshold: float = Field(..., gt=0)


class AppbarTextPayload(Schema):
    text: str = Field(..., min_length=1)


# ---- Ratings / wishlist / admin ----

class RatingPayload(Schema):
    rate: int
    comment: str = ""


class RatingOut(Schema):
    id: str
    rating: int
    comment: Optional[str] = None
    author: Optional[str] = None
    created_at: Optional[datetime] = None


class RatingsOut(Schema):
    rates: List[RatingOut] = []
    rated_by_viewer: bool = False


class WishlistToggleOut(Schema):
    product_id: str
    in_wishlist: bool


class DashboardCounts(Schema):
    product_count: int
    user_count: int
    sales_count: int
    revenue: float


class DailySales(Schema):
    date: str  # YYYY-MM-DD, UTC
    sales: int = 0
    revenue: float = 0.0
    orders: int = 0


class CategoryCount(Schema):
    name: str
    count: int
    total: int


class CategoryStats(Schema):
    categories: List[CategoryCount] = []
    total: int = 0


class OrderLineOut(Schema):
    product_id: str
    name: Optional[str] = None
    quantity: int
    unit_price: float


class OrderRow(Schema):
    id: str
    customer: Optional[str] = None
    status: str
    total_amount: float
    created_at: Optional[datetime] = None
    items: List[OrderLineOut] = []


class OrderPage(Schema):
    orders: List[OrderRow] = []
    current_page: int = 1
    total_pages: int = 0
    count: int = 0


class OrderStatusPayload(Schema):
    status: str


class Ok(Schema):
    success: bool = True

# storefront/dashboard.py
"""
Back-office figures: headline counters, the last week of sales, products per
category and the paginated order book.
"""
import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from .config import MAX_PAGE_SIZE
from .db import store_guard
from .errors import InvalidInput, NotFound
from .models import Category, Order, Product, User
from .pagination import paginate
from .schemas import (
    CategoryCount, CategoryStats, DailySales, DashboardCounts, OrderLineOut, OrderPage, OrderRow,
)

logger = logging.getLogger(__name__)

SALES_WINDOW_DAYS = 7
ORDER_STATUSES = ("pending", "processing", "shipped", "delivered", "cancelled")


def dashboard_counts(db: Session) -> DashboardCounts:
    with store_guard("count dashboard cards"):
        product_count = db.scalar(select(func.count(Product.id))) or 0
        user_count = db.scalar(select(func.count(User.id))) or 0
        sales_count = db.scalar(select(func.count(Order.id))) or 0
        revenue = db.scalar(select(func.sum(Order.total_amount))) or 0.0
    return DashboardCounts(
        product_count=product_count,
        user_count=user_count,
        sales_count=sales_count,
        revenue=round(float(revenue), 2),
    )


def _utc_day(ts: datetime) -> date:
    # SQLite hands timestamps back naive; they were written in UTC
    if ts.tzinfo is not None:
        ts = ts.astimezone(timezone.utc)
    return ts.date()


def sales_last_7_days(db: Session, today: Optional[date] = None) -> List[DailySales]:
    """
    One entry per UTC day for the week ending ``today``, oldest first.
    Days without orders are reported with zeros.
    """
    today = today or datetime.now(timezone.utc).date()
    first_day = today - timedelta(days=SALES_WINDOW_DAYS - 1)
    start = datetime.combine(first_day, time.min, tzinfo=timezone.utc)
    end = datetime.combine(today + timedelta(days=1), time.min, tzinfo=timezone.utc)

    days = {first_day + timedelta(days=i): DailySales(date=(first_day + timedelta(days=i)).isoformat())
            for i in range(SALES_WINDOW_DAYS)}

    with store_guard("load last week's sales"):
        orders = db.execute(
            select(Order)
            .where(Order.created_at >= start, Order.created_at < end)
            .options(selectinload(Order.items))
        ).unique().scalars().all()

        for order in orders:
            entry = days.get(_utc_day(order.created_at))
            if entry is None:
                continue
            entry.sales += sum(item.quantity for item in order.items)
            entry.revenue += order.total_amount or 0.0
            entry.orders += 1

    for entry in days.values():
        entry.revenue = round(entry.revenue, 2)
    return [days[d] for d in sorted(days)]


def category_stats(db: Session) -> CategoryStats:
    """Product count per category, largest first, against the whole catalog."""
    product_count = func.count(Product.id)
    with store_guard("count products by category"):
        total = db.scalar(select(func.count(Product.id))) or 0
        rows = db.execute(
            select(Category.name, product_count.label("count"))
            .outerjoin(Product, Product.category_id == Category.id)
            .group_by(Category.id, Category.name)
            .order_by(product_count.desc(), Category.name)
        ).all()

    return CategoryStats(
        categories=[CategoryCount(name=row.name, count=row.count, total=total) for row in rows],
        total=total,
    )


def _order_row(order: Order) -> OrderRow:
    return OrderRow(
        id=order.id,
        customer=order.user.email if order.user else None,
        status=order.status,
        total_amount=order.total_amount,
        created_at=order.created_at,
        items=[
            OrderLineOut(
                product_id=item.product_id,
                name=item.product.name if item.product else None,
                quantity=item.quantity,
                unit_price=item.unit_price,
            )
            for item in order.items
        ],
    )


def list_orders(db: Session, page: int, page_size: int) -> OrderPage:
    """Order book, newest first; the page number always comes from the request."""
    if page_size <= 0 or page_size > MAX_PAGE_SIZE:
        raise InvalidInput(f"Page size must be between 1 and {MAX_PAGE_SIZE}")

    with store_guard("list orders"):
        total = db.scalar(select(func.count(Order.id))) or 0
        pages = paginate(total, page, page_size)
        orders = db.execute(
            select(Order)
            .options(selectinload(Order.items))
            .order_by(Order.created_at.desc(), Order.id)
            .offset(pages.offset)
            .limit(page_size)
        ).unique().scalars().all()
        rows = [_order_row(o) for o in orders]

    return OrderPage(
        orders=rows,
        current_page=pages.current_page,
        total_pages=pages.total_pages,
        count=total,
    )


def update_order_status(db: Session, order_id: str, status: str) -> OrderRow:
    status = (status or "").strip().lower()
    if not status:
        raise InvalidInput("Order status is required")
    if status not in ORDER_STATUSES:
        raise InvalidInput(f"Unknown order status: {status}")

    with store_guard("update order status"):
        order = db.get(Order, order_id)
        if order is None:
            raise NotFound("Order not found")
        previous = order.status
        order.status = status
        db.commit()
        db.refresh(order)
        row = _order_row(order)

    logger.info(f"Order {order_id} moved from {previous} to {status}")
    return row

import pytest

from factories import add_cart_line, add_coupon, add_order


def as_viewer(user):
    return {"X-Viewer-Id": user.id}


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_products_payload_is_camel_case(client, seed):
    res = client.get("/products", params={"page_size": 2})
    assert res.status_code == 200
    body = res.json()
    assert body["totalProducts"] == 4
    assert body["totalPages"] == 2
    assert body["currentPage"] == 1
    assert body["error"] is None
    assert {"inCart", "cartQuantity", "inWishlist", "isFeatured"} <= set(body["products"][0])


def test_products_filters_from_query(client, seed):
    res = client.get("/products", params={
        "categories": ["shirts"], "min_price": 0, "max_price": 30, "sort_by": "priceLow",
    })
    assert [p["name"] for p in res.json()["products"]] == ["Tee"]


def test_products_annotated_for_viewer(client, db, seed):
    add_cart_line(db, seed.alice, seed.runner, 3)
    headers = as_viewer(seed.alice)
    runner_id = seed.runner.id
    body = client.get("/products", params={"page_size": 10}, headers=headers).json()
    runner = next(p for p in body["products"] if p["id"] == runner_id)
    assert runner["inCart"] is True
    assert runner["cartQuantity"] == 3


def test_bad_filter_degrades_to_empty_page(client, seed):
    res = client.get("/products", params={"sort_by": "cheapest"})
    assert res.status_code == 200
    body = res.json()
    assert body["products"] == []
    assert body["totalProducts"] == 0
    assert body["totalPages"] == 0
    assert body["error"]["errorKind"] == "InvalidInput"


def test_half_price_range_is_rejected_gracefully(client, seed):
    body = client.get("/products", params={"min_price": 10}).json()
    assert body["products"] == []
    assert body["error"]["errorKind"] == "InvalidInput"


def test_cart_flow(client, seed):
    headers = as_viewer(seed.alice)
    tee_id = seed.tee.id

    res = client.post(f"/cart/items/{tee_id}", headers=headers)
    assert res.status_code == 200
    assert res.json() == {"productId": tee_id, "name": "Tee", "quantity": 1, "unitPrice": 20.0, "totalPrice": 20.0}

    res = client.put(f"/cart/items/{tee_id}/increment", json={"quantity": 3}, headers=headers)
    assert res.json()["totalPrice"] == 60.0

    res = client.put(f"/cart/items/{tee_id}/decrement", json={"quantity": 2}, headers=headers)
    assert res.json()["quantity"] == 2

    cart = client.get("/cart", headers=headers).json()
    assert cart["subtotal"] == 40.0

    assert client.delete(f"/cart/items/{tee_id}", headers=headers).json() == {"success": True}
    assert client.get("/cart", headers=headers).json()["lines"] == []


def test_decrement_at_one_reports_invalid_quantity(client, db, seed):
    add_cart_line(db, seed.alice, seed.tee, 1)
    headers = as_viewer(seed.alice)
    res = client.put(f"/cart/items/{seed.tee.id}/decrement", json={"quantity": 1}, headers=headers)
    assert res.status_code == 400
    assert res.json()["errorKind"] == "InvalidQuantity"
    assert client.get("/cart", headers=headers).json()["lines"][0]["quantity"] == 1


def test_anonymous_cart_mutation_is_forbidden(client, seed):
    res = client.post(f"/cart/items/{seed.tee.id}")
    assert res.status_code == 403
    assert res.json() == {"errorKind": "Forbidden", "message": "Must be logged in to modify cart"}


def test_unknown_product_is_not_found(client, seed):
    res = client.post("/cart/items/missing", headers=as_viewer(seed.alice))
    assert res.status_code == 404
    assert res.json()["errorKind"] == "NotFound"


def test_apply_coupon(client, db, seed):
    add_cart_line(db, seed.alice, seed.runner, 1)
    add_coupon(db, seed.alice, "TEN", 10)
    res = client.post("/cart/coupon", json={"code": "TEN"}, headers=as_viewer(seed.alice))
    assert res.status_code == 200
    body = res.json()
    assert body["discountPercentage"] == 10
    assert body["newTotal"] == 45.0

    res = client.post("/cart/coupon", json={"code": "NOPE"}, headers=as_viewer(seed.alice))
    assert res.status_code == 400
    assert res.json()["errorKind"] == "CouponInvalid"


def test_shipping_progress_and_admin_update(client, db, seed):
    add_cart_line(db, seed.alice, seed.loafer, 1)
    alice, admin = as_viewer(seed.alice), as_viewer(seed.admin)

    body = client.get("/shipping/progress", headers=alice).json()
    assert body == {"percentage": 80.0, "leftPercentage": 20.0, "leftMoney": 20.0, "complete": False, "threshold": 100.0}

    assert client.put("/admin/shipping", json={"threshold": 50}, headers=alice).status_code == 403
    assert client.put("/admin/shipping", json={"threshold": 50}, headers=admin).json() == {"threshold": 50.0}
    assert client.get("/shipping").json() == {"threshold": 50.0}
    assert client.get("/shipping/progress", headers=alice).json()["complete"] is True


def test_anonymous_shipping_progress(client, seed):
    body = client.get("/shipping/progress").json()
    assert body["percentage"] == 0
    assert body["leftMoney"] == 100.0


def test_appbar_text(client, seed):
    assert client.get("/appbar-text").json() == {"text": ""}
    res = client.put("/admin/appbar-text", json={"text": " Free shipping this week "}, headers=as_viewer(seed.admin))
    assert res.json() == {"text": "Free shipping this week"}
    assert client.get("/appbar-text").json() == {"text": "Free shipping this week"}


def test_admin_stats_and_products(client, seed):
    admin = as_viewer(seed.admin)
    stats = client.get("/admin/stats", headers=admin).json()
    assert stats == {"productCount": 4, "userCount": 3, "salesCount": 0, "revenue": 0.0}

    page = client.get("/admin/products", params={"page": 0, "page_size": 3}, headers=admin).json()
    assert page["currentPage"] == 1
    assert page["totalPages"] == 2
    assert len(page["products"]) == 3

    assert client.get("/admin/stats").status_code == 403


def test_ratings_endpoints(client, seed):
    tee_id = seed.tee.id
    headers = as_viewer(seed.bob)
    res = client.post(f"/products/{tee_id}/ratings", json={"rate": 9}, headers=headers)
    assert res.status_code == 400
    assert res.json()["errorKind"] == "InvalidInput"

    res = client.post(f"/products/{tee_id}/ratings", json={"rate": 4, "comment": "soft"}, headers=headers)
    assert res.status_code == 201
    body = client.get(f"/products/{tee_id}/ratings", headers=headers).json()
    assert body["ratedByViewer"] is True
    assert body["rates"][0]["author"] == "You"


def test_wishlist_toggle_shows_in_listing(client, seed):
    headers = as_viewer(seed.bob)
    polo_id = seed.polo.id
    assert client.post(f"/wishlist/{polo_id}", headers=headers).json() == {"productId": polo_id, "inWishlist": True}
    products = client.get("/products/offers", headers=headers).json()
    assert next(p for p in products if p["id"] == polo_id)["inWishlist"] is True


def test_blank_sort_key_lists_latest_first(client, seed):
    res = client.get("/products", params={"sort_by": "", "page_size": 10})
    assert res.status_code == 200
    body = res.json()
    assert body["error"] is None
    assert body["totalProducts"] == 4
    assert [p["name"] for p in body["products"]] == ["Polo", "Tee", "Loafer", "Runner"]


def test_decrement_above_current_quantity_is_rejected(client, db, seed):
    add_cart_line(db, seed.alice, seed.tee, 2)
    headers = as_viewer(seed.alice)
    res = client.put(f"/cart/items/{seed.tee.id}/decrement", json={"quantity": 9}, headers=headers)
    assert res.status_code == 400
    assert res.json()["errorKind"] == "InvalidQuantity"
    assert client.get("/cart", headers=headers).json()["lines"][0]["quantity"] == 2


def test_search_treats_wildcards_literally(client, seed):
    assert client.get("/products/search", params={"q": "%"}).json() == []
    assert [p["name"] for p in client.get("/products/search", params={"q": "runn"}).json()] == ["Runner"]


def test_admin_products_page_size_is_capped(client, seed):
    res = client.get("/admin/products", params={"page_size": 1000}, headers=as_viewer(seed.admin))
    assert res.status_code == 400
    assert res.json()["errorKind"] == "InvalidInput"


@pytest.mark.parametrize("path", ["/admin/sales/last-7-days", "/admin/categories/stats", "/admin/orders"])
def test_dashboard_routes_require_supervisor(client, seed, path):
    assert client.get(path).status_code == 403
    assert client.get(path, headers=as_viewer(seed.alice)).status_code == 403


def test_dashboard_routes(client, db, seed):
    add_order(db, seed.bob, (seed.tee, 3))
    admin = as_viewer(seed.admin)

    week = client.get("/admin/sales/last-7-days", headers=admin).json()
    assert len(week) == 7
    assert week[-1]["sales"] == 3
    assert week[-1]["revenue"] == 60.0
    assert week[-1]["orders"] == 1

    stats = client.get("/admin/categories/stats", headers=admin).json()
    assert stats["total"] == 4
    assert {c["name"]: c["count"] for c in stats["categories"]} == {"shirts": 2, "shoes": 2}

    orders = client.get("/admin/orders", params={"page": 1}, headers=admin).json()
    assert orders["count"] == 1
    order = orders["orders"][0]
    assert order["customer"] == "bob@example.com"
    assert order["totalAmount"] == 60.0
    assert order["items"][0]["name"] == "Tee"


def test_update_order_status_route(client, db, seed):
    order_id = add_order(db, seed.bob, (seed.tee, 1)).id
    admin = as_viewer(seed.admin)

    res = client.put(f"/admin/orders/{order_id}/status", json={"status": "delivered"}, headers=admin)
    assert res.status_code == 200
    assert res.json()["status"] == "delivered"

    res = client.put(f"/admin/orders/{order_id}/status", json={"status": ""}, headers=admin)
    assert res.status_code == 400
    assert res.json()["errorKind"] == "InvalidInput"

    res = client.put("/admin/orders/missing/status", json={"status": "shipped"}, headers=admin)
    assert res.status_code == 404

    res = client.put(f"/admin/orders/{order_id}/status", json={"status": "shipped"}, headers=as_viewer(seed.bob))
    assert res.status_code == 403

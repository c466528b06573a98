import re
from datetime import timedelta

import pytest

from restaurant import config
from restaurant.models import Order, OrderStatus


def _order_body(item_id, quantity=2, **extra):
    body = {"customerName": "Anita", "tableNumber": 7, "items": [{"itemId": item_id, "quantity": quantity}]}
    body.update(extra)
    return body


def _place(client, item, quantity=2):
    resp = client.post("/api/orders", json=_order_body(item.id, quantity))
    assert resp.status_code == 201, resp.text
    return resp.json()


def test_create_order_prices_from_menu(client, make_item):
    item = make_item("Paneer Tikka", 180)
    resp = client.post("/api/orders", json=_order_body(item.id, 2))
    assert resp.status_code == 201
    order = resp.json()
    assert order["totalAmount"] == 360
    assert order["status"] == "pending"
    assert order["paymentMethod"] == "cash"
    assert order["orderType"] == "dine-in"
    assert order["acceptedAt"] is None and order["completedAt"] is None
    assert re.fullmatch(r"ORD-[A-Z0-9]{8}", order["orderId"])
    assert order["items"] == [
        {"itemId": item.id, "name": "Paneer Tikka", "quantity": 2, "price": 180.0,
         "specialInstructions": None, "spiceLevel": None}
    ]
    assert [h["status"] for h in order["statusHistory"]] == ["pending"]


def test_client_supplied_price_is_ignored(client, make_item):
    item = make_item("Mango Lassi", 60, category="soft-drinks")
    body = _order_body(item.id, 3)
    body["items"][0]["price"] = 1
    body["totalAmount"] = 3
    order = client.post("/api/orders", json=body).json()
    assert order["totalAmount"] == 180
    assert order["items"][0]["price"] == 60


def test_multi_line_total_and_customisation(client, make_item):
    starter = make_item("Paneer Tikka", 180)
    biryani = make_item("Chicken Biryani", 250.5, category="biryanis")
    body = {
        "customerName": "Anita",
        "tableNumber": 3,
        "paymentMethod": "upi",
        "orderType": "takeaway",
        "items": [
            {"itemId": starter.id, "quantity": 1},
            {"itemId": biryani.id, "quantity": 2, "specialInstructions": "no onions", "spiceLevel": "extra-spicy"},
        ],
    }
    order = client.post("/api/orders", json=body).json()
    assert order["totalAmount"] == 681.0
    assert sum(line["price"] * line["quantity"] for line in order["items"]) == order["totalAmount"]
    assert order["items"][1]["specialInstructions"] == "no onions"
    assert order["items"][1]["spiceLevel"] == "extra-spicy"
    assert order["paymentMethod"] == "upi" and order["orderType"] == "takeaway"


def test_menu_edits_do_not_touch_placed_orders(client, make_item, auth_headers):
    item = make_item("Paneer Tikka", 180)
    order = _place(client, item)
    client.put(f"/api/menu/{item.id}", json={"price": 999, "name": "Paneer Tikka Deluxe"}, headers=auth_headers)
    client.delete(f"/api/menu/{item.id}", headers=auth_headers)

    stored = client.get(f"/api/orders/{order['id']}", headers=auth_headers).json()
    assert stored["totalAmount"] == 360
    assert stored["items"][0]["name"] == "Paneer Tikka"
    assert stored["items"][0]["price"] == 180


def test_unavailable_item_rejects_whole_order(client, db, make_item, auth_headers):
    item = make_item("Paneer Tikka", 180)
    other = make_item("Veg Manchurian", 150)
    resp = client.patch(f"/api/menu/{item.id}/availability", json={"available": False}, headers=auth_headers)
    assert resp.json()["available"] is False

    body = {"customerName": "Anita", "tableNumber": 7,
            "items": [{"itemId": other.id, "quantity": 1}, {"itemId": item.id, "quantity": 2}]}
    resp = client.post("/api/orders", json=body)
    assert resp.status_code == 400
    assert resp.json() == {"error": "Paneer Tikka is out of stock"}
    assert db.query(Order).count() == 0


def test_unknown_item_rejects_whole_order(client, db, make_item):
    item = make_item()
    body = {"customerName": "Anita", "tableNumber": 7,
            "items": [{"itemId": item.id, "quantity": 1}, {"itemId": 4242, "quantity": 1}]}
    resp = client.post("/api/orders", json=body)
    assert resp.status_code == 404
    assert resp.json() == {"error": "Item 4242 not found"}
    assert db.query(Order).count() == 0


@pytest.mark.parametrize(
    "patch, field",
    [
        ({"items": []}, "items"),
        ({"tableNumber": 0}, "tableNumber"),
        ({"customerName": "   "}, "customerName"),
        ({"paymentMethod": "cheque"}, "paymentMethod"),
    ],
)
def test_invalid_order_body(client, make_item, patch, field):
    body = _order_body(make_item().id)
    body.update(patch)
    resp = client.post("/api/orders", json=body)
    assert resp.status_code == 400
    assert field in [f["field"] for f in resp.json()["fields"]]


def test_zero_quantity_is_rejected(client, make_item):
    resp = client.post("/api/orders", json=_order_body(make_item().id, 0))
    assert resp.status_code == 400
    assert resp.json()["fields"][0]["field"] == "items.0.quantity"


def test_order_admin_routes_require_admin(client, make_user):
    staff = make_user(email="waiter@happyfamily.test", role="staff")
    from restaurant.auth import token_for

    assert client.get("/api/orders").status_code == 401
    assert client.get("/api/orders/stats").status_code == 401
    assert client.put("/api/orders/1/status", json={"status": "accepted"}).status_code == 401
    resp = client.get("/api/orders", headers={"Authorization": f"Bearer {token_for(staff)}"})
    assert resp.status_code == 403
    assert client.get("/api/orders", headers={"Authorization": "Bearer not-a-jwt"}).status_code == 401


def test_accept_twice_keeps_first_timestamp(client, make_item, auth_headers):
    order = _place(client, make_item())
    first = client.put(f"/api/orders/{order['id']}/status", json={"status": "accepted"}, headers=auth_headers).json()
    assert first["status"] == "accepted"
    assert first["acceptedAt"] is not None
    second = client.put(f"/api/orders/{order['id']}/status", json={"status": "accepted"}, headers=auth_headers).json()
    assert second["acceptedAt"] == first["acceptedAt"]
    assert [h["status"] for h in second["statusHistory"]] == ["pending", "accepted"]


def test_serving_a_preparing_order(client, make_item, auth_headers):
    order = _place(client, make_item())
    url = f"/api/orders/{order['id']}/status"
    accepted = client.put(url, json={"status": "accepted"}, headers=auth_headers).json()
    client.put(url, json={"status": "preparing"}, headers=auth_headers)

    served = client.put(url, json={"status": "served"}, headers=auth_headers).json()
    assert served["status"] == "served"
    assert served["completedAt"] is not None
    assert served["acceptedAt"] == accepted["acceptedAt"]
    assert [h["status"] for h in served["statusHistory"]] == ["pending", "accepted", "preparing", "served"]


def test_strict_mode_blocks_moving_backwards(client, make_item, auth_headers):
    order = _place(client, make_item())
    url = f"/api/orders/{order['id']}/status"
    client.put(url, json={"status": "served"}, headers=auth_headers)
    resp = client.put(url, json={"status": "pending"}, headers=auth_headers)
    assert resp.status_code == 400
    assert resp.json()["error"] == "Cannot change order status from served to pending"
    assert client.get(f"/api/orders/{order['id']}", headers=auth_headers).json()["status"] == "served"


def test_lenient_mode_accepts_any_status(client, make_item, auth_headers, monkeypatch):
    monkeypatch.setattr(config, "STRICT_STATUS_TRANSITIONS", False)
    order = _place(client, make_item())
    url = f"/api/orders/{order['id']}/status"
    client.put(url, json={"status": "cancelled"}, headers=auth_headers)
    resp = client.put(url, json={"status": "pending"}, headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json()["status"] == "pending"


def test_unknown_status_value(client, make_item, auth_headers):
    order = _place(client, make_item())
    resp = client.put(f"/api/orders/{order['id']}/status", json={"status": "eaten"}, headers=auth_headers)
    assert resp.status_code == 400


def test_status_update_on_missing_order(client, auth_headers):
    resp = client.put("/api/orders/999/status", json={"status": "accepted"}, headers=auth_headers)
    assert resp.status_code == 404
    assert resp.json() == {"error": "Order not found"}


def test_today_filter_and_ordering(client, make_order, auth_headers):
    yesterday = make_order(at=-timedelta(minutes=1))
    early = make_order(at=timedelta(hours=1))
    late = make_order(at=timedelta(hours=2))
    tomorrow = make_order(at=timedelta(days=1))

    today_ids = [o["orderId"] for o in client.get("/api/orders?today=true", headers=auth_headers).json()]
    assert today_ids == [late.order_id, early.order_id]

    all_ids = [o["orderId"] for o in client.get("/api/orders", headers=auth_headers).json()]
    assert all_ids == [tomorrow.order_id, late.order_id, early.order_id, yesterday.order_id]


def test_list_is_capped(client, make_order, auth_headers, monkeypatch):
    monkeypatch.setattr(config, "ORDER_LIST_LIMIT", 3)
    for minute in range(5):
        make_order(at=timedelta(minutes=minute))
    assert len(client.get("/api/orders", headers=auth_headers).json()) == 3


def test_stats_exclude_cancelled_revenue(client, make_order, auth_headers):
    make_order(total=200, status=OrderStatus.PENDING)
    make_order(total=300, status=OrderStatus.SERVED)
    make_order(total=1000, status=OrderStatus.CANCELLED)
    make_order(total=50, status=OrderStatus.PENDING, at=-timedelta(hours=3))

    stats = client.get("/api/orders/stats", headers=auth_headers).json()
    assert stats == {"totalOrders": 3, "pendingOrders": 1, "todayOrders": 3, "totalRevenue": 500.0}


def test_stats_on_empty_day(client, auth_headers):
    stats = client.get("/api/orders/stats", headers=auth_headers).json()
    assert stats == {"totalOrders": 0, "pendingOrders": 0, "todayOrders": 0, "totalRevenue": 0.0}


def test_hourly_chart(client, make_order, auth_headers):
    make_order(at=timedelta(hours=13, minutes=5), total=120)
    make_order(at=timedelta(hours=13, minutes=55), total=80)
    make_order(at=timedelta(hours=13, minutes=30), total=500, status=OrderStatus.CANCELLED)
    make_order(at=timedelta(hours=20), total=60.5, status=OrderStatus.SERVED)
    make_order(at=-timedelta(hours=1), total=999)

    chart = client.get("/api/orders/stats/chart", headers=auth_headers).json()
    assert chart["labels"][0] == "00:00" and chart["labels"][23] == "23:00"
    assert len(chart["orders"]) == len(chart["revenue"]) == 24
    assert chart["orders"][13] == 2 and chart["revenue"][13] == 200
    assert chart["orders"][20] == 1 and chart["revenue"][20] == 60.5
    assert sum(chart["orders"]) == 3


def test_only_pending_orders_can_be_cancelled(client, make_item, auth_headers):
    item = make_item()
    pending = _place(client, item)
    resp = client.put(f"/api/orders/{pending['id']}/status", json={"status": "cancelled"}, headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json()["status"] == "cancelled"

    ready = _place(client, item)
    url = f"/api/orders/{ready['id']}/status"
    client.put(url, json={"status": "ready"}, headers=auth_headers)
    resp = client.put(url, json={"status": "cancelled"}, headers=auth_headers)
    assert resp.status_code == 400
    assert resp.json()["error"] == "Cannot change order status from ready to cancelled"


def test_order_routes_run_in_threadpool():
    import inspect

    from restaurant import main

    for route in (main.create_order, main.list_orders, main.order_stats, main.order_chart, main.get_order, main.update_status):
        assert not inspect.iscoroutinefunction(route), route.__name__

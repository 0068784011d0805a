from decimal import Decimal

import pytest
from sqlalchemy import func, select

from conftest import auth, stock_of
from storefront.data.models import OrderModel, OrderLineModel
from storefront.domain.errors import InsufficientStockError
from storefront.repos.order_repo import OrderRepo
from storefront.services.order_service import OrderService, OrderLineData

ADMIN = auth(1, "admin")


def manual_order(**overrides):
    body = {
        "userId": 7,
        "status": "paid",
        "totalAmount": 200.00,
        "paymentGatewayId": "Transfer-123",
        "items": [{"productId": 1, "quantity": 2, "priceAtPurchase": 100.00}],
    }
    body.update(overrides)
    return body


def count(db, model):
    db.expire_all()
    return db.execute(select(func.count()).select_from(model)).scalar()


def test_admin_creates_manual_order(client, seed):
    resp = client.post("/api/orders", json=manual_order(), headers=ADMIN)

    assert resp.status_code == 201
    order_id = resp.json()["orderId"]
    assert resp.json()["message"] == f"Order {order_id} created"

    order = seed.get(OrderModel, order_id)
    assert order.status == "paid"
    assert order.payment_gateway_id == "Transfer-123"
    assert order.total_amount == Decimal("200.00")
    assert stock_of(seed, 1) == 3


def test_manual_order_against_empty_stock_is_a_conflict(client, seed):
    resp = client.post(
        "/api/orders",
        json=manual_order(
            userId=3,
            totalAmount=50.00,
            paymentGatewayId=None,
            items=[{"productId": 2, "quantity": 1, "priceAtPurchase": 50.00}],
        ),
        headers=ADMIN,
    )

    assert resp.status_code == 409
    assert resp.json()["detail"]["productId"] == 2
    assert count(seed, OrderModel) == 0
    assert count(seed, OrderLineModel) == 0
    assert stock_of(seed, 2) == 0


def test_manual_order_needs_admin(client, seed):
    resp = client.post("/api/orders", json=manual_order(), headers=auth(7))

    assert resp.status_code == 403
    assert count(seed, OrderModel) == 0


def test_manual_order_needs_items(client, seed):
    resp = client.post("/api/orders", json=manual_order(items=[]), headers=ADMIN)

    assert resp.status_code == 422


def test_manual_order_total_must_match_lines(client, seed):
    resp = client.post("/api/orders", json=manual_order(totalAmount=150.00), headers=ADMIN)

    assert resp.status_code == 400
    assert count(seed, OrderModel) == 0
    assert stock_of(seed, 1) == 5


def test_manual_order_for_unknown_user(client, seed):
    resp = client.post("/api/orders", json=manual_order(userId=999), headers=ADMIN)

    assert resp.status_code == 404


def test_manual_order_for_unknown_product(client, seed):
    resp = client.post(
        "/api/orders",
        json=manual_order(totalAmount=10.00, items=[{"productId": 404, "quantity": 1, "priceAtPurchase": 10.00}]),
        headers=ADMIN,
    )

    assert resp.status_code == 404
    assert count(seed, OrderModel) == 0


def test_manual_order_with_taken_payment_id(client, seed):
    client.post("/api/orders", json=manual_order(), headers=ADMIN)

    resp = client.post(
        "/api/orders",
        json=manual_order(totalAmount=19.99, items=[{"productId": 3, "quantity": 1, "priceAtPurchase": 19.99}]),
        headers=ADMIN,
    )

    assert resp.status_code == 409
    assert count(seed, OrderModel) == 1
    assert stock_of(seed, 3) == 10


def test_failure_halfway_leaves_nothing_behind(seed, monkeypatch):
    calls = {"n": 0}
    original = OrderRepo.add_line

    def flaky_add_line(self, line):
        calls["n"] += 1
        if calls["n"] == 2:
            raise RuntimeError("disk on fire")
        return original(self, line)

    monkeypatch.setattr(OrderRepo, "add_line", flaky_add_line)

    svc = OrderService(seed)
    with pytest.raises(RuntimeError):
        svc.materialize(
            user_id=7,
            status="paid",
            lines=[
                OrderLineData(product_id=1, quantity=1, price_at_purchase=Decimal("100.00")),
                OrderLineData(product_id=3, quantity=2, price_at_purchase=Decimal("19.99")),
            ],
            payment_gateway_id="PAY-HALF",
        )

    assert count(seed, OrderModel) == 0
    assert count(seed, OrderLineModel) == 0
    assert stock_of(seed, 1) == 5
    assert stock_of(seed, 3) == 10


def test_stock_never_goes_negative_over_many_orders(seed):
    svc = OrderService(seed)
    line = [OrderLineData(product_id=1, quantity=2, price_at_purchase=Decimal("100.00"))]

    created = 0
    for _ in range(5):
        try:
            svc.materialize(user_id=7, status="paid", lines=line)
            created += 1
        except InsufficientStockError:
            pass

    assert created == 2
    assert stock_of(seed, 1) == 1


def test_try_reserve_refuses_to_cross_zero(seed):
    svc = OrderService(seed)

    assert svc.stock.try_reserve(1, 5) is True
    assert svc.stock.try_reserve(1, 1) is False
    seed.commit()

    assert stock_of(seed, 1) == 0


def test_update_status(client, seed):
    order_id = client.post("/api/orders", json=manual_order(), headers=ADMIN).json()["orderId"]

    resp = client.put(f"/api/orders/{order_id}/status", json={"status": "shipped"}, headers=ADMIN)

    assert resp.status_code == 200
    assert resp.json()["order"]["status"] == "shipped"
    assert Decimal(str(resp.json()["order"]["totalAmount"])) == Decimal("200.00")


def test_update_status_rejects_unknown_status(client, seed):
    order_id = client.post("/api/orders", json=manual_order(), headers=ADMIN).json()["orderId"]

    resp = client.put(f"/api/orders/{order_id}/status", json={"status": "lost"}, headers=ADMIN)

    assert resp.status_code == 422


def test_update_status_of_missing_order(client, seed):
    resp = client.put("/api/orders/999/status", json={"status": "shipped"}, headers=ADMIN)

    assert resp.status_code == 404


def test_order_listing_and_access(client, seed):
    order_id = client.post("/api/orders", json=manual_order(), headers=ADMIN).json()["orderId"]

    all_orders = client.get("/api/orders", headers=ADMIN)
    assert all_orders.status_code == 200
    assert all_orders.json()[0]["email"] == "carla@shop.test"

    assert client.get("/api/orders", headers=auth(7)).status_code == 403

    mine = client.get("/api/orders/my-orders", headers=auth(7))
    assert [o["id"] for o in mine.json()] == [order_id]
    assert client.get("/api/orders/my-orders", headers=auth(3)).json() == []

    detail = client.get(f"/api/orders/{order_id}", headers=auth(7))
    assert detail.status_code == 200
    assert detail.json()["items"][0]["productName"] == "Keyboard"
    assert detail.json()["items"][0]["quantity"] == 2

    assert client.get(f"/api/orders/{order_id}", headers=auth(3)).status_code == 403
    assert client.get(f"/api/orders/{order_id}", headers=ADMIN).status_code == 200
    assert client.get("/api/orders/999", headers=ADMIN).status_code == 404

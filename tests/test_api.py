from decimal import Decimal

from sqlalchemy.exc import IntegrityError, OperationalError

from marketplace.data.models import OrderItemModel, OrderModel, ProductModel
from marketplace.repos.cart_repo import CartRepo
from marketplace.repos.product_repo import ProductRepo


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_users_and_products(client, seed):
    resp = client.post("/users/", json={"id": 50, "name": "carol"})
    assert resp.status_code == 200
    assert resp.json() == {"id": 50, "name": "carol", "role": "buyer"}

    assert client.get("/users/50").json()["name"] == "carol"
    assert client.get("/users/51").status_code == 404

    product = client.get("/products/10").json()
    assert product["name"] == "Lamp"
    assert Decimal(str(product["price"])) == Decimal("10.00")
    assert client.get("/products/404").status_code == 404


def test_cart_then_order_flow(client, seed, db, notifier):
    assert client.post("/cart/items?user_id=2", json={"product_id": 10, "quantity": 2}).status_code == 200
    assert client.post("/cart/items?user_id=2", json={"product_id": 20, "quantity": 1}).status_code == 200

    resp = client.post("/orders/?user_id=2")
    assert resp.status_code == 201
    body = resp.json()
    assert Decimal(str(body["total_amount"])) == Decimal("45.00")
    assert body["status"] == "pending"
    assert {i["product_id"]: Decimal(str(i["price"])) for i in body["items"]} == {
        10: Decimal("20.00"),
        20: Decimal("25.00"),
    }

    assert client.get("/cart?user_id=2").json()["items"] == []
    assert len(notifier.placed) == 1

    orders = client.get("/orders/?user_id=2").json()
    assert [o["order_id"] for o in orders] == [body["order_id"]]
    assert client.get(f"/orders/{body['order_id']}?user_id=3").status_code == 403
    assert client.get("/orders/9999?user_id=2").status_code == 404


def test_partial_cart_order(client, seed):
    client.post("/cart/items?user_id=2", json={"product_id": 10, "quantity": 1})
    client.post("/cart/items?user_id=2", json={"product_id": 20, "quantity": 1})

    resp = client.post("/orders/?user_id=2", json={"product_ids": [10]})
    assert resp.status_code == 201

    cart = client.get("/cart?user_id=2").json()
    assert [i["product_id"] for i in cart["items"]] == [20]


def test_failed_order_returns_every_error(client, seed, db):
    resp = client.post("/orders/direct?user_id=2", json=[
        {"product_id": 999, "quantity": 1},
        {"product_id": 30, "quantity": 5},
    ])

    assert resp.status_code == 400
    assert resp.json()["detail"] == [
        "product not found: 999",
        "insufficient stock for product: Desk",
    ]
    db.expire_all()
    assert db.query(OrderModel).count() == 0
    assert db.get(ProductModel, 30).stock == 1


def test_empty_cart_order(client, seed):
    resp = client.post("/orders/?user_id=2")
    assert resp.status_code == 400
    assert resp.json()["detail"] == ["cart is empty"]


def test_direct_order_validates_quantity(client, seed):
    resp = client.post("/orders/direct?user_id=2", json=[{"product_id": 10, "quantity": 0}])
    assert resp.status_code == 422


def test_admin_status_update(client, seed):
    order_id = client.post(
        "/orders/direct?user_id=2", json=[{"product_id": 10, "quantity": 1}]
    ).json()["order_id"]

    resp = client.put(f"/admin/orders/{order_id}/status?user_id=2", json={"status": "accepted"})
    assert resp.status_code == 403

    resp = client.put(f"/admin/orders/{order_id}/status?user_id=1", json={"status": "finished"})
    assert resp.status_code == 400

    resp = client.put(f"/admin/orders/{order_id}/status?user_id=1", json={"status": "accepted"})
    assert resp.status_code == 200
    assert resp.json()["status"] == "accepted"

    assert client.put("/admin/orders/9999/status?user_id=1", json={"status": "accepted"}).status_code == 404
    assert len(client.get("/admin/orders?user_id=1").json()) == 1
    assert client.get("/admin/orders?user_id=2").status_code == 403


def test_database_failure_during_placement_is_retryable(client, seed, db, monkeypatch):
    def lock_timeout(self, product_id, quantity):
        raise OperationalError("UPDATE products", {}, Exception("canceling statement due to lock timeout"))

    monkeypatch.setattr(ProductRepo, "decrement_stock", lock_timeout)

    resp = client.post("/orders/direct?user_id=2", json=[{"product_id": 10, "quantity": 2}])

    assert resp.status_code == 503
    assert "retry" in resp.json()["detail"][0]
    db.expire_all()
    assert db.query(OrderModel).count() == 0
    assert db.query(OrderItemModel).count() == 0
    assert db.get(ProductModel, 10).stock == 5


def test_stock_conflict_on_every_attempt_is_a_conflict(client, seed, db, monkeypatch):
    monkeypatch.setattr(ProductRepo, "decrement_stock", lambda self, product_id, quantity: False)

    resp = client.post("/orders/direct?user_id=2", json=[{"product_id": 10, "quantity": 1}])

    assert resp.status_code == 409
    assert resp.json()["detail"] == ["stock changed concurrently for product: Lamp"]
    db.expire_all()
    assert db.query(OrderModel).count() == 0
    assert db.get(ProductModel, 10).stock == 5


def test_concurrent_cart_add_is_a_conflict(client, seed, monkeypatch):
    def duplicate_row(self, item):
        raise IntegrityError("INSERT INTO cart_items", {}, Exception("UNIQUE constraint failed: u_cart_product"))

    monkeypatch.setattr(CartRepo, "add_cart_item", duplicate_row)

    resp = client.post("/cart/items?user_id=2", json={"product_id": 10, "quantity": 1})

    assert resp.status_code == 409
    assert "retry" in resp.json()["detail"]

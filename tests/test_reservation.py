import threading

from storefront.config import Settings
from storefront.core.errors import EmptyCart
from storefront.main import create_app
from storefront.services.orders import OrderService
from storefront.services.payment import TestPaymentGateway
from fastapi.testclient import TestClient


def test_insufficient_stock_returns_400_and_no_change(client, db, user, user_headers, make_product, add_to_cart, stock_of):
    plenty = make_product(title="Plenty", price=10.0, stock=10)
    low = make_product(title="LowStock", price=20.0, stock=1)
    add_to_cart(user, plenty, quantity=3)
    add_to_cart(user, low, quantity=2)

    resp = client.post("/api/orders", json={"address": "Addr", "paymentMode": "COD"}, headers=user_headers)
    assert resp.status_code == 400, resp.text
    assert resp.json()["code"] == "INSUFFICIENT_STOCK"
    assert low["id"] in resp.json()["error"]

    assert stock_of(plenty) == 10
    assert stock_of(low) == 1
    assert len(db.find_records("cart_items", "user_id", user["id"])) == 2
    assert db.list_records("orders") == []
    assert db.list_records("order_items") == []


def test_checkout_rolls_back_on_persist_failure(client, db, user, user_headers, make_product, add_to_cart, stock_of, monkeypatch):
    p = make_product(title="RollbackChair", price=75.0, stock=2)
    add_to_cart(user, p, quantity=1)

    orig_stage = db._stage_df

    def failing_stage(path, df):
        # simulate a write failure for the orders table only
        if path.name == "orders.csv":
            raise OSError("disk full")
        return orig_stage(path, df)

    monkeypatch.setattr(db, "_stage_df", failing_stage)

    resp = client.post("/api/orders", json={"address": "Addr", "paymentMode": "COD"}, headers=user_headers)
    assert resp.status_code == 500, resp.text
    assert resp.json() == {"error": "Failed to place order", "code": "PERSISTENCE_FAILURE"}

    assert stock_of(p) == 2
    assert len(db.find_records("cart_items", "user_id", user["id"])) == 1
    assert db.list_records("orders") == []
    assert db.list_records("order_items") == []
    assert not list(db.data_dir.glob("*.tmp"))


def test_backorder_setting_allows_negative_stock(tmp_path, auth_header):
    app = create_app(Settings(DATA_DIR=tmp_path / "bo", JWT_SECRET="test-secret", ALLOW_BACKORDER=True))
    client = TestClient(app)
    db = app.state.db
    user = db.create_record("users", {"username": "bo", "email": "bo@example.test", "is_admin": False})
    p = db.create_record("products", {"title": "Rare", "price": 5.0, "stock": 1})
    db.create_record("cart_items", {"user_id": user["id"], "product_id": p["id"], "quantity": 3})

    resp = client.post("/api/orders", json={"address": "Addr", "paymentMode": "COD"}, headers=auth_header(user))
    assert resp.status_code == 201, resp.text
    assert int(db.get_record("products", "id", p["id"])["stock"]) == -2


def test_concurrent_checkouts_of_one_cart_create_one_order(db, user, make_product, add_to_cart, stock_of):
    p = make_product(price=30.0, stock=10)
    add_to_cart(user, p, quantity=4)
    service = OrderService(db, TestPaymentGateway())

    placed, empty = [], []
    barrier = threading.Barrier(4)

    def checkout():
        barrier.wait()
        try:
            placed.append(service.place_order(user["id"], "Addr", "COD"))
        except EmptyCart:
            empty.append(True)

    threads = [threading.Thread(target=checkout) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(placed) == 1
    assert len(empty) == 3
    assert stock_of(p) == 6
    assert len(db.list_records("orders")) == 1


def test_concurrent_checkouts_never_oversell(db, make_user, make_product, add_to_cart, stock_of):
    p = make_product(price=10.0, stock=3)
    users = [make_user() for _ in range(5)]
    for u in users:
        add_to_cart(u, p, quantity=1)
    service = OrderService(db, TestPaymentGateway())

    results = []

    def checkout(u):
        try:
            service.place_order(u["id"], "Addr", "COD")
            results.append("ok")
        except Exception as e:
            results.append(type(e).__name__)

    threads = [threading.Thread(target=checkout, args=(u,)) for u in users]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results.count("ok") == 3
    assert results.count("InsufficientStock") == 2
    assert stock_of(p) == 0

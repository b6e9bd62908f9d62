import os

#has to happen before anything from marketplace is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "true"
os.environ["CELERY_BROKER_URL"] = "memory://"
os.environ["CELERY_RESULT_BACKEND"] = "cache+memory://"

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from marketplace.data.database import make_engine, init_db, get_db
from marketplace.data.models import UserModel, ProductModel, CartModel, CartItemModel
from marketplace.api.routers.orders import get_service
from marketplace.main import app
from marketplace.services.order_service import OrderService


class FakeNotifier:
    def __init__(self):
        self.placed = []
        self.status_changes = []

    def send_order_placed(self, buyer_id, order_id, total_amount):
        self.placed.append((buyer_id, order_id, total_amount))

    def send_status_changed(self, buyer_id, order_id, status):
        self.status_changes.append((buyer_id, order_id, status))


@pytest.fixture
def engine(tmp_path):
    #file database so several threads can use it at once
    eng = make_engine(f"sqlite:///{tmp_path / 'marketplace.db'}")
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def order_service(db, notifier):
    return OrderService(db, notifier)


@pytest.fixture
def seed(db):
    """Admin (1), buyers (2, 3) and a small catalog sold by the admin."""
    db.add_all([
        UserModel(id=1, name="admin", role="admin"),
        UserModel(id=2, name="alice", role="buyer"),
        UserModel(id=3, name="bob", role="buyer"),
    ])
    db.flush()
    products = {
        "A": ProductModel(id=10, name="Lamp", price=Decimal("10.00"), stock=5, seller_id=1),
        "B": ProductModel(id=20, name="Chair", price=Decimal("25.00"), stock=3, seller_id=1),
        "C": ProductModel(id=30, name="Desk", price=Decimal("120.00"), stock=1, seller_id=1),
    }
    db.add_all(products.values())
    db.commit()
    return products


@pytest.fixture
def fill_cart(db):
    def _fill(user_id, items):
        cart = db.query(CartModel).filter_by(user_id=user_id).one_or_none()
        if cart is None:
            cart = CartModel(user_id=user_id)
            db.add(cart)
            db.flush()
        for product_id, quantity in items:
            db.add(CartItemModel(cart_id=cart.id, product_id=product_id, quantity=quantity))
        db.commit()
        return cart
    return _fill


@pytest.fixture
def client(session_factory, notifier):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    def override_get_service():
        session = session_factory()
        try:
            yield OrderService(session, notifier)
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_service] = override_get_service
    #no "with": lifespan (create_all on the real engine) is not needed
    yield TestClient(app)
    app.dependency_overrides.clear()

import os
import tempfile
from decimal import Decimal

# konfiguracja przed importem storefront - settings czyta env przy imporcie
_DB_DIR = tempfile.mkdtemp(prefix="storefront-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'test.db')}"
os.environ["CHECKOUT_LOCK_ENABLED"] = "false"
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "true"
os.environ["CHECKOUT_MODE"] = "transaction"

import pytest
from fastapi.testclient import TestClient

from storefront.api import create_app
from storefront.data.database import Base, SessionLocal, engine, init_db
from storefront.data.models import OrderModel, ProductModel, UserModel
from storefront.repos.product_repo import ProductRepo
from storefront.services.stock_ledger import StockLedger


@pytest.fixture(autouse=True)
def database():
    init_db()
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client():
    with TestClient(create_app()) as c:
        yield c


@pytest.fixture
def address():
    return {
        "firstname": "John",
        "lastname": "Doe",
        "email": "john@example.com",
        "street": "123 Main St",
        "city": "Test City",
        "state": "Test State",
        "pincode": "560001",
        "country": "India",
        "phone": "9876543210",
    }


@pytest.fixture
def make_user():
    def _make(user_id=1, name="Test User", cart=None):
        with SessionLocal() as db:
            db.add(UserModel(id=user_id, name=name, cart_data=cart or {}))
            db.commit()
        return user_id

    return _make


@pytest.fixture
def make_product():
    def _make(price="100.00", stock=None, sizes=None, name="Test Product"):
        stock = stock or {}
        with SessionLocal() as db:
            product = ProductRepo(db).create_product(
                ProductModel(
                    name=name,
                    price=Decimal(price),
                    sizes=list(sizes if sizes is not None else stock),
                )
            )
            ledger = StockLedger(db)
            for size, quantity in stock.items():
                ledger.set_stock(product, size, quantity)
            db.commit()
            return product.id

    return _make


@pytest.fixture
def stock_of():
    def _stock(product_id, size):
        with SessionLocal() as db:
            return StockLedger(db).available(product_id, size)

    return _stock


@pytest.fixture
def cart_of():
    def _cart(user_id):
        with SessionLocal() as db:
            return dict(db.get(UserModel, user_id).cart_data)

    return _cart


@pytest.fixture
def order_count():
    def _count():
        with SessionLocal() as db:
            return db.query(OrderModel).count()

    return _count


@pytest.fixture
def make_request(address):
    def _make(*items, amount=None, **extra):
        body = {
            "items": [
                {"productId": product_id, "size": size, "quantity": quantity}
                for product_id, size, quantity in items
            ],
            "address": dict(address),
            **extra,
        }
        if amount is not None:
            body["amount"] = amount
        return body

    return _make

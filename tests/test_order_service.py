from decimal import Decimal

import pytest

from storefront.data.database import SessionLocal
from storefront.data.models import OrderItemModel, OrderModel
from storefront.domain.errors import InvalidStatus, NotFound
from storefront.services.order_service import OrderService


@pytest.fixture
def make_order(address):
    def _make(user_id, status="Placed", amount="140.00"):
        with SessionLocal() as db:
            order = OrderModel(
                user_id=user_id,
                subtotal=Decimal(amount) - Decimal("40.00"),
                delivery_fee=Decimal("40.00"),
                amount=Decimal(amount),
                address=address,
                status=status,
            )
            order.items.append(
                OrderItemModel(
                    product_id=1,
                    name="Tee",
                    size="M",
                    quantity=1,
                    unit_price=Decimal(amount) - Decimal("40.00"),
                    subtotal=Decimal(amount) - Decimal("40.00"),
                )
            )
            db.add(order)
            db.commit()
            return order.id

    return _make


@pytest.fixture
def orders(make_user, make_product, make_order):
    make_user(1)
    make_user(2)
    make_product(stock={"M": 1})
    return [make_order(1), make_order(2, status="Processing"), make_order(1, status="Shipped")]


class TestGetOrder:
    def test_owner_gets_order(self, orders):
        with SessionLocal() as db:
            order = OrderService(db).get_order(orders[0], user_id=1)

        assert order["id"] == orders[0]
        assert order["amount"] == Decimal("140.00")
        assert order["items"][0]["size"] == "M"

    def test_other_user_is_refused(self, orders):
        with SessionLocal() as db, pytest.raises(PermissionError):
            OrderService(db).get_order(orders[0], user_id=2)

    def test_missing_order(self, orders):
        with SessionLocal() as db, pytest.raises(NotFound):
            OrderService(db).get_order(999, user_id=1)


class TestListing:
    def test_user_orders_newest_first(self, orders):
        with SessionLocal() as db:
            listed = OrderService(db).list_user_orders(1)

        assert [o["id"] for o in listed] == [orders[2], orders[0]]

    def test_all_orders_paged(self, orders):
        with SessionLocal() as db:
            service = OrderService(db)
            first = service.list_orders(page=1, page_size=2)
            second = service.list_orders(page=2, page_size=2)

        assert first["total"] == 3
        assert [o["id"] for o in first["orders"]] == [orders[2], orders[1]]
        assert [o["id"] for o in second["orders"]] == [orders[0]]

    def test_page_size_is_clamped(self, orders):
        with SessionLocal() as db:
            page = OrderService(db).list_orders(page=0, page_size=10_000)

        assert page["page"] == 1
        assert page["page_size"] == 100

    def test_status_filter(self, orders):
        with SessionLocal() as db:
            page = OrderService(db).list_orders(status="Processing")

        assert page["total"] == 1
        assert page["orders"][0]["id"] == orders[1]

    def test_unknown_status_filter(self, orders):
        with SessionLocal() as db, pytest.raises(InvalidStatus):
            OrderService(db).list_orders(status="Lost")

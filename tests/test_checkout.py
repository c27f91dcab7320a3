import itertools
from decimal import Decimal

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy.exc import OperationalError

from storefront.data.database import SessionLocal
from storefront.data.models import OrderModel, ProductModel
from storefront.domain.errors import (
    AmountMismatch,
    CatalogIncomplete,
    CheckoutInProgress,
    CheckoutTimeout,
    InsufficientStock,
    InvalidQuantity,
    InvalidSize,
    NotFound,
    PersistenceFailure,
    ValidationError,
)
from storefront.repos.order_repo import OrderRepo
from storefront.repos.user_repo import UserRepo
from storefront.services.checkout import CheckoutCoordinator, CheckoutState
from storefront.services.catalog_resolver import CatalogResolver


class FakeLockService:
    def __init__(self, acquire=True, error=None):
        self.acquire = acquire
        self.error = error
        self.acquired = []
        self.released = []

    @staticmethod
    def new_token():
        return "token-1"

    def acquire_checkout_lock(self, user_id, token, ttl):
        if self.error:
            raise self.error
        self.acquired.append((user_id, token))
        return self.acquire

    def release_checkout_lock(self, user_id, token):
        self.released.append((user_id, token))
        return True


@pytest.fixture
def scheduled():
    return []


@pytest.fixture
def place(scheduled):
    def _place(user_id, request, **kwargs):
        kwargs.setdefault("cart_clear_scheduler", scheduled.append)
        with SessionLocal() as db:
            coordinator = CheckoutCoordinator(db, **kwargs)
            try:
                return coordinator.place_order(user_id, request)
            finally:
                _place.state = coordinator.state

    return _place


@pytest.fixture
def shop(make_user, make_product):
    user_id = make_user(1, cart={"1": {"M": 2}})
    product_id = make_product(price="100.00", stock={"M": 10, "L": 5})
    return user_id, product_id


def _load_order(order_id):
    with SessionLocal() as db:
        order = db.get(OrderModel, order_id)
        return order, list(order.items)


class TestPlaceOrder:
    def test_order_created_with_server_side_amount(self, shop, place, make_request, stock_of, cart_of):
        user_id, pid = shop

        result = place(user_id, make_request((pid, "M", 2)))

        assert result.amount == Decimal("240.00")
        assert result.state == CheckoutState.COMMITTED
        assert stock_of(pid, "M") == 8
        assert cart_of(user_id) == {}

        order, items = _load_order(result.order_id)
        assert order.user_id == user_id
        assert order.subtotal == Decimal("200.00")
        assert order.delivery_fee == Decimal("40.00")
        assert order.amount == Decimal("240.00")
        assert order.status == "Placed"
        assert order.payment is False
        assert order.payment_method == "COD"
        assert order.address["street"] == "123 Main St"
        assert [(i.size, i.quantity, i.unit_price, i.subtotal) for i in items] == [
            ("M", 2, Decimal("100.00"), Decimal("200.00"))
        ]

    def test_same_product_in_two_sizes_makes_one_order(self, shop, place, make_request, stock_of):
        user_id, pid = shop

        result = place(user_id, make_request((pid, "M", 1), (pid, "L", 1)))

        order, items = _load_order(result.order_id)
        assert order.amount == Decimal("240.00")
        assert [i.size for i in items] == ["M", "L"]
        assert stock_of(pid, "M") == 9
        assert stock_of(pid, "L") == 4

    def test_matching_advisory_amount_accepted(self, shop, place, make_request):
        user_id, pid = shop

        result = place(user_id, make_request((pid, "M", 2), amount=240.004))

        assert result.amount == Decimal("240.00")
        order, _ = _load_order(result.order_id)
        assert order.amount == Decimal("240.00")

    def test_amount_follows_current_catalog_price(self, shop, place, make_request):
        user_id, pid = shop
        with SessionLocal() as db:
            db.get(ProductModel, pid).price = Decimal("120.00")
            db.commit()

        result = place(user_id, make_request((pid, "M", 1)))

        assert result.amount == Decimal("160.00")

    def test_payment_method_recorded(self, shop, place, make_request):
        user_id, pid = shop

        result = place(user_id, make_request((pid, "M", 1), paymentMethod="Stripe"))

        order, _ = _load_order(result.order_id)
        assert order.payment_method == "Stripe"
        assert order.payment is False


class TestRejectionsLeaveNoSideEffects:
    def _assert_untouched(self, pid, user_id, stock_of, cart_of, order_count):
        assert stock_of(pid, "M") == 10
        assert stock_of(pid, "L") == 5
        assert cart_of(user_id) == {"1": {"M": 2}}
        assert order_count() == 0

    def test_tampered_amount(self, shop, place, make_request, stock_of, cart_of, order_count):
        user_id, pid = shop

        with pytest.raises(AmountMismatch) as exc:
            place(user_id, make_request((pid, "M", 1), amount=0.01))

        assert exc.value.expected == Decimal("140.00")
        assert place.state == CheckoutState.ABORTED
        self._assert_untouched(pid, user_id, stock_of, cart_of, order_count)

    def test_invalid_size(self, shop, place, make_request, stock_of, cart_of, order_count):
        user_id, pid = shop

        with pytest.raises(InvalidSize):
            place(user_id, make_request((pid, "XL", 1)))

        self._assert_untouched(pid, user_id, stock_of, cart_of, order_count)

    def test_invalid_quantity(self, shop, place, make_request, stock_of, cart_of, order_count):
        user_id, pid = shop

        with pytest.raises(InvalidQuantity):
            place(user_id, make_request((pid, "M", 0)))

        self._assert_untouched(pid, user_id, stock_of, cart_of, order_count)

    def test_insufficient_stock(self, shop, place, make_request, stock_of, cart_of, order_count):
        user_id, pid = shop

        with pytest.raises(InsufficientStock) as exc:
            place(user_id, make_request((pid, "L", 10)))

        assert (exc.value.available, exc.value.requested) == (5, 10)
        self._assert_untouched(pid, user_id, stock_of, cart_of, order_count)

    def test_failure_on_later_item_releases_earlier_reservations(
        self, shop, place, make_request, stock_of, cart_of, order_count
    ):
        user_id, pid = shop

        with pytest.raises(InsufficientStock):
            place(user_id, make_request((pid, "M", 3), (pid, "L", 6)))

        self._assert_untouched(pid, user_id, stock_of, cart_of, order_count)

    def test_unknown_product(self, shop, place, make_request, stock_of, cart_of, order_count):
        user_id, pid = shop

        with pytest.raises(CatalogIncomplete):
            place(user_id, make_request((pid, "M", 1), (pid + 100, "M", 1)))

        self._assert_untouched(pid, user_id, stock_of, cart_of, order_count)

    def test_legacy_product_without_stock(self, make_user, make_product, place, make_request, order_count):
        user_id = make_user(1)
        legacy = make_product(sizes=["M", "L"], stock={})

        with pytest.raises(InsufficientStock) as exc:
            place(user_id, make_request((legacy, "M", 1)))

        assert exc.value.available == 0
        assert order_count() == 0

    def test_unknown_user(self, shop, place, make_request, order_count):
        _, pid = shop

        with pytest.raises(NotFound):
            place(999, make_request((pid, "M", 1)))

        assert order_count() == 0


class TestValidation:
    def test_missing_street_rejected_before_catalog_access(self, shop, place, make_request, monkeypatch):
        user_id, pid = shop
        calls = []
        monkeypatch.setattr(CatalogResolver, "resolve", lambda self, items: calls.append(items))
        request = make_request((pid, "M", 1))
        del request["address"]["street"]

        with pytest.raises(ValidationError) as exc:
            place(user_id, request)

        assert "street" in exc.value.message
        assert calls == []
        assert place.state == CheckoutState.ABORTED

    def test_empty_items_rejected(self, shop, place, make_request):
        user_id, _ = shop

        with pytest.raises(ValidationError):
            place(user_id, make_request())

    def test_blank_address_field_rejected(self, shop, place, make_request):
        user_id, pid = shop
        request = make_request((pid, "M", 1))
        request["address"]["city"] = "   "

        with pytest.raises(ValidationError):
            place(user_id, request)


class TestPersistenceFailures:
    @pytest.mark.parametrize("mode", ["transaction", "saga"])
    def test_order_write_failure_restores_stock(
        self, shop, place, make_request, stock_of, cart_of, order_count, monkeypatch, mode
    ):
        user_id, pid = shop

        def broken_add_order(self, order):
            raise OperationalError("INSERT INTO orders", {}, Exception("database unavailable"))

        monkeypatch.setattr(OrderRepo, "add_order", broken_add_order)

        with pytest.raises(PersistenceFailure) as exc:
            place(user_id, make_request((pid, "M", 2), (pid, "L", 1)), mode=mode)

        assert exc.value.retryable is True
        assert exc.value.status_code == 500
        assert stock_of(pid, "M") == 10
        assert stock_of(pid, "L") == 5
        assert cart_of(user_id) == {"1": {"M": 2}}
        assert order_count() == 0

    @pytest.mark.parametrize("mode", ["transaction", "saga"])
    def test_unexpected_error_still_restores_stock(
        self, shop, place, make_request, stock_of, cart_of, order_count, monkeypatch, mode
    ):
        user_id, pid = shop

        def broken_add_order(self, order):
            raise RuntimeError("unexpected bug")

        monkeypatch.setattr(OrderRepo, "add_order", broken_add_order)

        with pytest.raises(RuntimeError):
            place(user_id, make_request((pid, "M", 3)), mode=mode)

        assert place.state == CheckoutState.ABORTED
        assert stock_of(pid, "M") == 10
        assert cart_of(user_id) == {"1": {"M": 2}}
        assert order_count() == 0

    @pytest.mark.parametrize("mode", ["transaction", "saga"])
    def test_cart_clear_failure_keeps_order_and_schedules_retry(
        self, shop, place, make_request, stock_of, cart_of, scheduled, monkeypatch, mode
    ):
        user_id, pid = shop

        def broken_clear(self, uid):
            raise OperationalError("UPDATE users", {}, Exception("lock timeout"))

        monkeypatch.setattr(UserRepo, "clear_cart", broken_clear)

        result = place(user_id, make_request((pid, "M", 2)), mode=mode)

        order, _ = _load_order(result.order_id)
        assert order.amount == Decimal("240.00")
        assert stock_of(pid, "M") == 8
        assert cart_of(user_id) == {"1": {"M": 2}}
        assert scheduled == [user_id]

    def test_timeout_aborts_without_partial_commit(self, shop, place, make_request, stock_of, order_count):
        user_id, pid = shop
        ticks = itertools.count(0, 5)

        with pytest.raises(CheckoutTimeout):
            place(user_id, make_request((pid, "M", 2)), timeout=12, clock=lambda: next(ticks))

        assert place.state == CheckoutState.ABORTED
        assert stock_of(pid, "M") == 10
        assert order_count() == 0


class TestSagaMode:
    def test_success(self, shop, place, make_request, stock_of, cart_of, scheduled):
        user_id, pid = shop

        result = place(user_id, make_request((pid, "M", 1), (pid, "L", 2)), mode="saga")

        assert result.amount == Decimal("340.00")
        assert stock_of(pid, "M") == 9
        assert stock_of(pid, "L") == 3
        assert cart_of(user_id) == {}
        assert scheduled == []

    def test_insufficient_stock_compensates_committed_reservations(
        self, shop, place, make_request, stock_of, order_count
    ):
        user_id, pid = shop

        with pytest.raises(InsufficientStock):
            place(user_id, make_request((pid, "M", 4), (pid, "L", 9)), mode="saga")

        assert stock_of(pid, "M") == 10
        assert stock_of(pid, "L") == 5
        assert order_count() == 0

    def test_unknown_mode(self):
        with SessionLocal() as db:
            with pytest.raises(ValueError):
                CheckoutCoordinator(db, mode="two-phase")


class TestCheckoutLock:
    def test_lock_acquired_and_released(self, shop, place, make_request):
        user_id, pid = shop
        locks = FakeLockService()

        place(user_id, make_request((pid, "M", 1)), lock_service=locks)

        assert locks.acquired == [(user_id, "token-1")]
        assert locks.released == [(user_id, "token-1")]

    def test_lock_released_after_failure(self, shop, place, make_request):
        user_id, pid = shop
        locks = FakeLockService()

        with pytest.raises(InsufficientStock):
            place(user_id, make_request((pid, "L", 50)), lock_service=locks)

        assert locks.released == [(user_id, "token-1")]

    def test_concurrent_checkout_of_same_user_rejected(self, shop, place, make_request, stock_of, order_count):
        user_id, pid = shop
        locks = FakeLockService(acquire=False)

        with pytest.raises(CheckoutInProgress):
            place(user_id, make_request((pid, "M", 1)), lock_service=locks)

        assert locks.released == []
        assert stock_of(pid, "M") == 10
        assert order_count() == 0

    def test_redis_down_is_a_retryable_failure(self, shop, place, make_request, order_count):
        user_id, pid = shop
        locks = FakeLockService(error=RedisConnectionError("redis down"))

        with pytest.raises(PersistenceFailure):
            place(user_id, make_request((pid, "M", 1)), lock_service=locks)

        assert order_count() == 0

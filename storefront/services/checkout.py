# storefront/services/checkout.py
import time
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from functools import partial

from pydantic import ValidationError as PydanticValidationError
from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.data.models.order import OrderModel
from storefront.data.models.order_item import OrderItemModel
from storefront.domain.errors import (
    CheckoutInProgress,
    CheckoutTimeout,
    NotFound,
    PersistenceFailure,
    StorefrontError,
    ValidationError,
)
from storefront.domain.schemas import PlaceOrderIn
from storefront.domain.types import OrderStatus
from storefront.repos.order_repo import OrderRepo
from storefront.repos.user_repo import UserRepo
from storefront.services.catalog_resolver import CatalogResolver
from storefront.services.lock_service import LockService
from storefront.services.pricing import PricingEngine, PricingResult
from storefront.services.stock_ledger import StockLedger
from storefront.tasks.cart import clear_cart_task
from storefront.utils import settings
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class CheckoutState(str, Enum):
    VALIDATING = "Validating"
    PRICING = "Pricing"
    RESERVING = "Reserving"
    PERSISTING = "Persisting"
    COMMITTING = "Committing"
    COMMITTED = "Committed"
    ABORTED = "Aborted"


@dataclass(frozen=True)
class PlacementResult:
    order_id: int
    amount: Decimal
    state: CheckoutState


def schedule_cart_clear(user_id: int):
    clear_cart_task.delay(user_id)


def describe_validation_error(exc: PydanticValidationError) -> str:
    err = exc.errors()[0]
    field = ".".join(str(part) for part in err["loc"])
    return f"Invalid order request: {field} - {err['msg']}"


class CheckoutCoordinator:
    """
    Skladanie zamowienia z koszyka jako jedna niepodzielna operacja.

    Validating -> Pricing -> Reserving -> Persisting -> Committing -> Committed | Aborted

    Tryb "transaction": wszystko w jednej transakcji bazy, kompensata to rollback.
    Tryb "saga": kazda rezerwacja jest commitowana od razu i ma kompensacje
    (zwrot na stan), uruchamiana w odwrotnej kolejnosci przy przerwaniu.
    W obu trybach punkt zatwierdzenia to zapis zamowienia - blad czyszczenia
    koszyka po nim nie cofa zamowienia, tylko zleca ponowienie w Celery.
    """

    def __init__(
        self,
        db: Session,
        lock_service: LockService | None = None,
        pricing: PricingEngine | None = None,
        mode: str | None = None,
        timeout: float | None = None,
        clock=time.monotonic,
        cart_clear_scheduler=schedule_cart_clear,
    ):
        self.db = db
        self.users = UserRepo(db)
        self.orders = OrderRepo(db)
        self.catalog = CatalogResolver(db)
        self.ledger = StockLedger(db)
        self.pricing = pricing or PricingEngine()
        self.lock_service = lock_service
        self.mode = mode or settings.CHECKOUT_MODE
        self.timeout = settings.CHECKOUT_TIMEOUT_SECONDS if timeout is None else timeout
        self.clock = clock
        self.cart_clear_scheduler = cart_clear_scheduler
        self.state: CheckoutState | None = None
        self._deadline = None

        if self.mode not in ("transaction", "saga"):
            raise ValueError(f"Nieznany tryb checkoutu: {self.mode}")

    def place_order(self, user_id: int, request) -> PlacementResult:
        self.state = CheckoutState.VALIDATING
        self._deadline = self.clock() + self.timeout

        # walidacja przed jakimkolwiek odczytem katalogu i stanow
        try:
            payload = self.validate(request)
        except ValidationError:
            self.state = CheckoutState.ABORTED
            raise

        token = self._acquire_lock(user_id)
        try:
            return self._run(user_id, payload)
        finally:
            self._release_lock(user_id, token)

    @staticmethod
    def validate(request) -> PlaceOrderIn:
        if isinstance(request, PlaceOrderIn):
            return request
        try:
            return PlaceOrderIn.model_validate(request)
        except PydanticValidationError as e:
            raise ValidationError(describe_validation_error(e)) from e

    def _run(self, user_id: int, payload: PlaceOrderIn) -> PlacementResult:
        compensations = []
        cart_cleared = False

        try:
            if self.users.get_user(user_id) is None:
                raise NotFound(f"User {user_id} not found")

            self._enter(CheckoutState.PRICING)
            catalog = self.catalog.resolve(payload.items)
            pricing = self.pricing.compute(payload.items, catalog, expected_total=payload.amount)

            # pierwszy brak towaru przerywa cale zamowienie, nie ma zamowien czesciowych
            self._enter(CheckoutState.RESERVING)
            for item in pricing.items:
                reservation = self.ledger.check_and_reserve(item.product_id, item.size, item.quantity)
                if self.mode == "saga":
                    self.db.commit()
                    compensations.append(partial(self.ledger.release, reservation))

            self._enter(CheckoutState.PERSISTING)
            order = self._persist_order(user_id, payload, pricing)
            if self.mode == "transaction":
                cart_cleared = self._clear_cart_in_savepoint(user_id)

            self._enter(CheckoutState.COMMITTING)
            self.db.commit()

        except StorefrontError as e:
            self._abort(compensations, e)
            raise
        except SQLAlchemyError as e:
            self._abort(compensations, e)
            raise PersistenceFailure("Order placement failed, please retry") from e
        except BaseException as e:
            # blad spoza domeny i bazy - zarezerwowane sztuki i tak musza wrocic
            self._abort(compensations, e)
            raise

        self.state = CheckoutState.COMMITTED
        logger.info(f"Order {order.id} placed for user {user_id}, amount {order.amount}")

        if self.mode == "saga":
            cart_cleared = self._clear_cart_committed(user_id)
        if not cart_cleared:
            self._schedule_cart_clear(user_id)

        return PlacementResult(order_id=order.id, amount=pricing.total, state=self.state)

    def _enter(self, state: CheckoutState):
        self.state = state
        if self.clock() > self._deadline:
            raise CheckoutTimeout(f"Order placement timed out while {state.value.lower()}")

    def _persist_order(self, user_id: int, payload: PlaceOrderIn, pricing: PricingResult) -> OrderModel:
        order = OrderModel(
            user_id=user_id,
            subtotal=pricing.subtotal,
            delivery_fee=pricing.delivery_fee,
            amount=pricing.total,
            address=payload.address.model_dump(),
            status=OrderStatus.PLACED.value,
            payment=False,
            payment_method=payload.payment_method.value,
            items=[
                OrderItemModel(
                    product_id=item.product_id,
                    name=item.name,
                    size=item.size,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    subtotal=item.subtotal,
                )
                for item in pricing.items
            ],
        )
        return self.orders.add_order(order)

    def _clear_cart_in_savepoint(self, user_id: int) -> bool:
        try:
            with self.db.begin_nested():
                self.users.clear_cart(user_id)
            return True
        except SQLAlchemyError as e:
            logger.warning(f"Cart clear failed for user {user_id}, order kept: {e}")
            return False

    def _clear_cart_committed(self, user_id: int) -> bool:
        try:
            self.users.clear_cart(user_id)
            self.db.commit()
            return True
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.warning(f"Cart clear failed for user {user_id}, order kept: {e}")
            return False

    def _schedule_cart_clear(self, user_id: int):
        try:
            self.cart_clear_scheduler(user_id)
            logger.info(f"Cart clear for user {user_id} scheduled")
        except Exception as e:
            # zamowienie juz zatwierdzone, nie zwracamy bledu klientowi
            logger.error(f"Could not schedule cart clear for user {user_id}: {e}")

    def _abort(self, compensations: list, error: Exception):
        failed_in = self.state
        self.state = CheckoutState.ABORTED
        logger.info(f"Order placement aborted in {failed_in.value}: {error}")

        self.db.rollback()

        for compensate in reversed(compensations):
            try:
                compensate()
                self.db.commit()
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.error(f"Compensation {compensate.func.__name__}{compensate.args} failed: {e}")

    def _acquire_lock(self, user_id: int) -> str | None:
        if self.lock_service is None:
            return None

        token = self.lock_service.new_token()
        try:
            locked = self.lock_service.acquire_checkout_lock(
                user_id=user_id,
                token=token,
                ttl=settings.CHECKOUT_LOCK_TTL_SECONDS,
            )
        except RedisError as e:
            self.state = CheckoutState.ABORTED
            raise PersistenceFailure("Checkout lock unavailable, please retry") from e

        if not locked:
            self.state = CheckoutState.ABORTED
            raise CheckoutInProgress("Another checkout is already in progress for this user")
        return token

    def _release_lock(self, user_id: int, token: str | None):
        if token is None:
            return
        try:
            self.lock_service.release_checkout_lock(user_id, token)
        except RedisError as e:
            # lock i tak wygasnie po TTL
            logger.warning(f"Could not release checkout lock for user {user_id}: {e}")

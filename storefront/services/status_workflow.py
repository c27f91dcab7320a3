# storefront/services/status_workflow.py
from sqlalchemy.orm import Session

from storefront.data.models.order import OrderModel
from storefront.domain.errors import InvalidStatus, InvalidTransition, NotFound, StatusConflict
from storefront.domain.types import OrderStatus
from storefront.repos.order_repo import OrderRepo
from storefront.utils import settings
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

ALLOWED_TRANSITIONS = {
    OrderStatus.PLACED: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),
    OrderStatus.CANCELLED: set(),
}


def parse_status(value) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        raise InvalidStatus(value)


class StatusWorkflow:
    """
    Jedyne miejsce zmiany statusu zamowienia po jego utworzeniu.

    W trybie strict przejscia sa ograniczone do ALLOWED_TRANSITIONS,
    bez niego (STRICT_STATUS_TRANSITIONS=false) dowolna z pieciu wartosci.
    """

    def __init__(self, db: Session, strict: bool | None = None):
        self.repo = OrderRepo(db)
        self.strict = settings.STRICT_STATUS_TRANSITIONS if strict is None else strict

    def transition(self, order_id: int, new_status) -> OrderModel:
        target = parse_status(new_status)

        order = self.repo.get_order(order_id)
        if not order:
            raise NotFound(f"Order {order_id} not found")

        current = OrderStatus(order.status)
        if current == target:
            return order

        if self.strict and target not in ALLOWED_TRANSITIONS[current]:
            raise InvalidTransition(current.value, target.value)

        # Optimistic locking na poprzednim statusie
        rowcount = self.repo.update_status_if(order_id, current.value, target.value)
        if rowcount == 0:
            self.repo.rollback()
            raise StatusConflict("Order status was changed by another operation")

        self.repo.commit()
        self.repo.refresh(order)

        logger.info(f"Order {order_id} status {current.value} -> {target.value}")
        return order

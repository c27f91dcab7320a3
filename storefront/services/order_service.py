# storefront/services/order_service.py
from sqlalchemy.orm import Session

from storefront.data.models.order import OrderModel
from storefront.domain.errors import InvalidStatus, NotFound
from storefront.domain.types import OrderStatus
from storefront.repos.order_repo import OrderRepo
from storefront.utils import settings


def order_to_dict(order: OrderModel) -> dict:
    return {
        "id": order.id,
        "user_id": order.user_id,
        "items": [
            {
                "product_id": i.product_id,
                "name": i.name,
                "size": i.size,
                "quantity": i.quantity,
                "unit_price": i.unit_price,
                "subtotal": i.subtotal,
            }
            for i in order.items
        ],
        "subtotal": order.subtotal,
        "delivery_fee": order.delivery_fee,
        "amount": order.amount,
        "address": order.address,
        "status": order.status,
        "payment": order.payment,
        "payment_method": order.payment_method,
        "created_at": order.created_at,
    }


class OrderService:
    """
    Zapytania o zapisane zamowienia (uzytkownik i panel admina).
    Zamowienia tworzy tylko CheckoutCoordinator, status zmienia StatusWorkflow.
    """

    def __init__(self, db: Session):
        self.db = db
        self.repo = OrderRepo(db)

    def get_order(self, order_id: int, user_id: int):
        order = self.repo.get_order(order_id)

        if not order:
            raise NotFound(f"Order {order_id} not found")

        if order.user_id != user_id:
            raise PermissionError("Brak dostępu do zamówienia")

        return order_to_dict(order)

    def list_user_orders(self, user_id: int):
        return [order_to_dict(o) for o in self.repo.list_user_orders(user_id)]

    def list_orders(self, page: int = 1, page_size: int | None = None, status: str | None = None):
        """Wszystkie zamowienia, od najnowszych, stronicowane."""
        page = max(page, 1)
        page_size = min(max(page_size or settings.ORDERS_PAGE_SIZE, 1), settings.MAX_PAGE_SIZE)

        if status is not None:
            try:
                status = OrderStatus(status).value
            except ValueError:
                raise InvalidStatus(status)

        orders = self.repo.list_orders(offset=(page - 1) * page_size, limit=page_size, status=status)
        return {
            "orders": [order_to_dict(o) for o in orders],
            "page": page,
            "page_size": page_size,
            "total": self.repo.count_orders(status=status),
        }

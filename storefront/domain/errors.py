# storefront/domain/errors.py
"""
Bledy domenowe skladania zamowien.

Kazdy blad niesie status HTTP i dodatkowe pola diagnostyczne,
routery nie musza ich mapowac recznie (patrz storefront/api/errors.py).
"""
from decimal import Decimal


class StorefrontError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def details(self) -> dict:
        return {}


class ValidationError(StorefrontError):
    """Zle zbudowane zadanie (brak pol adresu, pusta lista produktow)."""


class UnknownProduct(StorefrontError):
    status_code = 404

    def __init__(self, product_id, message: str | None = None):
        super().__init__(message or f"Product {product_id} not found")
        self.product_id = product_id


class CatalogIncomplete(UnknownProduct):
    def __init__(self, missing_ids: list):
        super().__init__(missing_ids[0], "One or more products not found")
        self.missing_ids = list(missing_ids)

    def details(self) -> dict:
        return {"missing": self.missing_ids}


class InvalidSize(StorefrontError):
    def __init__(self, product_id, size: str):
        super().__init__(f"Invalid size {size} for product {product_id}")
        self.product_id = product_id
        self.size = size


class InvalidQuantity(StorefrontError):
    def __init__(self, product_id, quantity, max_quantity: int):
        super().__init__(f"Invalid quantity {quantity!r} for product {product_id} (allowed 1-{max_quantity})")
        self.product_id = product_id
        self.quantity = quantity


class AmountMismatch(StorefrontError):
    def __init__(self, expected: Decimal, received: Decimal):
        super().__init__("Order amount does not match calculated total")
        self.expected = expected
        self.received = received

    def details(self) -> dict:
        return {"expected": self.expected, "received": self.received}


class InsufficientStock(StorefrontError):
    def __init__(self, product_id, size: str, available: int, requested: int):
        super().__init__(
            f"Insufficient stock for product {product_id} ({size}). "
            f"Available: {available}, requested: {requested}"
        )
        self.product_id = product_id
        self.size = size
        self.available = available
        self.requested = requested

    def details(self) -> dict:
        return {
            "productId": self.product_id,
            "size": self.size,
            "available": self.available,
            "requested": self.requested,
        }


class NotFound(StorefrontError):
    status_code = 404


class InvalidStatus(StorefrontError):
    def __init__(self, status):
        super().__init__(f"Invalid status value: {status}")
        self.status = status


class InvalidTransition(StorefrontError):
    status_code = 409

    def __init__(self, current: str, target: str):
        super().__init__(f"Cannot change order status from {current} to {target}")
        self.current = current
        self.target = target

    def details(self) -> dict:
        return {"current": self.current, "target": self.target}


class StatusConflict(StorefrontError):
    status_code = 409


class CheckoutInProgress(StorefrontError):
    status_code = 409


class PersistenceFailure(StorefrontError):
    """Blad warstwy zapisu. Nic nie zostalo zatwierdzone, klient moze ponowic."""

    status_code = 500
    retryable = True


class CheckoutTimeout(PersistenceFailure):
    pass

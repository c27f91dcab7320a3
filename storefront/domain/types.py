# storefront/domain/types.py
from collections.abc import Mapping
from enum import Enum
from typing import Iterator, NewType

SizeLabel = NewType("SizeLabel", str)


class OrderStatus(str, Enum):
    PLACED = "Placed"
    PROCESSING = "Processing"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"


class PaymentMethod(str, Enum):
    COD = "COD"
    RAZORPAY = "Razorpay"
    STRIPE = "Stripe"


class StockLevels(Mapping):
    """
    Niemutowalny widok stanow magazynowych produktu: rozmiar -> ilosc.

    Rozmiar bez wpisu ma 0 sztuk (stare produkty bez mapy stanow),
    dlatego available() nigdy nie rzuca KeyError.
    """

    def __init__(self, levels: Mapping[str, int] | None = None):
        self._levels = {SizeLabel(size): int(qty) for size, qty in (levels or {}).items()}

    def __getitem__(self, size: str) -> int:
        return self._levels[SizeLabel(size)]

    def __iter__(self) -> Iterator[SizeLabel]:
        return iter(self._levels)

    def __len__(self) -> int:
        return len(self._levels)

    def available(self, size: str) -> int:
        return self._levels.get(SizeLabel(size), 0)

    def __repr__(self) -> str:
        return f"StockLevels({self._levels!r})"

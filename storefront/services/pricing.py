# storefront/services/pricing.py
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Mapping

from storefront.domain.errors import AmountMismatch, InvalidQuantity, InvalidSize, UnknownProduct
from storefront.utils import settings

CENT = Decimal("0.01")


def to_money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PricedItem:
    product_id: int
    name: str
    size: str
    quantity: int
    unit_price: Decimal
    subtotal: Decimal


@dataclass(frozen=True)
class PricingResult:
    items: tuple
    subtotal: Decimal
    delivery_fee: Decimal
    total: Decimal


class PricingEngine:
    """
    Liczy kwoty zamowienia wylacznie z danych katalogu.

    Ceny i sumy przyslane przez klienta sa ignorowane. Kwota z UI
    (expected_total) sluzy tylko do porownania - zapisywany jest total
    policzony tutaj.
    """

    def __init__(
        self,
        delivery_fee: Decimal | None = None,
        max_quantity: int | None = None,
        tolerance: Decimal | None = None,
        tolerance_mode: str | None = None,
    ):
        self.delivery_fee = to_money(settings.DELIVERY_FEE if delivery_fee is None else delivery_fee)
        self.max_quantity = settings.MAX_ITEM_QUANTITY if max_quantity is None else max_quantity
        self.tolerance = Decimal(str(settings.AMOUNT_TOLERANCE if tolerance is None else tolerance))
        self.tolerance_mode = tolerance_mode or settings.AMOUNT_TOLERANCE_MODE

        if self.tolerance_mode not in ("absolute", "relative"):
            raise ValueError(f"Nieznany tryb tolerancji: {self.tolerance_mode}")

    def compute(
        self,
        items: Iterable,
        catalog: Mapping,
        expected_total: Decimal | None = None,
    ) -> PricingResult:
        priced = []

        for item in items:
            product = catalog.get(item.product_id)
            if product is None:
                raise UnknownProduct(item.product_id)

            if item.size not in product.sizes:
                raise InvalidSize(item.product_id, item.size)

            self._check_quantity(item.product_id, item.quantity)

            unit_price = to_money(product.price)
            priced.append(
                PricedItem(
                    product_id=product.id,
                    name=product.name,
                    size=item.size,
                    quantity=item.quantity,
                    unit_price=unit_price,
                    subtotal=to_money(unit_price * item.quantity),
                )
            )

        subtotal = to_money(sum((p.subtotal for p in priced), Decimal("0.00")))
        total = to_money(subtotal + self.delivery_fee)

        if expected_total is not None:
            self.verify_amount(total, expected_total)

        return PricingResult(
            items=tuple(priced),
            subtotal=subtotal,
            delivery_fee=self.delivery_fee,
            total=total,
        )

    def verify_amount(self, total: Decimal, expected_total) -> None:
        received = Decimal(str(expected_total))
        allowed = self.tolerance if self.tolerance_mode == "absolute" else self.tolerance * total

        if abs(received - total) > allowed:
            raise AmountMismatch(expected=total, received=received)

    def _check_quantity(self, product_id, quantity):
        # bool to tez int w pythonie
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            raise InvalidQuantity(product_id, quantity, self.max_quantity)
        if quantity < 1 or quantity > self.max_quantity:
            raise InvalidQuantity(product_id, quantity, self.max_quantity)

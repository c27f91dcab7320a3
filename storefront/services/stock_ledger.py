# storefront/services/stock_ledger.py
from dataclasses import dataclass

from sqlalchemy.orm import Session

from storefront.data.models.product import ProductModel
from storefront.domain.errors import InsufficientStock, InvalidSize
from storefront.domain.types import SizeLabel, StockLevels
from storefront.repos.product_repo import ProductRepo
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Reservation:
    product_id: int
    size: SizeLabel
    quantity: int


class StockLedger:
    """
    Stany magazynowe per (produkt, rozmiar).

    -sprawdzenie i zmniejszenie stanu to jeden warunkowy UPDATE,
     dwa rownolegle zamowienia nie przejda obu na tym samym starym stanie
    -brak wiersza dla rozmiaru = 0 sztuk
    -rezerwacja jest trwala dopiero po commicie transakcji zamowienia
    """

    def __init__(self, db: Session):
        self.repo = ProductRepo(db)

    def levels(self, product_id: int) -> StockLevels:
        return StockLevels({row.size: row.quantity for row in self.repo.get_stock_rows(product_id)})

    def available(self, product_id: int, size: str) -> int:
        return self.levels(product_id).available(size)

    def check_and_reserve(self, product_id: int, size: str, quantity: int) -> Reservation:
        rowcount = self.repo.decrement_stock_if_available(product_id, size, quantity)

        if rowcount == 0:
            available = self.available(product_id, size)
            logger.info(
                f"Insufficient stock for product {product_id} ({size}): "
                f"available {available}, requested {quantity}"
            )
            raise InsufficientStock(product_id, size, available, quantity)

        logger.info(f"Reserved {quantity} x product {product_id} ({size})")
        return Reservation(product_id=product_id, size=SizeLabel(size), quantity=quantity)

    def release(self, reservation: Reservation) -> None:
        """Kompensata rezerwacji - zwraca sztuki na stan."""
        rowcount = self.repo.increment_stock(
            reservation.product_id, reservation.size, reservation.quantity
        )
        if rowcount == 0:
            # wiersz zniknal w miedzyczasie (produkt usuniety)
            logger.warning(f"Could not release reservation {reservation}: stock row missing")
            return
        logger.info(
            f"Released {reservation.quantity} x product {reservation.product_id} ({reservation.size})"
        )

    def set_stock(self, product: ProductModel, size: str, quantity: int):
        # uzywane przez admina i seed, nie przez skladanie zamowien
        if size not in (product.sizes or []):
            raise InvalidSize(product.id, size)
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 0:
            raise ValueError(f"Stan magazynowy musi byc liczba >= 0, otrzymano {quantity!r}")
        return self.repo.set_stock(product.id, size, quantity)

# storefront/services/catalog_resolver.py
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from sqlalchemy.orm import Session

from storefront.domain.errors import CatalogIncomplete
from storefront.repos.product_repo import ProductRepo
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ProductSnapshot:
    id: int
    name: str
    price: Decimal
    sizes: tuple


class CatalogResolver:
    """Laduje aktualne dane produktow dla pozycji zamowienia jednym zapytaniem."""

    def __init__(self, db: Session):
        self.repo = ProductRepo(db)

    def resolve(self, items: Iterable) -> dict[int, ProductSnapshot]:
        # ten sam produkt moze byc w koszyku w dwoch rozmiarach
        product_ids = list(dict.fromkeys(item.product_id for item in items))

        products = self.repo.get_products(product_ids)
        catalog = {
            p.id: ProductSnapshot(
                id=p.id,
                name=p.name,
                price=Decimal(str(p.price)),
                sizes=tuple(p.sizes or ()),
            )
            for p in products
        }

        missing = [pid for pid in product_ids if pid not in catalog]
        if missing:
            logger.info(f"Catalog incomplete, missing products: {missing}")
            raise CatalogIncomplete(missing)

        return catalog

# storefront/data/seed.py
from decimal import Decimal

from sqlalchemy.orm import Session

from storefront.data.database import SessionLocal, init_db
from storefront.data.models import ProductModel, UserModel
from storefront.repos.product_repo import ProductRepo
from storefront.services.stock_ledger import StockLedger
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

DEMO_PRODUCTS = [
    {"name": "Basic Tee", "price": Decimal("100.00"), "stock": {"S": 20, "M": 10, "L": 5}},
    {"name": "Hoodie", "price": Decimal("349.99"), "stock": {"M": 8, "L": 8, "XL": 3}},
    {"name": "Denim Jacket", "price": Decimal("899.00"), "stock": {"M": 2, "L": 1}},
]


def migrate_legacy_products(db: Session) -> int:
    """
    Dodaje zerowe stany dla produktow bez mapy stanow.
    Takie produkty i tak sa niedostepne, migracja tylko robi to jawnym.
    """
    repo = ProductRepo(db)
    ledger = StockLedger(db)
    migrated = 0

    for product in repo.list_products():
        if ledger.levels(product.id):
            continue
        if not product.sizes:
            logger.warning(f"Product {product.id} has no sizes defined, skipping")
            continue
        for size in product.sizes:
            ledger.set_stock(product, size, 0)
        migrated += 1
        logger.info(f"Added zero stock for product {product.id} sizes {product.sizes}")

    db.commit()
    logger.info(f"Legacy product migration done, migrated {migrated}")
    return migrated


def seed():
    db = SessionLocal()
    try:
        # not forcing: only seed if empty
        if ProductRepo(db).list_products():
            return

        db.add(UserModel(id=1, name="Demo User", cart_data={}))

        ledger = StockLedger(db)
        for spec in DEMO_PRODUCTS:
            product = ProductRepo(db).create_product(
                ProductModel(name=spec["name"], price=spec["price"], sizes=list(spec["stock"]))
            )
            for size, quantity in spec["stock"].items():
                ledger.set_stock(product, size, quantity)

        db.commit()
        logger.info(f"Seeded {len(DEMO_PRODUCTS)} products")
    finally:
        db.close()


if __name__ == "__main__":
    init_db()
    seed()
    with SessionLocal() as session:
        migrate_legacy_products(session)

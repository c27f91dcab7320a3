# storefront/repos/product_repo.py
from sqlalchemy import select, update
from sqlalchemy.orm import Session

from storefront.data.models.product import ProductModel
from storefront.data.models.product_stock import ProductStockModel


class ProductRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_product(self, product_id: int) -> ProductModel | None:
        return self.db.get(ProductModel, product_id)

    def get_products(self, product_ids: list[int]) -> list[ProductModel]:
        if not product_ids:
            return []
        return list(
            self.db.execute(
                select(ProductModel).where(ProductModel.id.in_(product_ids))
            ).scalars().all()
        )

    def list_products(self) -> list[ProductModel]:
        return list(self.db.execute(select(ProductModel).order_by(ProductModel.id)).scalars().all())

    def create_product(self, product: ProductModel) -> ProductModel:
        self.db.add(product)
        self.db.flush()
        return product

    def get_stock_rows(self, product_id: int) -> list[ProductStockModel]:
        return list(
            self.db.execute(
                select(ProductStockModel).where(ProductStockModel.product_id == product_id)
            ).scalars().all()
        )

    def get_stock_quantity(self, product_id: int, size: str) -> int | None:
        return self.db.execute(
            select(ProductStockModel.quantity).where(
                ProductStockModel.product_id == product_id,
                ProductStockModel.size == size,
            )
        ).scalar_one_or_none()

    def decrement_stock_if_available(self, product_id: int, size: str, quantity: int) -> int:
        # warunek i zmiana w jednym UPDATE
        # np UPDATE product_stock SET quantity = quantity - 2 WHERE ... AND quantity >= 2
        result = self.db.execute(
            update(ProductStockModel)
            .where(
                ProductStockModel.product_id == product_id,
                ProductStockModel.size == size,
                ProductStockModel.quantity >= quantity,
            )
            .values(quantity=ProductStockModel.quantity - quantity)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def increment_stock(self, product_id: int, size: str, quantity: int) -> int:
        result = self.db.execute(
            update(ProductStockModel)
            .where(
                ProductStockModel.product_id == product_id,
                ProductStockModel.size == size,
            )
            .values(quantity=ProductStockModel.quantity + quantity)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def set_stock(self, product_id: int, size: str, quantity: int) -> ProductStockModel:
        row = self.db.get(ProductStockModel, (product_id, size))
        if row:
            row.quantity = quantity
        else:
            row = ProductStockModel(product_id=product_id, size=size, quantity=quantity)
            self.db.add(row)
        self.db.flush()
        return row

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()

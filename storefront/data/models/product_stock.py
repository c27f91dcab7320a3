from sqlalchemy import Column, Integer, String, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship

from storefront.data.database import Base


class ProductStockModel(Base):
    """Stan magazynowy jednego rozmiaru produktu. Brak wiersza = 0 sztuk."""

    __tablename__ = "product_stock"

    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), primary_key=True)
    size = Column(String(10), primary_key=True)
    quantity = Column(Integer, nullable=False, default=0)

    product = relationship("ProductModel", back_populates="stock")

    __table_args__ = (CheckConstraint("quantity >= 0", name="ck_stock_non_negative"),)

from sqlalchemy import Column, Integer, String, JSON
from sqlalchemy.ext.mutable import MutableDict

from storefront.data.database import Base


class UserModel(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)

    # koszyk: {product_id: {rozmiar: ilosc}}
    cart_data = Column(MutableDict.as_mutable(JSON), nullable=False, default=dict)

# storefront/domain/schemas.py
from pydantic import BaseModel, Field, ConfigDict, PlainSerializer
from pydantic.alias_generators import to_camel
from typing import Annotated, Dict, List
from decimal import Decimal
from datetime import datetime

from storefront.domain.types import OrderStatus, PaymentMethod

# kwoty w odpowiedziach jako liczby JSON, tak jak przychodzi amount z UI
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class CamelModel(BaseModel):
    """JSON po stronie klienta uzywa camelCase (productId, orderId)."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        str_strip_whitespace=True,
    )


class OrderItemIn(CamelModel):
    """Schema dla pozycji zamowienia. Cena z klienta nie jest przyjmowana."""

    product_id: int = Field(..., gt=0, description="ID produktu (musi być > 0)")
    size: str = Field(..., min_length=1, max_length=10, description="Rozmiar, np. S/M/L")
    # zakres sprawdza PricingEngine (InvalidQuantity)
    quantity: int = Field(..., description="Ilość sztuk")


class AddressIn(CamelModel):
    """Adres dostawy - sprawdzamy tylko obecnosc pol."""

    firstname: str = Field(..., min_length=1, max_length=50)
    lastname: str = Field(..., min_length=1, max_length=50)
    email: str = Field(..., min_length=1, max_length=254)
    street: str = Field(..., min_length=1, max_length=200)
    city: str = Field(..., min_length=1, max_length=50)
    state: str = Field(..., min_length=1, max_length=50)
    pincode: str = Field(..., min_length=1, max_length=20)
    country: str = Field(..., min_length=1, max_length=50)
    phone: str = Field(..., min_length=1, max_length=20)


class PlaceOrderIn(CamelModel):
    """Schema dla skladania zamowienia."""

    items: List[OrderItemIn] = Field(..., min_length=1, description="Co najmniej jedna pozycja")
    amount: Decimal | None = Field(None, description="Kwota z UI - tylko do porownania")
    address: AddressIn
    payment_method: PaymentMethod = PaymentMethod.COD


class PlaceOrderOut(CamelModel):
    success: bool = True
    order_id: int
    amount: Money


class OrderItemOut(CamelModel):
    product_id: int
    name: str
    size: str
    quantity: int
    unit_price: Money
    subtotal: Money


class OrderOut(CamelModel):
    """Schema dla zamówienia (response)."""

    id: int
    user_id: int
    items: List[OrderItemOut]
    subtotal: Money
    delivery_fee: Money
    amount: Money
    address: Dict[str, str]
    status: OrderStatus
    payment: bool
    payment_method: PaymentMethod
    created_at: datetime


class OrderPage(CamelModel):
    orders: List[OrderOut]
    page: int
    page_size: int
    total: int


class StatusUpdateIn(CamelModel):
    order_id: int = Field(..., gt=0, description="ID zamówienia")
    # wartosc sprawdza StatusWorkflow (InvalidStatus)
    status: str


class StatusUpdateOut(CamelModel):
    success: bool = True
    order_id: int
    status: OrderStatus


class UserCreate(CamelModel):
    """Schema dla tworzenia użytkownika."""

    id: int = Field(..., gt=0, description="ID użytkownika (musi być > 0)")
    name: str = Field(..., min_length=1, max_length=100, description="Imię użytkownika")


class UserRead(CamelModel):
    """Schema dla użytkownika (response)."""

    id: int
    name: str
    cart_data: Dict[str, Dict[str, int]] = Field(default_factory=dict)


class CartItemIn(CamelModel):
    """Ustawienie ilosci w koszyku. 0 usuwa pozycje."""

    product_id: int = Field(..., gt=0)
    size: str = Field(..., min_length=1, max_length=10)
    quantity: int = Field(..., ge=0)

# storefront/api/routers/orders.py
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from storefront.data.database import get_db
from storefront.domain.schemas import OrderOut, PlaceOrderIn, PlaceOrderOut
from storefront.services.checkout import CheckoutCoordinator
from storefront.services.lock_service import LockService
from storefront.services.order_service import OrderService
from storefront.utils.settings import CHECKOUT_LOCK_ENABLED

router = APIRouter(prefix="/orders", tags=["orders"])


def get_coordinator(db: Session):
    return CheckoutCoordinator(
        db=db,
        lock_service=LockService() if CHECKOUT_LOCK_ENABLED else None,
    )


@router.post("/", response_model=PlaceOrderOut, status_code=201)
def place_order(
    payload: PlaceOrderIn,
    user_id: int = Query(..., gt=0),
    db: Session = Depends(get_db),
):
    """
    Sklada zamowienie: ceny z katalogu, rezerwacja stanow, zapis i czyszczenie
    koszyka jako jedna operacja. Pole amount jest tylko do porownania.
    """
    result = get_coordinator(db).place_order(user_id, payload)
    return PlaceOrderOut(order_id=result.order_id, amount=result.amount)


@router.get("/", response_model=List[OrderOut])
def list_user_orders(
    user_id: int = Query(..., gt=0),
    db: Session = Depends(get_db),
):
    return OrderService(db).list_user_orders(user_id)


@router.get("/{order_id}", response_model=OrderOut)
def get_order(
    order_id: int,
    user_id: int = Query(..., gt=0),
    db: Session = Depends(get_db),
):
    """
    Pobiera szczegóły zamówienia.
    """
    return OrderService(db).get_order(order_id, user_id)

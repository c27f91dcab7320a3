from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from storefront.data.database import get_db
from storefront.services.cart_service import CartService
from storefront.services.user_service import UserService
from storefront.domain.schemas import CartItemIn, UserCreate, UserRead

router = APIRouter(prefix="/users", tags=["users"])

@router.post("/", response_model=UserRead)
def create_user(payload: UserCreate, db: Session = Depends(get_db)):
    return UserService(db).create_user(payload)

@router.get("/{user_id}", response_model=UserRead)
def get_user(user_id: int, db: Session = Depends(get_db)):
    return UserService(db).get_user(user_id)

@router.get("/{user_id}/cart")
def get_cart(user_id: int, db: Session = Depends(get_db)):
    return CartService(db).get_cart(user_id)

@router.put("/{user_id}/cart")
def set_cart_item(user_id: int, payload: CartItemIn, db: Session = Depends(get_db)):
    return CartService(db).set_item(user_id, payload.product_id, payload.size, payload.quantity)

@router.delete("/{user_id}/cart")
def clear_cart(user_id: int, db: Session = Depends(get_db)):
    return CartService(db).clear_cart(user_id)

from typing import Dict, Any
from sqlalchemy.orm import Session
from storefront.domain.errors import InvalidSize, NotFound, UnknownProduct
from storefront.repos.product_repo import ProductRepo
from storefront.repos.user_repo import UserRepo
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class CartService:
    """
    Koszyk nalezy do uzytkownika (pole cart_data).
    commands (set_item, clear) modyfikuja stan
    query (get) tylko odczyt
    Koszyk jest tylko podpowiedzia dla UI - ceny i stany liczy checkout.
    """

    def __init__(self, db: Session):
        self.db = db
        self.repo = UserRepo(db)
        self.products = ProductRepo(db)

    #query - odczyt
    def get_cart(self, user_id: int) -> Dict[str, Any]:
        user = self.repo.get_user(user_id)
        if not user:
            raise NotFound(f"User {user_id} not found")

        return {"user_id": user.id, "items": dict(user.cart_data or {})}

    #commands
    def set_item(self, user_id: int, product_id: int, size: str, quantity: int) -> Dict[str, Any]:
        user = self.repo.get_user(user_id)
        if not user:
            raise NotFound(f"User {user_id} not found")

        product = self.products.get_product(product_id)
        if not product:
            raise UnknownProduct(product_id)

        if size not in (product.sizes or []):
            raise InvalidSize(product_id, size)

        #kopia - mutacje zagniezdzonego dicta nie sa sledzone przez MutableDict
        cart = {pid: dict(sizes) for pid, sizes in (user.cart_data or {}).items()}
        key = str(product_id)
        sizes = cart.setdefault(key, {})

        if quantity == 0:
            sizes.pop(size, None)
            if not sizes:
                cart.pop(key)
            logger.info(f"Usunieto produkt {product_id} ({size}) z koszyka uzytkownika {user_id}")
        else:
            sizes[size] = quantity
            logger.info(f"Koszyk uzytkownika {user_id}: produkt {product_id} ({size}) x {quantity}")

        user.cart_data = cart
        self.db.commit()

        return self.get_cart(user_id)

    def clear_cart(self, user_id: int) -> Dict[str, Any]:
        rowcount = self.repo.clear_cart(user_id)
        if rowcount == 0:
            self.db.rollback()
            raise NotFound(f"User {user_id} not found")

        self.db.commit()
        logger.info(f"Koszyk uzytkownika {user_id} wyczyszczony")
        return {"user_id": user_id, "items": {}}

# storefront/tasks/cart.py
from sqlalchemy.exc import SQLAlchemyError

from storefront.celery_worker import celery_app
from storefront.data.database import SessionLocal
from storefront.domain.errors import NotFound
from storefront.services.cart_service import CartService
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


@celery_app.task(
    name="storefront.tasks.cart.clear_cart_task",
    autoretry_for=(SQLAlchemyError,),
    retry_backoff=True,
    retry_kwargs={"max_retries": 5},
)
def clear_cart_task(user_id: int):
    """
    Ponowienie czyszczenia koszyka, gdy nie udalo sie w transakcji zamowienia.
    Zamowienie juz stoi - tu tylko doprowadzamy koszyk do stanu pustego.
    """
    logger.info(f"Clear cart task started for user {user_id}")

    db = SessionLocal()
    try:
        CartService(db).clear_cart(user_id)
    except NotFound:
        logger.warning(f"User {user_id} no longer exists, nothing to clear")
        return {"user_id": user_id, "status": "skipped"}
    finally:
        db.close()

    return {"user_id": user_id, "status": "cleared"}

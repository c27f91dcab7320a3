# storefront/api/routers/admin.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from storefront.data.database import get_db
from storefront.domain.schemas import OrderPage, StatusUpdateIn, StatusUpdateOut
from storefront.services.order_service import OrderService
from storefront.services.status_workflow import StatusWorkflow

# autoryzacja admina jest poza tym serwisem (gateway)
router = APIRouter(prefix="/admin/orders", tags=["admin"])


@router.get("/", response_model=OrderPage)
def list_orders(
    page: int = Query(1, ge=1),
    page_size: int | None = Query(None, ge=1),
    status: str | None = Query(None),
    db: Session = Depends(get_db),
):
    return OrderService(db).list_orders(page=page, page_size=page_size, status=status)


@router.post("/status", response_model=StatusUpdateOut)
def update_status(payload: StatusUpdateIn, db: Session = Depends(get_db)):
    order = StatusWorkflow(db).transition(payload.order_id, payload.status)
    return StatusUpdateOut(order_id=order.id, status=order.status)

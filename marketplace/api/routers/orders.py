# marketplace/api/routers/orders.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from marketplace.data.database import get_db
from marketplace.domain.exceptions import OrderValidationError, StockConflictError
from marketplace.domain.schemas import ItemIn, OrderFromCartIn, OrderOut
from marketplace.services.notification_service import NotificationService
from marketplace.services.order_service import OrderService
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/orders", tags=["orders"])


def get_service(db: Session = Depends(get_db)) -> OrderService:
    return OrderService(db, NotificationService())


def _place(place):
    """Map placement failures to HTTP errors. Nothing is committed on any of them."""
    try:
        return place()
    except OrderValidationError as e:
        raise HTTPException(status_code=400, detail=e.errors)
    except StockConflictError as e:
        raise HTTPException(status_code=409, detail=[str(e)])
    except ValueError as e:
        raise HTTPException(status_code=400, detail=[str(e)])
    except SQLAlchemyError as e:
        #lock timeout, lost connection... rolled back, safe to retry
        logger.error(f"Order placement failed in the database: {e}")
        raise HTTPException(
            status_code=503,
            detail=["order could not be placed right now, please retry"],
        )


@router.post("/", response_model=OrderOut, status_code=201)
def create_order_from_cart(
    payload: OrderFromCartIn | None = None,
    user_id: int = Query(...),
    svc: OrderService = Depends(get_service),
):
    """
    Places an order from the buyer's cart (all of it, or only product_ids).
    """
    product_ids = payload.product_ids if payload else None
    return _place(lambda: svc.place_order_from_cart(user_id, product_ids))


@router.post("/direct", response_model=OrderOut, status_code=201)
def create_order(
    payload: List[ItemIn],
    user_id: int = Query(...),
    svc: OrderService = Depends(get_service),
):
    """
    Places an order from the given lines, the cart is not touched.
    """
    return _place(lambda: svc.place_order(user_id, payload))


@router.get("/", response_model=List[OrderOut])
def list_orders(
    user_id: int = Query(...),
    svc: OrderService = Depends(get_service),
):
    return svc.list_orders(user_id)


@router.get("/{order_id}", response_model=OrderOut)
def get_order(
    order_id: int,
    user_id: int = Query(...),
    svc: OrderService = Depends(get_service),
):
    try:
        return svc.get_order(order_id, user_id)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))

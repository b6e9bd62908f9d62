# marketplace/api/routers/admin_orders.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query

from marketplace.api.routers.orders import get_service
from marketplace.domain.exceptions import InvalidStatusTransition
from marketplace.domain.schemas import OrderOut, OrderStatusIn
from marketplace.services.order_service import OrderService

router = APIRouter(prefix="/admin/orders", tags=["admin orders"])


@router.get("", response_model=List[OrderOut])
def list_orders(
    user_id: int = Query(...),
    svc: OrderService = Depends(get_service),
):
    try:
        return svc.list_all_orders(user_id)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))


@router.put("/{order_id}/status", response_model=OrderOut)
def update_order_status(
    order_id: int,
    payload: OrderStatusIn,
    user_id: int = Query(...),
    svc: OrderService = Depends(get_service),
):
    try:
        return svc.update_status(order_id, payload.status, admin_id=user_id)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except InvalidStatusTransition as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))

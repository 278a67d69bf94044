import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException

from storefront.api.deps import get_current_user, get_order_service
from storefront.models.database import User
from storefront.models.schemas import Order
from storefront.services.exceptions import (
    EmptyCartError,
    InsufficientStockError,
    NotFoundError,
    PersistenceError,
)
from storefront.services.order_service import OrderPlacementService

logger = logging.getLogger(__name__)

router = APIRouter()

@router.post("/", response_model=Order, status_code=201)
async def place_order(
    idempotency_key: Optional[str] = Header(default=None),
    user: User = Depends(get_current_user),
    service: OrderPlacementService = Depends(get_order_service),
):
    """Place an order for everything in the caller's cart"""
    try:
        return await service.place_order(user.id, idempotency_key=idempotency_key)
    except EmptyCartError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except InsufficientStockError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except PersistenceError as e:
        logger.error(f"Order placement failed for user {user.id}: {e}")
        raise HTTPException(status_code=500, detail="Order failed, please try again")

@router.get("/", response_model=List[Order])
def get_orders(
    user: User = Depends(get_current_user),
    service: OrderPlacementService = Depends(get_order_service),
):
    """Get the caller's orders"""
    return service.list_orders(user.id)

@router.get("/{order_id}", response_model=Order)
def get_order(
    order_id: int,
    user: User = Depends(get_current_user),
    service: OrderPlacementService = Depends(get_order_service),
):
    """Get one of the caller's orders"""
    try:
        return service.get_order(user.id, order_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Order not found")

from fastapi import APIRouter, Depends, HTTPException
from typing import List

from storefront.api.deps import get_cart_service, get_current_user
from storefront.models.database import User
from storefront.models.schemas import CartItem, CartItemCreate
from storefront.services.cart_service import CartService
from storefront.services.exceptions import NotFoundError, PersistenceError

router = APIRouter()

@router.post("/", response_model=CartItem, status_code=201)
def add_cart_item(
    item_data: CartItemCreate,
    user: User = Depends(get_current_user),
    service: CartService = Depends(get_cart_service),
):
    """Add a product to the caller's cart"""
    try:
        return service.add_item(user.id, item_data.product_id, item_data.quantity)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PersistenceError:
        raise HTTPException(status_code=500, detail="Cart update failed, please try again")

@router.get("/", response_model=List[CartItem])
def get_cart_items(
    user: User = Depends(get_current_user),
    service: CartService = Depends(get_cart_service),
):
    """Get the caller's cart"""
    return service.list_items(user.id)

@router.delete("/{cart_item_id}")
def remove_cart_item(
    cart_item_id: int,
    user: User = Depends(get_current_user),
    service: CartService = Depends(get_cart_service),
):
    """Remove a line from the caller's cart"""
    try:
        service.remove_item(user.id, cart_item_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Cart item not found")
    return {"message": "Cart item removed"}

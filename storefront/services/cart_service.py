import logging
from typing import Callable, List

from storefront.models.domain import CartLine
from storefront.services.exceptions import NotFoundError
from storefront.services.stores import UnitOfWork

logger = logging.getLogger(__name__)


class CartService:
    """Manages the lines a user has in their cart before checkout"""

    def __init__(self, uow_factory: Callable[[], UnitOfWork]):
        self.uow_factory = uow_factory

    def add_item(self, user_id: int, product_id: int, quantity: int) -> CartLine:
        """Add a product to the cart; adding it again increases the quantity"""
        if quantity <= 0:
            raise ValueError("Quantity must be positive")
        with self.uow_factory() as uow:
            if uow.catalog.get_stock_and_price(product_id) is None:
                raise NotFoundError(f"Product {product_id} not found")
            line = uow.carts.add(user_id, product_id, quantity)
            uow.commit()
        logger.info(f"Cart for user {user_id}: product {product_id} now x{line.quantity}")
        return line

    def list_items(self, user_id: int) -> List[CartLine]:
        with self.uow_factory() as uow:
            return uow.carts.list_lines(user_id)

    def remove_item(self, user_id: int, cart_item_id: int) -> None:
        with self.uow_factory() as uow:
            if not uow.carts.remove(cart_item_id, user_id):
                raise NotFoundError(f"Cart item {cart_item_id} not found")
            uow.commit()
        logger.info(f"Removed cart item {cart_item_id} for user {user_id}")

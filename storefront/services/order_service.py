import asyncio
import logging
from dataclasses import replace
from datetime import datetime
from typing import Callable, List, Optional

from storefront.models.domain import Order, OrderLine
from storefront.services.exceptions import (
    EmptyCartError,
    InsufficientStockError,
    NotFoundError,
    PersistenceError,
)
from storefront.services.stores import UnitOfWork

logger = logging.getLogger(__name__)


class OrderPlacementService:
    """
    Turns a user's cart into an order.

    Reading the cart, checking stock, decrementing stock, recording the order
    and clearing the cart all happen in one unit of work: either every change
    is committed or none is. Stock is decremented with a conditional write, so
    concurrent placements against the same product cannot oversell it; the
    placement that loses the race fails with InsufficientStockError.
    Nothing is retried here.
    """

    def __init__(self, uow_factory: Callable[[], UnitOfWork]):
        self.uow_factory = uow_factory

    async def place_order(self, user_id: int, idempotency_key: Optional[str] = None) -> Order:
        """
        Place an order for everything in the user's cart.

        If idempotency_key matches an order this user already placed, that
        order is returned and nothing else happens.

        Raises EmptyCartError, InsufficientStockError or PersistenceError.
        """
        logger.info(f"Placing order for user {user_id}")
        # The unit of work blocks on database I/O; keep it off the event loop
        return await asyncio.to_thread(self._place_order, user_id, idempotency_key)

    def _place_order(self, user_id: int, idempotency_key: Optional[str]) -> Order:
        with self.uow_factory() as uow:
            if idempotency_key:
                existing = uow.orders.find_by_idempotency_key(user_id, idempotency_key)
                if existing is not None:
                    logger.info(
                        f"Order {existing.id} already placed with key {idempotency_key!r}, returning it"
                    )
                    return existing

            cart_lines = uow.carts.list_lines(user_id)
            if not cart_lines:
                raise EmptyCartError(user_id)

            # Step 1: Validate every line against current stock and snapshot prices
            order_lines: List[OrderLine] = []
            for line in cart_lines:
                current = uow.catalog.get_stock_and_price(line.product_id)
                if current is None:
                    raise InsufficientStockError(line.product_id, line.quantity, 0)
                price, stock = current
                if stock < line.quantity:
                    raise InsufficientStockError(line.product_id, line.quantity, stock)
                order_lines.append(
                    OrderLine(product_id=line.product_id, quantity=line.quantity, unit_price=price)
                )

            # Step 2: Reserve stock; a refused decrement means another order got there first
            for line in order_lines:
                if not uow.catalog.decrement_stock(line.product_id, line.quantity):
                    current = uow.catalog.get_stock_and_price(line.product_id)
                    available = current[1] if current is not None else 0
                    logger.warning(
                        f"Stock for product {line.product_id} changed during checkout "
                        f"for user {user_id}"
                    )
                    raise InsufficientStockError(line.product_id, line.quantity, available)

            # Step 3: Record the order and empty the cart
            order = Order.from_lines(
                user_id=user_id,
                items=order_lines,
                created_at=datetime.utcnow(),
                idempotency_key=idempotency_key,
            )
            order_id = uow.orders.append(order)
            # Lines added after the read stay for a later order
            if not uow.carts.clear(user_id, cart_lines):
                logger.warning(f"Cart for user {user_id} changed during checkout")
                raise PersistenceError("Cart changed during checkout, please try again")
            uow.commit()

        order = replace(order, id=order_id)
        logger.info(
            f"Order {order.id} placed for user {user_id}: "
            f"{len(order.items)} line(s), total {order.total_amount}"
        )
        return order

    def list_orders(self, user_id: int) -> List[Order]:
        with self.uow_factory() as uow:
            return uow.orders.list_for_user(user_id)

    def get_order(self, user_id: int, order_id: int) -> Order:
        """Return one of the user's orders; other users' orders are not found"""
        with self.uow_factory() as uow:
            order = uow.orders.get(order_id)
        if order is None or order.user_id != user_id:
            raise NotFoundError(f"Order {order_id} not found")
        return order

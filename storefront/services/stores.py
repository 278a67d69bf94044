"""Storage capabilities used by the cart and order services.

A UnitOfWork bundles one store of each kind over a single transaction.
Implementations: storefront.services.sql_stores (SQLAlchemy) and the
in-memory fakes in the test suite.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import List, Optional, Tuple

from storefront.models.domain import CartLine, Order


class CatalogStore(ABC):

    @abstractmethod
    def get_stock_and_price(self, product_id: int) -> Optional[Tuple[Decimal, int]]:
        """Return (price, stock) for a product, or None if it does not exist."""

    @abstractmethod
    def decrement_stock(self, product_id: int, quantity: int) -> bool:
        """Remove quantity units from stock.

        Applied only when at least quantity units are in stock at write time;
        returns False (and changes nothing) otherwise.
        """


class CartStore(ABC):

    @abstractmethod
    def list_lines(self, user_id: int) -> List[CartLine]:
        """Return the user's cart lines in insertion order."""

    @abstractmethod
    def add(self, user_id: int, product_id: int, quantity: int) -> CartLine:
        """Add quantity to the user's line for product, creating it if needed."""

    @abstractmethod
    def remove(self, cart_item_id: int, user_id: int) -> bool:
        """Delete one line owned by the user. False if there was none."""

    @abstractmethod
    def clear(self, user_id: int, lines: List[CartLine]) -> bool:
        """Delete the given lines from the user's cart.

        A line is deleted only if it still holds the quantity it was read
        with. Returns False if any line was changed or removed meanwhile;
        lines added since they were read are left in place.
        """


class OrderLedger(ABC):

    @abstractmethod
    def append(self, order: Order) -> int:
        """Record a new order and return its id."""

    @abstractmethod
    def get(self, order_id: int) -> Optional[Order]:
        """Return an order by id, or None."""

    @abstractmethod
    def list_for_user(self, user_id: int) -> List[Order]:
        """Return the user's orders, oldest first."""

    @abstractmethod
    def find_by_idempotency_key(self, user_id: int, key: str) -> Optional[Order]:
        """Return the user's order placed with this key, or None."""


class UnitOfWork(ABC):
    """Transaction scope over the three stores.

    Use as a context manager. Changes are kept only if commit() is called
    before the block exits; otherwise, or on any exception, they are rolled
    back.
    """

    catalog: CatalogStore
    carts: CartStore
    orders: OrderLedger

    def __enter__(self) -> "UnitOfWork":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.rollback()

    @abstractmethod
    def commit(self) -> None:
        """Make every change in this unit of work durable."""

    @abstractmethod
    def rollback(self) -> None:
        """Discard uncommitted changes. Safe to call after commit."""

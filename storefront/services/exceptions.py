"""Errors raised by the storefront services.

Routes translate these into HTTP responses; every subclass carries a message
that is safe to show to the caller.
"""


class StorefrontError(Exception):
    """Base class for service errors"""


class NotFoundError(StorefrontError):
    """A referenced product, cart line or order does not exist"""


class EmptyCartError(StorefrontError):
    """Raised when placing an order for a user with nothing in the cart"""

    def __init__(self, user_id: int):
        self.user_id = user_id
        super().__init__(f"Cart is empty for user {user_id}")


class InsufficientStockError(StorefrontError):
    """Raised when a cart line asks for more units than are in stock"""

    def __init__(self, product_id: int, requested: int, available: int):
        self.product_id = product_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock for product {product_id}. "
            f"Available: {available}, Requested: {requested}"
        )


class PersistenceError(StorefrontError):
    """The database failed; the unit of work was rolled back"""

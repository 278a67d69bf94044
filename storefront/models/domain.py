"""Plain records passed between the order placement service and its stores.

These are independent of SQLAlchemy so the service can run against any
store implementation, including the in-memory ones used in tests.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import List, Optional


@dataclass(frozen=True)
class CartLine:
    user_id: int
    product_id: int
    quantity: int
    id: Optional[int] = None


@dataclass(frozen=True)
class OrderLine:
    product_id: int
    quantity: int
    unit_price: Decimal

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class Order:
    user_id: int
    created_at: datetime
    items: List[OrderLine] = field(default_factory=list)
    total_amount: Decimal = Decimal("0")
    idempotency_key: Optional[str] = None
    id: Optional[int] = None

    @classmethod
    def from_lines(cls, user_id: int, items: List[OrderLine], created_at: datetime,
                   idempotency_key: Optional[str] = None) -> "Order":
        """Build an order whose total is the sum of its line totals"""
        total = sum((item.line_total for item in items), Decimal("0"))
        return cls(
            user_id=user_id,
            created_at=created_at,
            items=list(items),
            total_amount=total,
            idempotency_key=idempotency_key,
        )

import logging
from decimal import Decimal
from typing import Callable, List, Optional, Tuple

from sqlalchemy import delete, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.models import database as db_models
from storefront.models.domain import CartLine, Order, OrderLine
from storefront.services.exceptions import PersistenceError
from storefront.services.stores import CartStore, CatalogStore, OrderLedger, UnitOfWork

logger = logging.getLogger(__name__)

# INSERT ... ON CONFLICT DO UPDATE constructs by dialect name
UPSERT_DIALECTS = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}


class SqlCatalogStore(CatalogStore):

    def __init__(self, db: Session):
        self.db = db

    def get_stock_and_price(self, product_id: int) -> Optional[Tuple[Decimal, int]]:
        row = self.db.execute(
            select(db_models.Product.price, db_models.Product.stock).where(
                db_models.Product.id == product_id
            )
        ).first()
        if row is None:
            return None
        return Decimal(row.price), row.stock

    def decrement_stock(self, product_id: int, quantity: int) -> bool:
        # Stock check is evaluated by the database under the row write lock
        result = self.db.execute(
            update(db_models.Product)
            .where(
                db_models.Product.id == product_id,
                db_models.Product.stock >= quantity,
            )
            .values(stock=db_models.Product.stock - quantity)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1


class SqlCartStore(CartStore):

    def __init__(self, db: Session):
        self.db = db

    def list_lines(self, user_id: int) -> List[CartLine]:
        items = self.db.execute(
            select(db_models.CartItem)
            .where(db_models.CartItem.user_id == user_id)
            .order_by(db_models.CartItem.id)
        ).scalars().all()
        return [_to_cart_line(item) for item in items]

    def add(self, user_id: int, product_id: int, quantity: int) -> CartLine:
        dialect = self.db.get_bind().dialect.name
        if dialect in UPSERT_DIALECTS:
            # Single statement, so concurrent first adds cannot both insert
            stmt = UPSERT_DIALECTS[dialect](db_models.CartItem).values(
                user_id=user_id, product_id=product_id, quantity=quantity
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=[db_models.CartItem.user_id, db_models.CartItem.product_id],
                set_={"quantity": db_models.CartItem.quantity + stmt.excluded.quantity},
            )
            self.db.execute(stmt)
        else:
            self._update_or_insert(user_id, product_id, quantity)

        item = self.db.execute(
            select(db_models.CartItem)
            .where(
                db_models.CartItem.user_id == user_id,
                db_models.CartItem.product_id == product_id,
            )
            .execution_options(populate_existing=True)
        ).scalar_one()
        return _to_cart_line(item)

    def _update_or_insert(self, user_id: int, product_id: int, quantity: int) -> None:
        result = self.db.execute(
            update(db_models.CartItem)
            .where(
                db_models.CartItem.user_id == user_id,
                db_models.CartItem.product_id == product_id,
            )
            .values(quantity=db_models.CartItem.quantity + quantity)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            self.db.add(db_models.CartItem(user_id=user_id, product_id=product_id, quantity=quantity))
            self.db.flush()

    def remove(self, cart_item_id: int, user_id: int) -> bool:
        result = self.db.execute(
            delete(db_models.CartItem).where(
                db_models.CartItem.id == cart_item_id,
                db_models.CartItem.user_id == user_id,
            )
        )
        return result.rowcount > 0

    def clear(self, user_id: int, lines: List[CartLine]) -> bool:
        deleted = 0
        for line in lines:
            result = self.db.execute(
                delete(db_models.CartItem).where(
                    db_models.CartItem.id == line.id,
                    db_models.CartItem.user_id == user_id,
                    db_models.CartItem.quantity == line.quantity,
                )
            )
            deleted += result.rowcount
        return deleted == len(lines)


class SqlOrderLedger(OrderLedger):

    def __init__(self, db: Session):
        self.db = db

    def append(self, order: Order) -> int:
        row = db_models.Order(
            user_id=order.user_id,
            total_amount=order.total_amount,
            idempotency_key=order.idempotency_key,
            created_at=order.created_at,
        )
        row.order_items = [
            db_models.OrderItem(
                product_id=item.product_id,
                position=position,
                quantity=item.quantity,
                unit_price=item.unit_price,
            )
            for position, item in enumerate(order.items)
        ]
        self.db.add(row)
        self.db.flush()  # Get the order ID
        return row.id

    def get(self, order_id: int) -> Optional[Order]:
        row = self.db.get(db_models.Order, order_id)
        return _to_order(row) if row is not None else None

    def list_for_user(self, user_id: int) -> List[Order]:
        rows = self.db.execute(
            select(db_models.Order)
            .where(db_models.Order.user_id == user_id)
            .order_by(db_models.Order.id)
        ).scalars().all()
        return [_to_order(row) for row in rows]

    def find_by_idempotency_key(self, user_id: int, key: str) -> Optional[Order]:
        row = self.db.execute(
            select(db_models.Order).where(
                db_models.Order.user_id == user_id,
                db_models.Order.idempotency_key == key,
            )
        ).scalar_one_or_none()
        return _to_order(row) if row is not None else None


class SqlUnitOfWork(UnitOfWork):
    """Unit of work over one SQLAlchemy session.

    Any SQLAlchemyError raised inside the block or by commit() rolls the
    session back and surfaces as PersistenceError.
    """

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory
        self.db: Optional[Session] = None

    def __enter__(self) -> "SqlUnitOfWork":
        self.db = self.session_factory()
        self.catalog = SqlCatalogStore(self.db)
        self.carts = SqlCartStore(self.db)
        self.orders = SqlOrderLedger(self.db)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        try:
            self.rollback()
        finally:
            self.db.close()
        if exc_val is not None and isinstance(exc_val, SQLAlchemyError):
            logger.error(f"Database error, transaction rolled back: {exc_val}")
            raise PersistenceError("Database operation failed") from exc_val

    def commit(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Commit failed, transaction rolled back: {e}")
            raise PersistenceError("Database commit failed") from e

    def rollback(self) -> None:
        self.db.rollback()


def _to_cart_line(item: db_models.CartItem) -> CartLine:
    return CartLine(
        id=item.id,
        user_id=item.user_id,
        product_id=item.product_id,
        quantity=item.quantity,
    )


def _to_order(row: db_models.Order) -> Order:
    return Order(
        id=row.id,
        user_id=row.user_id,
        created_at=row.created_at,
        total_amount=Decimal(row.total_amount),
        idempotency_key=row.idempotency_key,
        items=[
            OrderLine(
                product_id=item.product_id,
                quantity=item.quantity,
                unit_price=Decimal(item.unit_price),
            )
            for item in row.order_items
        ],
    )

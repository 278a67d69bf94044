import asyncio
from decimal import Decimal

import pytest

from storefront.models.domain import Order
from storefront.services.exceptions import (
    EmptyCartError,
    InsufficientStockError,
    NotFoundError,
    PersistenceError,
)
from storefront.services.order_service import OrderPlacementService
from storefront.tests.fakes import FakeDatabase, FakeUnitOfWork

PRODUCT_A = 1
PRODUCT_B = 2

@pytest.fixture
def database():
    db = FakeDatabase()
    db.add_product(PRODUCT_A, price="100", stock=10)
    db.add_product(PRODUCT_B, price="50", stock=10)
    return db

@pytest.fixture
def service(database):
    return OrderPlacementService(lambda: FakeUnitOfWork(database))


class TestOrderPlacement:
    """Single placements against the in-memory stores"""

    @pytest.mark.asyncio
    async def test_checkout_example(self, database, service):
        """Two lines: total, stock and cart after a successful placement"""
        database.add_to_cart(7, PRODUCT_A, 2)
        database.add_to_cart(7, PRODUCT_B, 1)

        order = await service.place_order(7)

        assert order.id == 1
        assert order.user_id == 7
        assert order.total_amount == Decimal("250")
        assert [(i.product_id, i.quantity, i.unit_price) for i in order.items] == [
            (PRODUCT_A, 2, Decimal("100")),
            (PRODUCT_B, 1, Decimal("50")),
        ]
        assert database.stock_of(PRODUCT_A) == 8
        assert database.stock_of(PRODUCT_B) == 9
        assert database.cart_of(7) == []
        assert database.all_orders() == [order]

    @pytest.mark.asyncio
    async def test_total_matches_line_totals(self, database, service):
        database.set_price(PRODUCT_A, "19.99")
        database.add_to_cart(7, PRODUCT_A, 3)
        database.add_to_cart(7, PRODUCT_B, 2)

        order = await service.place_order(7)

        assert order.total_amount == sum(item.line_total for item in order.items)
        assert order.total_amount == Decimal("159.97")

    @pytest.mark.asyncio
    async def test_empty_cart(self, database, service):
        with pytest.raises(EmptyCartError):
            await service.place_order(7)

        assert database.all_orders() == []
        assert database.commits == 0

    @pytest.mark.asyncio
    async def test_insufficient_stock_changes_nothing(self, database, service):
        """The second line is short; the first line's stock must not move"""
        database.add_to_cart(7, PRODUCT_A, 2)
        database.add_to_cart(7, PRODUCT_B, 11)

        with pytest.raises(InsufficientStockError) as exc_info:
            await service.place_order(7)

        assert exc_info.value.product_id == PRODUCT_B
        assert exc_info.value.requested == 11
        assert exc_info.value.available == 10
        assert "Insufficient stock for product 2" in str(exc_info.value)
        assert database.stock_of(PRODUCT_A) == 10
        assert database.stock_of(PRODUCT_B) == 10
        assert len(database.cart_of(7)) == 2
        assert database.all_orders() == []

    @pytest.mark.asyncio
    async def test_removed_product_is_reported_as_out_of_stock(self, database, service):
        database.add_to_cart(7, PRODUCT_A, 1)
        del database.state.products[PRODUCT_A]

        with pytest.raises(InsufficientStockError) as exc_info:
            await service.place_order(7)

        assert exc_info.value.product_id == PRODUCT_A
        assert exc_info.value.available == 0

    @pytest.mark.asyncio
    async def test_exact_stock_is_enough(self, database, service):
        database.add_to_cart(7, PRODUCT_A, 10)

        await service.place_order(7)

        assert database.stock_of(PRODUCT_A) == 0

    @pytest.mark.asyncio
    async def test_price_snapshot_survives_price_change(self, database, service):
        database.add_to_cart(7, PRODUCT_A, 1)
        order = await service.place_order(7)

        database.set_price(PRODUCT_A, "120")

        stored = service.get_order(7, order.id)
        assert stored.items[0].unit_price == Decimal("100")
        assert stored.total_amount == Decimal("100")

    @pytest.mark.asyncio
    async def test_other_users_cart_untouched(self, database, service):
        database.add_to_cart(7, PRODUCT_A, 1)
        database.add_to_cart(8, PRODUCT_B, 4)

        await service.place_order(7)

        assert database.cart_of(7) == []
        assert [(l.product_id, l.quantity) for l in database.cart_of(8)] == [(PRODUCT_B, 4)]


class TestPersistenceFailures:
    """A failed write leaves no trace and a retry places exactly one order"""

    @pytest.mark.asyncio
    async def test_failed_append_rolls_back_stock_and_cart(self, database, service):
        database.add_to_cart(7, PRODUCT_A, 2)
        database.fail_next_append = True

        with pytest.raises(PersistenceError):
            await service.place_order(7)

        assert database.stock_of(PRODUCT_A) == 10
        assert len(database.cart_of(7)) == 1
        assert database.all_orders() == []

    @pytest.mark.asyncio
    async def test_retry_after_failure_creates_one_order(self, database, service):
        database.add_to_cart(7, PRODUCT_A, 2)
        database.fail_next_append = True

        with pytest.raises(PersistenceError):
            await service.place_order(7, idempotency_key="checkout-1")
        order = await service.place_order(7, idempotency_key="checkout-1")

        assert database.all_orders() == [order]
        assert database.stock_of(PRODUCT_A) == 8

    @pytest.mark.asyncio
    async def test_same_idempotency_key_returns_existing_order(self, database, service):
        database.add_to_cart(7, PRODUCT_A, 2)
        first = await service.place_order(7, idempotency_key="checkout-1")

        # Cart is empty now; a repeat with the same key must not raise EmptyCartError
        second = await service.place_order(7, idempotency_key="checkout-1")

        assert second == first
        assert len(database.all_orders()) == 1
        assert database.stock_of(PRODUCT_A) == 8

    @pytest.mark.asyncio
    async def test_idempotency_keys_are_per_user(self, database, service):
        database.add_to_cart(7, PRODUCT_A, 1)
        database.add_to_cart(8, PRODUCT_A, 1)

        first = await service.place_order(7, idempotency_key="checkout-1")
        second = await service.place_order(8, idempotency_key="checkout-1")

        assert first.id != second.id
        assert database.stock_of(PRODUCT_A) == 8


class TestConcurrentPlacement:
    """Concurrent checkouts competing for the same stock"""

    @pytest.mark.asyncio
    async def test_two_orders_for_last_units(self, database, service):
        """Stock 5, two placements of 3: exactly one succeeds"""
        database.add_product(3, price="10", stock=5)
        database.add_to_cart(7, 3, 3)
        database.add_to_cart(8, 3, 3)

        results = await asyncio.gather(
            service.place_order(7),
            service.place_order(8),
            return_exceptions=True,
        )

        successful = [r for r in results if isinstance(r, Order)]
        errors = [r for r in results if isinstance(r, Exception)]
        assert len(successful) == 1
        assert len(errors) == 1
        assert isinstance(errors[0], InsufficientStockError)
        assert database.stock_of(3) == 2

    @pytest.mark.asyncio
    async def test_many_orders_never_oversell(self, database, service):
        database.add_product(3, price="10", stock=5)
        for user_id in range(1, 6):
            database.add_to_cart(user_id, 3, 2)

        results = await asyncio.gather(
            *[service.place_order(user_id) for user_id in range(1, 6)],
            return_exceptions=True,
        )

        successful = [r for r in results if isinstance(r, Order)]
        assert len(successful) == 2
        assert all(isinstance(r, InsufficientStockError) for r in results if not isinstance(r, Order))
        assert database.stock_of(3) == 1
        assert len(database.all_orders()) == 2


class TestOrderQueries:

    @pytest.mark.asyncio
    async def test_list_orders_only_returns_own(self, database, service):
        database.add_to_cart(7, PRODUCT_A, 1)
        database.add_to_cart(8, PRODUCT_B, 1)
        mine = await service.place_order(7)
        await service.place_order(8)

        assert service.list_orders(7) == [mine]

    @pytest.mark.asyncio
    async def test_get_order_of_other_user_is_not_found(self, database, service):
        database.add_to_cart(8, PRODUCT_B, 1)
        theirs = await service.place_order(8)

        with pytest.raises(NotFoundError):
            service.get_order(7, theirs.id)

    def test_get_missing_order(self, service):
        with pytest.raises(NotFoundError):
            service.get_order(7, 999)

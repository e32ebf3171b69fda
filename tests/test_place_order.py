import asyncio
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from app.application.place_order import PlaceOrderUseCase, PlaceOrderDTO
from app.domain.exceptions import EmptyCartError, InsufficientStockError, StoreError
from app.domain.models import CartSnapshotLine, OrderStatus
from app.infrastructure.repositories import SQLAlchemyCartRepository, SQLAlchemyProductRepository


@pytest.fixture
def place_order(uow):
    return PlaceOrderUseCase(uow)


async def test_single_line_order_is_placed(place_order, shop):
    user = await shop.add_user("alice")
    p1 = await shop.add_product("10.00", stock=5)
    await shop.add_to_cart(user, p1, 2)

    summary = await place_order(PlaceOrderDTO(user_id=user))

    assert summary.total_amount == Decimal("20.00")
    assert summary.status == OrderStatus.PENDING
    assert summary.user_id == user
    assert [(i.product_id, i.quantity, i.price_at_purchase) for i in summary.items] == [
        (p1, 2, Decimal("10.00"))
    ]
    assert await shop.stock(p1) == 3
    assert await shop.cart(user) == {}
    assert await shop.order_count(user) == 1


async def test_insufficient_stock_leaves_everything_unchanged(place_order, shop):
    user = await shop.add_user("bob")
    p1 = await shop.add_product("10.00", stock=1)
    await shop.add_to_cart(user, p1, 2)

    with pytest.raises(InsufficientStockError) as exc_info:
        await place_order(PlaceOrderDTO(user_id=user))

    assert exc_info.value.product_id == p1
    assert exc_info.value.requested == 2
    assert exc_info.value.available == 1
    assert "доступно: 1" in str(exc_info.value)
    assert await shop.stock(p1) == 1
    assert await shop.cart(user) == {p1: 2}
    assert await shop.order_count() == 0


async def test_one_short_line_aborts_whole_cart(place_order, shop):
    user = await shop.add_user("carol")
    p1 = await shop.add_product("5.00", stock=10, product_id="p-1")
    p2 = await shop.add_product("7.50", stock=0, product_id="p-2")
    await shop.add_to_cart(user, p1, 3)
    await shop.add_to_cart(user, p2, 1)

    with pytest.raises(InsufficientStockError) as exc_info:
        await place_order(PlaceOrderDTO(user_id=user))

    assert exc_info.value.product_id == p2
    assert exc_info.value.available == 0
    assert await shop.stock(p1) == 10
    assert await shop.cart(user) == {p1: 3, p2: 1}
    assert await shop.order_count() == 0
    assert await shop.order_line_count() == 0


async def test_empty_cart_creates_no_order(place_order, shop):
    user = await shop.add_user("dave")

    for _ in range(2):
        with pytest.raises(EmptyCartError):
            await place_order(PlaceOrderDTO(user_id=user))

    assert await shop.order_count() == 0


async def test_multi_line_order_matches_cart_exactly(place_order, shop):
    user = await shop.add_user("erin")
    p1 = await shop.add_product("19.99", stock=4)
    p2 = await shop.add_product("0.10", stock=100)
    p3 = await shop.add_product("250.00", stock=1)
    await shop.add_to_cart(user, p1, 3)
    await shop.add_to_cart(user, p2, 7)
    await shop.add_to_cart(user, p3, 1)

    summary = await place_order(PlaceOrderDTO(user_id=user))

    assert summary.total_amount == Decimal("310.67")
    assert sorted((i.product_id, i.quantity) for i in summary.items) == sorted(
        [(p1, 3), (p2, 7), (p3, 1)]
    )
    assert sum(i.price_at_purchase * i.quantity for i in summary.items) == summary.total_amount
    assert await shop.stock(p1) == 1
    assert await shop.stock(p2) == 93
    assert await shop.stock(p3) == 0
    assert await shop.order_line_count() == 3


async def test_last_unit_goes_to_first_buyer_only(place_order, shop):
    first = await shop.add_user("first")
    second = await shop.add_user("second")
    p1 = await shop.add_product("3.00", stock=1)
    await shop.add_to_cart(first, p1, 1)
    await shop.add_to_cart(second, p1, 1)

    await place_order(PlaceOrderDTO(user_id=first))
    with pytest.raises(InsufficientStockError) as exc_info:
        await place_order(PlaceOrderDTO(user_id=second))

    assert exc_info.value.available == 0
    assert await shop.stock(p1) == 0
    assert await shop.cart(second) == {p1: 1}


async def test_simultaneous_checkouts_for_last_unit(place_order, shop):
    buyers = [await shop.add_user(f"buyer-{i}") for i in range(2)]
    p1 = await shop.add_product("3.00", stock=1)
    for buyer in buyers:
        await shop.add_to_cart(buyer, p1, 1)

    results = await asyncio.gather(
        *(place_order(PlaceOrderDTO(user_id=buyer)) for buyer in buyers),
        return_exceptions=True
    )

    failures = [r for r in results if isinstance(r, Exception)]
    assert len(failures) == 1
    assert isinstance(failures[0], InsufficientStockError)
    assert failures[0].available == 0
    assert await shop.stock(p1) == 0
    assert await shop.order_count() == 1


async def test_price_change_does_not_touch_placed_order(place_order, shop, uow):
    user = await shop.add_user("frank")
    p1 = await shop.add_product("10.00", stock=5)
    await shop.add_to_cart(user, p1, 2)
    summary = await place_order(PlaceOrderDTO(user_id=user))

    await shop.set_price(p1, "99.00")

    async with uow() as tx:
        order = await tx.orders.get_for_user(summary.order_id, user)
        lines = await tx.orders.get_lines(summary.order_id)
    assert order.total_amount == Decimal("20.00")
    assert lines[0].price_at_purchase == Decimal("10.00")


async def test_store_failure_rolls_back_all_steps(place_order, shop, monkeypatch):
    user = await shop.add_user("grace")
    p1 = await shop.add_product("10.00", stock=5)
    await shop.add_to_cart(user, p1, 2)

    async def broken_clear(self, user_id):
        raise OperationalError("DELETE FROM cart_items", {}, Exception("disk I/O error"))

    monkeypatch.setattr(SQLAlchemyCartRepository, "clear", broken_clear)

    with pytest.raises(StoreError):
        await place_order(PlaceOrderDTO(user_id=user))

    assert await shop.stock(p1) == 5
    assert await shop.cart(user) == {p1: 2}
    assert await shop.order_count() == 0
    assert await shop.order_line_count() == 0


async def test_stale_snapshot_is_caught_by_guarded_decrement(place_order, shop, monkeypatch):
    """Если блокировки нет и остаток устарел, списание не уходит в минус"""
    user = await shop.add_user("heidi")
    p1 = await shop.add_product("4.00", stock=1)
    line_id = await shop.add_to_cart(user, p1, 2)

    async def stale_snapshot(self, user_id):
        return [CartSnapshotLine(
            cart_line_id=line_id, product_id=p1, quantity=2, unit_price=Decimal("4.00"), stock_quantity=5
        )]

    monkeypatch.setattr(SQLAlchemyCartRepository, "lock_snapshot", stale_snapshot)

    with pytest.raises(InsufficientStockError) as exc_info:
        await place_order(PlaceOrderDTO(user_id=user))

    assert exc_info.value.available == 1
    assert await shop.stock(p1) == 1
    assert await shop.order_count() == 0


async def test_decrement_rejection_after_partial_success_rolls_back(place_order, shop, monkeypatch):
    user = await shop.add_user("ivan")
    p1 = await shop.add_product("1.00", stock=3, product_id="a")
    p2 = await shop.add_product("2.00", stock=3, product_id="b")
    await shop.add_to_cart(user, p1, 1)
    await shop.add_to_cart(user, p2, 1)

    original = SQLAlchemyProductRepository.decrement_stock

    async def reject_second(self, product_id, quantity):
        if product_id == p2:
            return False
        return await original(self, product_id, quantity)

    monkeypatch.setattr(SQLAlchemyProductRepository, "decrement_stock", reject_second)

    with pytest.raises(InsufficientStockError):
        await place_order(PlaceOrderDTO(user_id=user))

    assert await shop.stock(p1) == 3
    assert await shop.stock(p2) == 3
    assert await shop.cart(user) == {p1: 1, p2: 1}

import uuid
from typing import Optional, List
from datetime import datetime, timezone
from sqlalchemy import select, insert, update, delete
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.models import CartSnapshotLine, Order, OrderLine, OrderStatus
from app.infrastructure.db_schema import (
    users_tbl, products_tbl, cart_items_tbl, orders_tbl, order_items_tbl
)
from app.application.interfaces import CartRepository, ProductRepository, OrderRepository


class SQLAlchemyCartRepository(CartRepository):
    def __init__(self, session: AsyncSession):
        self._session = session

    async def lock_snapshot(self, user_id: str) -> List[CartSnapshotLine]:
        # Строки товаров блокируются до конца транзакции, в порядке product id
        stmt = (
            select(
                cart_items_tbl.c.id.label("cart_line_id"),
                cart_items_tbl.c.quantity,
                products_tbl.c.id.label("product_id"),
                products_tbl.c.price,
                products_tbl.c.stock_quantity
            )
            .select_from(
                cart_items_tbl.join(products_tbl, cart_items_tbl.c.product_id == products_tbl.c.id)
            )
            .where(cart_items_tbl.c.user_id == user_id)
            .order_by(products_tbl.c.id, cart_items_tbl.c.id)
            .with_for_update(of=products_tbl)
        )
        result = await self._session.execute(stmt)
        return [
            CartSnapshotLine(
                cart_line_id=row.cart_line_id,
                product_id=row.product_id,
                quantity=row.quantity,
                unit_price=row.price,
                stock_quantity=row.stock_quantity
            )
            for row in result.fetchall()
        ]

    async def clear(self, user_id: str) -> None:
        await self._session.execute(
            delete(cart_items_tbl).where(cart_items_tbl.c.user_id == user_id)
        )


class SQLAlchemyProductRepository(ProductRepository):
    def __init__(self, session: AsyncSession):
        self._session = session

    async def decrement_stock(self, product_id: str, quantity: int) -> bool:
        """Списывает остаток; False, если остатка уже не хватает"""
        stmt = (
            update(products_tbl)
            .where(
                products_tbl.c.id == product_id,
                products_tbl.c.stock_quantity >= quantity
            )
            .values(stock_quantity=products_tbl.c.stock_quantity - quantity)
        )
        result = await self._session.execute(stmt)
        return result.rowcount == 1

    async def get_stock(self, product_id: str) -> Optional[int]:
        result = await self._session.execute(
            select(products_tbl.c.stock_quantity).where(products_tbl.c.id == product_id)
        )
        return result.scalar_one_or_none()


class SQLAlchemyOrderRepository(OrderRepository):
    def __init__(self, session: AsyncSession):
        self._session = session

    async def create(self, order: Order) -> None:
        stmt = insert(orders_tbl).values(
            id=order.id,
            user_id=order.user_id,
            total_amount=order.total_amount,
            status=order.status,
            created_at=order.created_at,
            updated_at=order.updated_at
        )
        await self._session.execute(stmt)

    async def add_lines(self, order_id: str, lines: List[OrderLine]) -> None:
        if not lines:
            return
        await self._session.execute(
            insert(order_items_tbl),
            [
                {
                    "id": str(uuid.uuid4()),
                    "order_id": order_id,
                    "product_id": line.product_id,
                    "quantity": line.quantity,
                    "price_at_purchase": line.price_at_purchase
                }
                for line in lines
            ]
        )

    async def get_for_user(self, order_id: str, user_id: str) -> Optional[Order]:
        result = await self._session.execute(
            select(orders_tbl).where(
                orders_tbl.c.id == order_id,
                orders_tbl.c.user_id == user_id
            )
        )
        row = result.fetchone()
        return self._to_domain(row) if row else None

    async def get_lines(self, order_id: str) -> List[OrderLine]:
        result = await self._session.execute(
            select(
                order_items_tbl.c.product_id,
                order_items_tbl.c.quantity,
                order_items_tbl.c.price_at_purchase,
                products_tbl.c.name.label("product_name")
            )
            .select_from(
                order_items_tbl.outerjoin(products_tbl, order_items_tbl.c.product_id == products_tbl.c.id)
            )
            .where(order_items_tbl.c.order_id == order_id)
            .order_by(order_items_tbl.c.product_id)
        )
        return [
            OrderLine(
                product_id=row.product_id,
                quantity=row.quantity,
                price_at_purchase=row.price_at_purchase,
                product_name=row.product_name
            )
            for row in result.fetchall()
        ]

    async def list_for_user(self, user_id: str) -> List[Order]:
        result = await self._session.execute(
            select(orders_tbl)
            .where(orders_tbl.c.user_id == user_id)
            .order_by(orders_tbl.c.created_at.desc())
        )
        return [self._to_domain(row) for row in result.fetchall()]

    async def list_all(self) -> List[Order]:
        result = await self._session.execute(
            select(orders_tbl, users_tbl.c.username)
            .select_from(orders_tbl.join(users_tbl, orders_tbl.c.user_id == users_tbl.c.id))
            .order_by(orders_tbl.c.created_at.desc())
        )
        return [self._to_domain(row, username=row.username) for row in result.fetchall()]

    async def update_status(self, order_id: str, status: OrderStatus) -> Optional[Order]:
        stmt = (
            update(orders_tbl)
            .where(orders_tbl.c.id == order_id)
            .values(
                status=status,
                updated_at=datetime.now(timezone.utc)
            )
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            return None
        row = (
            await self._session.execute(select(orders_tbl).where(orders_tbl.c.id == order_id))
        ).fetchone()
        return self._to_domain(row)

    def _to_domain(self, row, username: Optional[str] = None) -> Order:
        """Трансформация DB → Domain"""
        return Order(
            id=row.id,
            user_id=row.user_id,
            total_amount=row.total_amount,
            status=OrderStatus(row.status),
            created_at=row.created_at,
            updated_at=row.updated_at,
            username=username
        )

import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import List
from pydantic import BaseModel

from app.domain.models import (
    CartSnapshotLine, Order, OrderLine, OrderStatus, OrderSummary, PlacementStage, to_money
)
from app.domain.exceptions import EmptyCartError, InsufficientStockError


logger = logging.getLogger(__name__)


class PlaceOrderDTO(BaseModel):
    user_id: str


def validate_stock(lines: List[CartSnapshotLine]) -> None:
    """Первая же позиция без достаточного остатка прерывает весь заказ"""
    for line in lines:
        if not line.is_satisfiable():
            raise InsufficientStockError(line.product_id, line.quantity, line.stock_quantity)


def calculate_total(lines: List[CartSnapshotLine]) -> Decimal:
    # Округление один раз, по итоговой сумме
    return to_money(sum((line.line_total for line in lines), Decimal("0")))


class PlaceOrderUseCase:
    """Оформление заказа из корзины пользователя.

    Все шаги выполняются в одной транзакции: блокировка товаров, проверка
    остатков, создание заказа и позиций, списание остатков, очистка корзины.
    Снаружи виден либо полный результат, либо отсутствие каких-либо изменений.
    """

    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, dto: PlaceOrderDTO) -> OrderSummary:
        logger.info(f"Оформление заказа для пользователя {dto.user_id}")
        stage = PlacementStage.STARTED

        try:
            async with self._uow() as uow:
                # 1. Снимок корзины с блокировкой товаров
                lines = await uow.carts.lock_snapshot(dto.user_id)
                if not lines:
                    raise EmptyCartError(dto.user_id)
                stage = PlacementStage.LOCKED

                # 2. Проверка остатков
                validate_stock(lines)
                stage = PlacementStage.VALIDATED

                # 3. Заказ и позиции, цена берется из снимка
                now = datetime.now(timezone.utc)
                order = Order(
                    id=str(uuid.uuid4()),
                    user_id=dto.user_id,
                    total_amount=calculate_total(lines),
                    status=OrderStatus.PENDING,
                    created_at=now,
                    updated_at=now
                )
                items = [
                    OrderLine(
                        product_id=line.product_id,
                        quantity=line.quantity,
                        price_at_purchase=line.unit_price
                    )
                    for line in lines
                ]
                await uow.orders.create(order)
                await uow.orders.add_lines(order.id, items)
                stage = PlacementStage.MATERIALIZED

                # 4. Списание остатков
                for line in lines:
                    if not await uow.products.decrement_stock(line.product_id, line.quantity):
                        available = await uow.products.get_stock(line.product_id)
                        raise InsufficientStockError(line.product_id, line.quantity, available or 0)
                stage = PlacementStage.DECREMENTED

                # 5. Очистка корзины
                await uow.carts.clear(dto.user_id)
                stage = PlacementStage.CLEARED

                await uow.commit()
                stage = PlacementStage.COMMITTED
        except Exception:
            logger.warning(
                f"Оформление заказа для {dto.user_id} прервано ({PlacementStage.ABORTED.value}) после этапа {stage.value}"
            )
            raise

        logger.info(f"Заказ создан ({stage.value}): {order.id}, сумма {order.total_amount}")
        return OrderSummary(
            order_id=order.id,
            user_id=order.user_id,
            total_amount=order.total_amount,
            status=order.status,
            created_at=order.created_at,
            items=items
        )

import logging
from typing import List

from app.domain.models import Order, OrderStatus
from app.domain.exceptions import OrderNotFoundError

logger = logging.getLogger(__name__)


class ListAllOrdersUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self) -> List[Order]:
        logger.info("Получение всех заказов")
        async with self._uow() as uow:
            orders = await uow.orders.list_all()

        logger.info(f"Найдено заказов: {len(orders)}")
        return orders


class UpdateOrderStatusUseCase:
    """Смена статуса заказа администратором. Остальные поля заказа неизменны."""

    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, order_id: str, status: OrderStatus) -> Order:
        logger.info(f"Смена статуса заказа {order_id} на {status.value}")
        async with self._uow() as uow:
            order = await uow.orders.update_status(order_id, status)
            if not order:
                raise OrderNotFoundError(f"Заказ {order_id} не найден")
            await uow.commit()

        logger.info(f"Заказ {order_id} переведен в статус {status.value}")
        return order

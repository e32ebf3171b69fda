import logging
from typing import List

from app.domain.models import Order, OrderDetails
from app.domain.exceptions import OrderNotFoundError

logger = logging.getLogger(__name__)


class GetOrderUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, order_id: str, user_id: str) -> OrderDetails:
        logger.info(f"Получение заказа {order_id} для пользователя {user_id}")
        async with self._uow() as uow:
            # Чужой заказ неотличим от несуществующего
            order = await uow.orders.get_for_user(order_id, user_id)
            if not order:
                logger.info(f"Заказ {order_id} не найден для пользователя {user_id}")
                raise OrderNotFoundError(f"Заказ {order_id} не найден")
            items = await uow.orders.get_lines(order_id)

        logger.info(f"Заказ {order_id} получен, позиций: {len(items)}")
        return OrderDetails(order=order, items=items)


class ListUserOrdersUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, user_id: str) -> List[Order]:
        logger.info(f"Получение истории заказов пользователя {user_id}")
        async with self._uow() as uow:
            orders = await uow.orders.list_for_user(user_id)

        logger.info(f"Найдено заказов пользователя {user_id}: {len(orders)}")
        return orders

import logging
from typing import List
from fastapi import APIRouter, Depends, HTTPException, status

from app.database import AsyncSessionLocal
from app.presentation.auth import CurrentUser, get_current_user, require_admin
from app.presentation.schemas import (
    OrderPlacedResponse, OrderSummaryResponse, OrderResponse, OrderDetailResponse,
    UpdateOrderStatusRequest, OrderStatusUpdatedResponse, ErrorResponse, InsufficientStockResponse
)
from app.application.place_order import PlaceOrderUseCase, PlaceOrderDTO
from app.application.get_order import GetOrderUseCase, ListUserOrdersUseCase
from app.application.admin_orders import ListAllOrdersUseCase, UpdateOrderStatusUseCase
from app.domain.exceptions import (
    EmptyCartError, InsufficientStockError, OrderNotFoundError, StoreError
)
from app.infrastructure.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)

router = APIRouter()


def get_unit_of_work() -> UnitOfWork:
    return UnitOfWork(AsyncSessionLocal)


# Фабрики для создания use cases
def get_place_order_use_case(uow: UnitOfWork = Depends(get_unit_of_work)):
    return PlaceOrderUseCase(uow)


def get_get_order_use_case(uow: UnitOfWork = Depends(get_unit_of_work)):
    return GetOrderUseCase(uow)


def get_list_user_orders_use_case(uow: UnitOfWork = Depends(get_unit_of_work)):
    return ListUserOrdersUseCase(uow)


def get_list_all_orders_use_case(uow: UnitOfWork = Depends(get_unit_of_work)):
    return ListAllOrdersUseCase(uow)


def get_update_order_status_use_case(uow: UnitOfWork = Depends(get_unit_of_work)):
    return UpdateOrderStatusUseCase(uow)


@router.post(
    "/orders",
    response_model=OrderPlacedResponse,
    responses={
        400: {"model": InsufficientStockResponse},
        401: {"model": ErrorResponse},
        500: {"model": ErrorResponse}
    },
    status_code=status.HTTP_201_CREATED
)
async def place_order(
    user: CurrentUser = Depends(get_current_user),
    use_case: PlaceOrderUseCase = Depends(get_place_order_use_case)
):
    """Оформить заказ из корзины текущего пользователя"""
    try:
        summary = await use_case(PlaceOrderDTO(user_id=user.user_id))
    except EmptyCartError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except InsufficientStockError as e:
        raise HTTPException(
            status_code=400,
            detail={
                "message": str(e),
                "product_id": e.product_id,
                "requested": e.requested,
                "available": e.available
            }
        )
    except StoreError as e:
        logger.error(f"Ошибка оформления заказа для {user.user_id}: {e}")
        raise HTTPException(status_code=500, detail="Ошибка сервера при оформлении заказа")

    return OrderPlacedResponse(
        message="Заказ успешно оформлен",
        order=OrderSummaryResponse.from_domain(summary)
    )


@router.get("/orders", response_model=List[OrderResponse])
async def list_orders(
    user: CurrentUser = Depends(get_current_user),
    use_case: ListUserOrdersUseCase = Depends(get_list_user_orders_use_case)
):
    """История заказов текущего пользователя"""
    try:
        orders = await use_case(user.user_id)
    except StoreError as e:
        logger.error(f"Ошибка получения истории заказов для {user.user_id}: {e}")
        raise HTTPException(status_code=500, detail="Ошибка сервера при получении истории заказов")
    return [OrderResponse.from_domain(order) for order in orders]


@router.get(
    "/orders/admin/all",
    response_model=List[OrderResponse],
    responses={403: {"model": ErrorResponse}}
)
async def list_all_orders(
    admin: CurrentUser = Depends(require_admin),
    use_case: ListAllOrdersUseCase = Depends(get_list_all_orders_use_case)
):
    """Все заказы (только для администратора)"""
    try:
        orders = await use_case()
    except StoreError as e:
        logger.error(f"Ошибка получения всех заказов: {e}")
        raise HTTPException(status_code=500, detail="Ошибка сервера при получении заказов")
    return [OrderResponse.from_domain(order) for order in orders]


@router.put(
    "/orders/admin/{order_id}/status",
    response_model=OrderStatusUpdatedResponse,
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}}
)
async def update_order_status(
    order_id: str,
    request: UpdateOrderStatusRequest,
    admin: CurrentUser = Depends(require_admin),
    use_case: UpdateOrderStatusUseCase = Depends(get_update_order_status_use_case)
):
    """Сменить статус заказа (только для администратора)"""
    try:
        order = await use_case(order_id, request.status)
    except OrderNotFoundError:
        raise HTTPException(status_code=404, detail="Заказ не найден")
    except StoreError as e:
        logger.error(f"Ошибка смены статуса заказа {order_id}: {e}")
        raise HTTPException(status_code=500, detail="Ошибка сервера при смене статуса заказа")

    return OrderStatusUpdatedResponse(
        message="Статус заказа обновлен",
        order=OrderResponse.from_domain(order)
    )


@router.get(
    "/orders/{order_id}",
    response_model=OrderDetailResponse,
    responses={404: {"model": ErrorResponse}}
)
async def get_order(
    order_id: str,
    user: CurrentUser = Depends(get_current_user),
    use_case: GetOrderUseCase = Depends(get_get_order_use_case)
):
    """Получить заказ текущего пользователя по ID"""
    try:
        details = await use_case(order_id, user.user_id)
    except OrderNotFoundError:
        raise HTTPException(status_code=404, detail="Заказ не найден")
    except StoreError as e:
        logger.error(f"Ошибка получения заказа {order_id}: {e}")
        raise HTTPException(status_code=500, detail="Ошибка сервера при получении заказа")
    return OrderDetailResponse.from_details(details)

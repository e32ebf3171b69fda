from pydantic import BaseModel, field_validator
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from app.domain.models import OrderStatus, to_money


def money_str(value: Decimal) -> str:
    return f"{to_money(value):.2f}"


class OrderItemResponse(BaseModel):
    product_id: str
    quantity: int
    price_at_purchase: str
    product_name: Optional[str] = None

    @classmethod
    def from_domain(cls, line):
        return cls(
            product_id=line.product_id,
            quantity=line.quantity,
            price_at_purchase=money_str(line.price_at_purchase),
            product_name=line.product_name
        )


class OrderSummaryResponse(BaseModel):
    order_id: str
    user_id: str
    total_amount: str
    status: OrderStatus
    created_at: datetime
    items: List[OrderItemResponse]

    @classmethod
    def from_domain(cls, summary):
        return cls(
            order_id=summary.order_id,
            user_id=summary.user_id,
            total_amount=money_str(summary.total_amount),
            status=summary.status,
            created_at=summary.created_at,
            items=[OrderItemResponse.from_domain(line) for line in summary.items]
        )


class OrderPlacedResponse(BaseModel):
    message: str
    order: OrderSummaryResponse


class OrderResponse(BaseModel):
    id: str
    user_id: str
    total_amount: str
    status: OrderStatus
    created_at: datetime
    updated_at: datetime
    username: Optional[str] = None

    @classmethod
    def from_domain(cls, order):
        return cls(
            id=order.id,
            user_id=order.user_id,
            total_amount=money_str(order.total_amount),
            status=order.status,
            created_at=order.created_at,
            updated_at=order.updated_at,
            username=order.username
        )


class OrderDetailResponse(OrderResponse):
    items: List[OrderItemResponse]

    @classmethod
    def from_details(cls, details):
        base = OrderResponse.from_domain(details.order)
        return cls(
            **base.model_dump(),
            items=[OrderItemResponse.from_domain(line) for line in details.items]
        )


class UpdateOrderStatusRequest(BaseModel):
    status: OrderStatus

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value


class OrderStatusUpdatedResponse(BaseModel):
    message: str
    order: OrderResponse


class ErrorResponse(BaseModel):
    detail: str


class InsufficientStockDetail(BaseModel):
    message: str
    product_id: str
    requested: int
    available: int


class InsufficientStockResponse(BaseModel):
    detail: InsufficientStockDetail

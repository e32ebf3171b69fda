from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel


MONEY_QUANT = Decimal("0.01")


def to_money(value: Decimal) -> Decimal:
    """Приводит сумму к денежной точности (2 знака)"""
    return value.quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)


class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PlacementStage(str, Enum):
    """Этапы транзакции оформления заказа"""
    STARTED = "STARTED"
    LOCKED = "LOCKED"
    VALIDATED = "VALIDATED"
    MATERIALIZED = "MATERIALIZED"
    DECREMENTED = "DECREMENTED"
    CLEARED = "CLEARED"
    COMMITTED = "COMMITTED"
    ABORTED = "ABORTED"


class CartSnapshotLine(BaseModel):
    """Строка корзины вместе с ценой и остатком заблокированного товара"""
    cart_line_id: str
    product_id: str
    quantity: int
    unit_price: Decimal
    stock_quantity: int

    def is_satisfiable(self) -> bool:
        return self.quantity <= self.stock_quantity

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


class OrderLine(BaseModel):
    """Value Object — позиция заказа, цена зафиксирована на момент покупки"""
    product_id: str
    quantity: int
    price_at_purchase: Decimal
    product_name: Optional[str] = None


class Order(BaseModel):
    """Domain Entity — заказ"""
    id: str
    user_id: str
    total_amount: Decimal
    status: OrderStatus
    created_at: datetime
    updated_at: datetime
    username: Optional[str] = None


class OrderSummary(BaseModel):
    """Результат оформления заказа"""
    order_id: str
    user_id: str
    total_amount: Decimal
    status: OrderStatus
    created_at: datetime
    items: List[OrderLine]


class OrderDetails(BaseModel):
    order: Order
    items: List[OrderLine]

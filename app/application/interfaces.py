from abc import ABC, abstractmethod
from typing import Optional, List
from app.domain.models import CartSnapshotLine, Order, OrderLine, OrderStatus


class CartRepository(ABC):
    @abstractmethod
    async def lock_snapshot(self, user_id: str) -> List[CartSnapshotLine]:
        pass

    @abstractmethod
    async def clear(self, user_id: str) -> None:
        pass


class ProductRepository(ABC):
    @abstractmethod
    async def decrement_stock(self, product_id: str, quantity: int) -> bool:
        pass

    @abstractmethod
    async def get_stock(self, product_id: str) -> Optional[int]:
        pass


class OrderRepository(ABC):
    @abstractmethod
    async def create(self, order: Order) -> None:
        pass

    @abstractmethod
    async def add_lines(self, order_id: str, lines: List[OrderLine]) -> None:
        pass

    @abstractmethod
    async def get_for_user(self, order_id: str, user_id: str) -> Optional[Order]:
        pass

    @abstractmethod
    async def get_lines(self, order_id: str) -> List[OrderLine]:
        pass

    @abstractmethod
    async def list_for_user(self, user_id: str) -> List[Order]:
        pass

    @abstractmethod
    async def list_all(self) -> List[Order]:
        pass

    @abstractmethod
    async def update_status(self, order_id: str, status: OrderStatus) -> Optional[Order]:
        pass

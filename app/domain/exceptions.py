class DomainException(Exception):
    pass


class EmptyCartError(DomainException):
    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__("Нельзя оформить заказ с пустой корзиной")


class InsufficientStockError(DomainException):
    def __init__(self, product_id: str, requested: int, available: int):
        self.product_id = product_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Недостаточно товара {product_id}. Запрошено: {requested}, доступно: {available}"
        )


class StoreError(DomainException):
    pass


class OrderNotFoundError(DomainException):
    pass

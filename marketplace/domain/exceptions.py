# marketplace/domain/exceptions.py
"""
Domain exceptions raised by the services.

Routers translate them into HTTP responses. Everything else uses the builtin
ValueError / PermissionError.
"""
from typing import List


class OrderValidationError(ValueError):
    """One or more order lines failed validation. Nothing was written."""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class StockConflictError(RuntimeError):
    """A conditional stock decrement affected no rows."""

    def __init__(self, product_id: int, product_name: str):
        self.product_id = product_id
        self.product_name = product_name
        super().__init__(f"stock changed concurrently for product: {product_name}")


class InvalidStatusTransition(ValueError):
    pass

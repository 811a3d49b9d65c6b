# app/core/errors.py
"""
Cart error taxonomy.

All errors are raised synchronously at the call that violates a
precondition and propagate to the caller. `http_status` is used by the
exception handler registered in app/main.py.
"""
from typing import Any


class CartError(Exception):
    """Base class for every cart-level error."""

    http_status: int = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class MissingSkuError(CartError):
    """addItem called with an item that has no sku."""

    http_status = 422

    def __init__(self):
        super().__init__("You must provide an `sku` for items")


class MissingPriceError(CartError):
    """A new item was added without a discount_price."""

    http_status = 422

    def __init__(self, sku: str):
        super().__init__(f"You must pass a `discount_price` for new item {sku!r}")
        self.sku = sku


class ItemNotFoundError(CartError):
    """Quantity update on a sku that is not in the cart."""

    http_status = 404

    def __init__(self, sku: str):
        super().__init__(f"No such item to update: {sku!r}")
        self.sku = sku


class InvalidItemError(CartError):
    """An item cannot take part in aggregate computation."""

    http_status = 422

    def __init__(self, sku: Any, reason: str):
        super().__init__(f"Invalid item {sku!r}: {reason}")
        self.sku = sku
        self.reason = reason


class UnknownActionError(CartError):
    """The reducer was handed something outside the action taxonomy."""

    http_status = 400

    def __init__(self, action: Any):
        super().__init__(f"Unknown cart action: {action!r}")
        self.action = action

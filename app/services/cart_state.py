# app/services/cart_state.py
"""
Aggregate calculator.

Every derived value (per-item itemTotal, totalUniqueItems, totalItems,
cartTotal, isEmpty) is recomputed as a unit from the item list. Inputs are
never mutated; each call returns a new CartState.
"""
import copy
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from app.core.errors import InvalidItemError
from app.schemas.cart import CartState, Item


def empty_cart_state() -> CartState:
    """
    Canonical empty cart: no id, no items, zeroed aggregates, no metadata.
    """
    return CartState()


def new_cart_state(
    cart_id: str | None,
    default_items: Iterable[Item | Mapping[str, Any]] = (),
    metadata: Mapping[str, Any] | None = None,
) -> CartState:
    """
    Build the state of a freshly created cart.

    Default items get quantity 1 when absent and the aggregates are derived
    right away, so a new cart is consistent before its first transition.
    """
    items = [Item.from_payload(it).with_default_quantity() for it in default_items]
    base = CartState(id=cart_id, metadata=dict(metadata or {}))
    return derive_state(base, items)


def _require_number(item: Item, field: str, value: Any) -> int | float:
    if value is None:
        raise InvalidItemError(item.sku, f"missing `{field}`")
    # bool is an int subclass
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidItemError(item.sku, f"`{field}` must be a number, got {value!r}")
    return value


def calculate_item_totals(items: Iterable[Item]) -> list[Item]:
    """
    Return copies of `items` carrying itemTotal = discount_price * quantity.

    Raises:
        InvalidItemError: if discount_price or quantity is missing or
            non-numeric on any item.
    """
    priced: list[Item] = []
    for item in items:
        price = _require_number(item, "discount_price", item.discount_price)
        quantity = _require_number(item, "quantity", item.quantity)
        priced.append(item.model_copy(update={"item_total": price * quantity}, deep=True))
    return priced


def derive_state(prior_state: CartState, items: Sequence[Item]) -> CartState:
    """
    Merge freshly computed items and aggregates with the non-item fields
    (id, metadata) of `prior_state`.
    """
    priced = calculate_item_totals(items)
    total_unique_items = len(priced)

    return CartState(
        id=prior_state.id,
        items=priced,
        total_unique_items=total_unique_items,
        total_items=sum(item.quantity for item in priced),
        cart_total=sum(item.quantity * item.discount_price for item in priced),
        is_empty=total_unique_items == 0,
        metadata=copy.deepcopy(prior_state.metadata),
    )

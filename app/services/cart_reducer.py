# app/services/cart_reducer.py
"""
Cart state reducer.

`reduce(state, action)` is a pure function from (state, action) to the
next state. It performs no I/O and never mutates `state`; transitions that
touch the item list go through the aggregate calculator so that derived
fields are always consistent with `items`.

Action payloads follow the wire shape {"type": "...", ...}:

    SET_ITEMS         payload: list of items
    ADD_ITEM          payload: item
    UPDATE_ITEM       sku, payload: patch mapping
    REMOVE_ITEM       sku
    EMPTY_CART
    CLEAR_CART_META
    SET_CART_META     payload: metadata mapping
    UPDATE_CART_META  payload: metadata mapping
"""
import copy
from collections.abc import Mapping
from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from app.core.errors import InvalidItemError, UnknownActionError
from app.schemas.cart import CartState, Item
from app.services.cart_state import derive_state, empty_cart_state


class _Action(BaseModel):
    model_config = ConfigDict(frozen=True)


class SetItems(_Action):
    type: Literal["SET_ITEMS"] = "SET_ITEMS"
    payload: list[Item]


class AddItem(_Action):
    type: Literal["ADD_ITEM"] = "ADD_ITEM"
    payload: Item


class UpdateItem(_Action):
    type: Literal["UPDATE_ITEM"] = "UPDATE_ITEM"
    sku: str
    payload: dict[str, Any] = Field(default_factory=dict)


class RemoveItem(_Action):
    type: Literal["REMOVE_ITEM"] = "REMOVE_ITEM"
    sku: str


class EmptyCart(_Action):
    type: Literal["EMPTY_CART"] = "EMPTY_CART"


class ClearCartMetadata(_Action):
    type: Literal["CLEAR_CART_META"] = "CLEAR_CART_META"


class SetCartMetadata(_Action):
    type: Literal["SET_CART_META"] = "SET_CART_META"
    payload: dict[str, Any] = Field(default_factory=dict)


class UpdateCartMetadata(_Action):
    type: Literal["UPDATE_CART_META"] = "UPDATE_CART_META"
    payload: dict[str, Any] = Field(default_factory=dict)


CartAction = Union[
    SetItems,
    AddItem,
    UpdateItem,
    RemoveItem,
    EmptyCart,
    ClearCartMetadata,
    SetCartMetadata,
    UpdateCartMetadata,
]

ACTION_TYPES: dict[str, type[_Action]] = {
    cls.model_fields["type"].default: cls
    for cls in (
        SetItems,
        AddItem,
        UpdateItem,
        RemoveItem,
        EmptyCart,
        ClearCartMetadata,
        SetCartMetadata,
        UpdateCartMetadata,
    )
}


def parse_action(data: Mapping[str, Any]) -> CartAction:
    """
    Turn a raw {"type": ..., ...} mapping into a typed action.

    Raises:
        UnknownActionError: if the tag is missing or not part of the
            action taxonomy, or the action body does not match its tag.
        InvalidItemError: if a SET_ITEMS or ADD_ITEM item fails typing.
    """
    tag = data.get("type") if isinstance(data, Mapping) else None
    action_cls = ACTION_TYPES.get(tag) if isinstance(tag, str) else None
    if action_cls is None:
        raise UnknownActionError(tag if tag is not None else data)

    try:
        return action_cls.model_validate(data)
    except ValidationError as exc:
        if action_cls in (SetItems, AddItem):
            _raise_item_error(data.get("payload"), exc)
        raise UnknownActionError(f"{tag} ({exc.error_count()} invalid field(s))") from exc


def _raise_item_error(payload: Any, exc: ValidationError) -> None:
    for error in exc.errors():
        loc = error["loc"]
        if not loc or loc[0] != "payload":
            continue
        item, field_loc = payload, loc[1:]
        # SET_ITEMS errors are located as ("payload", index, field, ...)
        if isinstance(payload, list) and field_loc and isinstance(field_loc[0], int):
            item, field_loc = payload[field_loc[0]], field_loc[1:]
        if not isinstance(item, Mapping):
            # the payload itself has the wrong shape
            return
        where = ".".join(str(part) for part in field_loc) or "item"
        raise InvalidItemError(item.get("sku"), f"{where}: {error['msg']}") from exc


def _with_metadata(state: CartState, metadata: dict[str, Any]) -> CartState:
    items = [item.model_copy(deep=True) for item in state.items]
    return state.model_copy(update={"metadata": copy.deepcopy(metadata), "items": items})


def reduce(state: CartState, action: CartAction) -> CartState:
    """
    Apply one action to `state` and return the next state.

    Raises:
        UnknownActionError: if `action` is not a cart action.
        InvalidItemError: if the resulting item list cannot be priced.
    """
    if isinstance(action, SetItems):
        return derive_state(state, action.payload)

    if isinstance(action, AddItem):
        return derive_state(state, [*state.items, action.payload])

    if isinstance(action, UpdateItem):
        # the sku identifies the line; a patch cannot rename it
        patch = {key: value for key, value in action.payload.items() if key != "sku"}
        items = [
            item.merged(patch) if item.sku == action.sku else item
            for item in state.items
        ]
        return derive_state(state, items)

    if isinstance(action, RemoveItem):
        items = [item for item in state.items if item.sku != action.sku]
        return derive_state(state, items)

    if isinstance(action, EmptyCart):
        # Full reset: id and metadata are discarded too.
        return empty_cart_state()

    if isinstance(action, ClearCartMetadata):
        return _with_metadata(state, {})

    if isinstance(action, SetCartMetadata):
        return _with_metadata(state, dict(action.payload))

    if isinstance(action, UpdateCartMetadata):
        return _with_metadata(state, {**state.metadata, **action.payload})

    raise UnknownActionError(action)

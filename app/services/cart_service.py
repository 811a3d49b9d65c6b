# app/services/cart_service.py
import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from sqlmodel import Session

from app.core.config import get_settings
from app.core.errors import ItemNotFoundError, MissingPriceError, MissingSkuError
from app.core.identifiers import create_cart_identifier
from app.repositories.cart_repo import CartRepository
from app.schemas.cart import CartState, Item
from app.services.cart_reducer import (
    AddItem,
    CartAction,
    ClearCartMetadata,
    EmptyCart,
    RemoveItem,
    SetCartMetadata,
    SetItems,
    UpdateCartMetadata,
    UpdateItem,
    reduce,
)
from app.services.cart_state import derive_state, new_cart_state

logger = logging.getLogger(__name__)

Callback = Callable[..., Any]


@dataclass
class CartHooks:
    """
    Optional notification hooks, called after a transition is persisted.

      - on_set_items(items)
      - on_item_add(payload)
      - on_item_update(payload)
      - on_item_remove(sku)
    """

    on_set_items: Callback | None = None
    on_item_add: Callback | None = None
    on_item_update: Callback | None = None
    on_item_remove: Callback | None = None


def _notify(fn: Callback | None, *args: Any) -> None:
    if fn is not None:
        fn(*args)


class CartService:
    """
    Cart operations on top of the reducer.

    Responsibilities:
      - load the current snapshot for a cart id (or a fresh default)
      - translate each request into a reducer action
      - persist the new snapshot after every transition
      - merge-on-add: adding an existing sku bumps its quantity
      - zero/negative quantity updates remove the item
      - fire notification hooks / per-call callbacks
    """

    def __init__(self, cart_repo: CartRepository, hooks: CartHooks | None = None):
        self.cart_repo = cart_repo
        self.hooks = hooks or CartHooks()
        self.settings = get_settings()

    # ---- internal helpers ----

    def _key(self, cart_id: str) -> str:
        return f"{self.settings.CART_KEY_PREFIX}-{cart_id}"

    def _load(self, session: Session, cart_id: str) -> CartState | None:
        raw = self.cart_repo.load(session, self._key(cart_id))
        if raw is None:
            return None
        state = CartState.from_snapshot(raw)
        # Aggregates are re-derived so a loaded cart always satisfies them.
        return derive_state(state, state.items)

    def _save(self, session: Session, cart_id: str, state: CartState) -> None:
        self.cart_repo.save(session, self._key(cart_id), state.to_snapshot())

    def _dispatch(
        self,
        session: Session,
        cart_id: str,
        action: CartAction,
        state: CartState | None = None,
    ) -> CartState:
        if state is None:
            state = self.get_cart(session, cart_id)
        next_state = reduce(state, action)
        self._save(session, cart_id, next_state)
        logger.debug(
            "cart %s: %s -> %d unique / %d items / total %s",
            cart_id,
            action.type,
            next_state.total_unique_items,
            next_state.total_items,
            next_state.cart_total,
        )
        return next_state

    # ---- public operations ----

    def create_cart(
        self,
        session: Session,
        cart_id: str | None = None,
        default_items: Iterable[Item | Mapping[str, Any]] = (),
        metadata: Mapping[str, Any] | None = None,
    ) -> CartState:
        """
        Create a cart, or return the stored one if the id already exists.

        When `cart_id` is omitted an identifier is generated. Default items
        get quantity 1 when absent.
        """
        if not cart_id:
            cart_id = create_cart_identifier(self.settings.CART_ID_LENGTH)

        existing = self._load(session, cart_id)
        if existing is not None:
            return existing

        state = new_cart_state(cart_id, default_items, metadata)
        self._save(session, cart_id, state)
        logger.info("Created cart %s with %d item(s)", cart_id, state.total_unique_items)
        return state

    def get_cart(self, session: Session, cart_id: str) -> CartState:
        """
        Current state of a cart. Unknown ids yield an empty cart carrying
        that id (nothing is stored until the first transition).
        """
        state = self._load(session, cart_id)
        if state is None:
            return new_cart_state(cart_id)
        return state

    def dispatch(self, session: Session, cart_id: str, action: CartAction) -> CartState:
        """
        Apply one raw action and persist the result. No hooks are fired.
        """
        return self._dispatch(session, cart_id, action)

    def set_items(
        self,
        session: Session,
        cart_id: str,
        items: Iterable[Item | Mapping[str, Any]],
        callback: Callback | None = None,
    ) -> CartState:
        items = list(items)
        payload = [Item.from_payload(it).with_default_quantity() for it in items]

        state = self._dispatch(session, cart_id, SetItems(payload=payload))

        _notify(self.hooks.on_set_items, items)
        _notify(callback, items)
        return state

    def add_item(
        self,
        session: Session,
        cart_id: str,
        item: Item | Mapping[str, Any],
        quantity: int = 1,
        callback: Callback | None = None,
    ) -> CartState:
        """
        Add `quantity` units of `item`.

        Rules:
          - item must carry a sku (MissingSkuError)
          - quantity <= 0 is a no-op
          - new items must carry discount_price (MissingPriceError)
          - an existing sku gets its quantity increased instead of a
            second entry being appended
        """
        if isinstance(item, Item):
            data = item.model_dump(by_alias=True, exclude_none=True)
        else:
            data = dict(item)
        sku = data.get("sku")

        if not sku:
            raise MissingSkuError()

        state = self.get_cart(session, cart_id)
        if quantity <= 0:
            return state

        current = state.get_item(sku)

        if current is None:
            if data.get("discount_price") is None:
                raise MissingPriceError(sku)

            payload = {**data, "quantity": quantity}
            state = self._dispatch(
                session, cart_id, AddItem(payload=Item.from_payload(payload)), state
            )

            _notify(self.hooks.on_item_add, payload)
            _notify(callback, payload)
            return state

        payload = {**data, "quantity": current.quantity + quantity}
        state = self._dispatch(
            session, cart_id, UpdateItem(sku=sku, payload=payload), state
        )

        _notify(self.hooks.on_item_update, payload)
        _notify(callback, payload)
        return state

    def update_item(
        self,
        session: Session,
        cart_id: str,
        sku: str,
        patch: Mapping[str, Any] | None,
        callback: Callback | None = None,
    ) -> CartState:
        """
        Shallow-merge `patch` into the item with `sku`.
        Updating a sku that is not in the cart leaves the items unchanged.
        """
        if not sku or not patch:
            return self.get_cart(session, cart_id)

        payload = dict(patch)
        state = self._dispatch(session, cart_id, UpdateItem(sku=sku, payload=payload))

        _notify(self.hooks.on_item_update, payload)
        _notify(callback, payload)
        return state

    def update_item_quantity(
        self,
        session: Session,
        cart_id: str,
        sku: str,
        quantity: int,
        callback: Callback | None = None,
    ) -> CartState:
        """
        Set the quantity of an item.

        quantity <= 0 removes the item; otherwise the sku must exist
        (ItemNotFoundError).
        """
        if quantity <= 0:
            state = self._dispatch(session, cart_id, RemoveItem(sku=sku))

            _notify(self.hooks.on_item_remove, sku)
            _notify(callback, sku)
            return state

        state = self.get_cart(session, cart_id)
        current = state.get_item(sku)
        if current is None:
            raise ItemNotFoundError(sku)

        payload = {**current.to_payload(), "quantity": quantity}
        state = self._dispatch(
            session, cart_id, UpdateItem(sku=sku, payload=payload), state
        )

        _notify(self.hooks.on_item_update, payload)
        _notify(callback, payload)
        return state

    def remove_item(
        self,
        session: Session,
        cart_id: str,
        sku: str,
        callback: Callback | None = None,
    ) -> CartState:
        """
        Remove an item. Removing an absent sku is a silent no-op.
        """
        if not sku:
            return self.get_cart(session, cart_id)

        state = self._dispatch(session, cart_id, RemoveItem(sku=sku))

        _notify(self.hooks.on_item_remove, sku)
        _notify(callback, sku)
        return state

    def empty_cart(
        self,
        session: Session,
        cart_id: str,
        callback: Callback | None = None,
    ) -> CartState:
        """
        Reset the cart to the canonical empty state.

        NOTE: the reset also drops the state's id and metadata; the snapshot
        stays stored under the same key.
        """
        state = self._dispatch(session, cart_id, EmptyCart())
        _notify(callback)
        return state

    def get_item(self, session: Session, cart_id: str, sku: str) -> Item | None:
        return self.get_cart(session, cart_id).get_item(sku)

    def in_cart(self, session: Session, cart_id: str, sku: str) -> bool:
        return self.get_cart(session, cart_id).in_cart(sku)

    # ---- metadata ----

    def clear_cart_metadata(
        self,
        session: Session,
        cart_id: str,
        callback: Callback | None = None,
    ) -> CartState:
        state = self._dispatch(session, cart_id, ClearCartMetadata())
        _notify(callback)
        return state

    def set_cart_metadata(
        self,
        session: Session,
        cart_id: str,
        metadata: Mapping[str, Any] | None,
        callback: Callback | None = None,
    ) -> CartState:
        """Replace metadata wholesale. None is a no-op."""
        if metadata is None:
            return self.get_cart(session, cart_id)

        state = self._dispatch(session, cart_id, SetCartMetadata(payload=dict(metadata)))
        _notify(callback, metadata)
        return state

    def update_cart_metadata(
        self,
        session: Session,
        cart_id: str,
        metadata: Mapping[str, Any] | None,
        callback: Callback | None = None,
    ) -> CartState:
        """Shallow-merge `metadata` over the existing metadata. None is a no-op."""
        if metadata is None:
            return self.get_cart(session, cart_id)

        state = self._dispatch(
            session, cart_id, UpdateCartMetadata(payload=dict(metadata))
        )
        _notify(callback, metadata)
        return state

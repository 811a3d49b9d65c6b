# app/routers/cart.py
import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, status
from sqlmodel import Session

from app.database import get_session
from app.repositories.cart_repo import CartRepository
from app.schemas.cart import (
    CartCreate,
    CartItemAdd,
    CartItemQuantityUpdate,
    CartItemsSet,
    CartState,
    InCartRead,
    Item,
)
from app.services.cart_reducer import parse_action
from app.services.cart_service import CartHooks, CartService

router = APIRouter(prefix="/carts", tags=["Cart"])

logger = logging.getLogger(__name__)

cart_repo = CartRepository()
service = CartService(
    cart_repo,
    hooks=CartHooks(
        on_item_add=lambda payload: logger.info("Item added: %s", payload.get("sku")),
        on_item_remove=lambda sku: logger.info("Item removed: %s", sku),
    ),
)


@router.post("", response_model=CartState, status_code=status.HTTP_201_CREATED)
def create_cart(
    payload: CartCreate,
    session: Session = Depends(get_session),
):
    """
    Create a cart.

    - id omitted => a random id is generated
    - id already stored => the stored cart is returned unchanged
    """
    return service.create_cart(
        session,
        cart_id=payload.id,
        default_items=payload.items,
        metadata=payload.metadata,
    )


@router.get("/{cart_id}", response_model=CartState)
def get_cart(
    cart_id: str,
    session: Session = Depends(get_session),
):
    """
    Get the current cart state.
    """
    return service.get_cart(session, cart_id)


@router.post("/{cart_id}/actions", response_model=CartState)
def dispatch_action(
    cart_id: str,
    action: dict[str, Any] = Body(...),
    session: Session = Depends(get_session),
):
    """
    Apply a raw tagged action, e.g. {"type": "REMOVE_ITEM", "sku": "A"}.

    Unknown action types are rejected with 400.
    """
    return service.dispatch(session, cart_id, parse_action(action))


# ---- items ----


@router.put("/{cart_id}/items", response_model=CartState)
def set_items(
    cart_id: str,
    payload: CartItemsSet,
    session: Session = Depends(get_session),
):
    """
    Replace the whole item list.
    """
    return service.set_items(session, cart_id, payload.items)


@router.post("/{cart_id}/items", response_model=CartState)
def add_item(
    cart_id: str,
    payload: CartItemAdd,
    session: Session = Depends(get_session),
):
    """
    Add an item to the cart.

    Adding a sku that is already in the cart increases its quantity.
    """
    return service.add_item(session, cart_id, payload.item, payload.quantity)


@router.delete("/{cart_id}/items", response_model=CartState)
def empty_cart(
    cart_id: str,
    session: Session = Depends(get_session),
):
    """
    Empty the cart (items, aggregates, id and metadata are reset).
    """
    return service.empty_cart(session, cart_id)


@router.get("/{cart_id}/items/{sku}", response_model=Item)
def get_item(
    cart_id: str,
    sku: str,
    session: Session = Depends(get_session),
):
    """
    Get a single item by sku.
    """
    item = service.get_item(session, cart_id, sku)
    if item is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Item not in cart",
        )
    return item


@router.get("/{cart_id}/items/{sku}/in-cart", response_model=InCartRead)
def in_cart(
    cart_id: str,
    sku: str,
    session: Session = Depends(get_session),
):
    """
    Check whether a sku is in the cart.
    """
    return InCartRead(sku=sku, in_cart=service.in_cart(session, cart_id, sku))


@router.patch("/{cart_id}/items/{sku}", response_model=CartState)
def update_item(
    cart_id: str,
    sku: str,
    patch: dict[str, Any] = Body(...),
    session: Session = Depends(get_session),
):
    """
    Shallow-merge fields into an item. Unknown skus are ignored.
    """
    return service.update_item(session, cart_id, sku, patch)


@router.put("/{cart_id}/items/{sku}/quantity", response_model=CartState)
def update_item_quantity(
    cart_id: str,
    sku: str,
    payload: CartItemQuantityUpdate,
    session: Session = Depends(get_session),
):
    """
    Set the quantity of an item.

    quantity <= 0 removes the item; otherwise the item must exist (404).
    """
    return service.update_item_quantity(session, cart_id, sku, payload.quantity)


@router.delete("/{cart_id}/items/{sku}", response_model=CartState)
def remove_item(
    cart_id: str,
    sku: str,
    session: Session = Depends(get_session),
):
    """
    Remove an item from the cart (no-op if absent).
    """
    return service.remove_item(session, cart_id, sku)


# ---- metadata ----


@router.delete("/{cart_id}/metadata", response_model=CartState)
def clear_cart_metadata(
    cart_id: str,
    session: Session = Depends(get_session),
):
    """
    Clear cart metadata. Items are untouched.
    """
    return service.clear_cart_metadata(session, cart_id)


@router.put("/{cart_id}/metadata", response_model=CartState)
def set_cart_metadata(
    cart_id: str,
    metadata: dict[str, Any] = Body(...),
    session: Session = Depends(get_session),
):
    """
    Replace cart metadata.
    """
    return service.set_cart_metadata(session, cart_id, metadata)


@router.patch("/{cart_id}/metadata", response_model=CartState)
def update_cart_metadata(
    cart_id: str,
    metadata: dict[str, Any] = Body(...),
    session: Session = Depends(get_session),
):
    """
    Merge keys into cart metadata.
    """
    return service.update_cart_metadata(session, cart_id, metadata)

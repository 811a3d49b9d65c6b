# app/schemas/cart.py
from collections.abc import Mapping
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_serializer,
    model_validator,
)
from sqlmodel import SQLModel

from app.core.errors import InvalidItemError


class Item(BaseModel):
    """
    A line entry in the cart.

    Core fields are typed; any other key supplied by the caller is kept in
    `attributes` and written back at the top level when serialized, so a
    snapshot item looks like:

        {"sku": "A", "quantity": 2, "discount_price": 10.0,
         "itemTotal": 20.0, "name": "Mug", ...}

    `item_total` is derived by the aggregate calculator and never trusted
    from input.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    sku: str
    quantity: int | None = None
    discount_price: float | None = None
    item_total: float | None = Field(default=None, alias="itemTotal")
    attributes: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def collect_attributes(cls, data: Any) -> Any:
        if not isinstance(data, Mapping):
            return data

        known: set[str] = set()
        for name, field in cls.model_fields.items():
            known.add(name)
            if field.alias:
                known.add(field.alias)
        known.discard("attributes")

        core = {k: v for k, v in data.items() if k in known}
        attributes = dict(data.get("attributes") or {})
        attributes.update(
            {k: v for k, v in data.items() if k not in known and k != "attributes"}
        )
        core["attributes"] = attributes
        return core

    @model_serializer(mode="wrap")
    def flatten_attributes(self, handler) -> dict[str, Any]:
        data = handler(self)
        attributes = data.pop("attributes", None) or {}
        return {**attributes, **data}

    # ---- helpers ----

    @classmethod
    def from_payload(cls, data: "Item | Mapping[str, Any]") -> "Item":
        """
        Build an Item from a flat caller mapping.

        Raises:
            InvalidItemError: if the mapping cannot be parsed (e.g. a
                non-numeric price or a missing sku).
        """
        if isinstance(data, Item):
            return data
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            sku = data.get("sku") if isinstance(data, Mapping) else None
            first = exc.errors()[0]
            loc = ".".join(str(part) for part in first["loc"]) or "item"
            raise InvalidItemError(sku, f"{loc}: {first['msg']}") from exc

    def to_payload(self) -> dict[str, Any]:
        """Flat dict view, as stored in snapshots."""
        return self.model_dump(by_alias=True)

    def merged(self, patch: Mapping[str, Any]) -> "Item":
        """Return a new Item with `patch` shallow-merged over this one."""
        return Item.from_payload({**self.to_payload(), **patch})

    def with_default_quantity(self) -> "Item":
        """Copy with quantity 1 when quantity is missing or zero."""
        if self.quantity:
            return self
        return self.model_copy(update={"quantity": 1})


class CartState(BaseModel):
    """
    Full cart snapshot.

    Aggregates are derived from `items` by app.services.cart_state and are
    serialized with camelCase names (totalUniqueItems, totalItems, ...).
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str | None = None
    items: list[Item] = Field(default_factory=list)
    total_unique_items: int = Field(default=0, alias="totalUniqueItems")
    total_items: int = Field(default=0, alias="totalItems")
    cart_total: float = Field(default=0.0, alias="cartTotal")
    is_empty: bool = Field(default=True, alias="isEmpty")
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("metadata", mode="before")
    @classmethod
    def default_metadata(cls, v: Any) -> Any:
        return {} if v is None else v

    def get_item(self, sku: str) -> Item | None:
        return next((item for item in self.items if item.sku == sku), None)

    def in_cart(self, sku: str) -> bool:
        return any(item.sku == sku for item in self.items)

    def to_snapshot(self) -> str:
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_snapshot(cls, raw: str) -> "CartState":
        return cls.model_validate_json(raw)


# ---- request payloads ----


class CartCreate(BaseModel):
    """
    Payload for creating a cart.

    All fields optional:
      - id: caller-supplied cart id (generated when omitted)
      - items: default items (quantity defaults to 1)
      - metadata: initial cart metadata
    """

    # plain pydantic model: SQLModel reserves the `metadata` attribute
    id: str | None = None
    items: list[dict[str, Any]] = Field(default_factory=list)
    metadata: dict[str, Any] | None = None


class CartItemsSet(SQLModel):
    """
    Payload for replacing the whole item list.
    """

    items: list[dict[str, Any]]


class CartItemAdd(SQLModel):
    """
    Payload for adding an item.

    `item` is a flat mapping (sku, discount_price, any extra attributes).
    """

    item: dict[str, Any]
    quantity: int = 1


class CartItemQuantityUpdate(SQLModel):
    """
    Payload for setting the quantity of an item.
    Zero or negative quantity removes the item.
    """

    quantity: int


class InCartRead(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    sku: str
    in_cart: bool = Field(alias="inCart")

# app/models/cart.py
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class CartSnapshot(SQLModel, table=True):
    """
    Serialized CartState, one row per storage key.
    The key is "<CART_KEY_PREFIX>-<cart_id>".
    """

    __tablename__ = "cart_snapshots"

    key: str = Field(
        primary_key=True,
        max_length=255,
    )

    payload: str = Field(
        description="CartState as JSON (camelCase aggregates)",
    )

    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )

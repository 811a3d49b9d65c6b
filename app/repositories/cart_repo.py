# app/repositories/cart_repo.py
from datetime import datetime, timezone

from sqlmodel import Session

from app.models.cart import CartSnapshot


class CartRepository:
    """
    Key/value store for serialized cart snapshots.

    The repository only moves strings around; parsing and aggregate
    consistency belong to the service.
    """

    def load(self, session: Session, key: str) -> str | None:
        row = session.get(CartSnapshot, key)
        return row.payload if row else None

    def save(self, session: Session, key: str, payload: str) -> CartSnapshot:
        row = session.get(CartSnapshot, key)
        if row is None:
            row = CartSnapshot(key=key, payload=payload)
        else:
            row.payload = payload
            row.updated_at = datetime.now(timezone.utc)
        session.add(row)
        session.commit()
        session.refresh(row)
        return row

    def delete(self, session: Session, key: str) -> None:
        row = session.get(CartSnapshot, key)
        if row is not None:
            session.delete(row)
            session.commit()

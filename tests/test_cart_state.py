"""
Tests for the aggregate calculator and cart schemas
"""

import pytest

from app.core.errors import InvalidItemError
from app.schemas.cart import CartState, Item
from app.services.cart_state import (
    calculate_item_totals,
    derive_state,
    empty_cart_state,
    new_cart_state,
)


class TestItem:
    """Tests for the Item record."""

    def test_extra_fields_go_to_attributes(self, mug):
        item = Item.from_payload(mug)

        assert item.sku == "MUG-1"
        assert item.discount_price == 12.5
        assert item.attributes == {"name": "Coffee mug"}

    def test_payload_is_flat(self, mug):
        item = Item.from_payload({**mug, "quantity": 2})

        data = item.to_payload()
        assert data["name"] == "Coffee mug"
        assert data["quantity"] == 2
        assert "attributes" not in data
        assert "itemTotal" in data

    def test_merged_returns_new_item(self, mug):
        item = Item.from_payload({**mug, "quantity": 1})

        updated = item.merged({"quantity": 3, "color": "red"})

        assert updated.quantity == 3
        assert updated.attributes == {"name": "Coffee mug", "color": "red"}
        assert item.quantity == 1
        assert "color" not in item.attributes

    def test_invalid_payload_raises_invalid_item(self):
        with pytest.raises(InvalidItemError) as exc:
            Item.from_payload({"sku": "A", "discount_price": "cheap"})

        assert exc.value.sku == "A"

    def test_default_quantity(self):
        assert Item(sku="A").with_default_quantity().quantity == 1
        assert Item(sku="A", quantity=4).with_default_quantity().quantity == 4


class TestDeriveState:
    """Tests for derive_state."""

    def test_single_item_scenario(self):
        prior = CartState(items=[], metadata={})
        items = [Item.from_payload({"sku": "X", "discount_price": 5, "quantity": 1})]

        state = derive_state(prior, items)

        assert [i.to_payload() for i in state.items] == [
            {"sku": "X", "quantity": 1, "discount_price": 5, "itemTotal": 5}
        ]
        assert state.total_items == 1
        assert state.cart_total == 5
        assert state.is_empty is False

    def test_multiple_items(self, mug, tee, assert_consistent):
        items = [
            Item.from_payload({**mug, "quantity": 2}),
            Item.from_payload({**tee, "quantity": 3}),
        ]

        state = derive_state(CartState(id="c1"), items)

        assert state.total_unique_items == 2
        assert state.total_items == 5
        assert state.cart_total == pytest.approx(85.0)  # 2*12.5 + 3*20
        assert_consistent(state)

    def test_empty_items(self):
        state = derive_state(CartState(id="c1", metadata={"a": 1}), [])

        assert state.items == []
        assert state.total_items == 0
        assert state.cart_total == 0
        assert state.is_empty is True

    def test_carries_id_and_metadata(self):
        prior = CartState(id="c1", metadata={"coupon": "SAVE"})

        state = derive_state(prior, [])

        assert state.id == "c1"
        assert state.metadata == {"coupon": "SAVE"}
        assert state.metadata is not prior.metadata

    def test_item_total_input_is_ignored(self):
        item = Item.from_payload(
            {"sku": "A", "discount_price": 4, "quantity": 2, "itemTotal": 999}
        )

        state = derive_state(CartState(), [item])

        assert state.items[0].item_total == 8

    def test_inputs_not_mutated(self):
        prior = CartState(id="c1")
        item = Item(sku="A", quantity=2, discount_price=3)
        items = [item]

        derive_state(prior, items)

        assert items == [item]
        assert item.item_total is None
        assert prior.items == []

    def test_next_state_shares_no_containers(self):
        item = Item(sku="A", quantity=1, discount_price=2, attributes={"tags": ["x"]})
        prior = derive_state(CartState(id="c1", metadata={"tags": ["a"]}), [item])

        state = derive_state(prior, prior.items)
        state.items[0].attributes["tags"].append("y")
        state.metadata["tags"].append("b")

        assert prior.items[0].attributes == {"tags": ["x"]}
        assert prior.metadata == {"tags": ["a"]}

    def test_missing_price(self):
        with pytest.raises(InvalidItemError):
            derive_state(CartState(), [Item(sku="A", quantity=1)])

    def test_missing_quantity(self):
        with pytest.raises(InvalidItemError):
            derive_state(CartState(), [Item(sku="A", discount_price=1)])

    def test_non_numeric_price(self):
        item = Item.model_construct(
            sku="A", quantity=1, discount_price="abc", item_total=None, attributes={}
        )

        with pytest.raises(InvalidItemError) as exc:
            calculate_item_totals([item])

        assert "discount_price" in exc.value.reason


class TestFactories:
    """Tests for state factories."""

    def test_empty_cart_state(self):
        state = empty_cart_state()

        assert state.id is None
        assert state.items == []
        assert state.total_unique_items == 0
        assert state.total_items == 0
        assert state.cart_total == 0
        assert state.is_empty is True
        assert state.metadata == {}

    def test_empty_cart_state_is_fresh(self):
        assert empty_cart_state().metadata is not empty_cart_state().metadata

    def test_new_cart_state_derives_aggregates(self, mug, assert_consistent):
        state = new_cart_state("c1", [mug], {"note": "gift"})

        assert state.id == "c1"
        assert state.items[0].quantity == 1
        assert state.cart_total == 12.5
        assert state.metadata == {"note": "gift"}
        assert_consistent(state)


class TestSnapshot:
    """Tests for snapshot serialization."""

    def test_snapshot_shape(self, mug):
        state = new_cart_state("c1", [mug])

        restored = CartState.from_snapshot(state.to_snapshot())

        assert restored == state
        assert restored.items[0].attributes == {"name": "Coffee mug"}

    def test_snapshot_uses_camel_case_aggregates(self):
        data = empty_cart_state().model_dump(by_alias=True)

        assert set(data) == {
            "id",
            "items",
            "totalUniqueItems",
            "totalItems",
            "cartTotal",
            "isEmpty",
            "metadata",
        }

    def test_null_metadata_loads_as_empty(self):
        state = CartState.from_snapshot('{"id": "c1", "items": [], "metadata": null}')

        assert state.metadata == {}

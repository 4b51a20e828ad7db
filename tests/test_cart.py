"""Unit tests for cart aggregation and its persistence."""
from __future__ import annotations

import json

import pytest

from barbershop.cart import (CART_STORAGE_KEY, Cart, MemoryCartStorage,
                             ProductItem, ServiceItem, item_from_dict)


def _product(item_id: int = 1, price_cents: int = 1000) -> ProductItem:
    return ProductItem(id=item_id, name=f"Product {item_id}", price_cents=price_cents)


def _service(item_id: int = 1, day: str = "2025-07-01", slot: str = "10:00") -> ServiceItem:
    return ServiceItem(
        id=item_id,
        name=f"Service {item_id}",
        price_cents=3000,
        date=day,
        time=slot,
        duration=30,
    )


@pytest.fixture
def storage() -> MemoryCartStorage:
    return MemoryCartStorage()


def test_re_adding_a_product_increments_quantity(storage) -> None:
    cart = Cart(storage)

    cart.add_item(_product())
    cart.add_item(_product())

    assert len(cart) == 1
    assert cart.items[0].quantity == 2


def test_same_id_with_different_type_is_a_separate_line(storage) -> None:
    cart = Cart(storage)

    cart.add_item(_product(1))
    cart.add_item(_service(1))

    assert [item.key for item in cart] == [(1, "product"), (1, "service")]


def test_re_adding_a_service_moves_its_slot_instead_of_incrementing(storage) -> None:
    cart = Cart(storage)

    cart.add_item(_service(slot="10:00"))
    cart.add_item(_service(day="2025-07-02", slot="11:30"))

    assert len(cart) == 1
    item = cart.items[0]
    assert item.quantity == 1
    assert (item.date, item.time) == ("2025-07-02", "11:30")


def test_new_items_always_start_at_quantity_one(storage) -> None:
    cart = Cart(storage)
    item = _product()
    item.quantity = 7

    cart.add_item(item)

    assert cart.items[0].quantity == 1


@pytest.mark.parametrize("quantity", [0, -5])
def test_non_positive_quantity_removes_item(storage, quantity) -> None:
    cart = Cart(storage)
    cart.add_item(_product(1))
    cart.add_item(_product(2))

    cart.update_quantity(1, "product", quantity)

    assert [item.id for item in cart] == [2]


def test_update_quantity_sets_value_without_stock_bound(storage) -> None:
    cart = Cart(storage)
    cart.add_item(_product())

    cart.update_quantity(1, "product", 500)

    assert cart.items[0].quantity == 500


def test_service_quantity_stays_at_one(storage) -> None:
    cart = Cart(storage)
    cart.add_item(_service())

    cart.update_quantity(1, "service", 3)

    assert cart.items[0].quantity == 1


def test_remove_missing_item_is_a_no_op(storage) -> None:
    cart = Cart(storage)
    cart.add_item(_product())

    cart.remove_item(99, "product")
    cart.remove_item(1, "service")

    assert len(cart) == 1


def test_totals_follow_the_item_list(storage) -> None:
    cart = Cart(storage)
    cart.add_item(_product(1, price_cents=1000))
    cart.add_item(_product(1, price_cents=1000))
    cart.add_item(_product(2, price_cents=250))
    cart.add_item(_service(1))

    assert cart.total_items == 4
    assert cart.total_price_cents == sum(i.price_cents * i.quantity for i in cart)
    assert cart.total_price_cents == 2 * 1000 + 250 + 3000
    assert cart.total_price == 52.5

    cart.update_quantity(2, "product", 4)

    assert cart.total_items == 7
    assert cart.total_price_cents == 2 * 1000 + 4 * 250 + 3000


def test_every_mutation_is_persisted_and_restored(storage) -> None:
    cart = Cart(storage)
    cart.add_item(_product(1))
    cart.add_item(_service(2))
    cart.update_quantity(1, "product", 3)

    restored = Cart(storage)

    assert [item.to_dict() for item in restored] == [item.to_dict() for item in cart]
    assert restored.items[0].quantity == 3
    assert isinstance(restored.items[1], ServiceItem)

    restored.clear()
    assert json.loads(storage.get(CART_STORAGE_KEY)) == []
    assert len(Cart(storage)) == 0


@pytest.mark.parametrize(
    "raw",
    [
        "not json",
        json.dumps({"type": "product"}),
        json.dumps("a string"),
    ],
)
def test_malformed_storage_loads_as_empty_cart(raw) -> None:
    storage = MemoryCartStorage({CART_STORAGE_KEY: raw})

    assert len(Cart(storage)) == 0


def test_malformed_entries_are_dropped_on_load() -> None:
    good = _product(1).to_dict()
    raw = json.dumps([
        good,
        {"type": "gift-card", "id": 2},
        {"type": "product", "id": 3},
        {"type": "product", "id": 4, "name": "Bad", "price_cents": 100, "quantity": 0},
        "junk",
    ])
    storage = MemoryCartStorage({CART_STORAGE_KEY: raw})

    cart = Cart(storage)

    assert [item.id for item in cart] == [1]


def test_discard_removes_the_stored_cart(storage) -> None:
    cart = Cart(storage)
    cart.add_item(_product())

    cart.discard()

    assert storage.get(CART_STORAGE_KEY) is None
    assert len(cart) == 0


def test_item_from_dict_rejects_unknown_type() -> None:
    with pytest.raises(ValueError):
        item_from_dict({"type": "voucher", "id": 1, "name": "x", "price_cents": 1})

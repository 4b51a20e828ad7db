"""Tests for checkout settlement of products and service bookings."""
from __future__ import annotations

from datetime import datetime
from unittest.mock import patch

from barbershop.cart import Cart, MemoryCartStorage, ProductItem, ServiceItem
from barbershop.checkout import (CHECKOUT_SUCCESS_PATH, checkout_action,
                                 checkout_cart)
from barbershop.extensions import db
from barbershop.models import Appointment, Product, Service


def _product_item(product_id: int, quantity: int, name: str = "Beard Oil") -> ProductItem:
    return ProductItem(id=product_id, name=name, price_cents=1000, quantity=quantity)


def _service_item(service_id: int, day: str = "2025-07-01", slot: str = "10:00") -> ServiceItem:
    return ServiceItem(
        id=service_id,
        name="Classic Haircut",
        price_cents=3000,
        date=day,
        time=slot,
        duration=30,
    )


def _stock(product_id: int) -> tuple[int, int]:
    product = db.session.get(Product, product_id)
    return product.quantity, product.sold_quantity


def test_checkout_requires_a_user(app, catalog) -> None:
    result = checkout_action([_product_item(catalog["product_id"], 1)], None)

    assert result.success is False
    assert result.error == "unauthorized"
    assert _stock(catalog["product_id"]) == (5, 3)


def test_empty_cart_fails_without_writes(app, client_user) -> None:
    result = checkout_action([], client_user.user_id)

    assert result.success is False
    assert result.error == "empty_cart"
    assert result.message == "Your cart is empty."
    assert Appointment.query.count() == 0


def test_stock_is_taken_exactly_once(app, catalog, client_user) -> None:
    result = checkout_action([_product_item(catalog["product_id"], 2)], client_user.user_id)

    assert result.success is True
    assert result.data["redirect_to"] == CHECKOUT_SUCCESS_PATH
    assert _stock(catalog["product_id"]) == (3, 5)


def test_buying_the_whole_stock_is_allowed(app, catalog, client_user) -> None:
    result = checkout_action([_product_item(catalog["product_id"], 5)], client_user.user_id)

    assert result.success is True
    assert _stock(catalog["product_id"]) == (0, 8)


def test_insufficient_stock_fails_and_leaves_product_untouched(app, catalog, client_user) -> None:
    result = checkout_action([_product_item(catalog["product_id"], 6)], client_user.user_id)

    assert result.success is False
    assert result.error == "insufficient_stock"
    assert "Beard Oil" in result.message
    assert _stock(catalog["product_id"]) == (5, 3)


def test_missing_product_fails_with_its_name(app, client_user) -> None:
    result = checkout_action([_product_item(404, 1, name="Ghost Wax")], client_user.user_id)

    assert result.success is False
    assert result.error == "not_found"
    assert result.status_code == 404
    assert "Ghost Wax" in result.message


def test_client_prices_are_not_trusted(app, catalog, client_user) -> None:
    item = _product_item(catalog["product_id"], 1)
    item.price_cents = 1

    result = checkout_action([item], client_user.user_id)

    assert result.success is True
    assert db.session.get(Product, catalog["product_id"]).price_cents == 1000


def test_failure_rolls_back_earlier_lines(app, catalog, client_user) -> None:
    items = [
        _service_item(catalog["service_id"]),
        _product_item(catalog["product_id"], 1),
        _product_item(catalog["product_id"], 10),
    ]

    result = checkout_action(items, client_user.user_id)

    assert result.success is False
    assert result.message.startswith("Checkout failed:")
    assert Appointment.query.count() == 0
    assert _stock(catalog["product_id"]) == (5, 3)


def test_end_to_end_product_and_service(app, catalog, client_user) -> None:
    cart = Cart(MemoryCartStorage())
    cart.add_item(_product_item(catalog["product_id"], 1))
    cart.update_quantity(catalog["product_id"], "product", 2)
    cart.add_item(_service_item(catalog["service_id"]))

    result = checkout_cart(cart, client_user.user_id)

    assert result.success is True
    assert _stock(catalog["product_id"]) == (3, 5)
    appointments = Appointment.query.all()
    assert len(appointments) == 1
    assert appointments[0].service_id == catalog["service_id"]
    assert appointments[0].client_id == client_user.user_id
    assert appointments[0].starts_at == datetime(2025, 7, 1, 10, 0)
    assert appointments[0].status == "scheduled"
    assert len(cart) == 0


def test_failed_checkout_keeps_the_cart(app, catalog, client_user) -> None:
    cart = Cart(MemoryCartStorage())
    cart.add_item(_product_item(catalog["product_id"], 1))
    cart.update_quantity(catalog["product_id"], "product", 9)

    result = checkout_cart(cart, client_user.user_id)

    assert result.success is False
    assert cart.total_items == 9


def test_service_slot_already_scheduled_is_rejected(app, catalog, client_user) -> None:
    db.session.add(Appointment(
        client_id=client_user.user_id,
        service_id=catalog["service_id"],
        starts_at=datetime(2025, 7, 1, 10, 0),
        status="scheduled",
    ))
    db.session.commit()

    result = checkout_action(
        [_product_item(catalog["product_id"], 1), _service_item(catalog["service_id"])],
        client_user.user_id,
    )

    assert result.success is False
    assert result.error == "slot_taken"
    assert _stock(catalog["product_id"]) == (5, 3)

def test_service_line_losing_the_slot_race_rolls_back(app, catalog, client_user) -> None:
    db.session.add(Appointment(
        client_id=client_user.user_id,
        service_id=catalog["service_id"],
        starts_at=datetime(2025, 7, 1, 10, 0),
        status="scheduled",
    ))
    db.session.commit()

    with patch("barbershop.booking.find_scheduled_at", return_value=None):
        result = checkout_action(
            [_product_item(catalog["product_id"], 1), _service_item(catalog["service_id"])],
            client_user.user_id,
        )

    assert result.success is False
    assert result.error == "slot_taken"
    assert result.message == "Checkout failed: Sorry, this time slot is no longer available."
    assert _stock(catalog["product_id"]) == (5, 3)
    assert Appointment.query.count() == 1



def test_two_services_in_one_cart_cannot_share_a_slot(app, catalog, client_user) -> None:
    other = Service(name="Beard Trim", price_cents=2000, duration_minutes=30)
    db.session.add(other)
    db.session.commit()

    result = checkout_action(
        [_service_item(catalog["service_id"]), _service_item(other.service_id)],
        client_user.user_id,
    )

    assert result.success is False
    assert result.error == "slot_taken"
    assert Appointment.query.count() == 0


def test_unknown_service_fails(app, client_user) -> None:
    result = checkout_action([_service_item(404)], client_user.user_id)

    assert result.success is False
    assert result.error == "not_found"

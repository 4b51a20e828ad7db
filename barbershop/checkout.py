"""Checkout settlement: turn a cart into stock movements and appointments.

Every line is settled inside one database transaction. Stock is taken with
a single conditional UPDATE so two buyers can never both pass the
sufficiency check for the last units, and any failure rolls back the lines
that were already settled.
"""
from __future__ import annotations

from typing import Iterable

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError

from .booking import combine_slot, schedule_appointment
from .cart import Cart, CartItem, ProductItem, ServiceItem
from .errors import (ActionResult, EmptyCart, InsufficientStock,
                     PaymentDetailsMissing, PersistenceError, ProductNotFound,
                     ShopError, Unauthenticated)
from .extensions import db
from .models import Product

CHECKOUT_SUCCESS_PATH = "/checkout/success"
PAYMENT_FIELDS = ("card_name", "card_number", "card_expiry", "card_cvc")


def validate_payment(details: dict[str, object] | None) -> None:
    """Payment is simulated; only the presence of card details is checked."""
    details = details or {}
    if not all(str(details.get(name) or "").strip() for name in PAYMENT_FIELDS):
        raise PaymentDetailsMissing()


def take_stock(item: ProductItem) -> None:
    """Decrement stock and bump the sold counter in one statement."""
    result = db.session.execute(
        update(Product)
        .where(
            Product.product_id == item.id,
            Product.quantity >= item.quantity,
        )
        .values(
            quantity=Product.quantity - item.quantity,
            sold_quantity=Product.sold_quantity + item.quantity,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 1:
        return

    if db.session.get(Product, item.id) is None:
        raise ProductNotFound(item.name)
    raise InsufficientStock(item.name)


def settle_item(item: CartItem, user_id: int) -> None:
    if isinstance(item, ServiceItem):
        if item.date and item.time:
            schedule_appointment(user_id, item.id, combine_slot(item.date, item.time))
    elif isinstance(item, ProductItem):
        take_stock(item)
    else:
        raise TypeError(f"unsupported cart item: {item!r}")


def checkout(items: Iterable[CartItem], user_id: int | None) -> None:
    """Settle every cart line for ``user_id`` or raise without side effects."""
    items = list(items or [])
    if not user_id:
        raise Unauthenticated()
    if not items:
        raise EmptyCart()

    try:
        for item in items:
            settle_item(item, user_id)
        db.session.commit()
    except (ShopError, SQLAlchemyError):
        db.session.rollback()
        raise


def checkout_action(items: Iterable[CartItem], user_id: int | None) -> ActionResult:
    try:
        checkout(items, user_id)
    except (Unauthenticated, EmptyCart) as exc:
        return ActionResult.from_error(exc)
    except ShopError as exc:
        return ActionResult.from_error(exc, prefix="Checkout failed")
    except SQLAlchemyError as exc:
        current_app.logger.exception("Checkout failed", exc_info=exc)
        return ActionResult.from_error(PersistenceError(str(exc)), prefix="Checkout failed")

    current_app.logger.info("Checkout completed for user %s", user_id)
    return ActionResult.ok("Order placed successfully!", redirect_to=CHECKOUT_SUCCESS_PATH)


def checkout_cart(cart: Cart, user_id: int | None) -> ActionResult:
    """Check out ``cart`` and empty it; a failed checkout leaves it intact."""
    result = checkout_action(cart.items, user_id)
    if result.success:
        cart.clear()
    return result

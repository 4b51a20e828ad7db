"""Shopping cart state for products and service bookings.

A ``Cart`` holds the client's pending selections, keyed by ``(id, type)``,
and writes its full item list back to a ``CartStorage`` after every
mutation so a reload restores it. Prices held here are only what the client
saw in the catalog; checkout re-reads the authoritative values.
"""
from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass
from typing import Iterator, MutableMapping, Protocol, Union

from flask import session

CART_STORAGE_KEY = "barber-cart"

logger = logging.getLogger(__name__)


@dataclass
class ProductItem:
    id: int
    name: str
    price_cents: int
    image: str | None = None
    quantity: int = 1
    description: str | None = None

    type = "product"

    @property
    def key(self) -> tuple[int, str]:
        return (self.id, self.type)

    @property
    def line_total_cents(self) -> int:
        return self.price_cents * self.quantity

    def to_dict(self) -> dict[str, object]:
        return {"type": self.type, **asdict(self)}


@dataclass
class ServiceItem:
    id: int
    name: str
    price_cents: int
    date: str
    time: str
    duration: int
    image: str | None = None
    quantity: int = 1

    type = "service"

    @property
    def key(self) -> tuple[int, str]:
        return (self.id, self.type)

    @property
    def line_total_cents(self) -> int:
        return self.price_cents * self.quantity

    def to_dict(self) -> dict[str, object]:
        return {"type": self.type, **asdict(self)}


CartItem = Union[ProductItem, ServiceItem]

ITEM_TYPES: dict[str, type] = {"product": ProductItem, "service": ServiceItem}


def item_from_dict(data: dict[str, object]) -> CartItem:
    """Build a cart item from its serialized form.

    Raises ``ValueError`` for unknown types or missing/invalid fields.
    """
    item_type = data.get("type")
    if item_type not in ITEM_TYPES:
        raise ValueError(f"unknown cart item type: {item_type!r}")

    fields = {k: v for k, v in data.items() if k != "type"}
    try:
        item = ITEM_TYPES[item_type](**fields)
    except TypeError as exc:
        raise ValueError(str(exc)) from exc

    item.id = int(item.id)
    item.price_cents = int(item.price_cents)
    item.quantity = 1 if isinstance(item, ServiceItem) else int(item.quantity)
    if item.price_cents < 0 or item.quantity < 1:
        raise ValueError("price must be non-negative and quantity at least 1")
    return item


class CartStorage(Protocol):
    """Synchronous key -> string store that outlives a single request."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryCartStorage:
    def __init__(self, data: MutableMapping[str, str] | None = None) -> None:
        self.data = data if data is not None else {}

    def get(self, key: str) -> str | None:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def delete(self, key: str) -> None:
        self.data.pop(key, None)


class SessionCartStorage:
    """Keeps the cart in the signed Flask session cookie of the browser."""

    def get(self, key: str) -> str | None:
        return session.get(key)

    def set(self, key: str, value: str) -> None:
        session[key] = value

    def delete(self, key: str) -> None:
        session.pop(key, None)


class Cart:
    def __init__(self, storage: CartStorage, key: str = CART_STORAGE_KEY) -> None:
        self.storage = storage
        self.key = key
        self.items: list[CartItem] = self._load()

    def _load(self) -> list[CartItem]:
        raw = self.storage.get(self.key)
        if not raw:
            return []
        try:
            data = json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("Discarding unreadable cart data")
            return []
        if not isinstance(data, list):
            logger.warning("Discarding cart data that is not a list")
            return []

        items: list[CartItem] = []
        seen: set[tuple[int, str]] = set()
        for entry in data:
            if not isinstance(entry, dict):
                continue
            try:
                item = item_from_dict(entry)
            except (ValueError, TypeError) as exc:
                logger.warning("Dropping malformed cart item: %s", exc)
                continue
            if item.key in seen:
                continue
            seen.add(item.key)
            items.append(item)
        return items

    def _save(self) -> None:
        self.storage.set(self.key, json.dumps([item.to_dict() for item in self.items]))

    def __iter__(self) -> Iterator[CartItem]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def find(self, item_id: int, item_type: str) -> CartItem | None:
        for item in self.items:
            if item.key == (item_id, item_type):
                return item
        return None

    def add_item(self, item: CartItem) -> CartItem:
        existing = self.find(item.id, item.type)
        if existing is None:
            item.quantity = 1
            self.items.append(item)
            self._save()
            return item

        if isinstance(existing, ProductItem):
            existing.quantity += 1
        elif isinstance(existing, ServiceItem):
            # A service line is a single slot: re-adding picks a new slot.
            existing.date = item.date
            existing.time = item.time
        else:
            raise TypeError(f"unsupported cart item: {existing!r}")
        self._save()
        return existing

    def update_quantity(self, item_id: int, item_type: str, quantity: int) -> None:
        if quantity <= 0:
            self.remove_item(item_id, item_type)
            return

        item = self.find(item_id, item_type)
        if item is None:
            return
        if isinstance(item, ProductItem):
            item.quantity = quantity
        elif isinstance(item, ServiceItem):
            item.quantity = 1
        else:
            raise TypeError(f"unsupported cart item: {item!r}")
        self._save()

    def remove_item(self, item_id: int, item_type: str) -> None:
        self.items = [item for item in self.items if item.key != (item_id, item_type)]
        self._save()

    def clear(self) -> None:
        self.items = []
        self._save()

    def discard(self) -> None:
        """Drop the cart from storage entirely, e.g. on logout."""
        self.items = []
        self.storage.delete(self.key)

    @property
    def total_items(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def total_price_cents(self) -> int:
        return sum(item.line_total_cents for item in self.items)

    @property
    def total_price(self) -> float:
        return self.total_price_cents / 100.0

    def to_dict(self) -> dict[str, object]:
        return {
            "items": [item.to_dict() for item in self.items],
            "total_items": self.total_items,
            "total_price_cents": self.total_price_cents,
            "total_price": self.total_price,
        }

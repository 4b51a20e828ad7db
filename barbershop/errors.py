"""Domain errors and the result envelope returned by shop actions."""
from __future__ import annotations

from dataclasses import dataclass, field


class ShopError(Exception):
    """Base class for failures surfaced to the client as a message."""

    code = "error"
    status_code = 400
    default_message = "Something went wrong."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthenticated(ShopError):
    code = "unauthorized"
    status_code = 401
    default_message = "User is not authenticated."


class Forbidden(ShopError):
    code = "forbidden"
    status_code = 403
    default_message = "You do not have permission to perform this action."


class EmptyCart(ShopError):
    code = "empty_cart"
    default_message = "Your cart is empty."


class MissingFields(ShopError):
    code = "invalid_payload"
    default_message = "All fields are required."


class PaymentDetailsMissing(ShopError):
    code = "invalid_payload"
    default_message = "Please fill in all payment details."


class ProductNotFound(ShopError):
    code = "not_found"
    status_code = 404

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f'Product "{name}" not found in database.')


class ServiceNotFound(ShopError):
    code = "not_found"
    status_code = 404
    default_message = "Service not found."


class AppointmentNotFound(ShopError):
    code = "not_found"
    status_code = 404
    default_message = "Appointment not found."


class InsufficientStock(ShopError):
    code = "insufficient_stock"
    status_code = 409

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f'Sorry, there is not enough stock for "{name}".')


class SlotTaken(ShopError):
    code = "slot_taken"
    status_code = 409
    default_message = "Sorry, this time slot is no longer available."


class InvalidStatusTransition(ShopError):
    code = "invalid_status"
    status_code = 409
    default_message = "This appointment can no longer be changed."


class PersistenceError(ShopError):
    code = "database_error"
    status_code = 500


@dataclass
class ActionResult:
    """Outcome of a user-triggered action, rendered as ``{success, message}``."""

    success: bool
    message: str
    error: str | None = None
    status_code: int = 200
    data: dict[str, object] = field(default_factory=dict)

    @classmethod
    def ok(cls, message: str, status_code: int = 200, **data: object) -> "ActionResult":
        return cls(True, message, status_code=status_code, data=data)

    @classmethod
    def from_error(cls, exc: ShopError, prefix: str | None = None) -> "ActionResult":
        message = f"{prefix}: {exc.message}" if prefix else exc.message
        return cls(False, message, error=exc.code, status_code=exc.status_code)

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {"success": self.success, "message": self.message}
        if self.error:
            payload["error"] = self.error
        payload.update(self.data)
        return payload

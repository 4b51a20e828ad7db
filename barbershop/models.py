"""Database models for the barbershop backend."""
from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Index, text

from .extensions import db


APPOINTMENT_STATUSES = ("scheduled", "completed", "cancelled", "pending")


def utc_now() -> datetime:
    """Return a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def normalize_status(status: str | None) -> str | None:
    """Map accepted spellings onto the stored appointment status."""
    if not isinstance(status, str):
        return None
    status = status.strip().lower()
    if status == "canceled":
        return "cancelled"
    return status


class User(db.Model):
    __tablename__ = "users"

    user_id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False)
    role = db.Column(
        db.Enum(
            "client",
            "admin",
            name="user_role",
            native_enum=False,
            validate_strings=True,
        ),
        nullable=False,
        server_default="client",
    )
    phone = db.Column(db.String(30))
    address_street = db.Column(db.String(150))
    address_city = db.Column(db.String(100))
    address_state = db.Column(db.String(100))
    address_zip = db.Column(db.String(20))
    address_country = db.Column(db.String(100))
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
    )

    auth_account = db.relationship(
        "AuthAccount",
        back_populates="user",
        uselist=False,
        cascade="all, delete-orphan",
    )
    appointments = db.relationship(
        "Appointment",
        back_populates="client",
        cascade="all, delete-orphan",
    )

    def address_dict(self) -> dict[str, str | None] | None:
        fields = {
            "street": self.address_street,
            "city": self.address_city,
            "state": self.address_state,
            "zip": self.address_zip,
            "country": self.address_country,
        }
        if not any(fields.values()):
            return None
        return fields

    def to_dict_basic(self) -> dict[str, object]:
        return {
            "id": self.user_id,
            "user_id": self.user_id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "phone": self.phone,
        }

    def to_dict(self) -> dict[str, object]:
        payload = self.to_dict_basic()
        payload["address"] = self.address_dict()
        payload["created_at"] = self.created_at.isoformat() if self.created_at else None
        return payload


class AuthAccount(db.Model):
    __tablename__ = "auth_accounts"

    user_id = db.Column(db.Integer, db.ForeignKey("users.user_id"), primary_key=True)
    password_hash = db.Column(db.String(255), nullable=False)
    last_login_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(db.DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    user = db.relationship("User", back_populates="auth_account")


class Product(db.Model):
    """Retail products sold through the shop."""

    __tablename__ = "products"

    product_id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    price_cents = db.Column(db.Integer, nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=0, server_default="0")
    sold_quantity = db.Column(db.Integer, nullable=False, default=0, server_default="0")
    image_url = db.Column(db.String(500))
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(db.DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.product_id,
            "type": "product",
            "name": self.name,
            "description": self.description,
            "price_cents": self.price_cents,
            "price_dollars": self.price_cents / 100.0,
            "quantity": self.quantity,
            "sold_quantity": self.sold_quantity,
            "image_url": self.image_url,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class Service(db.Model):
    """Bookable services offered by the shop."""

    __tablename__ = "services"

    service_id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(150), nullable=False)
    description = db.Column(db.Text)
    price_cents = db.Column(db.Integer, nullable=False)
    duration_minutes = db.Column(db.Integer, nullable=False)
    image_url = db.Column(db.String(500))
    icon = db.Column(db.String(100))
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
    )

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.service_id,
            "type": "service",
            "name": self.name,
            "description": self.description,
            "price_cents": self.price_cents,
            "price_dollars": self.price_cents / 100.0,
            "duration_minutes": self.duration_minutes,
            "image_url": self.image_url,
            "icon": self.icon,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class Appointment(db.Model):
    """Client appointments for a service at a single slot."""

    __tablename__ = "appointments"
    # Only one scheduled appointment may hold a slot; cancelled and completed
    # rows at the same instant are allowed.
    __table_args__ = (
        Index(
            "uq_appointments_scheduled_slot",
            "starts_at",
            unique=True,
            sqlite_where=text("status = 'scheduled'"),
            postgresql_where=text("status = 'scheduled'"),
        ),
    )

    appointment_id = db.Column(db.Integer, primary_key=True)
    client_id = db.Column(db.Integer, db.ForeignKey("users.user_id"), nullable=False)
    service_id = db.Column(db.Integer, db.ForeignKey("services.service_id"), nullable=False)
    starts_at = db.Column(db.DateTime, nullable=False)
    status = db.Column(
        db.Enum(
            *APPOINTMENT_STATUSES,
            name="appointment_status",
            native_enum=False,
            validate_strings=True,
        ),
        nullable=False,
        server_default="scheduled",
    )
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
    )

    service = db.relationship("Service")
    client = db.relationship("User", back_populates="appointments")

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.appointment_id,
            "client_id": self.client_id,
            "client": {
                "id": self.client.user_id,
                "name": self.client.name,
                "email": self.client.email,
                "phone": self.client.phone,
            } if self.client else None,
            "service_id": self.service_id,
            "service": {
                "id": self.service.service_id,
                "name": self.service.name,
                "price_cents": self.service.price_cents,
                "duration_minutes": self.service.duration_minutes,
            } if self.service else None,
            "starts_at": self.starts_at.isoformat() if self.starts_at else None,
            "date": self.starts_at.strftime("%Y-%m-%d") if self.starts_at else None,
            "time": self.starts_at.strftime("%H:%M") if self.starts_at else None,
            "status": self.status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

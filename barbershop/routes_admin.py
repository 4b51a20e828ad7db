"""Admin back-office routes: catalog, client and appointment management."""
from __future__ import annotations

from datetime import datetime, timezone

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from .auth import admin_required
from .booking import combine_slot
from .errors import MissingFields
from .extensions import db
from .models import (APPOINTMENT_STATUSES, Appointment, Product, Service, User,
                     normalize_status)

bp_admin = Blueprint("admin", __name__, url_prefix="/admin")

# field -> (type, minimum); a minimum of None means any value is accepted.
PRODUCT_RULES = {
    "name": (str, None),
    "description": (str, None),
    "price_cents": (int, 1),
    "quantity": (int, 0),
    "sold_quantity": (int, 0),
    "image_url": (str, None),
}
SERVICE_RULES = {
    "name": (str, None),
    "description": (str, None),
    "price_cents": (int, 1),
    "duration_minutes": (int, 1),
    "image_url": (str, None),
    "icon": (str, None),
}
USER_RULES = {
    "name": (str, None),
    "email": (str, None),
    "phone": (str, None),
    "role": (str, None),
    "address_street": (str, None),
    "address_city": (str, None),
    "address_state": (str, None),
    "address_zip": (str, None),
    "address_country": (str, None),
}


def clean_fields(payload: dict, rules: dict, required: tuple[str, ...] = ()) -> dict[str, object]:
    """Keep the known fields of ``payload`` and check their types and bounds.

    Raises ``ValueError`` with a client-facing message on the first problem.
    """
    missing = [name for name in required if payload.get(name) in (None, "")]
    if missing:
        raise ValueError(f"{', '.join(missing)} required")

    clean: dict[str, object] = {}
    for name, (kind, minimum) in rules.items():
        if name not in payload:
            continue
        value = payload[name]
        if value is None:
            if name in required:
                raise ValueError(f"{name} required")
            clean[name] = None
            continue
        # bool is an int subclass
        if not isinstance(value, kind) or isinstance(value, bool):
            raise ValueError(f"{name} must be a {kind.__name__}")
        if isinstance(value, str):
            value = value.strip()
        if minimum is not None and value < minimum:
            raise ValueError(f"{name} must be at least {minimum}")
        clean[name] = value
    return clean


def create_or_update(model, data: dict[str, object], instance=None):
    """Create a new row from ``data`` or apply ``data`` to ``instance``."""
    if instance is None:
        instance = model(**data)
        db.session.add(instance)
    else:
        for name, value in data.items():
            setattr(instance, name, value)
    db.session.commit()
    return instance


def delete_by_id(model, object_id: int) -> bool:
    instance = db.session.get(model, object_id)
    if instance is None:
        return False
    db.session.delete(instance)
    db.session.commit()
    return True


def _save(model, rules, label: str, object_id: int | None = None):
    payload = request.get_json(silent=True) or {}
    instance = None
    if object_id is not None:
        instance = db.session.get(model, object_id)
        if instance is None:
            return jsonify({"success": False, "error": "not_found", "message": f"{label} not found"}), 404

    try:
        required = ("name", "price_cents") if instance is None else ()
        data = clean_fields(payload, rules, required)
        if instance is None and model is Service and "duration_minutes" not in data:
            raise ValueError("duration_minutes required")
    except ValueError as exc:
        return jsonify({"success": False, "error": "invalid_payload", "message": str(exc)}), 400

    try:
        instance = create_or_update(model, data, instance)
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to save %s", label.lower(), exc_info=exc)
        return jsonify({"success": False, "error": "database_error", "message": str(exc)}), 500

    status = 201 if object_id is None else 200
    return jsonify({
        "success": True,
        "message": f"{label} saved successfully.",
        label.lower(): instance.to_dict(),
    }), status


def _delete(model, label: str, object_id: int):
    try:
        deleted = delete_by_id(model, object_id)
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to delete %s", label.lower(), exc_info=exc)
        return jsonify({"success": False, "error": "database_error", "message": str(exc)}), 500

    if not deleted:
        return jsonify({"success": False, "error": "not_found", "message": f"{label} not found"}), 404
    return jsonify({"success": True, "message": f"{label} deleted."}), 200


# --- Products ---


@bp_admin.post("/products")
@admin_required
def create_product():
    return _save(Product, PRODUCT_RULES, "Product")


@bp_admin.put("/products/<int:product_id>")
@admin_required
def update_product(product_id: int):
    return _save(Product, PRODUCT_RULES, "Product", product_id)


@bp_admin.delete("/products/<int:product_id>")
@admin_required
def delete_product(product_id: int):
    return _delete(Product, "Product", product_id)


# --- Services ---


@bp_admin.post("/services")
@admin_required
def create_service():
    return _save(Service, SERVICE_RULES, "Service")


@bp_admin.put("/services/<int:service_id>")
@admin_required
def update_service(service_id: int):
    return _save(Service, SERVICE_RULES, "Service", service_id)


@bp_admin.delete("/services/<int:service_id>")
@admin_required
def delete_service(service_id: int):
    # Appointments keep their service; they must be removed or moved first.
    try:
        in_use = Appointment.query.filter(Appointment.service_id == service_id).count()
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to check service usage", exc_info=exc)
        return jsonify({"success": False, "error": "database_error", "message": str(exc)}), 500
    if in_use:
        return jsonify({
            "success": False,
            "error": "conflict",
            "message": "Service still has appointments.",
        }), 409
    return _delete(Service, "Service", service_id)


# --- Clients ---


@bp_admin.get("/clients")
@admin_required
def list_clients():
    role = (request.args.get("role") or "client").strip().lower()
    try:
        query = User.query
        if role != "all":
            query = query.filter(User.role == role)
        users = query.order_by(User.name.asc()).all()
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to fetch clients", exc_info=exc)
        return jsonify({"error": "database_error"}), 500
    return jsonify({"clients": [user.to_dict() for user in users]}), 200


@bp_admin.put("/clients/<int:user_id>")
@admin_required
def update_client(user_id: int):
    user = db.session.get(User, user_id)
    if user is None:
        return jsonify({"success": False, "error": "not_found", "message": "User not found"}), 404

    payload = request.get_json(silent=True) or {}
    try:
        data = clean_fields(payload, USER_RULES)
        if "role" in data and data["role"] not in ("client", "admin"):
            raise ValueError("role must be 'client' or 'admin'")
        for name in ("name", "email"):
            if name in data and not data[name]:
                raise ValueError(f"{name} cannot be empty")
        if "email" in data:
            data["email"] = data["email"].lower()
    except ValueError as exc:
        return jsonify({"success": False, "error": "invalid_payload", "message": str(exc)}), 400

    try:
        create_or_update(User, data, user)
    except IntegrityError:
        db.session.rollback()
        return jsonify({"success": False, "error": "conflict", "message": "email address is already in use"}), 409
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to update user", exc_info=exc)
        return jsonify({"success": False, "error": "database_error", "message": str(exc)}), 500

    return jsonify({"success": True, "message": "User updated successfully.", "user": user.to_dict()}), 200


@bp_admin.delete("/clients/<int:user_id>")
@admin_required
def delete_client(user_id: int):
    return _delete(User, "User", user_id)


# --- Appointments ---


@bp_admin.get("/appointments")
@admin_required
def list_all_appointments():
    status = normalize_status(request.args.get("status"))
    try:
        query = Appointment.query
        if status:
            query = query.filter(Appointment.status == status)
        appointments = query.order_by(Appointment.starts_at.desc()).all()
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to fetch appointments", exc_info=exc)
        return jsonify({"error": "database_error"}), 500
    return jsonify({"appointments": [appt.to_dict() for appt in appointments]}), 200


@bp_admin.put("/appointments/<int:appointment_id>")
@admin_required
def update_appointment(appointment_id: int):
    """Edit an appointment; ``date`` and ``time`` are merged when both are given."""
    appointment = db.session.get(Appointment, appointment_id)
    if appointment is None:
        return jsonify({"success": False, "error": "not_found", "message": "Appointment not found"}), 404

    payload = request.get_json(silent=True) or {}
    data: dict[str, object] = {}
    try:
        if payload.get("date") or payload.get("time"):
            if not (payload.get("date") and payload.get("time")):
                raise MissingFields("date and time must be given together.")
            data["starts_at"] = combine_slot(payload["date"], payload["time"])
        if "status" in payload:
            status = normalize_status(payload.get("status"))
            if status not in APPOINTMENT_STATUSES:
                return jsonify({"success": False, "error": "invalid_status", "message": "Invalid status"}), 400
            data["status"] = status
        if "service_id" in payload:
            if db.session.get(Service, payload["service_id"]) is None:
                return jsonify({"success": False, "error": "not_found", "message": "Service not found"}), 404
            data["service_id"] = payload["service_id"]
    except MissingFields as exc:
        return jsonify({"success": False, "error": exc.code, "message": exc.message}), 400

    try:
        create_or_update(Appointment, data, appointment)
    except IntegrityError:
        db.session.rollback()
        return jsonify({"success": False, "error": "slot_taken", "message": "Sorry, this time slot is no longer available."}), 409
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to update appointment", exc_info=exc)
        return jsonify({"success": False, "error": "database_error", "message": str(exc)}), 500

    return jsonify({
        "success": True,
        "message": "Appointment updated successfully.",
        "appointment": appointment.to_dict(),
    }), 200


@bp_admin.delete("/appointments/<int:appointment_id>")
@admin_required
def delete_appointment(appointment_id: int):
    return _delete(Appointment, "Appointment", appointment_id)


@bp_admin.get("/dashboard")
@admin_required
def dashboard():
    """Headline numbers for the admin panel."""
    try:
        now = datetime.now(timezone.utc).replace(tzinfo=None)
        revenue_cents = db.session.query(
            func.coalesce(func.sum(Product.sold_quantity * Product.price_cents), 0)
        ).scalar()
        status_counts = dict(
            db.session.query(Appointment.status, func.count(Appointment.appointment_id))
            .group_by(Appointment.status)
            .all()
        )
        upcoming = (
            Appointment.query.filter(
                Appointment.status == "scheduled",
                Appointment.starts_at >= now,
            )
            .order_by(Appointment.starts_at.asc())
            .limit(10)
            .all()
        )
        low_stock = Product.query.filter(Product.quantity <= 5).order_by(Product.quantity.asc()).all()

        return jsonify({
            "counts": {
                "products": Product.query.count(),
                "services": Service.query.count(),
                "clients": User.query.filter(User.role == "client").count(),
                "appointments": sum(status_counts.values()),
            },
            "appointments_by_status": {status: status_counts.get(status, 0) for status in APPOINTMENT_STATUSES},
            "product_revenue_cents": int(revenue_cents),
            "product_revenue_dollars": int(revenue_cents) / 100.0,
            "upcoming_appointments": [appt.to_dict() for appt in upcoming],
            "low_stock_products": [p.to_dict() for p in low_stock],
        }), 200
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to build admin dashboard", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

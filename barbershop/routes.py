"""HTTP routes for the barbershop shop and booking backend."""
from __future__ import annotations

from datetime import datetime, timezone

from flask import Blueprint, current_app, jsonify, request, session
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.security import check_password_hash, generate_password_hash

from .auth import build_token, current_identity, login_required
from .booking import (available_times, book_appointment_action,
                      cancel_appointment_action, combine_slot, get_booked_times,
                      list_user_appointments, parse_day,
                      update_appointment_action)
from .cart import ITEM_TYPES, Cart, ProductItem, ServiceItem, SessionCartStorage
from .checkout import CHECKOUT_SUCCESS_PATH, checkout_cart, validate_payment
from .errors import ActionResult, MissingFields, PaymentDetailsMissing
from .extensions import db
from .models import Appointment, AuthAccount, Product, Service, User

bp = Blueprint("api", __name__)


def _respond(result: ActionResult):
    return jsonify(result.to_dict()), result.status_code


def _session_cart() -> Cart:
    return Cart(SessionCartStorage())


@bp.get("/health")
def health_check() -> tuple[dict[str, str], int]:
    """
    Expose a simple uptime check endpoint.
    ---
    tags:
      - Health
    responses:
      200:
        description: Service is healthy and running.
    """
    return jsonify({"status": "ok"}), 200


@bp.get("/db-health")
def database_health() -> tuple[dict[str, str], int]:
    """Check connectivity to the configured database."""
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        current_app.logger.exception("Database connectivity check failed", exc_info=exc)
        return jsonify({"database": "unavailable"}), 500

    return jsonify({"database": "ok"}), 200


# --- Authentication ---


@bp.post("/auth/register")
def register_user() -> tuple[dict[str, object], int]:
    """Register a new client account.
    ---
    tags:
      - Authentication
    parameters:
      - name: body
        in: body
        required: true
        schema:
          type: object
          properties:
            name:
              type: string
            email:
              type: string
            phone:
              type: string
            password:
              type: string
            confirm_password:
              type: string
          required:
            - name
            - email
            - password
            - confirm_password
    responses:
      201:
        description: User registered successfully
      400:
        description: Invalid payload
      409:
        description: Email already in use
    """
    payload = request.get_json(silent=True) or {}

    name = (payload.get("name") or "").strip()
    email = (payload.get("email") or "").strip().lower()
    phone = (payload.get("phone") or "").strip() or None
    password = payload.get("password") or ""
    confirm_password = payload.get("confirm_password") or ""

    if not name or not email or not password or not confirm_password:
        return (
            jsonify({"error": "invalid_payload", "message": "Please fill in all required fields."}),
            400,
        )

    if password != confirm_password:
        return jsonify({"error": "invalid_payload", "message": "Passwords do not match."}), 400

    if User.query.filter_by(email=email).first():
        return (
            jsonify({"error": "conflict", "message": "An account with this email already exists."}),
            409,
        )

    try:
        new_user = User(name=name, email=email, role="client", phone=phone)
        db.session.add(new_user)
        db.session.flush()

        db.session.add(
            AuthAccount(user_id=new_user.user_id, password_hash=generate_password_hash(password))
        )
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to register new user", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    token = build_token({"user_id": new_user.user_id, "role": new_user.role})
    return jsonify({"token": token, "user": new_user.to_dict_basic()}), 201


@bp.post("/auth/login")
def login() -> tuple[dict[str, object], int]:
    """Authenticate a user by email/password and return an access token."""
    payload = request.get_json(silent=True) or {}

    email = (payload.get("email") or "").strip().lower()
    password = payload.get("password") or ""

    if not email or not password:
        return (
            jsonify({"error": "invalid_payload", "message": "email and password are required"}),
            400,
        )

    record = (
        db.session.query(User, AuthAccount)
        .join(AuthAccount, AuthAccount.user_id == User.user_id)
        .filter(User.email == email)
        .first()
    )

    if not record:
        return jsonify({"error": "unauthorized", "message": "Invalid credentials."}), 401

    user, auth_account = record
    if not check_password_hash(auth_account.password_hash, password):
        return jsonify({"error": "unauthorized", "message": "Invalid credentials."}), 401

    auth_account.last_login_at = datetime.now(timezone.utc)
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to update last login timestamp", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    token = build_token({"user_id": user.user_id, "role": user.role})
    return jsonify({"token": token, "user": user.to_dict_basic()}), 200


@bp.post("/auth/logout")
def logout() -> tuple[dict[str, object], int]:
    """End the browser session; the pending cart goes with it."""
    _session_cart().discard()
    session.clear()
    return jsonify({"message": "Logged out."}), 200


@bp.put("/profile")
@login_required
def update_profile() -> tuple[dict[str, object], int]:
    """Update the caller's name, phone and address."""
    payload = request.get_json(silent=True) or {}
    user = db.session.get(User, current_identity()["user_id"])

    name = (payload.get("name") or "").strip()
    if "name" in payload and not name:
        return jsonify({"error": "invalid_payload", "message": "name cannot be empty"}), 400

    try:
        if name:
            user.name = name
        if "phone" in payload:
            user.phone = (payload.get("phone") or "").strip() or None
        address = payload.get("address")
        if isinstance(address, dict):
            user.address_street = address.get("street")
            user.address_city = address.get("city")
            user.address_state = address.get("state")
            user.address_zip = address.get("zip")
            user.address_country = address.get("country")
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to update profile", exc_info=exc)
        return jsonify({"success": False, "error": "database_error"}), 500

    return jsonify({
        "success": True,
        "message": "Profile updated successfully!",
        "user": user.to_dict(),
    }), 200


# --- Catalog ---


@bp.get("/products")
def list_products() -> tuple[dict[str, object], int]:
    try:
        products = Product.query.order_by(Product.name.asc()).all()
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to fetch products", exc_info=exc)
        return jsonify({"error": "database_error"}), 500
    return jsonify({"products": [p.to_dict() for p in products]}), 200


@bp.get("/services")
def list_services() -> tuple[dict[str, object], int]:
    try:
        services = Service.query.order_by(Service.name.asc()).all()
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to fetch services", exc_info=exc)
        return jsonify({"error": "database_error"}), 500
    return jsonify({"services": [s.to_dict() for s in services]}), 200


# --- Cart ---


@bp.get("/cart")
def get_cart() -> tuple[dict[str, object], int]:
    return jsonify(_session_cart().to_dict()), 200


@bp.post("/cart/items")
def add_cart_item() -> tuple[dict[str, object], int]:
    """Add a product or a dated service slot to the session cart.
    ---
    tags:
      - Cart
    parameters:
      - name: body
        in: body
        required: true
        schema:
          type: object
          properties:
            type:
              type: string
              enum: [product, service]
            id:
              type: integer
            date:
              type: string
              format: date
            time:
              type: string
              example: "10:00"
          required:
            - type
            - id
    responses:
      200:
        description: Updated cart
      400:
        description: Invalid payload
      404:
        description: Catalog item not found
    """
    payload = request.get_json(silent=True) or {}
    item_type = payload.get("type")
    item_id = payload.get("id")

    if item_type not in ITEM_TYPES or not isinstance(item_id, int):
        current_app.logger.warning("Rejected cart item payload: %r", payload)
        return (
            jsonify({"error": "invalid_payload", "message": "type and integer id are required"}),
            400,
        )

    try:
        if item_type == "product":
            product = db.session.get(Product, item_id)
            if product is None:
                return jsonify({"error": "not_found", "message": "Product not found"}), 404
            item = ProductItem(
                id=product.product_id,
                name=product.name,
                price_cents=product.price_cents,
                image=product.image_url,
                description=product.description,
            )
        else:
            day = payload.get("date")
            slot = payload.get("time")
            if not isinstance(day, str) or not isinstance(slot, str) or not day.strip() or not slot.strip():
                return (
                    jsonify({"error": "invalid_payload", "message": "date and time are required for services"}),
                    400,
                )
            try:
                starts_at = combine_slot(day, slot)
            except MissingFields as exc:
                current_app.logger.warning("Rejected service slot %r %r", day, slot)
                return jsonify({"error": exc.code, "message": exc.message}), 400
            day, slot = starts_at.strftime("%Y-%m-%d"), starts_at.strftime("%H:%M")
            service = db.session.get(Service, item_id)
            if service is None:
                return jsonify({"error": "not_found", "message": "Service not found"}), 404
            item = ServiceItem(
                id=service.service_id,
                name=service.name,
                price_cents=service.price_cents,
                date=day,
                time=slot,
                duration=service.duration_minutes,
                image=service.image_url,
            )
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to look up catalog item", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    cart = _session_cart()
    cart.add_item(item)
    return jsonify(cart.to_dict()), 200


@bp.put("/cart/items/<item_type>/<int:item_id>")
def update_cart_item(item_type: str, item_id: int) -> tuple[dict[str, object], int]:
    payload = request.get_json(silent=True) or {}
    quantity = payload.get("quantity")
    if not isinstance(quantity, int):
        return jsonify({"error": "invalid_payload", "message": "quantity must be an integer"}), 400

    cart = _session_cart()
    cart.update_quantity(item_id, item_type, quantity)
    return jsonify(cart.to_dict()), 200


@bp.delete("/cart/items/<item_type>/<int:item_id>")
def remove_cart_item(item_type: str, item_id: int) -> tuple[dict[str, object], int]:
    cart = _session_cart()
    cart.remove_item(item_id, item_type)
    return jsonify(cart.to_dict()), 200


@bp.delete("/cart")
def clear_cart() -> tuple[dict[str, object], int]:
    cart = _session_cart()
    cart.clear()
    return jsonify(cart.to_dict()), 200


@bp.post("/cart/checkout")
def checkout() -> tuple[dict[str, object], int]:
    """Settle the session cart: book its services and take stock for its products.
    ---
    tags:
      - Cart
    parameters:
      - name: body
        in: body
        required: true
        schema:
          type: object
          properties:
            card_name:
              type: string
            card_number:
              type: string
            card_expiry:
              type: string
            card_cvc:
              type: string
    responses:
      200:
        description: Order placed, cart cleared
      400:
        description: Empty cart or missing payment details
      401:
        description: Not authenticated
      404:
        description: A cart product no longer exists
      409:
        description: Not enough stock or slot already taken
    """
    identity = current_identity()
    user_id = identity["user_id"] if identity else None
    cart = _session_cart()

    if user_id and len(cart):
        try:
            validate_payment(request.get_json(silent=True))
        except PaymentDetailsMissing as exc:
            return _respond(ActionResult.from_error(exc))

    return _respond(checkout_cart(cart, user_id))


@bp.get("/checkout/success")
def checkout_success() -> tuple[dict[str, object], int]:
    return jsonify({
        "success": True,
        "message": "Thank you! Your order has been placed.",
        "path": CHECKOUT_SUCCESS_PATH,
    }), 200


# --- Appointments ---


def _own_appointment(appointment_id: int):
    """Return an error response unless the caller owns the appointment."""
    appointment = db.session.get(Appointment, appointment_id)
    if appointment is None:
        return jsonify({"success": False, "error": "not_found", "message": "Appointment not found."}), 404
    if appointment.client_id != current_identity()["user_id"]:
        return jsonify({"success": False, "error": "forbidden", "message": "Not your appointment."}), 403
    return None


@bp.get("/appointments")
@login_required
def list_appointments() -> tuple[dict[str, object], int]:
    try:
        appointments = list_user_appointments(current_identity()["user_id"])
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to fetch appointments", exc_info=exc)
        return jsonify({"error": "database_error"}), 500
    return jsonify({"appointments": [appt.to_dict() for appt in appointments]}), 200


def _requested_day():
    raw = (request.args.get("date") or "").strip()
    try:
        return parse_day(raw), None
    except ValueError:
        current_app.logger.warning("Invalid date query parameter: %r", raw)
        return None, (
            jsonify({"error": "invalid_request", "message": "Invalid date format, use YYYY-MM-DD"}),
            400,
        )


@bp.get("/appointments/booked-times")
def booked_times() -> tuple[dict[str, object], int]:
    day, error = _requested_day()
    if error:
        return error
    return jsonify({"date": day.isoformat(), "booked_times": get_booked_times(day)}), 200


@bp.get("/appointments/available-times")
def list_available_times() -> tuple[dict[str, object], int]:
    day, error = _requested_day()
    if error:
        return error
    return jsonify({"date": day.isoformat(), "available_times": available_times(day)}), 200


@bp.post("/appointments")
@login_required
def book_appointment() -> tuple[dict[str, object], int]:
    """Book a single service appointment outside the cart."""
    payload = request.get_json(silent=True) or {}
    result = book_appointment_action(
        current_identity()["user_id"],
        payload.get("service_id"),
        payload.get("date"),
        payload.get("time"),
    )
    return _respond(result)


@bp.put("/appointments/<int:appointment_id>")
@login_required
def reschedule_appointment(appointment_id: int) -> tuple[dict[str, object], int]:
    error = _own_appointment(appointment_id)
    if error:
        return error
    payload = request.get_json(silent=True) or {}
    return _respond(update_appointment_action(appointment_id, payload.get("date"), payload.get("time")))


@bp.post("/appointments/<int:appointment_id>/cancel")
@login_required
def cancel_appointment(appointment_id: int) -> tuple[dict[str, object], int]:
    error = _own_appointment(appointment_id)
    if error:
        return error
    return _respond(cancel_appointment_action(appointment_id))

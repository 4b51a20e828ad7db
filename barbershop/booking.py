"""Direct appointment booking, slot availability and rescheduling."""
from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from .errors import (ActionResult, AppointmentNotFound, InvalidStatusTransition,
                     MissingFields, PersistenceError, ServiceNotFound,
                     ShopError, SlotTaken)
from .extensions import db
from .models import Appointment, Service


def parse_day(value: str | date) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(value.strip())


def combine_slot(day: str | date, slot: str) -> datetime:
    """Combine an ISO date and an ``HH:MM`` time into a single instant."""
    try:
        parsed_day = parse_day(day)
        parsed_time = datetime.strptime(slot.strip(), "%H:%M").time()
    except (AttributeError, TypeError, ValueError) as exc:
        raise MissingFields("date must be YYYY-MM-DD and time must be HH:MM.") from exc
    return datetime.combine(parsed_day, parsed_time)


def find_scheduled_at(starts_at: datetime) -> Appointment | None:
    return Appointment.query.filter(
        Appointment.starts_at == starts_at,
        Appointment.status == "scheduled",
    ).first()


def schedule_appointment(client_id: int, service_id: int, starts_at: datetime) -> Appointment:
    """Add a scheduled appointment to the current transaction.

    The slot check is repeated by the database through the partial unique
    index on scheduled slots, so a concurrent booker losing the race gets
    ``SlotTaken`` rather than a double booking. Does not commit.
    """
    if db.session.get(Service, service_id) is None:
        raise ServiceNotFound()
    if find_scheduled_at(starts_at) is not None:
        raise SlotTaken()

    appointment = Appointment(
        client_id=client_id,
        service_id=service_id,
        starts_at=starts_at,
        status="scheduled",
    )
    db.session.add(appointment)
    try:
        db.session.flush()
    except IntegrityError as exc:
        raise SlotTaken() from exc
    return appointment


def get_booked_times(day: str | date) -> list[str]:
    """Return the ``HH:MM`` times already held by scheduled appointments on a day.

    Purely advisory: it drives which slots the client offers, booking
    itself re-checks.
    """
    try:
        parsed_day = parse_day(day)
    except (AttributeError, TypeError, ValueError):
        current_app.logger.warning("Invalid date for booked times: %r", day)
        return []

    start_of_day = datetime.combine(parsed_day, time.min)
    end_of_day = datetime.combine(parsed_day, time.max)

    try:
        appointments = (
            Appointment.query.filter(
                Appointment.starts_at >= start_of_day,
                Appointment.starts_at <= end_of_day,
                Appointment.status == "scheduled",
            )
            .order_by(Appointment.starts_at.asc())
            .all()
        )
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to get booked times", exc_info=exc)
        return []

    return [appt.starts_at.strftime("%H:%M") for appt in appointments]


def generate_times(opening_hour: int, closing_hour: int, interval: int) -> list[str]:
    times: list[str] = []
    current = datetime.combine(date.min, time(opening_hour))
    closing = datetime.combine(date.min, time(closing_hour))
    while current <= closing:
        times.append(current.strftime("%H:%M"))
        current += timedelta(minutes=interval)
    return times


def available_times(day: str | date, now: datetime | None = None) -> list[str]:
    """Opening-hours grid for ``day`` minus booked and already-past slots."""
    parsed_day = parse_day(day)
    config = current_app.config
    grid = generate_times(
        config["OPENING_HOUR"],
        config["CLOSING_HOUR"],
        config["SLOT_INTERVAL_MINUTES"],
    )
    booked = set(get_booked_times(parsed_day))
    now = now or datetime.now(timezone.utc).replace(tzinfo=None)

    return [
        slot for slot in grid
        if slot not in booked and combine_slot(parsed_day, slot) > now
    ]


def list_user_appointments(user_id: int) -> list[Appointment]:
    return (
        Appointment.query.filter(Appointment.client_id == user_id)
        .order_by(Appointment.starts_at.desc())
        .all()
    )


def _run(action, failure_prefix: str) -> ActionResult:
    try:
        return action()
    except ShopError as exc:
        db.session.rollback()
        return ActionResult.from_error(exc)
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception(failure_prefix, exc_info=exc)
        return ActionResult.from_error(PersistenceError(str(exc)), prefix=failure_prefix)


def book_appointment_action(user_id, service_id, day, slot) -> ActionResult:
    if not user_id or not service_id or not day or not slot:
        return ActionResult.from_error(MissingFields())

    def book() -> ActionResult:
        starts_at = combine_slot(day, slot)
        appointment = schedule_appointment(user_id, service_id, starts_at)
        db.session.commit()
        current_app.logger.info(
            "Booked appointment %s for user %s at %s",
            appointment.appointment_id, user_id, starts_at.isoformat(),
        )
        return ActionResult.ok(
            "Appointment booked successfully!",
            status_code=201,
            appointment=appointment.to_dict(),
        )

    return _run(book, "Failed to book appointment")


def _get_appointment(appointment_id) -> Appointment:
    appointment = db.session.get(Appointment, appointment_id)
    if appointment is None:
        raise AppointmentNotFound()
    return appointment


def cancel_appointment_action(appointment_id) -> ActionResult:
    if not appointment_id:
        return ActionResult.from_error(MissingFields("Appointment ID is missing."))

    def cancel() -> ActionResult:
        appointment = _get_appointment(appointment_id)
        if appointment.status == "completed":
            raise InvalidStatusTransition("Completed appointments cannot be canceled.")
        appointment.status = "cancelled"
        db.session.commit()
        return ActionResult.ok("Appointment canceled.", appointment=appointment.to_dict())

    return _run(cancel, "Failed to cancel appointment")


def update_appointment_action(appointment_id, new_day, new_slot) -> ActionResult:
    if not appointment_id or not new_day or not new_slot:
        return ActionResult.from_error(MissingFields("Missing data for update."))

    def reschedule() -> ActionResult:
        appointment = _get_appointment(appointment_id)
        appointment.starts_at = combine_slot(new_day, new_slot)
        try:
            db.session.flush()
        except IntegrityError as exc:
            raise SlotTaken() from exc
        db.session.commit()
        return ActionResult.ok(
            "Appointment updated successfully!",
            appointment=appointment.to_dict(),
        )

    return _run(reschedule, "Failed to update appointment")

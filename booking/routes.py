"""HTTP routes for the booking engine."""
from __future__ import annotations

from datetime import date, datetime, time
from typing import Optional

from flask import Blueprint, Flask, current_app, jsonify, request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from .extensions import db
from .models import Tenant
from .scheduling import get_engine
from .scheduling.types import Outcome

bp = Blueprint("api", __name__)

RESTART_MESSAGE = "This reservation is no longer yours. Please select a time again."


def register_routes(app: Flask) -> None:
    app.register_blueprint(bp)


def _parse_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value).date()
    except (ValueError, TypeError):
        return None


def _parse_time(value: Optional[str]) -> Optional[time]:
    if not value:
        return None
    for fmt in ("%H:%M", "%H:%M:%S"):
        try:
            return datetime.strptime(value, fmt).time()
        except (ValueError, TypeError):
            continue
    return None


def _session_id(payload: Optional[dict] = None) -> Optional[str]:
    session_id = request.headers.get("X-Session-Id")
    if not session_id and payload:
        session_id = payload.get("session_id")
    return str(session_id).strip() if session_id else None


def _hhmm(value: time) -> str:
    return value.strftime("%H:%M")


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
    """Check connectivity to the configured database.
    ---
    tags:
      - Health
    responses:
      200:
        description: Database connection is ok.
      500:
        description: Database connection failed.
    """
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        current_app.logger.exception("Database connectivity check failed", exc_info=exc)
        return jsonify({"database": "unavailable"}), 500

    return jsonify({"database": "ok"}), 200


@bp.get("/tenants/<int:tenant_id>/availability")
def check_availability(tenant_id: int) -> tuple[dict[str, object], int]:
    """Check whether a slot can be booked and suggest the nearest alternatives.
    ---
    tags:
      - Availability
    parameters:
      - in: path
        name: tenant_id
        required: true
        schema:
          type: integer
      - name: service_id
        in: query
        type: integer
        required: true
      - name: date
        in: query
        type: string
        required: true
        description: YYYY-MM-DD
      - name: time
        in: query
        type: string
        required: true
        description: HH:MM
    responses:
      200:
        description: Availability with alternatives when the slot is taken
      400:
        description: Invalid input
      404:
        description: Service not found
      500:
        description: Database error
    """
    service_id = request.args.get("service_id", type=int)
    target_date = _parse_date(request.args.get("date"))
    target_time = _parse_time(request.args.get("time"))

    if not service_id or target_date is None or target_time is None:
        return (
            jsonify({
                "error": "invalid_payload",
                "message": "service_id, date (YYYY-MM-DD) and time (HH:MM) are required"
            }),
            400,
        )

    try:
        result = get_engine().check_availability(tenant_id, service_id, target_date, target_time)
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to check availability", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    if result.reason == "service_not_found":
        return jsonify({"error": "not_found", "message": "Service not found"}), 404

    body = result.to_dict()
    body["date"] = target_date.isoformat()
    return jsonify(body), 200


@bp.get("/tenants/<int:tenant_id>/available-slots")
def list_available_slots(tenant_id: int) -> tuple[dict[str, object], int]:
    """List every free slot of a day for one service.
    ---
    tags:
      - Availability
    responses:
      200:
        description: Free slot times in chronological order
      400:
        description: Invalid input
      404:
        description: Service not found
      500:
        description: Database error
    """
    service_id = request.args.get("service_id", type=int)
    target_date = _parse_date(request.args.get("date"))

    if not service_id or target_date is None:
        return (
            jsonify({
                "error": "invalid_payload",
                "message": "service_id and date (YYYY-MM-DD) are required"
            }),
            400,
        )

    try:
        slots = get_engine().available_slots(tenant_id, service_id, target_date)
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to list available slots", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    if slots is None:
        return jsonify({"error": "not_found", "message": "Service not found"}), 404

    return jsonify({"date": target_date.isoformat(), "slots": [_hhmm(s) for s in slots]}), 200


@bp.get("/tenants/<int:tenant_id>/reservations")
def list_reservations(tenant_id: int) -> tuple[dict[str, object], int]:
    """Live slot holds for a tenant on one day.
    ---
    tags:
      - Reservations
    responses:
      200:
        description: Holds that have not expired yet
      400:
        description: Date parameter required
    """
    target_date = _parse_date(request.args.get("date"))
    if target_date is None:
        return jsonify({"error": "invalid_payload", "message": "date (YYYY-MM-DD) is required"}), 400

    engine = get_engine()
    now = engine.now()
    holds = engine.active_holds(tenant_id, target_date)
    return jsonify({"reservations": [r.to_dict(now) for r in holds]}), 200


@bp.post("/tenants/<int:tenant_id>/reservations")
def reserve_slot(tenant_id: int) -> tuple[dict[str, object], int]:
    """Hold a slot while the client finishes the booking wizard.
    ---
    tags:
      - Reservations
    parameters:
      - in: header
        name: X-Session-Id
        type: string
      - in: body
        name: body
        required: true
        schema:
          properties:
            service_id:
              type: integer
            date:
              type: string
            time:
              type: string
            session_id:
              type: string
    responses:
      201:
        description: Slot held
      400:
        description: Invalid input or outside business hours
      404:
        description: Service not found
      409:
        description: Slot taken, alternatives included
      500:
        description: Database error
    """
    payload = request.get_json(silent=True) or {}
    session_id = _session_id(payload)
    service_id = payload.get("service_id")
    target_date = _parse_date(payload.get("date"))
    target_time = _parse_time(payload.get("time"))

    if not session_id:
        current_app.logger.warning("Reservation request without a session id for tenant %s", tenant_id)
        return (
            jsonify({"error": "invalid_payload", "message": "X-Session-Id header or session_id is required"}),
            400,
        )
    if not isinstance(service_id, int) or target_date is None or target_time is None:
        current_app.logger.warning("Invalid reservation payload for tenant %s: %s", tenant_id, payload)
        return (
            jsonify({
                "error": "invalid_payload",
                "message": "service_id, date (YYYY-MM-DD) and time (HH:MM) are required"
            }),
            400,
        )

    engine = get_engine()
    try:
        result = engine.reserve_slot(session_id, tenant_id, service_id, target_date, target_time)
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to reserve slot", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    if result.outcome is Outcome.SERVICE_NOT_FOUND:
        return jsonify({"error": "not_found", "message": "Service not found"}), 404
    if result.outcome is Outcome.OUTSIDE_BUSINESS_HOURS:
        return (
            jsonify({"error": "outside_hours", "message": "Requested time falls outside business hours"}),
            400,
        )
    if result.outcome is Outcome.SLOT_UNAVAILABLE:
        return (
            jsonify({
                "error": "slot_unavailable",
                "message": "This time was just taken. Please pick one of the alternatives.",
                "alternatives": [_hhmm(t) for t in result.alternatives],
            }),
            409,
        )

    return jsonify({"reservation": result.reservation.to_dict(engine.now())}), 201


@bp.get("/reservations/<reservation_id>")
def get_reservation(reservation_id: str) -> tuple[dict[str, object], int]:
    """Show a live reservation and how long it has left.
    ---
    tags:
      - Reservations
    responses:
      200:
        description: Reservation is still held
      404:
        description: Reservation expired, released or confirmed
    """
    engine = get_engine()
    reservation = engine.get_reservation(reservation_id)
    if reservation is None:
        return jsonify({"error": "reservation_not_found", "message": RESTART_MESSAGE}), 404
    return jsonify({"reservation": reservation.to_dict(engine.now())}), 200


@bp.post("/reservations/<reservation_id>/confirm")
def confirm_reservation(reservation_id: str) -> tuple[dict[str, object], int]:
    """Turn a held slot into an appointment.
    ---
    tags:
      - Reservations
    parameters:
      - in: body
        name: body
        schema:
          properties:
            client_name:
              type: string
            client_phone:
              type: string
            pet_name:
              type: string
            notes:
              type: string
    responses:
      201:
        description: Appointment created
      404:
        description: Reservation unknown or already finished
      410:
        description: Reservation expired
      503:
        description: Appointment could not be saved, slot was released
    """
    payload = request.get_json(silent=True) or {}
    session_id = _session_id(payload)
    details = {k: v for k, v in payload.items() if k != "session_id"}

    result = get_engine().confirm_reservation(reservation_id, details, session_id=session_id)

    if result.outcome is Outcome.RESERVATION_NOT_FOUND:
        return jsonify({"error": "reservation_not_found", "message": RESTART_MESSAGE}), 404
    if result.outcome is Outcome.RESERVATION_EXPIRED:
        return (
            jsonify({
                "error": "reservation_expired",
                "message": "Your hold on this time expired. Please select a time again.",
            }),
            410,
        )
    if result.outcome is Outcome.BOOKING_FAILED:
        return (
            jsonify({
                "error": "booking_failed",
                "message": "We could not save your appointment and the time was released. "
                           "Please select a time again.",
            }),
            503,
        )

    return (
        jsonify({
            "appointment_id": result.appointment_ref,
            "slot": result.reservation.slot_key.to_dict(),
        }),
        201,
    )


@bp.delete("/reservations/<reservation_id>")
def release_reservation(reservation_id: str) -> tuple[dict[str, object], int]:
    """Give a held slot back, e.g. when the client leaves the wizard.
    ---
    tags:
      - Reservations
    responses:
      200:
        description: Always succeeds; released tells whether a hold was dropped
    """
    result = get_engine().release_reservation(reservation_id, session_id=_session_id())
    return jsonify({"message": "Reservation released", "released": result.ok}), 200


@bp.post("/reservations/cleanup")
def cleanup_reservations() -> tuple[dict[str, object], int]:
    """Expire lapsed holds now instead of waiting for the sweeper.
    ---
    tags:
      - Reservations
    responses:
      200:
        description: Number of holds removed
    """
    removed = get_engine().cleanup()
    return jsonify({"message": "Cleanup completed", "deleted_reservations": removed}), 200


@bp.get("/admin/business-hours/<int:tenant_id>")
def get_business_hours(tenant_id: int) -> tuple[dict[str, object], int]:
    """Business hours, slot interval and reservation timeout of a tenant.
    ---
    tags:
      - Admin
    responses:
      200:
        description: Tenant booking configuration
      404:
        description: Tenant not found
      500:
        description: Database error
    """
    try:
        tenant = db.session.get(Tenant, tenant_id)
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to fetch business hours", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    if not tenant:
        return jsonify({"error": "not_found", "message": "Tenant not found"}), 404

    body = tenant.to_dict()
    body["reservation_timeout_minutes"] = (
        tenant.reservation_timeout_minutes or current_app.config["HOLD_TTL_SECONDS"] // 60
    )
    body["time_slot_minutes"] = tenant.time_slot_minutes or current_app.config["DEFAULT_SLOT_MINUTES"]
    return jsonify(body), 200


@bp.put("/admin/business-hours/<int:tenant_id>")
def update_business_hours(tenant_id: int) -> tuple[dict[str, object], int]:
    """Update business hours, slot interval and reservation timeout.
    ---
    tags:
      - Admin
    parameters:
      - in: body
        name: body
        schema:
          properties:
            open_time:
              type: string
            close_time:
              type: string
            time_slot_minutes:
              type: integer
            reservation_timeout_minutes:
              type: integer
            closed_weekdays:
              type: array
              items:
                type: integer
    responses:
      200:
        description: Updated tenant
      400:
        description: Invalid input
      404:
        description: Tenant not found
      500:
        description: Database error
    """
    payload = request.get_json(silent=True) or {}

    try:
        tenant = db.session.get(Tenant, tenant_id)
        if not tenant:
            return jsonify({"error": "not_found", "message": "Tenant not found"}), 404

        open_time = _parse_time(payload["open_time"]) if "open_time" in payload else tenant.open_time
        close_time = _parse_time(payload["close_time"]) if "close_time" in payload else tenant.close_time
        if open_time is None or close_time is None:
            return jsonify({"error": "invalid_format", "message": "Time format must be HH:MM"}), 400
        if close_time <= open_time:
            return (
                jsonify({"error": "invalid_payload", "message": "close_time must be after open_time"}),
                400,
            )

        for field in ("time_slot_minutes", "reservation_timeout_minutes"):
            if field in payload:
                value = payload[field]
                if value is not None and (not isinstance(value, int) or value <= 0):
                    return (
                        jsonify({"error": "invalid_payload", "message": f"{field} must be a positive integer"}),
                        400,
                    )
                setattr(tenant, field, value)

        if "closed_weekdays" in payload:
            closed = payload["closed_weekdays"] or []
            if not isinstance(closed, list) or any(not isinstance(d, int) or not 0 <= d <= 6 for d in closed):
                return (
                    jsonify({"error": "invalid_payload", "message": "closed_weekdays must list days 0-6"}),
                    400,
                )
            tenant.closed_weekdays = sorted(set(closed))

        tenant.open_time = open_time
        tenant.close_time = close_time
        db.session.commit()

        return jsonify(tenant.to_dict()), 200

    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to update business hours", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

from datetime import datetime

from flask import Blueprint, request, jsonify, g
from models.booking import BookingStatus
from models.slot import SlotStatus
from services.handles import booking_queries, lifecycle_controller, reservation_coordinator
from utils.auth_context import login_required

booking_bp = Blueprint("booking", __name__)


def _parse_date(date_str: str):
    # Expect ISO format like "2026-01-20"
    return datetime.fromisoformat(date_str).date()


def _int_or_none(value):
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _status_arg(enum_cls):
    """Validated ?status= value, or (None, error response)."""
    raw = (request.args.get("status") or "").strip().upper()
    if not raw:
        return None, None
    if raw not in {s.value for s in enum_cls}:
        allowed = ", ".join(s.value for s in enum_cls)
        return None, (jsonify(error=f"Invalid status. Use one of: {allowed}"), 400)
    return raw, None


# ---------- PLAYERS: view slot availability ----------
@booking_bp.get("/courts/<int:court_id>/slots")
@login_required
def list_slots(court_id: int):
    status, failure = _status_arg(SlotStatus)
    if failure:
        return failure

    on_date = None
    date_str = request.args.get("date")
    if date_str:
        try:
            on_date = _parse_date(date_str)
        except ValueError:
            return jsonify(error="Invalid date. Use YYYY-MM-DD"), 400

    return jsonify(booking_queries().list_slots(court_id, on_date=on_date, status=status)), 200


# ---------- PLAYERS: book slot (DOUBLE-BOOKING SAFE) ----------
@booking_bp.post("/bookings")
@login_required
def create_booking():
    data = request.get_json(silent=True) or {}
    court_id = _int_or_none(data.get("court_id"))
    slot_id = _int_or_none(data.get("slot_id"))
    if not court_id or not slot_id:
        return jsonify(error="court_id and slot_id are required"), 400
    notes = (data.get("notes") or "").strip() or None

    booking = reservation_coordinator().reserve(g.principal_id, court_id, slot_id, notes=notes)
    return jsonify(
        message="Booking created successfully",
        booking=booking_queries().get_booking(booking.id, g.principal_id),
    ), 201


# ---------- PLAYERS: view my bookings ----------
@booking_bp.get("/bookings")
@login_required
def my_bookings():
    status, failure = _status_arg(BookingStatus)
    if failure:
        return failure
    return jsonify(booking_queries().list_bookings(g.principal_id, status=status)), 200


@booking_bp.get("/bookings/<int:booking_id>")
@login_required
def get_booking(booking_id: int):
    return jsonify(booking_queries().get_booking(booking_id, g.principal_id)), 200


# ---------- PLAYERS: lifecycle ----------
@booking_bp.put("/bookings/<int:booking_id>/confirm")
@login_required
def confirm_booking(booking_id: int):
    lifecycle_controller().confirm(booking_id, g.principal_id)
    return jsonify(
        message="Booking confirmed successfully",
        booking=booking_queries().get_booking(booking_id, g.principal_id),
    ), 200


@booking_bp.put("/bookings/<int:booking_id>/cancel")
@login_required
def cancel_booking(booking_id: int):
    data = request.get_json(silent=True) or {}
    reason = (data.get("reason") or "").strip()[:120] or None

    lifecycle_controller().cancel(booking_id, g.principal_id, reason=reason)
    return jsonify(
        message="Booking cancelled successfully",
        booking=booking_queries().get_booking(booking_id, g.principal_id),
    ), 200


@booking_bp.put("/bookings/<int:booking_id>/pay")
@login_required
def pay_booking(booking_id: int):
    data = request.get_json(silent=True) or {}
    method = (data.get("payment_method") or "").strip()
    txn = (data.get("transaction_id") or "").strip() or None
    lifecycle_controller().pay(booking_id, g.principal_id, method[:40], txn[:120] if txn else None)
    return jsonify(
        message="Payment recorded successfully",
        booking=booking_queries().get_booking(booking_id, g.principal_id),
    ), 200

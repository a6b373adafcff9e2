from datetime import datetime
from flask import Blueprint, jsonify, g, request, current_app
from models import db
from models.booking import BookingStatus
from services.atomic import atomic
from services.handles import booking_queries, lifecycle_controller
from services.slot_ledger import SlotLedger
from security.rbac import require_roles
from utils.audit import log_event

admin_bp = Blueprint("admin", __name__, url_prefix="/admin")


# ---------- STAFF/ADMIN: list all bookings ----------
@admin_bp.get("/bookings")
@require_roles("ADMIN", "STAFF")
def list_all_bookings():
    status = (request.args.get("status") or "").strip().upper() or None
    if status and status not in {s.value for s in BookingStatus}:
        return jsonify(error="Invalid status"), 400

    date_str = request.args.get("date")  # YYYY-MM-DD
    on_date = None
    if date_str:
        try:
            on_date = datetime.fromisoformat(date_str).date()
        except ValueError:
            return jsonify(error="Invalid date. Use YYYY-MM-DD"), 400

    student_id = (request.args.get("student_id") or "").strip() or None
    limit = current_app.config.get("BOOKING_LIST_LIMIT", 200)

    rows = booking_queries().list_all_bookings(
        status=status, on_date=on_date, student_id=student_id, limit=limit
    )
    return jsonify(rows), 200


@admin_bp.get("/bookings/<int:booking_id>")
@require_roles("ADMIN", "STAFF")
def get_any_booking(booking_id: int):
    return jsonify(booking_queries().get_booking(booking_id, None)), 200


# ---------- ADMIN: lifecycle ----------
@admin_bp.put("/bookings/<int:booking_id>/cancel")
@require_roles("ADMIN")
def admin_cancel_booking(booking_id: int):
    data = request.get_json(silent=True) or {}
    reason = (data.get("reason") or "").strip()[:120] or None

    lifecycle_controller().admin_cancel(booking_id, reason=reason, actor=g.principal_id)
    return jsonify(
        message="Cancelled by admin",
        booking=booking_queries().get_booking(booking_id, None),
    ), 200


@admin_bp.put("/bookings/<int:booking_id>/complete")
@require_roles("ADMIN")
def complete_booking(booking_id: int):
    lifecycle_controller().complete(booking_id, actor=g.principal_id)
    return jsonify(
        message="Booking completed",
        booking=booking_queries().get_booking(booking_id, None),
    ), 200


@admin_bp.put("/bookings/<int:booking_id>/refund")
@require_roles("ADMIN")
def refund_booking(booking_id: int):
    lifecycle_controller().refund(booking_id, actor=g.principal_id)
    return jsonify(
        message="Booking refunded",
        booking=booking_queries().get_booking(booking_id, None),
    ), 200


# ---------- STAFF/ADMIN: slot maintenance ----------
@admin_bp.put("/slots/<int:slot_id>/block")
@require_roles("ADMIN", "STAFF")
def block_slot(slot_id: int):
    with atomic(db.session):
        SlotLedger(db.session).block(slot_id)

    log_event("SLOT_BLOCK", principal_id=g.principal_id, entity="slot", entity_id=slot_id)
    return jsonify(message="Slot blocked", id=slot_id, status="BLOCKED"), 200


@admin_bp.put("/slots/<int:slot_id>/unblock")
@require_roles("ADMIN", "STAFF")
def unblock_slot(slot_id: int):
    with atomic(db.session):
        SlotLedger(db.session).unblock(slot_id)

    log_event("SLOT_UNBLOCK", principal_id=g.principal_id, entity="slot", entity_id=slot_id)
    return jsonify(message="Slot unblocked", id=slot_id, status="AVAILABLE"), 200

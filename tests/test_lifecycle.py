import logging
import threading
from datetime import date, datetime, time, timedelta
from types import SimpleNamespace

import pytest

from models import db
from models.audit_log import AuditLog
from models.booking import Booking, BookingStatus, PaymentStatus
from models.slot import Slot, SlotStatus
from services.booking_store import BookingStore
from services.errors import Conflict, Forbidden, InvalidTransition, NotFound, ValidationError
from services.lifecycle import LifecycleController
from services.slot_ledger import SlotLedger


def _booking(booking_id):
    db.session.expire_all()
    return db.session.get(Booking, booking_id)


def _slot_status(slot_id):
    db.session.expire_all()
    return db.session.get(Slot, slot_id).status


@pytest.fixture
def booking(coordinator, court, slot):
    return coordinator.reserve("S1001", court.id, slot.id)


def test_confirm_pending_booking(controller, booking):
    controller.confirm(booking.id, "S1001")
    stored = _booking(booking.id)
    assert stored.status == BookingStatus.CONFIRMED.value
    assert stored.payment_status == PaymentStatus.UNPAID.value


def test_confirm_twice_is_invalid(controller, booking):
    controller.confirm(booking.id, "S1001")
    with pytest.raises(InvalidTransition):
        controller.confirm(booking.id, "S1001")


def test_cancel_releases_slot_and_is_terminal(controller, booking, slot):
    controller.cancel(booking.id, "S1001", reason="injured")

    stored = _booking(booking.id)
    assert stored.status == BookingStatus.CANCELLED.value
    assert stored.cancelled_at is not None
    assert stored.cancel_reason == "injured"
    assert _slot_status(slot.id) == SlotStatus.AVAILABLE.value

    with pytest.raises(InvalidTransition):
        controller.confirm(booking.id, "S1001")
    with pytest.raises(InvalidTransition):
        controller.cancel(booking.id, "S1001")
    with pytest.raises(InvalidTransition):
        controller.pay(booking.id, "S1001", "card")


def test_cancelled_slot_goes_to_a_new_booking(controller, coordinator, booking, court, slot):
    controller.cancel(booking.id, "S1001")
    rebooked = coordinator.reserve("S1002", court.id, slot.id)

    assert rebooked.id != booking.id
    assert _booking(booking.id).status == BookingStatus.CANCELLED.value
    assert _slot_status(slot.id) == SlotStatus.BOOKED.value


def test_pay_records_payment_without_confirming(controller, booking):
    controller.pay(booking.id, "S1001", "card", "txn123")

    stored = _booking(booking.id)
    assert stored.payment_status == PaymentStatus.PAID.value
    assert stored.status == BookingStatus.PENDING.value
    assert stored.payment_method == "card"
    assert stored.transaction_ref == "txn123"
    assert stored.paid_at is not None

    with pytest.raises(InvalidTransition):
        controller.pay(booking.id, "S1001", "card", "txn124")


def test_paid_booking_can_still_be_confirmed(controller, booking):
    controller.pay(booking.id, "S1001", "cash")
    controller.confirm(booking.id, "S1001")
    stored = _booking(booking.id)
    assert (stored.status, stored.payment_status) == (BookingStatus.CONFIRMED.value, PaymentStatus.PAID.value)


def test_cancel_after_payment_refunds(controller, booking):
    controller.pay(booking.id, "S1001", "card")
    controller.cancel(booking.id, "S1001")
    stored = _booking(booking.id)
    assert stored.status == BookingStatus.CANCELLED.value
    assert stored.payment_status == PaymentStatus.REFUNDED.value


def test_manual_refund_policy(ledger, store, booking):
    controller = LifecycleController(ledger, store, refund_on_cancel=False)
    controller.pay(booking.id, "S1001", "card")
    controller.cancel(booking.id, "S1001")
    assert _booking(booking.id).payment_status == PaymentStatus.PAID.value

    controller.refund(booking.id, actor="ADMIN1")
    assert _booking(booking.id).payment_status == PaymentStatus.REFUNDED.value

    with pytest.raises(InvalidTransition):
        controller.refund(booking.id)


def test_complete_requires_confirmed_and_paid(controller, booking):
    with pytest.raises(InvalidTransition):
        controller.complete(booking.id)

    controller.confirm(booking.id, "S1001")
    with pytest.raises(InvalidTransition):
        controller.complete(booking.id)

    controller.pay(booking.id, "S1001", "card")
    controller.complete(booking.id, actor="ADMIN1")
    assert _booking(booking.id).status == BookingStatus.COMPLETED.value

    with pytest.raises(InvalidTransition):
        controller.cancel(booking.id, "S1001")


def test_other_student_is_forbidden(controller, booking, slot):
    with pytest.raises(Forbidden):
        controller.confirm(booking.id, "S9999")
    with pytest.raises(Forbidden):
        controller.cancel(booking.id, "S9999")
    with pytest.raises(Forbidden):
        controller.pay(booking.id, "S9999", "card")

    stored = _booking(booking.id)
    assert (stored.status, stored.payment_status) == (BookingStatus.PENDING.value, PaymentStatus.UNPAID.value)
    assert _slot_status(slot.id) == SlotStatus.BOOKED.value


def test_admin_cancel_skips_ownership(controller, booking, slot):
    controller.admin_cancel(booking.id, actor="ADMIN1")
    stored = _booking(booking.id)
    assert stored.status == BookingStatus.CANCELLED.value
    assert stored.cancel_reason == "Admin cancellation"
    assert _slot_status(slot.id) == SlotStatus.AVAILABLE.value


def test_missing_booking(controller):
    with pytest.raises(NotFound):
        controller.confirm(404, "S1001")


def test_stale_read_becomes_conflict(controller, booking, monkeypatch):
    stale = SimpleNamespace(
        id=booking.id,
        student_id="S1001",
        slot_id=booking.slot_id,
        status=BookingStatus.PENDING.value,
        payment_status=PaymentStatus.UNPAID.value,
    )
    # someone cancels after our read
    controller.cancel(booking.id, "S1001")
    monkeypatch.setattr(controller, "_load", lambda booking_id, principal: stale)

    with pytest.raises(Conflict) as exc:
        controller.confirm(booking.id, "S1001")
    assert exc.value.retryable is True
    assert _booking(booking.id).status == BookingStatus.CANCELLED.value


def test_cancel_with_already_available_slot_is_logged_not_raised(controller, booking, slot, caplog):
    db.session.get(Slot, slot.id).status = SlotStatus.AVAILABLE.value
    db.session.commit()

    with caplog.at_level(logging.ERROR, logger="services.lifecycle"):
        controller.cancel(booking.id, "S1001")

    assert _booking(booking.id).status == BookingStatus.CANCELLED.value
    assert _slot_status(slot.id) == SlotStatus.AVAILABLE.value
    assert any("Invariant violation" in r.getMessage() for r in caplog.records)
    assert AuditLog.query.filter_by(action="INVARIANT_VIOLATION").count() == 1


def test_complete_elapsed(controller, coordinator, court, make_slot):
    yesterday = date.today() - timedelta(days=1)
    past_slot = make_slot(court, day=yesterday, start=time(18, 0), end=time(19, 0))
    future_slot = make_slot(court, day=date.today() + timedelta(days=2))
    unpaid_slot = make_slot(court, day=yesterday, start=time(19, 0), end=time(20, 0))

    done = coordinator.reserve("S1001", court.id, past_slot.id)
    later = coordinator.reserve("S1001", court.id, future_slot.id)
    unpaid = coordinator.reserve("S1001", court.id, unpaid_slot.id)
    for b in (done, later):
        controller.confirm(b.id, "S1001")
        controller.pay(b.id, "S1001", "card")
    controller.confirm(unpaid.id, "S1001")

    completed = controller.complete_elapsed(now=datetime.combine(date.today(), time(0, 5)))

    assert completed == [done.id]
    assert _booking(done.id).status == BookingStatus.COMPLETED.value
    assert _booking(later.id).status == BookingStatus.CONFIRMED.value
    assert _booking(unpaid.id).status == BookingStatus.CONFIRMED.value


def test_complete_elapsed_waits_for_slot_past_midnight(controller, coordinator, court, make_slot):
    day = date.today() - timedelta(days=1)
    late_slot = make_slot(court, day=day, start=time(23, 0), end=time(0, 0))
    booking = coordinator.reserve("S1001", court.id, late_slot.id)
    controller.confirm(booking.id, "S1001")
    controller.pay(booking.id, "S1001", "card")

    assert controller.complete_elapsed(now=datetime.combine(day, time(12, 0))) == []
    assert controller.complete_elapsed(now=datetime.combine(day, time(23, 30))) == []
    assert _booking(booking.id).status == BookingStatus.CONFIRMED.value

    completed = controller.complete_elapsed(now=datetime.combine(day + timedelta(days=1), time(0, 1)))
    assert completed == [booking.id]
    assert _booking(booking.id).status == BookingStatus.COMPLETED.value


@pytest.mark.parametrize("method", ["", "   ", None])
def test_pay_requires_a_method(controller, booking, method):
    with pytest.raises(ValidationError):
        controller.pay(booking.id, "S1001", method)

    stored = _booking(booking.id)
    assert stored.payment_status == PaymentStatus.UNPAID.value
    assert stored.paid_at is None


def test_concurrent_cancel_succeeds_once(app, booking, slot):
    booking_id = booking.id
    barrier = threading.Barrier(2)
    outcomes = []

    def attempt():
        with app.app_context():
            controller = LifecycleController(SlotLedger(db.session), BookingStore(db.session))
            barrier.wait()
            try:
                controller.cancel(booking_id, "S1001", reason="double tap")
                outcomes.append("ok")
            except (Conflict, InvalidTransition) as exc:
                outcomes.append(exc.error_code)
            finally:
                db.session.remove()

    threads = [threading.Thread(target=attempt) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)

    assert len(outcomes) == 2
    assert outcomes.count("ok") == 1
    assert set(outcomes) - {"ok"} <= {"CONFLICT", "INVALID_TRANSITION"}
    assert _booking(booking_id).status == BookingStatus.CANCELLED.value
    assert _slot_status(slot.id) == SlotStatus.AVAILABLE.value
    assert AuditLog.query.filter_by(action="INVARIANT_VIOLATION").count() == 0


def test_concurrent_pay_succeeds_once(app, booking):
    booking_id = booking.id
    barrier = threading.Barrier(2)
    outcomes = []

    def attempt(ref):
        with app.app_context():
            controller = LifecycleController(SlotLedger(db.session), BookingStore(db.session))
            barrier.wait()
            try:
                controller.pay(booking_id, "S1001", "card", ref)
                outcomes.append("ok")
            except (Conflict, InvalidTransition) as exc:
                outcomes.append(exc.error_code)
            finally:
                db.session.remove()

    threads = [threading.Thread(target=attempt, args=(ref,)) for ref in ("txn-a", "txn-b")]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)

    assert outcomes.count("ok") == 1
    assert len(outcomes) == 2
    assert _booking(booking_id).payment_status == PaymentStatus.PAID.value

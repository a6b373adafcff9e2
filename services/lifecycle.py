"""
Lifecycle Controller.

Every transition reads the booking, looks the move up in the transition table
and writes it back as one conditional UPDATE keyed on the state it read. If a
concurrent request got there first the UPDATE matches nothing and the caller
sees ``Conflict``.
"""
import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import and_, or_, select

from models.booking import Booking
from models.slot import Slot
from services.atomic import atomic
from services.booking_store import BookingStore
from services.errors import Conflict, Forbidden, InvalidState, ValidationError
from services.slot_ledger import SlotLedger
from services.transitions import Action, allowed_from, next_state
from utils.audit import log_event

logger = logging.getLogger(__name__)


class LifecycleController:
    def __init__(self, ledger: SlotLedger, bookings: BookingStore, refund_on_cancel: bool = True):
        if ledger.session is not bookings.session:
            raise ValueError("ledger and booking store must share one session")
        self.ledger = ledger
        self.bookings = bookings
        self.session = ledger.session
        self.refund_on_cancel = refund_on_cancel

    # ---------- helpers ----------
    def _load(self, booking_id: int, principal: Optional[str]) -> Booking:
        booking = self.bookings.get(booking_id)
        if principal is not None and booking.student_id != principal:
            raise Forbidden()
        return booking

    def _apply(self, booking: Booking, action: Action, **values) -> Booking:
        status, payment = booking.status, booking.payment_status
        new_status, new_payment = next_state(action, status, payment, self.refund_on_cancel)
        if new_payment.value != payment:
            values["payment_status"] = new_payment
        self.bookings.update_status(
            booking.id,
            [status],
            new_status,
            expected_payment_statuses=[payment],
            **values,
        )
        return booking

    # ---------- student operations ----------
    def confirm(self, booking_id: int, principal: str) -> Booking:
        booking = self._load(booking_id, principal)
        with atomic(self.session):
            self._apply(booking, Action.CONFIRM)

        log_event("BOOKING_CONFIRM", principal_id=principal, entity="booking", entity_id=booking_id)
        return booking

    def cancel(self, booking_id: int, principal: str, reason: Optional[str] = None) -> Booking:
        booking = self._load(booking_id, principal)
        return self._cancel(booking, principal, reason, "BOOKING_CANCEL")

    def pay(self, booking_id: int, principal: str, method: str,
            transaction_ref: Optional[str] = None) -> Booking:
        if not method or not method.strip():
            raise ValidationError("Payment method is required", {"field": "payment_method"})
        booking = self._load(booking_id, principal)
        with atomic(self.session):
            self._apply(
                booking,
                Action.PAY,
                payment_method=method,
                transaction_ref=transaction_ref,
                paid_at=datetime.utcnow(),
            )

        log_event(
            "BOOKING_PAY",
            principal_id=principal,
            entity="booking",
            entity_id=booking_id,
            metadata={"method": method, "transaction_ref": transaction_ref},
        )
        return booking

    # ---------- administrative operations ----------
    def admin_cancel(self, booking_id: int, reason: Optional[str] = None,
                     actor: Optional[str] = None) -> Booking:
        booking = self._load(booking_id, None)
        return self._cancel(booking, actor, reason or "Admin cancellation", "ADMIN_BOOKING_CANCEL")

    def complete(self, booking_id: int, actor: Optional[str] = None) -> Booking:
        booking = self._load(booking_id, None)
        with atomic(self.session):
            self._apply(booking, Action.COMPLETE)

        log_event("BOOKING_COMPLETE", principal_id=actor, entity="booking", entity_id=booking_id)
        return booking

    def refund(self, booking_id: int, actor: Optional[str] = None) -> Booking:
        """Manual refund of a booking cancelled while REFUND_ON_CANCEL was off."""
        booking = self._load(booking_id, None)
        with atomic(self.session):
            self._apply(booking, Action.REFUND)

        log_event("BOOKING_REFUND", principal_id=actor, entity="booking", entity_id=booking_id)
        return booking

    def complete_elapsed(self, now: Optional[datetime] = None) -> List[int]:
        """
        Complete every CONFIRMED/PAID booking whose slot has ended by ``now``.

        Bookings that move under us are skipped and picked up on the next run.
        """
        now = now or datetime.utcnow()
        completable = or_(*(
            and_(Booking.status == status.value, Booking.payment_status == payment.value)
            for status, payment in allowed_from(Action.COMPLETE)
        ))
        rows = self.session.execute(
            select(Booking.id, Booking.status, Booking.payment_status, Slot)
            .join(Slot, Booking.slot_id == Slot.id)
            .where(completable, Slot.slot_date <= now.date())
        ).all()
        due = [
            (booking_id, status, payment)
            for booking_id, status, payment, slot in rows
            if slot.ends_at <= now
        ]
        # release the read transaction before writing
        self.session.commit()

        completed = []
        for booking_id, status, payment in due:
            new_status, _ = next_state(Action.COMPLETE, status, payment)
            try:
                with atomic(self.session):
                    self.bookings.update_status(
                        booking_id,
                        [status],
                        new_status,
                        expected_payment_statuses=[payment],
                    )
            except Conflict:
                logger.info("Booking %s changed before completion; skipping", booking_id)
                continue
            completed.append(booking_id)

        if completed:
            logger.info("Completed %d elapsed bookings", len(completed))
            log_event("BOOKING_COMPLETE_ELAPSED", entity="booking", metadata={"booking_ids": completed})
        return completed

    # ---------- cancellation ----------
    def _cancel(self, booking: Booking, actor: Optional[str], reason: Optional[str],
                audit_action: str) -> Booking:
        slot_id = booking.slot_id
        invariant_broken = None

        with atomic(self.session):
            self._apply(booking, Action.CANCEL, cancelled_at=datetime.utcnow(), cancel_reason=reason)
            try:
                self.ledger.release(slot_id)
            except InvalidState as exc:
                # an active booking always holds a BOOKED slot; record and carry on
                invariant_broken = exc
                logger.error(
                    "Invariant violation: cancelling booking %s found slot %s %s",
                    booking.id, slot_id, exc.details.get("actual"),
                )

        log_event(
            audit_action,
            principal_id=actor,
            entity="booking",
            entity_id=booking.id,
            metadata={"reason": reason, "slot_id": slot_id},
        )
        if invariant_broken is not None:
            log_event(
                "INVARIANT_VIOLATION",
                principal_id=actor,
                entity="slot",
                entity_id=slot_id,
                metadata={"booking_id": booking.id, "error": invariant_broken.message},
            )
        return booking

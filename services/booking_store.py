"""Booking Record Store: the only writer of ``Booking`` rows."""
import logging
from decimal import Decimal
from typing import Iterable, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from models.booking import Booking, BookingStatus, PaymentStatus
from services.errors import Conflict, NotAvailable, NotFound

logger = logging.getLogger(__name__)


def _values(statuses) -> list:
    return [getattr(s, "value", s) for s in statuses]


class BookingStore:
    def __init__(self, session):
        self.session = session

    def create(self, principal: str, court_id: int, slot_id: int, amount: Decimal,
               notes: Optional[str] = None) -> Booking:
        """Insert a PENDING/UNPAID booking inside the caller's transaction."""
        booking = Booking(
            student_id=principal,
            court_id=court_id,
            slot_id=slot_id,
            status=BookingStatus.PENDING.value,
            payment_status=PaymentStatus.UNPAID.value,
            total_amount=amount,
            notes=notes,
        )
        self.session.add(booking)
        try:
            self.session.flush()
        except IntegrityError:
            # uq_bookings_active_slot: another active booking already holds this slot
            logger.warning("Active booking already exists for slot %s", slot_id)
            raise NotAvailable(slot_id)
        return booking

    def get(self, booking_id: int) -> Booking:
        booking = self.session.get(Booking, booking_id)
        if booking is None:
            raise NotFound("Booking", booking_id)
        return booking

    def _conditional_update(self, booking_id: int, criteria: list, values: dict):
        result = self.session.execute(
            update(Booking)
            .where(Booking.id == booking_id, *criteria)
            .values(**values)
        )
        if result.rowcount == 1:
            return

        exists = self.session.execute(
            select(Booking.id).where(Booking.id == booking_id)
        ).scalar_one_or_none()
        if exists is None:
            raise NotFound("Booking", booking_id)
        raise Conflict("Booking", booking_id)

    def update_status(self, booking_id: int, expected_current_statuses: Iterable,
                      new_status: BookingStatus, expected_payment_statuses: Optional[Iterable] = None,
                      **values):
        """
        Set ``status`` only if the stored status is still one of
        ``expected_current_statuses``; otherwise ``Conflict``.

        ``expected_payment_statuses`` additionally pins the payment column and
        extra keyword values (timestamps, payment_status) are written in the
        same statement.
        """
        criteria = [Booking.status.in_(_values(expected_current_statuses))]
        if expected_payment_statuses is not None:
            criteria.append(Booking.payment_status.in_(_values(expected_payment_statuses)))
        values["status"] = BookingStatus(new_status).value
        if "payment_status" in values:
            values["payment_status"] = PaymentStatus(values["payment_status"]).value
        self._conditional_update(booking_id, criteria, values)

    def update_payment(self, booking_id: int, expected_payment_statuses: Iterable,
                       new_payment_status: PaymentStatus, expected_statuses: Optional[Iterable] = None,
                       **values):
        """Payment-column counterpart of ``update_status``."""
        criteria = [Booking.payment_status.in_(_values(expected_payment_statuses))]
        if expected_statuses is not None:
            criteria.append(Booking.status.in_(_values(expected_statuses)))
        values["payment_status"] = PaymentStatus(new_payment_status).value
        self._conditional_update(booking_id, criteria, values)

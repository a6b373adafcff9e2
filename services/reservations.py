"""
Reservation Coordinator.

Turns (principal, court, slot) into exactly one PENDING booking and one BOOKED
slot, or into nothing at all.
"""
import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from models.booking import Booking
from models.court import Court
from models.slot import Slot, SlotStatus
from services.atomic import atomic
from services.booking_store import BookingStore
from services.errors import NotAvailable, NotFound, ValidationError
from services.slot_ledger import SlotLedger
from utils.audit import log_event

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


def slot_amount(hourly_rate, slot: Slot) -> Decimal:
    """Price of ``slot`` at ``hourly_rate``, rounded to cents."""
    seconds = (slot.ends_at - slot.starts_at).total_seconds()
    if seconds <= 0:
        raise ValidationError(f"Slot {slot.id} has no duration", {"slot_id": slot.id})
    hours = Decimal(int(seconds)) / Decimal(3600)
    return (Decimal(hourly_rate or 0) * hours).quantize(CENTS, rounding=ROUND_HALF_UP)


class ReservationCoordinator:
    def __init__(self, ledger: SlotLedger, bookings: BookingStore):
        if ledger.session is not bookings.session:
            raise ValueError("ledger and booking store must share one session")
        self.ledger = ledger
        self.bookings = bookings
        self.session = ledger.session

    def reserve(self, principal: str, court_id: int, slot_id: int,
                notes: Optional[str] = None) -> Booking:
        court = self.session.get(Court, court_id)
        if court is None or not court.is_active:
            raise NotFound("Court", court_id)

        slot = self.ledger.get(slot_id)
        if slot.court_id != court.id:
            raise NotFound("Slot", slot_id)
        if slot.status != SlotStatus.AVAILABLE.value:
            raise NotAvailable(slot_id)

        # rate is read per call so a rate change only affects new bookings
        amount = slot_amount(court.hourly_rate, slot)

        try:
            with atomic(self.session):
                if not self.ledger.try_reserve(slot_id):
                    raise NotAvailable(slot_id)
                booking = self.bookings.create(principal, court.id, slot_id, amount, notes=notes)
        except NotAvailable:
            log_event(
                "BOOKING_FAIL_NOT_AVAILABLE",
                principal_id=principal,
                entity="slot",
                entity_id=slot_id,
            )
            raise

        logger.info("Booking %s created for slot %s by %s", booking.id, slot_id, principal)
        log_event(
            "BOOKING_CREATE",
            principal_id=principal,
            entity="booking",
            entity_id=booking.id,
            metadata={"slot_id": slot_id, "court_id": court.id, "amount": str(amount)},
        )
        return booking

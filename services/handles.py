from flask import current_app

from models import db
from services.booking_store import BookingStore
from services.lifecycle import LifecycleController
from services.queries import BookingQueries
from services.reservations import ReservationCoordinator
from services.slot_ledger import SlotLedger


def _stores(session=None):
    session = session if session is not None else db.session
    return SlotLedger(session), BookingStore(session)


def reservation_coordinator(session=None) -> ReservationCoordinator:
    return ReservationCoordinator(*_stores(session))


def lifecycle_controller(session=None) -> LifecycleController:
    ledger, bookings = _stores(session)
    return LifecycleController(
        ledger,
        bookings,
        refund_on_cancel=current_app.config.get("REFUND_ON_CANCEL", True),
    )


def booking_queries(session=None) -> BookingQueries:
    return BookingQueries(session if session is not None else db.session)

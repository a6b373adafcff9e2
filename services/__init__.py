from .errors import (
    BookingError,
    NotFound,
    Forbidden,
    ValidationError,
    NotAvailable,
    InvalidTransition,
    Conflict,
    InvalidState,
)
from .slot_ledger import SlotLedger
from .booking_store import BookingStore
from .reservations import ReservationCoordinator
from .lifecycle import LifecycleController
from .queries import BookingQueries

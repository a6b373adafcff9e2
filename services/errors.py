"""
Booking engine errors.

Every error is recoverable by the caller. ``retryable`` tells a client whether
repeating the same call may succeed (``Conflict``) or whether it should refresh
its view and give up (everything else).
"""
from typing import Any, Dict, Optional


class BookingError(Exception):
    """Base class for every error the engine hands back to its callers"""

    status_code = 400
    error_code = "BOOKING_ERROR"
    retryable = False

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        body = {"error": self.message, "code": self.error_code, "retryable": self.retryable}
        if self.details:
            body["details"] = self.details
        return body


class NotFound(BookingError):
    status_code = 404
    error_code = "NOT_FOUND"

    def __init__(self, resource: str, identifier=None):
        if identifier is not None:
            message = f"{resource} {identifier} not found"
            details = {"resource": resource, "identifier": str(identifier)}
        else:
            message = f"{resource} not found"
            details = {"resource": resource}
        super().__init__(message, details)


class Forbidden(BookingError):
    status_code = 403
    error_code = "FORBIDDEN"

    def __init__(self, message: str = "Booking belongs to another student"):
        super().__init__(message)


class ValidationError(BookingError):
    status_code = 400
    error_code = "VALIDATION_ERROR"


class NotAvailable(BookingError):
    status_code = 409
    error_code = "NOT_AVAILABLE"

    def __init__(self, slot_id, message: str = "Slot is not available"):
        super().__init__(message, {"slot_id": slot_id})


class InvalidTransition(BookingError):
    status_code = 400
    error_code = "INVALID_TRANSITION"

    def __init__(self, action: str, status: str, payment_status: str):
        message = f"Cannot {action} a booking that is {status}/{payment_status}"
        super().__init__(
            message,
            {"action": action, "status": status, "payment_status": payment_status},
        )


class Conflict(BookingError):
    """The row changed between our read and our conditional write."""

    status_code = 409
    error_code = "CONFLICT"
    retryable = True

    def __init__(self, resource: str, identifier):
        super().__init__(
            f"{resource} {identifier} was modified concurrently; re-read and retry",
            {"resource": resource, "identifier": str(identifier)},
        )


class InvalidState(BookingError):
    """A ledger move was requested from a state that does not allow it."""

    status_code = 409
    error_code = "INVALID_STATE"

    def __init__(self, slot_id, expected: str, actual: Optional[str] = None):
        message = f"Slot {slot_id} is not {expected}"
        super().__init__(message, {"slot_id": slot_id, "expected": expected, "actual": actual})

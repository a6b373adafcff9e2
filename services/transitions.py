"""
Booking state machine.

The table below is the single source of truth for which lifecycle actions are
legal from which (status, payment_status) pair. Anything not listed raises
``InvalidTransition``.
"""
import enum
from typing import Dict, FrozenSet, Tuple

from models.booking import BookingStatus, PaymentStatus
from services.errors import InvalidTransition

State = Tuple[BookingStatus, PaymentStatus]


class Action(str, enum.Enum):
    CONFIRM = "confirm"
    CANCEL = "cancel"
    PAY = "pay"
    COMPLETE = "complete"
    REFUND = "refund"


P, C, X, D = BookingStatus.PENDING, BookingStatus.CONFIRMED, BookingStatus.CANCELLED, BookingStatus.COMPLETED
UNPAID, PAID, REFUNDED = PaymentStatus.UNPAID, PaymentStatus.PAID, PaymentStatus.REFUNDED

# Cancelling a paid booking lands on one of these depending on REFUND_ON_CANCEL.
CANCEL_PAID_REFUND: State = (X, REFUNDED)
CANCEL_PAID_KEEP: State = (X, PAID)

TRANSITIONS: Dict[Action, Dict[State, State]] = {
    Action.CONFIRM: {
        (P, UNPAID): (C, UNPAID),
        (P, PAID): (C, PAID),
    },
    Action.CANCEL: {
        (P, UNPAID): (X, UNPAID),
        (C, UNPAID): (X, UNPAID),
        (P, PAID): CANCEL_PAID_REFUND,
        (C, PAID): CANCEL_PAID_REFUND,
    },
    Action.PAY: {
        (P, UNPAID): (P, PAID),
        (C, UNPAID): (C, PAID),
    },
    Action.COMPLETE: {
        (C, PAID): (D, PAID),
    },
    Action.REFUND: {
        (X, PAID): (X, REFUNDED),
    },
}


def _coerce(status, payment_status) -> State:
    return BookingStatus(status), PaymentStatus(payment_status)


def next_state(action: Action, status, payment_status, refund_on_cancel: bool = True) -> State:
    """Target (status, payment_status) for ``action``, or ``InvalidTransition``."""
    current = _coerce(status, payment_status)
    target = TRANSITIONS[Action(action)].get(current)
    if target is None:
        raise InvalidTransition(Action(action).value, current[0].value, current[1].value)
    if target == CANCEL_PAID_REFUND and not refund_on_cancel:
        return CANCEL_PAID_KEEP
    return target


def allowed_from(action: Action) -> FrozenSet[State]:
    return frozenset(TRANSITIONS[Action(action)])


def _check_table():
    # Every action has a row, and every move goes between two different real states
    all_states = {(s, p) for s in BookingStatus for p in PaymentStatus}
    for action in Action:
        rows = TRANSITIONS.get(action)
        if rows is None:
            raise RuntimeError(f"no transitions declared for {action.value}")
        for src, dst in rows.items():
            if src not in all_states or dst not in all_states:
                raise RuntimeError(f"bad transition {action.value}: {src} -> {dst}")
            if src == dst:
                raise RuntimeError(f"no-op transition {action.value}: {src}")


_check_table()

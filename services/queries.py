"""Read-only booking and slot projections for the self-service and admin views."""
from datetime import date
from typing import List, Optional

from sqlalchemy import select

from models.booking import Booking
from models.court import Court
from models.slot import Slot
from models.student import Student
from services.errors import Forbidden, NotFound


def _iso(value):
    return value.isoformat() if value is not None else None


def _booking_row(b: Booking, s: Slot, c: Court, st: Optional[Student]) -> dict:
    return {
        "id": b.id,
        "status": b.status,
        "payment_status": b.payment_status,
        "total_amount": str(b.total_amount),
        "payment_method": b.payment_method,
        "transaction_ref": b.transaction_ref,
        "created_at": _iso(b.created_at),
        "paid_at": _iso(b.paid_at),
        "cancelled_at": _iso(b.cancelled_at),
        "cancel_reason": b.cancel_reason,
        "notes": b.notes,
        "student": {
            "id": b.student_id,
            "name": st.display_name if st else None,
            "email": st.email if st else None,
        },
        "court": {
            "id": c.id,
            "name": c.name,
            "sport": c.sport_name,
            "location": c.location,
            "hourly_rate": str(c.hourly_rate),
        },
        "slot": {
            "id": s.id,
            "date": _iso(s.slot_date),
            "start_time": _iso(s.start_time),
            "end_time": _iso(s.end_time),
            "status": s.status,
        },
    }


def _slot_row(s: Slot) -> dict:
    return {
        "id": s.id,
        "court_id": s.court_id,
        "date": _iso(s.slot_date),
        "start_time": _iso(s.start_time),
        "end_time": _iso(s.end_time),
        "status": s.status,
    }


class BookingQueries:
    """
    Every method issues a single SELECT so a projection never mixes columns
    from before and after a concurrent transition.
    """

    def __init__(self, session):
        self.session = session

    def _joined(self):
        return (
            select(Booking, Slot, Court, Student)
            .join(Slot, Booking.slot_id == Slot.id)
            .join(Court, Booking.court_id == Court.id)
            .outerjoin(Student, Booking.student_id == Student.id)
            # rows must come from this SELECT, not from objects already in the session
            .execution_options(populate_existing=True)
        )

    def get_booking(self, booking_id: int, principal: Optional[str]) -> dict:
        """``principal=None`` is the admin view and skips the ownership check."""
        row = self.session.execute(self._joined().where(Booking.id == booking_id)).first()
        if row is None:
            raise NotFound("Booking", booking_id)
        if principal is not None and row.Booking.student_id != principal:
            raise Forbidden()
        return _booking_row(*row)

    def list_bookings(self, principal: str, status: Optional[str] = None) -> List[dict]:
        q = self._joined().where(Booking.student_id == principal)
        if status:
            q = q.where(Booking.status == status)
        q = q.order_by(Booking.created_at.desc(), Booking.id.desc())
        return [_booking_row(*row) for row in self.session.execute(q).all()]

    def list_all_bookings(self, status: Optional[str] = None, on_date: Optional[date] = None,
                          student_id: Optional[str] = None, limit: int = 200) -> List[dict]:
        q = self._joined()
        if status:
            q = q.where(Booking.status == status)
        if on_date:
            q = q.where(Slot.slot_date == on_date)
        if student_id:
            q = q.where(Booking.student_id == student_id)
        q = q.order_by(Booking.created_at.desc(), Booking.id.desc()).limit(limit)
        return [_booking_row(*row) for row in self.session.execute(q).all()]

    def list_slots(self, court_id: int, on_date: Optional[date] = None,
                   status: Optional[str] = None) -> List[dict]:
        court = self.session.get(Court, court_id)
        if court is None:
            raise NotFound("Court", court_id)

        q = select(Slot).where(Slot.court_id == court_id)
        if on_date:
            q = q.where(Slot.slot_date == on_date)
        if status:
            q = q.where(Slot.status == status)
        q = q.order_by(Slot.slot_date.asc(), Slot.start_time.asc())
        return [_slot_row(s) for s in self.session.execute(q).scalars().all()]

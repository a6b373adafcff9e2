import enum
from datetime import datetime
from models.db import db


class BookingStatus(str, enum.Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"


class PaymentStatus(str, enum.Enum):
    UNPAID = "UNPAID"
    PAID = "PAID"
    REFUNDED = "REFUNDED"


ACTIVE_STATUSES = (BookingStatus.PENDING, BookingStatus.CONFIRMED)
_ACTIVE_CLAUSE = "status IN (%s)" % ", ".join(f"'{s.value}'" for s in ACTIVE_STATUSES)


class Booking(db.Model):
    __tablename__ = "bookings"

    id = db.Column(db.Integer, primary_key=True)

    # principal id from the identity service; a students row is display metadata only
    student_id = db.Column(db.String(40), nullable=False, index=True)
    court_id = db.Column(db.Integer, db.ForeignKey("courts.id"), nullable=False, index=True)
    slot_id = db.Column(db.Integer, db.ForeignKey("slots.id"), nullable=False, index=True)

    status = db.Column(db.String(20), nullable=False, default=BookingStatus.PENDING.value)
    payment_status = db.Column(db.String(20), nullable=False, default=PaymentStatus.UNPAID.value)

    total_amount = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    payment_method = db.Column(db.String(40), nullable=True)
    transaction_ref = db.Column(db.String(120), nullable=True)
    paid_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    cancelled_at = db.Column(db.DateTime, nullable=True)
    cancel_reason = db.Column(db.String(120), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    __table_args__ = (
        # Hard business-rule: at most one PENDING/CONFIRMED booking per slot.
        # Cancelled rows stay for history, so this must be a partial index.
        db.Index(
            "uq_bookings_active_slot",
            "slot_id",
            unique=True,
            sqlite_where=db.text(_ACTIVE_CLAUSE),
            postgresql_where=db.text(_ACTIVE_CLAUSE),
        ),
        db.Index("ix_bookings_student_status", "student_id", "status"),
    )

    def __repr__(self):
        return f"<Booking(id={self.id}, slot_id={self.slot_id}, status={self.status}, payment={self.payment_status})>"

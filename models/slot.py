import enum
from datetime import datetime, timedelta
from models.db import db


class SlotStatus(str, enum.Enum):
    AVAILABLE = "AVAILABLE"
    BOOKED = "BOOKED"
    BLOCKED = "BLOCKED"  # maintenance, never holds a booking


class Slot(db.Model):
    __tablename__ = "slots"

    id = db.Column(db.Integer, primary_key=True)

    court_id = db.Column(db.Integer, db.ForeignKey("courts.id"), nullable=False, index=True)
    slot_date = db.Column(db.Date, nullable=False, index=True)
    start_time = db.Column(db.Time, nullable=False)
    end_time = db.Column(db.Time, nullable=False)

    status = db.Column(db.String(20), nullable=False, default=SlotStatus.AVAILABLE.value, index=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        # Prevent duplicate slot times for same court
        db.UniqueConstraint("court_id", "slot_date", "start_time", name="uq_court_slot_start"),
    )

    @property
    def starts_at(self) -> datetime:
        return datetime.combine(self.slot_date, self.start_time)

    @property
    def ends_at(self) -> datetime:
        ends = datetime.combine(self.slot_date, self.end_time)
        # a slot ending before it starts runs past midnight (23:00-00:00)
        if self.end_time < self.start_time:
            ends += timedelta(days=1)
        return ends

    def __repr__(self):
        return f"<Slot(id={self.id}, court_id={self.court_id}, date={self.slot_date}, status={self.status})>"

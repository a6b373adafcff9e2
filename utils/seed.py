from datetime import date, time
from decimal import Decimal

from models import db
from models.court import Court
from models.slot import Slot
from models.student import Student

DEMO_COURT = "Court 1"
DEMO_STUDENT = "S1001"

def seed_demo(day: date, first_hour: int = 8, last_hour: int = 22):
    """Demo court, student and one-hour slots for ``day``. Safe to run repeatedly."""
    court = Court.query.filter_by(name=DEMO_COURT).first()
    if not court:
        court = Court(name=DEMO_COURT, sport_name="Badminton", location="Main Hall",
                      hourly_rate=Decimal("20.00"))
        db.session.add(court)
        db.session.flush()

    if not db.session.get(Student, DEMO_STUDENT):
        db.session.add(Student(id=DEMO_STUDENT, first_name="Demo", last_name="Student",
                               email="demo.student@example.edu"))

    existing = {
        s.start_time for s in Slot.query.filter_by(court_id=court.id, slot_date=day).all()
    }
    created = 0
    for hour in range(first_hour, last_hour):
        start = time(hour, 0)
        if start in existing:
            continue
        db.session.add(Slot(court_id=court.id, slot_date=day, start_time=start, end_time=time(hour + 1, 0)))
        created += 1

    db.session.commit()
    return court, created

from datetime import date, time, timedelta
from decimal import Decimal

import pytest

from app import create_app
from config import TestConfig
from models import db
from models.court import Court
from models.slot import Slot, SlotStatus
from models.student import Student
from services.booking_store import BookingStore
from services.lifecycle import LifecycleController
from services.queries import BookingQueries
from services.reservations import ReservationCoordinator
from services.slot_ledger import SlotLedger

SLOT_DAY = date.today() + timedelta(days=7)


@pytest.fixture
def app(tmp_path):
    class _Config(TestConfig):
        # file database so worker threads each get their own connection
        SQLALCHEMY_DATABASE_URI = "sqlite:///" + str(tmp_path / "courtslot-test.db")

    app = create_app(_Config)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_court(app):
    def _make(name="Court 1", hourly_rate="20.00", is_active=True):
        court = Court(name=name, sport_name="Badminton", location="Main Hall",
                      hourly_rate=Decimal(hourly_rate), is_active=is_active)
        db.session.add(court)
        db.session.commit()
        return court
    return _make


@pytest.fixture
def make_slot(app):
    def _make(court, start=time(18, 0), end=time(19, 0), day=SLOT_DAY, status=SlotStatus.AVAILABLE):
        slot = Slot(court_id=court.id, slot_date=day, start_time=start, end_time=end,
                    status=SlotStatus(status).value)
        db.session.add(slot)
        db.session.commit()
        return slot
    return _make


@pytest.fixture
def make_student(app):
    def _make(student_id="S1001", first_name="Asha", last_name="Rai"):
        student = Student(id=student_id, first_name=first_name, last_name=last_name,
                          email=f"{student_id.lower()}@example.edu")
        db.session.add(student)
        db.session.commit()
        return student
    return _make


@pytest.fixture
def court(make_court):
    return make_court()


@pytest.fixture
def slot(court, make_slot):
    return make_slot(court)


@pytest.fixture
def ledger(app):
    return SlotLedger(db.session)


@pytest.fixture
def store(app):
    return BookingStore(db.session)


@pytest.fixture
def coordinator(ledger, store):
    return ReservationCoordinator(ledger, store)


@pytest.fixture
def controller(ledger, store):
    return LifecycleController(ledger, store, refund_on_cancel=True)


@pytest.fixture
def queries(app):
    return BookingQueries(db.session)

from .db import db
from .audit_log import AuditLog
from .court import Court
from .student import Student
from .slot import Slot, SlotStatus
from .booking import Booking, BookingStatus, PaymentStatus

from datetime import datetime
from models.db import db

class Court(db.Model):
    """Reference data owned by court administration; the booking engine only reads it."""
    __tablename__ = "courts"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    sport_name = db.Column(db.String(80), nullable=True)
    location = db.Column(db.String(160), nullable=False)

    hourly_rate = db.Column(db.Numeric(10, 2), nullable=False, default=0)

    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

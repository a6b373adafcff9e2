from datetime import datetime
from models.db import db

class Student(db.Model):
    """Display metadata for a principal. Rows are maintained by the identity service."""
    __tablename__ = "students"

    # principal identifier (student registration number) handed over by the identity layer
    id = db.Column(db.String(40), primary_key=True)

    first_name = db.Column(db.String(80), nullable=True)
    last_name = db.Column(db.String(80), nullable=True)
    email = db.Column(db.String(255), unique=True, nullable=True, index=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    @property
    def display_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.last_name) if p) or self.id

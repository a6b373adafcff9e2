import logging

import click
from flask import Flask, jsonify
from flask_migrate import Migrate
from sqlalchemy.exc import OperationalError

from config import Config
from models import db
from routes import health_bp, booking_bp, admin_bp, audit_bp
from services.errors import BookingError
from utils.auth_context import load_current_principal
from utils.log_setup import setup_logging

logger = logging.getLogger(__name__)


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)

    setup_logging(app.config.get("LOG_LEVEL", "INFO"))

    # Register routes
    app.register_blueprint(health_bp)
    app.register_blueprint(booking_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(audit_bp)

    # Database init
    db.init_app(app)

    # Migrations
    Migrate(app, db)

    @app.before_request
    def _load_principal():
        load_current_principal()

    @app.errorhandler(BookingError)
    def _booking_error(exc):
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(OperationalError)
    def _store_unavailable(exc):
        db.session.rollback()
        logger.error("Booking store unavailable: %s", exc)
        return jsonify(
            error="Booking store temporarily unavailable",
            code="STORE_UNAVAILABLE",
            retryable=True,
        ), 503

    @app.after_request
    def add_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Referrer-Policy"] = "no-referrer"
        resp.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"
        return resp

    register_cli(app)

    return app

#-------------------------
from datetime import date

from utils.seed import seed_demo
from services.handles import lifecycle_controller

def register_cli(app):
    @app.cli.command("seed-demo")
    @click.option("--day", default=None, help="Slot date (YYYY-MM-DD), defaults to today")
    def seed_demo_command(day):
        """Create a demo court, student and a day of hourly slots."""
        slot_day = date.fromisoformat(day) if day else date.today()
        court, created = seed_demo(slot_day)
        print(f"{court.name} (id={court.id}): {created} new slots on {slot_day.isoformat()}")

    @app.cli.command("complete-elapsed")
    def complete_elapsed_command():
        """Mark CONFIRMED/PAID bookings whose slot has ended as COMPLETED."""
        completed = lifecycle_controller().complete_elapsed()
        print(f"{len(completed)} bookings completed")

#-------------------------




if __name__ == "__main__":
    app = create_app()
    # Run locally
    app.run(host="127.0.0.1", port=5002)

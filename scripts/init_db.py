#!/usr/bin/env python3
"""Create the booking tables (tenants, services, appointments)."""
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from booking import create_app
from booking.extensions import db


def init_database():
    app = create_app({"SWEEPER_ENABLED": False})
    with app.app_context():
        db.create_all()
        tables = ", ".join(sorted(db.metadata.tables))
        print(f"✅ Booking tables ready on {app.config['SQLALCHEMY_DATABASE_URI']}: {tables}")


if __name__ == "__main__":
    init_database()

#!/usr/bin/env python3
"""Seed the database with a demo tenant and its bookable services."""
import sys
from datetime import time
from pathlib import Path

# Add the parent directory to the path so we can import the app
sys.path.insert(0, str(Path(__file__).parent.parent))

from booking import create_app
from booking.extensions import db
from booking.models import Service, Tenant

def seed_demo_tenant():
    """Create one clinic with grooming and medical services."""
    app = create_app({"SWEEPER_ENABLED": False})

    with app.app_context():
        db.create_all()

        tenant = Tenant.query.filter_by(name="VetGroom Centro").first()
        if tenant:
            print(f"ℹ️  Tenant already exists (id={tenant.tenant_id}), nothing to do.")
            return

        tenant = Tenant(
            name="VetGroom Centro",
            open_time=time(9, 0),
            close_time=time(18, 0),
            closed_weekdays=[6],  # Sunday
            time_slot_minutes=30,
            reservation_timeout_minutes=10,
        )
        db.session.add(tenant)
        db.session.flush()

        sample_services = [
            {"name": "Baño y corte", "description": "Full grooming session", "duration_minutes": 60},
            {"name": "Baño sencillo", "description": "Bath and dry", "duration_minutes": 30},
            {"name": "Consulta general", "description": "General veterinary check-up", "duration_minutes": 30},
            {"name": "Vacunación", "description": "Vaccine application", "duration_minutes": 15},
        ]

        for data in sample_services:
            db.session.add(Service(tenant_id=tenant.tenant_id, **data))

        db.session.commit()
        print(f"✅ Created tenant {tenant.tenant_id} with {len(sample_services)} services")

if __name__ == "__main__":
    seed_demo_tenant()

"""Flask extension singletons bound to the app in ``create_app``."""
from __future__ import annotations

from flask_sqlalchemy import SQLAlchemy

# Owns the tenants, services and appointments tables; slot holds never touch it.
db = SQLAlchemy()

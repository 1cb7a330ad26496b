from collections.abc import Mapping

from flask import Flask
from flask_cors import CORS

from .config import Config
from .extensions import db
from .routes import register_routes
from .scheduling import init_engine
from .stores import SqlAppointmentStore, SqlServiceCatalog


def create_app(config_object=None):
    app = Flask(__name__, instance_relative_config=True)

    if isinstance(config_object, Mapping):
        app.config.from_object(Config)
        app.config.from_mapping(config_object)
    elif config_object:
        app.config.from_object(config_object)
    else:
        app.config.from_object(Config)
        app.config.from_envvar("APP_SETTINGS", silent=True)

    db.init_app(app)

    # Booking wizard runs on a separate frontend origin
    CORS(app,
         origins=app.config.get("CORS_ORIGINS", ["*"]),
         supports_credentials=True,
         allow_headers=["Content-Type", "X-Session-Id"],
         methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"]
    )

    init_engine(app, SqlServiceCatalog(), SqlAppointmentStore())
    register_routes(app)

    return app

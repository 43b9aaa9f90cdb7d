import logging

from flask import Flask

from cure8.api import api_bp
from cure8.config import Config
from cure8.extensions import db, migrate
from cure8.library import EXTENSION_KEY, build_library
from cure8.services.persistence import load_library


def _configure_logging(app: Flask) -> None:
    level = logging.getLevelName(app.config.get("LOG_LEVEL", "INFO"))
    if not isinstance(level, int):
        level = logging.INFO
    app.logger.setLevel(level)
    logging.getLogger("cure8.core").setLevel(level)


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)
    _configure_logging(app)

    db.init_app(app)
    migrate.init_app(app, db)

    app.register_blueprint(api_bp)

    library = build_library()
    app.extensions[EXTENSION_KEY] = library

    @app.cli.command("init-db")
    def init_db_command():
        db.create_all()
        print("Initialized cure8 database.")

    with app.app_context():
        db.create_all()
        load_library(library)

    app.logger.info(
        "Loaded %d collections and %d cards", len(library.collections), len(library.cards)
    )
    return app

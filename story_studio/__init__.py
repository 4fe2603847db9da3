from __future__ import annotations

import logging

from flask import Flask

from .config import Config
from .extensions import csrf


def create_app(config_class: type[Config] = Config) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config_class)

    configure_logging(app)
    register_extensions(app)
    register_blueprints(app)

    return app


def configure_logging(app: Flask) -> None:
    level = logging.getLevelName(str(app.config.get("LOG_LEVEL", "INFO")).upper())
    if not isinstance(level, int):
        level = logging.INFO
    app.logger.setLevel(level)
    logging.getLogger("api_handler").setLevel(level)


def register_extensions(app: Flask) -> None:
    csrf.init_app(app)


def register_blueprints(app: Flask) -> None:
    from .api import bp as api_bp
    from .main import bp as main_bp

    csrf.exempt(api_bp)
    app.register_blueprint(api_bp)
    app.register_blueprint(main_bp)


__all__ = ["create_app"]

"""
BuildVersioning - Build version number authority
Application factory and initialization
"""
import logging
import os
import sys

import structlog
from flask import Flask

from buildversioning.db import db, init_db, migrate
from buildversioning.exceptions import register_exception_handlers
from buildversioning.metrics import init_metrics
from buildversioning.routes.projects import projects_bp
from buildversioning.routes.versions import versions_bp
from buildversioning.settings import load_settings, settings_to_flask_config
from buildversioning.utils import ColoredFormatter


def configure_logging(level="INFO", log_format="console"):
    formatter = ColoredFormatter(
        '[%(asctime)s.%(msecs)03d] %(levelname)s (%(module)s) %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        handlers=[handler]
    )

    use_json = log_format == 'json' or os.environ.get('LOG_FORMAT') == 'json'
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer() if use_json else structlog.dev.ConsoleRenderer()
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.getLogger('alembic.runtime.migration').setLevel(logging.WARNING)


def create_app(settings=None, config=None):
    """Application factory

    ``settings`` is the YAML settings dict (loaded from CONFIG_FILE when
    omitted); ``config`` holds Flask config keys applied last.
    """
    if settings is None:
        settings = load_settings()

    app = Flask(__name__)
    app.config.update(settings_to_flask_config(settings))
    if config:
        app.config.update(config)

    configure_logging(app.config.get("LOG_LEVEL", "INFO"), app.config.get("LOG_FORMAT", "console"))

    # Initialize components
    db.init_app(app)
    migrate.init_app(app, db)

    register_exception_handlers(app)
    app.register_blueprint(versions_bp)
    app.register_blueprint(projects_bp)
    init_metrics(app)

    init_db(app)

    structlog.get_logger('main').info(f"BuildVersioning ready on {app.config['SQLALCHEMY_DATABASE_URI']}")
    return app

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import create_engine
from sqlalchemy import event
from sqlalchemy import inspect
from flask_migrate import Migrate, upgrade
from alembic.runtime.migration import MigrationContext
from alembic.config import Config
from alembic.script import ScriptDirectory
from alembic import command
import logging
import sqlite3
from buildversioning.constants import ALEMBIC_DIR, ALEMBIC_CONF, LOCK_RESOURCE_NAME

# Retrieve main logger
logger = logging.getLogger("main")

db = SQLAlchemy()
migrate = Migrate(directory=ALEMBIC_DIR)

# Used until a lock acquisition sets its own bound
SQLITE_BUSY_TIMEOUT_MS = 30000


# Alembic functions
def get_alembic_cfg():
    cfg = Config(ALEMBIC_CONF)
    cfg.set_main_option("script_location", ALEMBIC_DIR)
    return cfg


def get_current_db_version(database_uri):
    engine = create_engine(database_uri)
    try:
        with engine.connect() as connection:
            context = MigrationContext.configure(connection)
            current_rev = context.get_current_revision()
            return current_rev or "0"
    finally:
        engine.dispose()


def is_migration_needed(database_uri):
    script = ScriptDirectory.from_config(get_alembic_cfg())
    latest_revision = script.get_current_head()
    current_revision = get_current_db_version(database_uri)
    if current_revision != latest_revision:
        logger.info(f"Database migration needed, from {current_revision} to {latest_revision}")
        return True
    else:
        logger.info(f"Database version is up to date ({current_revision})")
        return False


def init_db(app):
    with app.app_context():
        # Timeout first so the journal mode switch can wait on other connections
        @event.listens_for(db.engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            if not isinstance(dbapi_connection, sqlite3.Connection):
                return

            cursor = dbapi_connection.cursor()
            cursor.execute(f"PRAGMA busy_timeout={SQLITE_BUSY_TIMEOUT_MS};")
            cursor.execute("PRAGMA foreign_keys=ON;")
            # WAL lets readers proceed while a generation transaction holds the write lock
            cursor.execute("PRAGMA journal_mode=WAL;")
            cursor.close()

        # Register the models on the metadata before create_all
        from buildversioning import models  # noqa: F401
        from buildversioning.repositories.versionlock_repository import VersionLockRepository

        inspector = inspect(db.engine)
        if not inspector.has_table("version_history"):
            logger.info("Initializing database tables...")
            db.create_all()
            if app.config.get("STAMP_MIGRATIONS", True):
                command.stamp(get_alembic_cfg(), "head")
                logger.info("Database created and stamped to the latest migration version.")
        elif app.config.get("STAMP_MIGRATIONS", True):
            database_uri = app.config["SQLALCHEMY_DATABASE_URI"]
            if get_current_db_version(database_uri) == "0":
                # Tables came from create_all without a stamp
                db.create_all()
                command.stamp(get_alembic_cfg(), "head")
            elif is_migration_needed(database_uri):
                upgrade(directory=ALEMBIC_DIR)
                logger.info("Database migration applied successfully.")
        else:
            # Ensure new tables are created even if DB exists
            db.create_all()

        VersionLockRepository.ensure(LOCK_RESOURCE_NAME)

import os

APP_DIR = os.path.dirname(os.path.abspath(__file__))
CONFIG_DIR = os.environ.get('BUILDVERSIONING_CONFIG_DIR', os.path.join(APP_DIR, 'config'))
DB_FILE = os.path.join(CONFIG_DIR, 'buildversions.db')
CONFIG_FILE = os.path.join(CONFIG_DIR, 'settings.yaml')
ALEMBIC_DIR = os.path.join(APP_DIR, 'migrations')
ALEMBIC_CONF = os.path.join(ALEMBIC_DIR, 'alembic.ini')

BUILDVERSIONING_DB = 'sqlite:///' + DB_FILE

BUILD_VERSION = '20261019_0900'

# Every version generation in the deployment serializes on this one resource.
LOCK_RESOURCE_NAME = 'BuildVersioning_GenerateVersion_Lock'
LOCK_MODE = 'Exclusive'
LOCK_OWNER = 'Transaction'
DEFAULT_LOCK_TIMEOUT_SECONDS = 60
# Lock waits are passed to the store as a signed 32-bit millisecond count
MAX_LOCK_TIMEOUT_MS = 2**31 - 1

# Column bounds, shared by the models and input validation
MAX_NAME_LENGTH = 100
MAX_VERSION_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 400

GENERATED_VERSION_PART_COUNT = 4

DEFAULT_SETTINGS = {
    "database": {
        "uri": BUILDVERSIONING_DB,
        "stamp_migrations": True,
    },
    "versioning": {
        "lock_timeout_seconds": DEFAULT_LOCK_TIMEOUT_SECONDS,
        "recent_activity_limit": 10,
    },
    "logging": {
        "level": "INFO",
        "format": "console",
    },
}

RELEASE_TYPE_PRE_RELEASE = 'PreRelease'
RELEASE_TYPE_RELEASE_CANDIDATE = 'ReleaseCandidate'
RELEASE_TYPE_RELEASE = 'Release'

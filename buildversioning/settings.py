import copy
import logging
import os

import yaml

from buildversioning.constants import CONFIG_FILE, DEFAULT_SETTINGS

# Retrieve main logger
logger = logging.getLogger("main")

DATABASE_URL_ENV = "BUILDVERSIONING_DATABASE_URL"

# Cache variable
_cached_settings = None


def _merge_with_defaults(settings):
    # Deep merge with defaults so new keys are always present
    merged_settings = copy.deepcopy(DEFAULT_SETTINGS)
    for section, values in settings.items():
        if isinstance(values, dict) and section in merged_settings and isinstance(merged_settings[section], dict):
            merged_settings[section].update(values)
        else:
            merged_settings[section] = values
    return merged_settings


def load_settings(force=False, config_file=CONFIG_FILE):
    global _cached_settings

    if _cached_settings and not force:
        return _cached_settings

    if os.path.exists(config_file):
        logger.debug(f"Reading configuration file: {config_file}")
        with open(config_file, "r") as yaml_file:
            settings = yaml.safe_load(yaml_file) or {}
        settings = _merge_with_defaults(settings)
    else:
        settings = copy.deepcopy(DEFAULT_SETTINGS)
        os.makedirs(os.path.dirname(config_file), exist_ok=True)
        with open(config_file, "w") as yaml_file:
            yaml.dump(settings, yaml_file)
        logger.info(f"Default configuration written to {config_file}")

    for section in ("database", "versioning"):
        success, errors = verify_settings(section, settings.get(section))
        if not success:
            for error in errors:
                logger.warning(f"Invalid setting {error['path']}: {error['error']}")
            settings[section] = copy.deepcopy(DEFAULT_SETTINGS[section])

    database_url = os.environ.get(DATABASE_URL_ENV)
    if database_url:
        settings["database"]["uri"] = database_url

    _cached_settings = settings
    return settings


def verify_settings(section, data):
    if not isinstance(data, dict):
        return False, [{"path": section, "error": "Section must be a mapping."}]
    success = True
    errors = []
    if section == "versioning":
        timeout = data.get("lock_timeout_seconds")
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
            success = False
            errors.append({"path": "versioning/lock_timeout_seconds", "error": f"{timeout!r} is not a positive number."})
        limit = data.get("recent_activity_limit")
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            success = False
            errors.append({"path": "versioning/recent_activity_limit", "error": f"{limit!r} is not a positive integer."})
    elif section == "database":
        if not data.get("uri"):
            success = False
            errors.append({"path": "database/uri", "error": "Database URI is required."})
    return success, errors


def settings_to_flask_config(settings):
    """Translate the YAML sections into Flask config keys"""
    return {
        "SQLALCHEMY_DATABASE_URI": settings["database"]["uri"],
        "SQLALCHEMY_TRACK_MODIFICATIONS": False,
        "STAMP_MIGRATIONS": settings["database"].get("stamp_migrations", True),
        "LOCK_TIMEOUT_SECONDS": settings["versioning"]["lock_timeout_seconds"],
        "RECENT_ACTIVITY_LIMIT": settings["versioning"]["recent_activity_limit"],
        "LOG_LEVEL": settings["logging"].get("level", "INFO"),
        "LOG_FORMAT": settings["logging"].get("format", "console"),
    }

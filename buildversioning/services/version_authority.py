"""Issues build numbers.

Every call runs one database transaction on the Flask-SQLAlchemy session:

    lock -> read config -> read project -> increment -> format
         -> insert history -> update project -> commit

The lock is a single named exclusive lock shared by the whole deployment, so
the read-increment-write on ``project.build_number`` is serialized across
threads, processes and machines. Any failure rolls the transaction back,
which also releases the lock and leaves the build number unconsumed.

The session is committed or rolled back by each call; callers should not
have pending work of their own on it.
"""
from __future__ import annotations

import math
import time
from dataclasses import asdict, dataclass
from datetime import datetime

import structlog
from flask import current_app

from buildversioning.constants import DEFAULT_LOCK_TIMEOUT_SECONDS, LOCK_RESOURCE_NAME, MAX_NAME_LENGTH
from buildversioning.db import db
from buildversioning.exceptions import (
    BuildVersioningException,
    GenerationFailedException,
    InvalidArgumentException,
    LockAcquisitionFailedException,
    PolicyNotFoundException,
    PolicyProjectMismatchException,
    ProjectNotFoundException,
)
from buildversioning.metrics import lock_wait_seconds, track_generation
from buildversioning.models.versionhistory import VersionHistoryItem
from buildversioning.named_lock import LockStatus, named_lock_for, to_timeout_ms
from buildversioning.repositories.project_repository import ProjectRepository
from buildversioning.repositories.projectconfig_repository import ProjectConfigRepository
from buildversioning.repositories.versionhistory_repository import VersionHistoryRepository
from buildversioning.utils import is_blank, now_utc
from buildversioning.version_formatter import format_version

logger = structlog.get_logger("version_authority")


@dataclass(frozen=True)
class RequestContext:
    """Who asked for the version, recorded on the history row"""

    build_definition_name: str
    requested_by: str
    team_project_name: str


@dataclass(frozen=True)
class VersionResult:
    project_id: int
    project_name: str
    project_config_id: int
    project_config_name: str
    build_number: int
    date: datetime
    version: str
    product_version: str
    semantic_version: str
    semantic_version_suffix: str
    release_type: str
    generated_build_number_position: int
    generated_version_part1: int
    generated_version_part2: int
    generated_version_part3: int
    generated_version_part4: int
    product_version_part1: int
    product_version_part2: int
    product_version_part3: int
    product_version_part4: int
    build_definition_name: str
    requested_by: str
    team_project_name: str

    @classmethod
    def from_history_item(cls, item: VersionHistoryItem) -> "VersionResult":
        return cls(**{name: getattr(item, name) for name in cls.__dataclass_fields__})

    def to_dict(self):
        data = asdict(self)
        data["date"] = self.date.isoformat()
        return data


def _require_name(label, value):
    if is_blank(value):
        raise InvalidArgumentException(f"The {label} is null, empty or contains only whitespace characters.")
    if len(value) > MAX_NAME_LENGTH:
        raise InvalidArgumentException(f"The {label} is longer than {MAX_NAME_LENGTH} characters.")


def resolve_lock_timeout(lock_timeout_seconds, default=DEFAULT_LOCK_TIMEOUT_SECONDS):
    """Return the lock wait in seconds; unset or non-positive values use the default"""
    if lock_timeout_seconds is None:
        return default
    if isinstance(lock_timeout_seconds, bool) or not isinstance(lock_timeout_seconds, (int, float)):
        raise InvalidArgumentException(f"The lock timeout {lock_timeout_seconds!r} is not a number.")
    if not math.isfinite(lock_timeout_seconds):
        raise InvalidArgumentException(f"The lock timeout {lock_timeout_seconds!r} is not finite.")
    if lock_timeout_seconds <= 0:
        return default
    return lock_timeout_seconds


def validate_request(project_name, project_config_name, context, lock_timeout_seconds=None, default_timeout=None):
    """Check caller input before touching the store. Returns the lock timeout in seconds."""
    _require_name("project name", project_name)
    _require_name("project configuration name", project_config_name)
    if not isinstance(context, RequestContext):
        raise InvalidArgumentException("A request context is required.")
    _require_name("build definition name", context.build_definition_name)
    _require_name("requested by", context.requested_by)
    _require_name("team project name", context.team_project_name)
    if default_timeout is None:
        default_timeout = DEFAULT_LOCK_TIMEOUT_SECONDS
    return resolve_lock_timeout(lock_timeout_seconds, default=default_timeout)


def _acquire_generation_lock(connection, timeout_seconds):
    lock = named_lock_for(connection.dialect.name)
    started = time.monotonic()
    status = lock.acquire(connection, LOCK_RESOURCE_NAME, to_timeout_ms(timeout_seconds))
    lock_wait_seconds.observe(time.monotonic() - started)
    if not LockStatus.is_success(status):
        raise LockAcquisitionFailedException(LOCK_RESOURCE_NAME, status)
    return status


def _load_policy_and_project(project_name, project_config_name):
    project_config = ProjectConfigRepository.get_by_name(project_config_name, project_name=project_name)
    if project_config is None:
        raise PolicyNotFoundException(project_config_name)

    project = ProjectRepository.get_by_name(project_name)
    if project is None:
        raise ProjectNotFoundException(project_name)

    if project_config.project_id != project.id:
        raise PolicyProjectMismatchException(project_name, project_config_name)

    return project_config, project


def build_history_item(project, project_config, build_number, date, context):
    formatted = format_version(project_config, build_number)
    generated = formatted.generated_parts
    product = formatted.product_parts
    return VersionHistoryItem(
        project_id=project.id,
        project_name=project.name,
        project_config_id=project_config.id,
        project_config_name=project_config.name,
        date=date,
        build_number=build_number,
        version=formatted.version,
        semantic_version=formatted.semantic_version,
        semantic_version_suffix=formatted.semantic_version_suffix,
        product_version=formatted.product_version,
        release_type=formatted.release_type.value,
        build_definition_name=context.build_definition_name,
        requested_by=context.requested_by,
        team_project_name=context.team_project_name,
        generated_build_number_position=project_config.generated_build_number_position,
        generated_version_part1=generated[0],
        generated_version_part2=generated[1],
        generated_version_part3=generated[2],
        generated_version_part4=generated[3],
        product_version_part1=product[0],
        product_version_part2=product[1],
        product_version_part3=product[2],
        product_version_part4=product[3],
    )


@track_generation
def generate_version(project_name, project_config_name, context, lock_timeout_seconds=None):
    """Issue the next build number of a project under one of its configurations.

    Args:
        project_name: Exact name of the project.
        project_config_name: Name of the version policy owned by that project.
        context: RequestContext recorded on the history row.
        lock_timeout_seconds: Maximum wait for the generation lock. ``None``
            or a non-positive value uses ``LOCK_TIMEOUT_SECONDS`` from the app
            config (60 seconds by default).

    Returns:
        VersionResult describing the persisted history row.

    Raises:
        InvalidArgumentException: input rejected, nothing was touched.
        LockAcquisitionFailedException: timed out or lost the lock, safe to retry.
        PolicyNotFoundException, ProjectNotFoundException,
        PolicyProjectMismatchException, InvalidPolicyException,
        UnsupportedReleaseTypeException: rolled back, needs a data fix.
        GenerationFailedException: any other store fault, rolled back.
    """
    timeout_seconds = validate_request(
        project_name,
        project_config_name,
        context,
        lock_timeout_seconds,
        default_timeout=current_app.config.get("LOCK_TIMEOUT_SECONDS", DEFAULT_LOCK_TIMEOUT_SECONDS),
    )

    session = db.session
    try:
        # The lock must be the first statement of the transaction
        connection = session.connection()
        _acquire_generation_lock(connection, timeout_seconds)

        project_config, project = _load_policy_and_project(project_name, project_config_name)

        build_number = project.build_number + 1
        date = now_utc()

        item = build_history_item(project, project_config, build_number, date, context)
        VersionHistoryRepository.add(item)

        if ProjectRepository.update_build_number(project.id, build_number, date) != 1:
            raise GenerationFailedException(f"The project row {project.id} could not be updated.")

        result = VersionResult.from_history_item(item)
        session.commit()
    except BuildVersioningException:
        session.rollback()
        raise
    except Exception as e:
        session.rollback()
        raise GenerationFailedException(
            f"Version generation for {project_name}/{project_config_name} failed: {e}", cause=e
        ) from e

    logger.info(
        f"Generated build number {result.build_number}.",
        project=result.project_name,
        project_config=result.project_config_name,
        version=result.version,
    )
    return result

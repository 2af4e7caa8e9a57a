"""
Tests for the version generation transaction
"""
import math
from unittest.mock import MagicMock, patch

import pytest
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from buildversioning.constants import MAX_LOCK_TIMEOUT_MS
from buildversioning.db import db
from buildversioning.exceptions import (
    GenerationFailedException,
    InvalidArgumentException,
    InvalidPolicyException,
    LockAcquisitionFailedException,
    PolicyNotFoundException,
    PolicyProjectMismatchException,
    ProjectNotFoundException,
    UnsupportedReleaseTypeException,
)
from buildversioning.models import VersionHistoryItem
from buildversioning.named_lock import LockStatus
from buildversioning.repositories.project_repository import ProjectRepository
from buildversioning.repositories.projectconfig_repository import ProjectConfigRepository
from buildversioning.repositories.versionhistory_repository import VersionHistoryRepository
from buildversioning.services.version_authority import (
    RequestContext,
    generate_version,
    resolve_lock_timeout,
    validate_request,
)
from factories import TEST_PROJECT_CONFIG_NAME, TEST_PROJECT_NAME, add_project, add_project_config


def current_state():
    """(project build number, history row count) as committed"""
    db.session.remove()
    project = ProjectRepository.get_by_name(TEST_PROJECT_NAME)
    return project.build_number, VersionHistoryRepository.count()


def mock_lock(status):
    lock = MagicMock()
    lock.acquire.return_value = status
    return lock


class TestGenerateVersion:
    """Tests for successful generation"""

    def test_first_version(self, app, seeded, request_context):
        """First call issues build number 1 and records it"""
        with app.app_context():
            result = generate_version(TEST_PROJECT_NAME, TEST_PROJECT_CONFIG_NAME, request_context)

            assert result.build_number == 1
            assert result.version == "1.0.1.0"
            assert result.semantic_version == "1.0.1-pre"
            assert result.semantic_version_suffix == "-pre"
            assert result.product_version == "1.0.0.0"
            assert result.release_type == "PreRelease"
            assert result.generated_build_number_position == 3
            assert result.generated_version_part3 == 1
            assert result.project_id == seeded["project_id"]
            assert result.project_config_id == seeded["project_config_id"]
            assert result.build_definition_name == "TestBuildDefinition"
            assert result.requested_by == "TestUser"
            assert result.team_project_name == "TestTeamProject"

            assert current_state() == (1, 1)

    def test_history_row_matches_result(self, app, seeded, request_context):
        with app.app_context():
            result = generate_version(TEST_PROJECT_NAME, TEST_PROJECT_CONFIG_NAME, request_context)
            db.session.remove()

            item = VersionHistoryItem.query.one()
            assert item.build_number == result.build_number
            assert item.version == result.version
            assert item.semantic_version == result.semantic_version
            assert item.project_name == TEST_PROJECT_NAME
            assert item.project_config_name == TEST_PROJECT_CONFIG_NAME
            assert item.requested_by == "TestUser"

    def test_sequential_calls_are_gapless(self, app, seeded, request_context):
        with app.app_context():
            numbers = [
                generate_version(TEST_PROJECT_NAME, TEST_PROJECT_CONFIG_NAME, request_context).build_number
                for _ in range(10)
            ]

            assert numbers == list(range(1, 11))
            assert VersionHistoryRepository.get_build_numbers(TEST_PROJECT_NAME) == list(range(1, 11))
            assert current_state() == (10, 10)

    def test_continues_from_stored_build_number(self, app, request_context):
        with app.app_context():
            project = add_project(build_number=41)
            add_project_config(project.id)

            result = generate_version(TEST_PROJECT_NAME, TEST_PROJECT_CONFIG_NAME, request_context)

            assert result.build_number == 42
            assert result.version == "1.0.42.0"
            assert result.semantic_version == "1.0.42-pre"

    def test_project_date_updated(self, app, seeded, request_context):
        with app.app_context():
            before = ProjectRepository.get_by_name(TEST_PROJECT_NAME).date_build_number_updated
            result = generate_version(TEST_PROJECT_NAME, TEST_PROJECT_CONFIG_NAME, request_context)
            db.session.remove()

            after = ProjectRepository.get_by_name(TEST_PROJECT_NAME).date_build_number_updated
            assert after > before
            assert after.replace(tzinfo=None) == result.date.replace(tzinfo=None)

    def test_position_four_release_config(self, app, request_context):
        with app.app_context():
            project = add_project()
            add_project_config(
                project.id,
                name="ReleaseConfig",
                generated_build_number_position=4,
                generated_version_part2=2,
                release_type="release",
            )

            result = generate_version(TEST_PROJECT_NAME, "ReleaseConfig", request_context)

            assert result.version == "1.2.0.1"
            assert result.semantic_version == "1.2.0.1"
            assert result.release_type == "Release"

    def test_shared_config_name_across_projects(self, app, request_context):
        """Each project uses its own config when several share a config name"""
        with app.app_context():
            first = add_project(name="FirstProject")
            add_project_config(first.id, name="Main")
            second = add_project(name="SecondProject", build_number=9)
            add_project_config(second.id, name="Main", generated_version_part1=2)

            result = generate_version("SecondProject", "Main", request_context)
            assert result.build_number == 10
            assert result.version == "2.0.10.0"
            assert result.project_name == "SecondProject"

            assert generate_version("FirstProject", "Main", request_context).build_number == 1

    def test_history_survives_project_deletion(self, app, seeded, request_context):
        """History rows copy project data instead of referencing it"""
        with app.app_context():
            generate_version(TEST_PROJECT_NAME, TEST_PROJECT_CONFIG_NAME, request_context)

            db.session.delete(ProjectConfigRepository.get_by_id(seeded["project_config_id"]))
            db.session.delete(ProjectRepository.get_by_id(seeded["project_id"]))
            db.session.commit()

            assert VersionHistoryRepository.count() == 1
            assert VersionHistoryRepository.get_recent(1)[0].project_name == TEST_PROJECT_NAME

    def test_logs_issued_build_number(self, app, seeded, request_context, mock_logger):
        with app.app_context(), patch("buildversioning.services.version_authority.logger", mock_logger):
            generate_version(TEST_PROJECT_NAME, TEST_PROJECT_CONFIG_NAME, request_context)

        mock_logger.info.assert_called_once()
        assert "1" in mock_logger.info.call_args[0][0]


class TestValidation:
    """Tests for caller input checks done before any store work"""

    @pytest.mark.parametrize(
        "project_name, config_name",
        [("", TEST_PROJECT_CONFIG_NAME), ("   ", TEST_PROJECT_CONFIG_NAME), (None, TEST_PROJECT_CONFIG_NAME),
         (TEST_PROJECT_NAME, ""), (TEST_PROJECT_NAME, None)],
    )
    def test_blank_names_rejected(self, app, seeded, request_context, project_name, config_name):
        with app.app_context(), patch("buildversioning.services.version_authority.named_lock_for") as lock_for:
            with pytest.raises(InvalidArgumentException):
                generate_version(project_name, config_name, request_context)

            lock_for.assert_not_called()
            assert current_state() == (0, 0)

    @pytest.mark.parametrize(
        "context",
        [
            RequestContext("", "TestUser", "TestTeamProject"),
            RequestContext("TestBuildDefinition", " ", "TestTeamProject"),
            RequestContext("TestBuildDefinition", "TestUser", None),
            None,
        ],
    )
    def test_blank_context_rejected(self, app, seeded, context):
        with app.app_context():
            with pytest.raises(InvalidArgumentException):
                generate_version(TEST_PROJECT_NAME, TEST_PROJECT_CONFIG_NAME, context)

            assert current_state() == (0, 0)

    def test_overlong_name_rejected(self, request_context):
        with pytest.raises(InvalidArgumentException, match="longer than 100"):
            validate_request("x" * 101, TEST_PROJECT_CONFIG_NAME, request_context)

    @pytest.mark.parametrize("value, expected", [(None, 60), (0, 60), (-5, 60), (2.5, 2.5), (10, 10)])
    def test_lock_timeout_resolution(self, value, expected):
        """Unset or non-positive timeouts fall back to the default"""
        assert resolve_lock_timeout(value) == expected

    @pytest.mark.parametrize("value", ["30", True, math.nan, math.inf, [1]])
    def test_lock_timeout_must_be_numeric(self, value):
        with pytest.raises(InvalidArgumentException):
            resolve_lock_timeout(value)

    def test_default_timeout_from_app_config(self, app, seeded, request_context):
        app.config["LOCK_TIMEOUT_SECONDS"] = 5
        lock = mock_lock(LockStatus.GRANTED)
        with app.app_context(), patch("buildversioning.services.version_authority.named_lock_for", return_value=lock):
            generate_version(TEST_PROJECT_NAME, TEST_PROJECT_CONFIG_NAME, request_context)
            generate_version(TEST_PROJECT_NAME, TEST_PROJECT_CONFIG_NAME, request_context, lock_timeout_seconds=1.5)

        assert lock.acquire.call_args_list[0][0][1:] == ("BuildVersioning_GenerateVersion_Lock", 5000)
        assert lock.acquire.call_args_list[1][0][2] == 1500

    @pytest.mark.parametrize("seconds, expected_ms", [(0.0004, 1), (1e13, MAX_LOCK_TIMEOUT_MS)])
    def test_extreme_timeouts_stay_bounded(self, app, seeded, request_context, seconds, expected_ms):
        """Tiny waits never become zero and huge ones never overflow"""
        lock = mock_lock(LockStatus.GRANTED)
        with app.app_context(), patch("buildversioning.services.version_authority.named_lock_for", return_value=lock):
            generate_version(TEST_PROJECT_NAME, TEST_PROJECT_CONFIG_NAME, request_context, lock_timeout_seconds=seconds)

        assert lock.acquire.call_args[0][2] == expected_ms


class TestLookupFailures:
    """Tests for missing or mismatched rows"""

    def test_policy_not_found(self, app, seeded, request_context):
        with app.app_context():
            with pytest.raises(PolicyNotFoundException):
                generate_version(TEST_PROJECT_NAME, "NoSuchConfig", request_context)

            assert current_state() == (0, 0)

    def test_project_not_found(self, app, seeded, request_context):
        with app.app_context():
            with pytest.raises(ProjectNotFoundException):
                generate_version("NoSuchProject", TEST_PROJECT_CONFIG_NAME, request_context)

            assert current_state() == (0, 0)

    def test_project_name_is_case_sensitive(self, app, seeded, request_context):
        with app.app_context():
            with pytest.raises(ProjectNotFoundException):
                generate_version(TEST_PROJECT_NAME.lower(), TEST_PROJECT_CONFIG_NAME, request_context)

    def test_config_of_another_project(self, app, seeded, request_context):
        """A config name owned by a different project is rejected"""
        with app.app_context():
            other = add_project(name="OtherProject")
            add_project_config(other.id, name="OtherConfig")

            with pytest.raises(PolicyProjectMismatchException):
                generate_version(TEST_PROJECT_NAME, "OtherConfig", request_context)

            assert current_state() == (0, 0)
            assert ProjectRepository.get_by_name("OtherProject").build_number == 0


class TestInvalidConfiguration:
    """Tests for malformed policies discovered inside the transaction"""

    def test_build_number_position_five(self, app, request_context):
        with app.app_context():
            project = add_project()
            add_project_config(project.id, generated_build_number_position=5)

            with pytest.raises(InvalidPolicyException):
                generate_version(TEST_PROJECT_NAME, TEST_PROJECT_CONFIG_NAME, request_context)

            assert current_state() == (0, 0)

    def test_unsupported_release_type(self, app, request_context):
        with app.app_context():
            project = add_project()
            add_project_config(project.id, release_type="Beta")

            with pytest.raises(UnsupportedReleaseTypeException):
                generate_version(TEST_PROJECT_NAME, TEST_PROJECT_CONFIG_NAME, request_context)

            assert current_state() == (0, 0)


class TestAtomicity:
    """Failures roll back every write and consume no build number"""

    def test_project_update_failure_discards_history_insert(self, app, seeded, request_context):
        with app.app_context():
            with patch.object(ProjectRepository, "update_build_number", side_effect=SQLAlchemyError("disk full")):
                with pytest.raises(GenerationFailedException) as exc_info:
                    generate_version(TEST_PROJECT_NAME, TEST_PROJECT_CONFIG_NAME, request_context)

            assert isinstance(exc_info.value.cause, SQLAlchemyError)
            assert isinstance(exc_info.value.__cause__, SQLAlchemyError)
            assert exc_info.value.retry_safe
            assert current_state() == (0, 0)

            # Nothing was consumed by the failed call
            result = generate_version(TEST_PROJECT_NAME, TEST_PROJECT_CONFIG_NAME, request_context)
            assert result.build_number == 1

    def test_history_insert_failure(self, app, seeded, request_context):
        error = OperationalError("INSERT INTO version_history", {}, Exception("I/O error"))
        with app.app_context():
            with patch.object(VersionHistoryRepository, "add", side_effect=error):
                with pytest.raises(GenerationFailedException):
                    generate_version(TEST_PROJECT_NAME, TEST_PROJECT_CONFIG_NAME, request_context)

            assert current_state() == (0, 0)

    def test_project_row_vanished(self, app, seeded, request_context):
        """Zero rows matched by the keyed update is a failure"""
        with app.app_context():
            with patch.object(ProjectRepository, "update_build_number", return_value=0):
                with pytest.raises(GenerationFailedException, match="could not be updated"):
                    generate_version(TEST_PROJECT_NAME, TEST_PROJECT_CONFIG_NAME, request_context)

            assert current_state() == (0, 0)


class TestLockFailures:
    """Tests for lock statuses surfaced to the caller"""

    @pytest.mark.parametrize(
        "status", [LockStatus.TIMEOUT, LockStatus.CANCELLED, LockStatus.DEADLOCK_VICTIM, LockStatus.ERROR]
    )
    def test_negative_status_aborts(self, app, seeded, request_context, status):
        with app.app_context(), patch(
            "buildversioning.services.version_authority.named_lock_for", return_value=mock_lock(status)
        ):
            with pytest.raises(LockAcquisitionFailedException) as exc_info:
                generate_version(TEST_PROJECT_NAME, TEST_PROJECT_CONFIG_NAME, request_context)

            assert exc_info.value.status == status
            assert exc_info.value.retry_safe
            assert current_state() == (0, 0)

    def test_granted_after_wait_proceeds(self, app, seeded, request_context):
        with app.app_context(), patch(
            "buildversioning.services.version_authority.named_lock_for",
            return_value=mock_lock(LockStatus.GRANTED_AFTER_WAIT),
        ):
            assert generate_version(TEST_PROJECT_NAME, TEST_PROJECT_CONFIG_NAME, request_context).build_number == 1

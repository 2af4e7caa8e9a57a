"""
Pytest fixtures and configuration for BuildVersioning tests
"""
import copy

import pytest
from unittest.mock import MagicMock

from buildversioning.app import create_app
from buildversioning.constants import DEFAULT_SETTINGS
from buildversioning.db import db
from buildversioning.services.version_authority import RequestContext
from factories import add_project, add_project_config


def make_settings(database_uri):
    settings = copy.deepcopy(DEFAULT_SETTINGS)
    settings["database"]["uri"] = database_uri
    settings["database"]["stamp_migrations"] = False
    return settings


@pytest.fixture
def database_uri(tmp_path):
    """File database so several connections (and threads) share it"""
    return "sqlite:///" + str(tmp_path / "buildversions.db")


@pytest.fixture
def app(database_uri):
    _app = create_app(settings=make_settings(database_uri), config={"TESTING": True})
    yield _app
    with _app.app_context():
        db.session.remove()
        db.engine.dispose()


@pytest.fixture
def client(app):
    with app.test_client() as client:
        yield client


@pytest.fixture
def seeded(app):
    """TestProject at build number 0 with a position-3 PreRelease config"""
    with app.app_context():
        project = add_project()
        config = add_project_config(project.id)
        ids = {"project_id": project.id, "project_config_id": config.id}
        db.session.remove()
    return ids


@pytest.fixture
def request_context():
    return RequestContext(
        build_definition_name="TestBuildDefinition",
        requested_by="TestUser",
        team_project_name="TestTeamProject",
    )


@pytest.fixture
def mock_logger():
    """Create a mock logger for testing"""
    logger = MagicMock()
    logger.info = MagicMock()
    logger.error = MagicMock()
    logger.warning = MagicMock()
    logger.debug = MagicMock()
    return logger

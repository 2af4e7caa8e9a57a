"""
Version Routes - generate build versions and read the version history
"""

import socket

from flask import Blueprint, current_app, request
from sqlalchemy import text

from buildversioning.api_responses import (
    ErrorCode,
    error_response,
    handle_api_errors,
    paginated_response,
    success_response,
)
from buildversioning.constants import BUILD_VERSION
from buildversioning.db import db
from buildversioning.repositories.versionhistory_repository import VersionHistoryRepository
from buildversioning.services.version_authority import RequestContext, generate_version
from buildversioning.utils import now_utc

versions_bp = Blueprint("versions", __name__, url_prefix="/api")

MAX_PAGE_SIZE = 200


def _positive_int_arg(name, default, maximum=None):
    raw = request.args.get(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"Query parameter '{name}' must be an integer.")
    if value < 1:
        raise ValueError(f"Query parameter '{name}' must be at least 1.")
    if maximum is not None:
        value = min(value, maximum)
    return value


@versions_bp.route("/versions", methods=["POST"])
@handle_api_errors
def create_version():
    """
    Issue the next build number.

    JSON body: build_definition_name, project_name, project_config_name,
    requested_by, team_project_name and optional lock_timeout_seconds. The
    result uses the same snake_case keys.
    """
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return error_response(ErrorCode.VALIDATION_ERROR, message="A JSON object body is required.")

    context = RequestContext(
        build_definition_name=payload.get("build_definition_name"),
        requested_by=payload.get("requested_by"),
        team_project_name=payload.get("team_project_name"),
    )
    result = generate_version(
        payload.get("project_name"),
        payload.get("project_config_name"),
        context,
        lock_timeout_seconds=payload.get("lock_timeout_seconds"),
    )
    return success_response(result.to_dict(), status_code=201)


@versions_bp.route("/versions/recent", methods=["GET"])
@handle_api_errors
def recent_versions():
    """Most recent versions across all projects"""
    limit = _positive_int_arg("limit", current_app.config.get("RECENT_ACTIVITY_LIMIT", 10), MAX_PAGE_SIZE)
    items = VersionHistoryRepository.get_recent(limit)
    return success_response([item.to_dict() for item in items])


@versions_bp.route("/projects/<project_name>/versions", methods=["GET"])
@handle_api_errors
def project_versions(project_name):
    page = _positive_int_arg("page", 1)
    per_page = _positive_int_arg("per_page", 50, MAX_PAGE_SIZE)
    items, total = VersionHistoryRepository.get_paginated_for_project(project_name, page, per_page)
    return paginated_response([item.to_dict() for item in items], total, page, per_page)


@versions_bp.route("/health", methods=["GET"])
def health_check_api():
    """Health check endpoint for monitoring"""
    checks = {
        "timestamp": now_utc().isoformat(),
        "version": BUILD_VERSION,
        "hostname": socket.gethostname(),
        "database": "unknown",
    }
    try:
        db.session.execute(text("SELECT 1"))
        checks["database"] = "healthy"
    except Exception as e:
        current_app.logger.error(f"Health check database failure: {e}")
        checks["database"] = "unhealthy"
        return error_response(ErrorCode.INTERNAL_ERROR, message="Database unreachable", details=checks,
                              status_code=503)
    finally:
        db.session.rollback()
    return success_response(checks)

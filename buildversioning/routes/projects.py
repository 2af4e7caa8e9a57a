"""
Project Routes - read-only view of projects and their version policies
"""

from flask import Blueprint

from buildversioning.api_responses import ErrorCode, error_response, handle_api_errors, success_response
from buildversioning.repositories.project_repository import ProjectRepository
from buildversioning.repositories.projectconfig_repository import ProjectConfigRepository

projects_bp = Blueprint("projects", __name__, url_prefix="/api")


def _project_with_configs(project):
    data = project.to_dict()
    data["configs"] = [config.to_dict() for config in ProjectConfigRepository.get_for_project(project.id)]
    return data


@projects_bp.route("/projects", methods=["GET"])
@handle_api_errors
def list_projects():
    return success_response([project.to_dict() for project in ProjectRepository.get_all()])


@projects_bp.route("/projects/<project_name>", methods=["GET"])
@handle_api_errors
def get_project(project_name):
    """Project state (last issued build number) with its configurations"""
    project = ProjectRepository.get_by_name(project_name)
    if project is None:
        return error_response(ErrorCode.NOT_FOUND, message=f"The project '{project_name}' does not exist.",
                              status_code=404)
    return success_response(_project_with_configs(project))

"""
BuildVersioning - Custom Exceptions and Exception Handlers
"""
import structlog
from flask import jsonify
from werkzeug.exceptions import HTTPException

logger = structlog.get_logger('exceptions')


class BuildVersioningException(Exception):
    """Base exception for BuildVersioning"""
    status_code = 400
    retry_safe = False

    def __init__(self, message: str, code: str = "BUILDVERSIONING_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)

    def to_dict(self):
        return {
            'success': False,
            'code': self.code,
            'message': self.message,
            'retry_safe': self.retry_safe,
        }


class InvalidArgumentException(BuildVersioningException):
    """Blank or malformed caller input, raised before any store work"""
    def __init__(self, message: str):
        super().__init__(message, code="INVALID_ARGUMENT")
        logger.warning(f"Invalid argument: {message}")


class ProjectNotFoundException(BuildVersioningException):
    status_code = 404

    def __init__(self, project_name: str):
        super().__init__(f"The project '{project_name}' does not exist.", code="PROJECT_NOT_FOUND")
        self.project_name = project_name
        logger.warning(f"Project not found: {project_name}")


class PolicyNotFoundException(BuildVersioningException):
    status_code = 404

    def __init__(self, project_config_name: str):
        super().__init__(
            f"The project configuration '{project_config_name}' does not exist.", code="POLICY_NOT_FOUND"
        )
        self.project_config_name = project_config_name
        logger.warning(f"Project configuration not found: {project_config_name}")


class PolicyProjectMismatchException(BuildVersioningException):
    """The named project exists but does not own the named configuration"""
    status_code = 409

    def __init__(self, project_name: str, project_config_name: str):
        super().__init__(
            f"The project '{project_name}' exists but is not the parent of the project configuration "
            f"'{project_config_name}'.",
            code="POLICY_PROJECT_MISMATCH",
        )
        logger.error(f"Policy/project mismatch: {project_name} / {project_config_name}")


class LockAcquisitionFailedException(BuildVersioningException):
    status_code = 503
    retry_safe = True

    def __init__(self, resource_name: str, status: int):
        super().__init__(
            f"Failed to acquire the lock '{resource_name}'. The return code was {status}.",
            code="LOCK_ACQUISITION_FAILED",
        )
        self.resource_name = resource_name
        self.status = status
        logger.warning(f"Lock acquisition failed: {resource_name} (status {status})")


class InvalidPolicyException(BuildVersioningException):
    """Malformed configuration data, needs an administrative fix"""
    status_code = 422

    def __init__(self, message: str):
        super().__init__(message, code="INVALID_POLICY")
        logger.error(f"Invalid policy: {message}")


class UnsupportedReleaseTypeException(BuildVersioningException):
    status_code = 422

    def __init__(self, release_type):
        super().__init__(f"The configured release type '{release_type}' is not supported.",
                         code="UNSUPPORTED_RELEASE_TYPE")
        self.release_type = release_type
        logger.error(f"Unsupported release type: {release_type}")


class GenerationFailedException(BuildVersioningException):
    """Any other store or transport fault inside the generation transaction"""
    status_code = 500
    retry_safe = True

    def __init__(self, message: str, cause: Exception = None):
        super().__init__(message, code="GENERATION_FAILED")
        self.cause = cause
        logger.error(f"Version generation failed: {message}")


def register_exception_handlers(app):
    """Register exception handlers with Flask app"""

    @app.errorhandler(HTTPException)
    def handle_http_exception(e):
        """Handle HTTP exceptions"""
        return jsonify({
            'success': False,
            'code': e.name.upper().replace(' ', '_'),
            'message': e.description
        }), e.code

    @app.errorhandler(BuildVersioningException)
    def handle_buildversioning_exception(e):
        """Each subclass carries its own HTTP status"""
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(Exception)
    def handle_generic_exception(e):
        """Handle all other exceptions"""
        logger.error(f"Unhandled exception: {e}", exc_info=True)
        return jsonify({
            'success': False,
            'code': 'INTERNAL_ERROR',
            'message': 'An unexpected error occurred'
        }), 500

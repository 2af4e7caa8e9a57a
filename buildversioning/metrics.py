from prometheus_client import Counter, Histogram, Gauge, generate_latest, CONTENT_TYPE_LATEST
from flask import Response, request
import time
from functools import wraps

# Version generation metrics
versions_generated_total = Counter(
    "buildversioning_versions_generated_total", "Build numbers issued", ["release_type"]
)

version_generation_failures_total = Counter(
    "buildversioning_version_generation_failures_total", "Failed version generation transactions", ["code"]
)

version_generation_duration_seconds = Histogram(
    "buildversioning_version_generation_duration_seconds", "Generation transaction duration", ["outcome"]
)

lock_wait_seconds = Histogram("buildversioning_lock_wait_seconds", "Time spent waiting for the generation lock")

# Database Metrics
db_projects_total = Gauge("buildversioning_projects_total", "Total number of projects")
db_version_history_total = Gauge("buildversioning_version_history_total", "Total number of history items")

# API Metrics
api_request_duration_seconds = Histogram(
    "buildversioning_api_request_duration_seconds", "API request duration", ["endpoint", "method"]
)

api_requests_total = Counter(
    "buildversioning_api_requests_total", "Total API requests", ["endpoint", "method", "status_code"]
)


def init_metrics(app):
    @app.route("/metrics")
    def metrics():
        update_db_metrics()
        return Response(generate_latest(), mimetype=CONTENT_TYPE_LATEST)

    @app.before_request
    def before_request():
        request.start_time = time.time()

    @app.after_request
    def after_request(response):
        duration = time.time() - getattr(request, "start_time", time.time())
        api_request_duration_seconds.labels(endpoint=request.endpoint or "unknown", method=request.method).observe(
            duration
        )
        api_requests_total.labels(
            endpoint=request.endpoint or "unknown", method=request.method, status_code=response.status_code
        ).inc()
        return response

    app.logger.info("Prometheus metrics initialized at /metrics")


def update_db_metrics():
    """Refresh row count gauges"""
    from buildversioning.repositories.project_repository import ProjectRepository
    from buildversioning.repositories.versionhistory_repository import VersionHistoryRepository

    db_projects_total.set(ProjectRepository.count())
    db_version_history_total.set(VersionHistoryRepository.count())


def track_generation(func):
    """Record duration and outcome of a version generation call"""

    @wraps(func)
    def wrapper(*args, **kwargs):
        start_time = time.time()
        outcome = "success"
        try:
            result = func(*args, **kwargs)
            versions_generated_total.labels(release_type=result.release_type).inc()
            return result
        except Exception as e:
            outcome = "error"
            version_generation_failures_total.labels(code=getattr(e, "code", type(e).__name__)).inc()
            raise
        finally:
            version_generation_duration_seconds.labels(outcome=outcome).observe(time.time() - start_time)

    return wrapper

"""
Innovation Portal - HTTP Middleware

RequestContextMiddleware tags each request with an id, the project it
touches and the workflow it belongs to, writes one completion line, and
records state-changing admin calls as audit events.
"""

import time
from typing import Callable, Optional
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from app.core.config import settings
from app.core.logging_config import (
    logger,
    set_request_id,
    set_user_id,
    set_project_id,
    generate_request_id,
)
from app.core.types import is_valid_uuid


# First match wins, so the admin sub-areas come before /admin
WORKFLOW_PREFIXES = (
    ("/admin/applications", "verification"),
    ("/admin/requests", "requests"),
    ("/admin", "admin"),
    ("/verification", "verification"),
    ("/projects", "collaboration"),
    ("/requests", "requests"),
    ("/notifications", "notifications"),
    ("/auth", "auth"),
)

UNLOGGED_PREFIXES = ("/docs", "/redoc", "/openapi.json", "/favicon.ico")
MUTATING_METHODS = {"POST", "PUT", "PATCH", "DELETE"}
SLOW_REQUEST_MS = 1000

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}


def api_path(path: str) -> str:
    """/api/v1/projects/x -> /projects/x; paths outside the API are returned as-is"""
    mount = f"/api/{settings.API_VERSION}"
    if path == mount or path.startswith(mount + "/"):
        return path[len(mount):] or "/"
    return path


def workflow_for(path: str) -> Optional[str]:
    relative = api_path(path)
    for prefix, workflow in WORKFLOW_PREFIXES:
        if relative == prefix or relative.startswith(prefix + "/"):
            return workflow
    return None


def is_unlogged(path: str) -> bool:
    """Root, health checks and API docs"""
    return path == "/" or api_path(path).startswith("/health") or path.startswith(UNLOGGED_PREFIXES)


def project_id_from(path: str) -> str:
    parts = api_path(path).split("/")
    if len(parts) > 2 and parts[1] == "projects" and is_valid_uuid(parts[2]):
        return parts[2]
    return ""


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Request id, workflow tagging, completion and admin audit logging, security headers"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path, method = request.url.path, request.method
        request_id = request.headers.get("X-Request-ID") or generate_request_id()
        workflow = workflow_for(path)

        set_request_id(request_id)
        set_project_id(project_id_from(path))
        request.state.request_id = request_id
        request.state.workflow = workflow

        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            logger.error(
                f"{method} {path} failed after {(time.perf_counter() - start) * 1000:.2f}ms",
                exc_info=True,
                extra={"event_type": "http_request_error", "workflow": workflow},
            )
            raise
        else:
            duration_ms = (time.perf_counter() - start) * 1000
            response.headers["X-Request-ID"] = request_id
            response.headers["X-Response-Time"] = f"{duration_ms:.2f}ms"
            response.headers.update(SECURITY_HEADERS)

            if not is_unlogged(path):
                # Set by the auth dependency; request.state is shared with the endpoint
                actor_id = getattr(request.state, "user_id", None)
                self._log_completion(method, path, response.status_code, duration_ms, workflow, actor_id)
            return response
        finally:
            set_request_id("")
            set_user_id("")
            set_project_id("")

    def _log_completion(
        self,
        method: str,
        path: str,
        status_code: int,
        duration_ms: float,
        workflow: Optional[str],
        actor_id: Optional[str]
    ) -> None:
        logger.log_request(method, path, status_code, duration_ms, workflow=workflow, actor_id=actor_id)

        if duration_ms > SLOW_REQUEST_MS:
            logger.warning(
                f"Slow {workflow or 'http'} request: {method} {path} took {duration_ms:.2f}ms",
                extra={"event_type": "slow_request", "workflow": workflow, "duration_ms": duration_ms},
            )

        relative = api_path(path)
        if method in MUTATING_METHODS and relative.startswith("/admin/"):
            logger.log_workflow_event(
                "admin_audit", f"{method} {relative}",
                actor_id=actor_id,
                status_code=status_code,
                area=workflow,
            )


__all__ = [
    "RequestContextMiddleware",
    "api_path",
    "workflow_for",
    "is_unlogged",
    "project_id_from",
    "SECURITY_HEADERS",
]

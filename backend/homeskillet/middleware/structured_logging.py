# backend/homeskillet/middleware/structured_logging.py
from __future__ import annotations

import json
import logging
import time
from typing import Any, Callable, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

log = logging.getLogger("homeskillet.request")


def _level_for(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


def _route_template(request: Request) -> Optional[str]:
    # "/api/v1/tasks/{task_id}/status" groups better than the concrete path
    route = request.scope.get("route")
    return getattr(route, "path", None)


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    """
    Emits one `http_request` line per request with
    request_id, user_id, method, path, route, status_code and latency_ms.

    user_id is whatever the auth dependency left on request.state; it is
    absent for public routes and for requests rejected before auth ran.
    4xx lines are WARNING and 5xx lines ERROR so failures stand out.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        t0 = time.perf_counter()

        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            payload: dict[str, Any] = {
                "event": "http_request",
                "request_id": getattr(request.state, "request_id", None),
                "user_id": getattr(request.state, "user_id", None),
                "method": request.method,
                "path": request.url.path,
                "route": _route_template(request),
                "query": str(request.url.query) if request.url.query else "",
                "status_code": status_code,
                "latency_ms": int((time.perf_counter() - t0) * 1000),
            }
            log.log(_level_for(status_code), json.dumps(payload, default=str))

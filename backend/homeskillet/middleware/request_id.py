# backend/homeskillet/middleware/request_id.py
from __future__ import annotations

import re
import uuid
from contextvars import ContextVar
from typing import Callable, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

HEADER = "X-Request-ID"

# client-supplied ids end up in every log line; keep them short and boring
_SAFE_ID = re.compile(r"^[A-Za-z0-9._:\-]{1,128}$")

request_id_ctx: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def get_request_id() -> Optional[str]:
    return request_id_ctx.get()


def _incoming_id(request: Request) -> Optional[str]:
    # starlette headers are case-insensitive, so X-Request-Id matches too
    rid = (request.headers.get(HEADER) or "").strip()
    return rid if _SAFE_ID.match(rid) else None


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Tags every request with an id and echoes it back as X-Request-ID.

    A well-formed incoming id is reused, anything else is replaced with a UUID4.
    The id lives in a ContextVar for the JSON log formatter and on
    request.state for the access log line.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        rid = _incoming_id(request) or str(uuid.uuid4())

        request.state.request_id = rid
        token = request_id_ctx.set(rid)
        try:
            resp = await call_next(request)
        finally:
            request_id_ctx.reset(token)
        resp.headers[HEADER] = rid
        return resp

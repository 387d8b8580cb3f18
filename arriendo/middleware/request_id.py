# arriendo/middleware/request_id.py
from __future__ import annotations

import re
import uuid
from contextvars import ContextVar
from typing import Callable, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"

# echoed into logs and response headers, so only short opaque tokens pass
_SAFE_ID = re.compile(r"^[A-Za-z0-9._:\-]{8,64}$")

request_id_ctx: ContextVar[Optional[str]] = ContextVar("arriendo_request_id", default=None)


def get_request_id() -> Optional[str]:
    return request_id_ctx.get()


def accept_request_id(raw: Optional[str]) -> str:
    """A caller-supplied id when it is well formed, otherwise a fresh one."""
    candidate = (raw or "").strip()
    if _SAFE_ID.match(candidate):
        return candidate
    return uuid.uuid4().hex


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Correlates one API call across the access log, service logs and the
    client: the id lands in the ContextVar read by JsonFormatter, on
    request.state for the access log line, and in the X-Request-ID response
    header (error responses included).
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        rid = accept_request_id(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = rid

        token = request_id_ctx.set(rid)
        try:
            response = await call_next(request)
        finally:
            request_id_ctx.reset(token)
        response.headers[REQUEST_ID_HEADER] = rid
        return response

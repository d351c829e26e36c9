"""
Request correlation IDs.

Every request carries an ID that is echoed in the X-Request-ID response
header and stamped on each log record emitted while the request is handled,
so a restore can be traced from the HTTP call to its audit and cache logs.
"""

import re
import uuid
from contextvars import ContextVar
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

request_id_var: ContextVar[str] = ContextVar("request_id", default="")

# Client supplied IDs are reused only when they look like an opaque token
_VALID_REQUEST_ID = re.compile(r"^[A-Za-z0-9._:-]{1,64}$")


def resolve_request_id(header_value: str | None) -> str:
    if header_value and _VALID_REQUEST_ID.match(header_value):
        return header_value
    return uuid.uuid4().hex


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    HEADER_NAME = "X-Request-ID"

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = resolve_request_id(request.headers.get(self.HEADER_NAME))
        token = request_id_var.set(request_id)
        try:
            request.state.request_id = request_id
            response = await call_next(request)
        finally:
            request_id_var.reset(token)
        response.headers[self.HEADER_NAME] = request_id
        return response


class CorrelationIdFilter:
    """Logging filter adding `request_id` ("-" outside a request) to records."""

    def filter(self, record) -> bool:
        record.request_id = request_id_var.get() or "-"
        return True

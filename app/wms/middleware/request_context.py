import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from app.wms.core.context import build_request_context

TRACE_HEADER = "X-Trace-ID"
ACTOR_HEADER = "X-User-ID"


def _header(request: Request, name: str) -> str | None:
    return (request.headers.get(name) or "").strip() or None


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Attach the trace id and the acting user, as sent by the upstream gateway, to the request.

    The trace id is generated when the caller sends none and is echoed back on
    every response.
    """

    async def dispatch(self, request: Request, call_next):
        trace_id = _header(request, TRACE_HEADER) or str(uuid.uuid4())
        user_id = _header(request, ACTOR_HEADER)
        request.state.trace_id = trace_id
        request.state.user_id = user_id
        request.state.context = build_request_context(user_id=user_id, trace_id=trace_id)

        response: Response = await call_next(request)
        response.headers[TRACE_HEADER] = trace_id
        return response

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from engineer_assistant.observability.metrics import HTTP_REQUESTS_TOTAL
from engineer_assistant.utils.request_context import (
    clear_request_context,
    new_request_id,
    set_request_id,
)


class RequestIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        rid = request.headers.get("X-Request-Id") or new_request_id()

        # contextvar for log records, request.state for the exception handlers
        set_request_id(rid)
        request.state.request_id = rid

        try:
            response = await call_next(request)
        finally:
            clear_request_context()

        # route template keeps the label set bounded (no session ids)
        route = request.scope.get("route")
        path = getattr(route, "path", None) or "unmatched"
        HTTP_REQUESTS_TOTAL.labels(path=path, method=request.method, status=str(response.status_code)).inc()

        response.headers["X-Request-Id"] = rid
        return response

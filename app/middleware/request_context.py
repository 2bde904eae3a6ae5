import time
import uuid

from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.context import bind_request, unbind_request

REQUEST_ID_HEADER = "X-Request-ID"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Makes the Request reachable from services and tags log lines with a request id."""

    async def dispatch(self, request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        token = bind_request(request)
        started = time.perf_counter()
        try:
            with logger.contextualize(request_id=request_id):
                response = await call_next(request)
                elapsed_ms = (time.perf_counter() - started) * 1000
                logger.debug(
                    f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.0f} ms)"
                )
        finally:
            unbind_request(token)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response

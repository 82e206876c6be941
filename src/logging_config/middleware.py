"""Request Tracing Middleware.

ASGI middleware binding a request id (and the caller's editing-session id,
when sent) to every log record of a request.
"""

import logging
import time
from typing import Optional

from src.logging_config.config import DEFAULT_LOGGING_CONFIG, LoggingConfig
from src.logging_config.context import LogContext, generate_request_id

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
SESSION_ID_HEADER = "X-Screener-Session"


class RequestTracingMiddleware:
    """Propagates X-Request-ID and logs each request with its timing.

    Usage:
        app.add_middleware(RequestTracingMiddleware)
    """

    def __init__(self, app, config: Optional[LoggingConfig] = None):
        self.app = app
        self.config = config or DEFAULT_LOGGING_CONFIG

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = dict(scope.get("headers", []))
        request_id = _header(headers, REQUEST_ID_HEADER) or generate_request_id()
        session_id = _header(headers, SESSION_ID_HEADER) or ""
        method = scope.get("method", "")
        path = scope.get("path", "")
        should_log = path not in self.config.exclude_paths
        start = time.perf_counter()

        with LogContext(request_id=request_id, session_id=session_id):
            status_code = 500

            async def send_with_request_id(message):
                nonlocal status_code
                if message["type"] == "http.response.start":
                    status_code = message.get("status", 500)
                    response_headers = list(message.get("headers", []))
                    response_headers.append(
                        (REQUEST_ID_HEADER.lower().encode(), request_id.encode())
                    )
                    message = {**message, "headers": response_headers}
                await send(message)

            try:
                await self.app(scope, receive, send_with_request_id)
            finally:
                if should_log:
                    duration_ms = round((time.perf_counter() - start) * 1000, 2)
                    logger.log(
                        logging.WARNING if status_code >= 400 else logging.INFO,
                        f"{method} {path} -> {status_code}",
                        extra={
                            "method": method,
                            "path": path,
                            "status_code": status_code,
                            "duration_ms": duration_ms,
                        },
                    )


def _header(headers: dict, name: str) -> Optional[str]:
    value = headers.get(name.lower().encode())
    if value:
        return value.decode("utf-8", errors="replace")
    return None

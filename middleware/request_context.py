"""
Request context middleware.

Assigns a request id to every request (honouring an incoming X-Request-ID), exposes it to the
logging context, logs method/path/status, and strips e-mail addresses from what it logs: the
starter-pack lookup takes the viewer's e-mail as a query parameter.
"""

import logging
import re
import time
from typing import Any, Dict, Optional
from uuid import uuid4

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from core.logging_config import set_request_id

logger = logging.getLogger("request")

EMAIL_PATTERN = re.compile(r"\b[A-Za-z0-9._%+-]+(@|%40)[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b", re.IGNORECASE)
REDACTED = "[REDACTED]"


def redact_emails(text: str) -> str:
    return EMAIL_PATTERN.sub(REDACTED, text or "")


class RequestContextMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, config: Optional[Dict[str, Any]] = None):
        super().__init__(app)
        self.config = config or {}
        # Paths that are not logged at all
        self.exclude_paths = self.config.get("exclude_paths", [])

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("x-request-id") or str(uuid4())
        set_request_id(request_id)
        request.state.request_id = request_id

        started = time.perf_counter()
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id

        if not any(request.url.path.startswith(path) for path in self.exclude_paths):
            path = request.url.path
            if request.url.query:
                path = f"{path}?{redact_emails(request.url.query)}"
            logger.info("request_completed", extra={
                "method": request.method,
                "path": redact_emails(path),
                "status_code": response.status_code,
                "duration_ms": round((time.perf_counter() - started) * 1000),
            })
        return response


def create_request_context_config() -> Dict[str, Any]:
    return {
        "exclude_paths": [
            "/health",
            "/docs",
            "/openapi.json",
        ],
    }

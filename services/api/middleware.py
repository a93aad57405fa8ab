"""Request middleware for the automation API: tags each request with an X-Correlation-ID and, on /workflows/{id} routes, the workflow id, then logs its timing."""

import re
import time
import uuid
import logging
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from shared.logging_config import set_correlation_id, set_workflow_id

WORKFLOW_PATH = re.compile(r"^/workflows/([^/]+)")


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Binds the correlation ID and, for workflow routes, the workflow ID to request logs"""

    async def dispatch(self, request: Request, call_next):
        correlation_id = request.headers.get('X-Correlation-ID', str(uuid.uuid4()))
        set_correlation_id(correlation_id)

        match = WORKFLOW_PATH.match(request.url.path)
        set_workflow_id(match.group(1) if match else "")

        started = time.perf_counter()
        response = await call_next(request)
        response.headers['X-Correlation-ID'] = correlation_id

        logging.info(
            "Request handled",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": round((time.perf_counter() - started) * 1000, 2)
            }
        )

        return response

"""
ASGI middleware for the Math Solver AI server
Includes: Request Tracing, CORS
"""

import itertools
import time

from fastapi import Request
from fastapi.responses import Response
from starlette.middleware.base import BaseHTTPMiddleware

from errors import CORS_HEADERS
from logging_config import request_id_var, get_logger

logger = get_logger("mathsolver.http")


# =====================================================
# REQUEST TRACING MIDDLEWARE
# =====================================================

class RequestTracingMiddleware(BaseHTTPMiddleware):
    """
    Numbers every request for log correlation and logs one line per
    completed request: method, path, status and elapsed milliseconds.
    """

    def __init__(self, app):
        super().__init__(app)
        self._counter = itertools.count(1)

    async def dispatch(self, request: Request, call_next):
        request_id = next(self._counter)
        token = request_id_var.set(request_id)

        start_time = time.perf_counter()
        try:
            response = await call_next(request)

            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.info(
                f"{request.method} {request.url.path} -> {response.status_code} ({duration_ms:.0f}ms)",
                extra={
                    "event": "request_completed",
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": response.status_code,
                    "duration_ms": round(duration_ms, 2),
                }
            )
            return response

        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                f"{request.method} {request.url.path} -> 500 ({duration_ms:.0f}ms) failed: {e}",
                extra={
                    "event": "request_failed",
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": 500,
                    "duration_ms": round(duration_ms, 2),
                },
                exc_info=True
            )
            raise

        finally:
            request_id_var.reset(token)


# =====================================================
# CORS
# =====================================================

class CORSMiddleware(BaseHTTPMiddleware):
    """
    Open CORS policy: every OPTIONS is answered as a preflight with 204 and
    no body, every JSON response allows any origin.
    """

    PREFLIGHT_HEADERS = {
        **CORS_HEADERS,
        "Access-Control-Allow-Methods": "POST, GET, OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type",
    }

    async def dispatch(self, request: Request, call_next):
        if request.method == "OPTIONS":
            return Response(status_code=204, headers=self.PREFLIGHT_HEADERS)

        response = await call_next(request)

        if response.headers.get("content-type", "").startswith("application/json"):
            response.headers.update(CORS_HEADERS)

        return response

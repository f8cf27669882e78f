"""Rate limiting middleware — in-process sliding window.

Learn: Each request is checked against the RateLimiter on app.state,
keyed by (client IP, request path). Only paths with a configured policy
are limited (login and register by default); everything else passes
straight through, as do OPTIONS requests, which never reach a handler
that does work. The check runs before routing, so a rejected login
never reaches bcrypt or the database.

Rejections answer 429 with a Retry-After header derived from the oldest
request still holding the window.
"""

import math

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from devnorth.api.errors import error_body


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Per-IP, per-path admission control in front of the handlers."""

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.method == "OPTIONS":
            return await call_next(request)

        limiter = request.app.state.rate_limiter
        client_ip = request.client.host if request.client else "unknown"
        path = request.url.path

        if limiter.allow(client_ip, path):
            return await call_next(request)

        retry_after = max(1, math.ceil(limiter.retry_after(client_ip, path)))
        return JSONResponse(
            status_code=429,
            content=error_body("rate_limited", "Rate limit exceeded. Try again later."),
            headers={"Retry-After": str(retry_after)},
        )

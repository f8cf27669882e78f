"""Request deadline middleware.

Learn: The auth core never cancels itself, so the overall deadline is
enforced here. A handler still running after ``timeout`` seconds is
cancelled and the client gets 503. bcrypt work already handed to the
threadpool finishes in the background; its result is discarded.

This one is plain ASGI rather than BaseHTTPMiddleware: cancelling the
whole downstream app is simpler when we own the call to it.
"""

import asyncio

import structlog
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from devnorth.api.errors import error_body

logger = structlog.get_logger()


class TimeoutMiddleware:
    def __init__(self, app: ASGIApp, timeout: float = 10.0):
        self.app = app
        self.timeout = timeout

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def send_wrapper(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await asyncio.wait_for(self.app(scope, receive, send_wrapper), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning("http.timeout", path=scope.get("path"), timeout=self.timeout)
            if response_started:
                # Headers are already on the wire; nothing sensible left to send.
                return
            response = JSONResponse(
                status_code=503,
                content=error_body("request_timeout", "Request timeout"),
            )
            await response(scope, receive, send)

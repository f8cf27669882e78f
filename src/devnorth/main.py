"""FastAPI application factory.

Learn: create_app() builds every security component from Settings
*before* the app exists. A short JWT key, an unknown current key id, a
non-positive token lifetime or an out-of-range bcrypt cost raises right
here, so a misconfigured process never starts serving.

There is deliberately no module-level `app`: without keys there is no
valid app to build. Run it with
    uvicorn --factory devnorth.main:create_app
or `devnorth serve`.
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from devnorth import __version__
from devnorth.api import API_PREFIX, api_router
from devnorth.api.auth import LOGIN_PATH, REGISTER_PATH
from devnorth.api.errors import register_error_handlers
from devnorth.auth.password import PasswordHasher
from devnorth.auth.tokens import SigningKeyRing, TokenService
from devnorth.config import Settings, get_settings
from devnorth.db.engine import build_engine, build_session_factory
from devnorth.logs import configure_logging
from devnorth.middleware.rate_limit import RateLimitMiddleware
from devnorth.middleware.request_id import RequestIdMiddleware
from devnorth.middleware.timeout import TimeoutMiddleware
from devnorth.ratelimit import RateLimiter, RateLimitPolicy

logger = structlog.get_logger()


def build_token_service(settings: Settings) -> TokenService:
    key_ring = SigningKeyRing(settings.jwt_keys, current_key_id=settings.jwt_current_key_id)
    return TokenService(key_ring, settings.token_duration)


def build_rate_limiter(settings: Settings) -> RateLimiter:
    policy = RateLimitPolicy(
        max_requests=settings.auth_rate_limit_requests,
        window=settings.auth_rate_limit_window,
    )
    return RateLimiter(
        {
            f"{API_PREFIX}{LOGIN_PATH}": policy,
            f"{API_PREFIX}{REGISTER_PATH}": policy,
        },
        max_tracked_keys=settings.rate_limit_max_tracked_keys,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: Anything before `yield` runs at startup, after `yield` at
    shutdown. The engine connects lazily, so startup never waits on the
    database.
    """
    settings: Settings = app.state.settings
    logger.info(
        "devnorth.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
        jwt_current_key_id=app.state.token_service.key_ring.current_key_id,
    )

    yield

    logger.info("devnorth.shutdown")
    await app.state.engine.dispose()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build and return the FastAPI application."""
    settings = settings or get_settings()
    configure_logging(production=settings.is_production, debug=settings.debug)

    # Fail fast on any bad security parameter.
    password_hasher = PasswordHasher(cost=settings.bcrypt_cost)
    token_service = build_token_service(settings)
    rate_limiter = build_rate_limiter(settings)

    app = FastAPI(
        title="DevNorth API",
        description="User registration/login and competency management",
        version=__version__,
        lifespan=lifespan,
    )

    engine = build_engine(settings)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    app.state.password_hasher = password_hasher
    app.state.token_service = token_service
    app.state.rate_limiter = rate_limiter

    # ── Middleware stack ──────────────────────────────────────
    # Note: Starlette middleware executes in reverse order of registration.
    # Request flow: CORS → RequestId → Timeout → RateLimit → handler
    # CORS is outermost: preflights are answered before the rate limiter
    # sees them, and 429 responses still carry the CORS headers.
    app.add_middleware(RateLimitMiddleware)
    app.add_middleware(TimeoutMiddleware, timeout=settings.handler_timeout_seconds)
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)
    app.include_router(api_router)

    return app

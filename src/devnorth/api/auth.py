"""Auth API — registration, login, current identity.

Learn: Routes for user authentication:
- POST /auth/register → create an account, then log straight in
- POST /auth/login    → email/password → JWT
- GET  /auth/me       → claims of the presented token

Register and login are the rate-limited endpoints (see
middleware/rate_limit.py); the limiter runs before these handlers.
"""

import structlog
from fastapi import APIRouter, Depends

from devnorth.auth.dependencies import get_auth_service, get_current_identity
from devnorth.domain.user import Identity, User
from devnorth.errors import InvalidCredentialsError
from devnorth.schemas.auth import (
    AuthResponse,
    IdentityRead,
    LoginRequest,
    RegisterRequest,
    UserRead,
)
from devnorth.services.auth_service import AuthService

logger = structlog.get_logger()

router = APIRouter(prefix="/auth")

REGISTER_PATH = "/auth/register"
LOGIN_PATH = "/auth/login"


def _user_read(user: User) -> UserRead:
    return UserRead(
        id=user.id,
        email=user.email,
        role=user.role.value,
        created_at=user.created_at,
    )


# ─── Register ────────────────────────────────────────────


@router.post("/register", response_model=AuthResponse, status_code=201,
             response_model_exclude_none=True)
async def register(body: RegisterRequest, service: AuthService = Depends(get_auth_service)):
    """Create an account and log in with the same credentials.

    The account exists once registration succeeds, so a failed auto-login
    still answers 201, just without a token.
    """
    user = await service.register(body.email, body.password)
    try:
        token, _ = await service.login(body.email, body.password)
    except InvalidCredentialsError:
        logger.warning("auth.auto_login_failed", user_id=user.id)
        return AuthResponse(
            user=_user_read(user),
            message="Account created successfully. Please try logging in.",
        )
    return AuthResponse(token=token, user=_user_read(user))


# ─── Login ───────────────────────────────────────────────


@router.post("/login", response_model=AuthResponse, response_model_exclude_none=True)
async def login(body: LoginRequest, service: AuthService = Depends(get_auth_service)):
    """Login with email and password → JWT."""
    token, user = await service.login(body.email, body.password)
    return AuthResponse(token=token, user=_user_read(user))


# ─── Current identity ────────────────────────────────────


@router.get("/me", response_model=IdentityRead)
async def get_me(identity: Identity = Depends(get_current_identity)):
    """Return the identity carried by the bearer token."""
    return IdentityRead(
        user_id=identity.user_id,
        email=identity.email,
        role=identity.role.value,
    )

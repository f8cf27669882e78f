"""Auth service — registration, login, and token authentication.

Learn: This is the orchestration layer on top of the three leaf
components. It owns the business rules the leaves don't know about:

- Email/password validation for registration (POC-level rules: email
  must contain "@", password 8 characters up to bcrypt's 72-byte limit).
- Timing equalization on login. When the email is unknown we still run a
  bcrypt comparison, against the hasher's dummy hash, so "no such user"
  and "wrong password" take the same time and return the same error.
- bcrypt is CPU-bound by design, so it runs in Starlette's threadpool
  rather than blocking the event loop.

Errors are re-raised with their specific class (logs stay precise); the
HTTP layer turns every credential or token failure into one generic
response.
"""

from typing import Tuple

import structlog
from starlette.concurrency import run_in_threadpool

from devnorth.auth.password import MAX_SECRET_BYTES, PasswordHasher
from devnorth.auth.tokens import TokenService
from devnorth.domain.ports import UserStore
from devnorth.domain.user import Identity, User, UserRole
from devnorth.errors import (
    EmailAlreadyExistsError,
    InvalidCredentialsError,
    InvalidEmailError,
    InvalidPasswordError,
    InvalidTokenError,
    UserNotFoundError,
)

logger = structlog.get_logger()

MIN_PASSWORD_LENGTH = 8


class AuthService:
    """Register and log in users; authenticate bearer tokens."""

    def __init__(self, users: UserStore, hasher: PasswordHasher, tokens: TokenService):
        if users is None:
            raise ValueError("user store cannot be None")
        if hasher is None:
            raise ValueError("password hasher cannot be None")
        if tokens is None:
            raise ValueError("token service cannot be None")
        self.users = users
        self.hasher = hasher
        self.tokens = tokens

    # ─── Register ───────────────────────────────────────

    async def register(self, email: str, password: str) -> User:
        """Create a USER account. The password is stored only as a bcrypt hash."""
        email = email.strip()
        _validate_email(email)
        _validate_password(password)

        try:
            await self.users.get_by_email(email)
        except UserNotFoundError:
            pass
        else:
            logger.info("auth.register_rejected", reason="email_exists")
            raise EmailAlreadyExistsError()

        hashed = await run_in_threadpool(self.hasher.hash, password)
        user = await self.users.create(email, hashed, UserRole.USER)
        logger.info("auth.registered", user_id=user.id)
        return user

    # ─── Login ──────────────────────────────────────────

    async def login(self, email: str, password: str) -> Tuple[str, User]:
        """Check credentials and return (token, user)."""
        email = email.strip()
        try:
            user = await self.users.get_by_email(email)
        except UserNotFoundError:
            # Same bcrypt cost as a real comparison, so a missing account
            # is not observable through response time.
            await self._dummy_compare(password)
            logger.info("auth.login_failed", reason="unknown_email")
            raise InvalidCredentialsError()

        try:
            await run_in_threadpool(self.hasher.compare, user.hashed_password, password)
        except InvalidCredentialsError:
            logger.info("auth.login_failed", reason="password_mismatch", user_id=user.id)
            raise InvalidCredentialsError()

        token = self.tokens.issue(user.identity())
        logger.info("auth.logged_in", user_id=user.id)
        return token, user

    async def _dummy_compare(self, password: str) -> None:
        try:
            await run_in_threadpool(self.hasher.compare, self.hasher.dummy_hash, password)
        except InvalidCredentialsError:
            pass

    # ─── Tokens ─────────────────────────────────────────

    def authenticate(self, token: str) -> Identity:
        """Resolve a bearer token to the identity it carries."""
        try:
            return self.tokens.verify(token)
        except InvalidTokenError as exc:
            logger.info("auth.token_rejected", reason=type(exc).__name__)
            raise


def _validate_email(email: str) -> None:
    if not email or "@" not in email:
        raise InvalidEmailError()


def _validate_password(password: str) -> None:
    if (
        not password
        or len(password) < MIN_PASSWORD_LENGTH
        or len(password.encode("utf-8")) > MAX_SECRET_BYTES
    ):
        raise InvalidPasswordError()

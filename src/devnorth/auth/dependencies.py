"""FastAPI auth dependencies.

Learn: These are used as Depends() in route handlers. The security
components (hasher, token service) are built once by create_app() and
live on app.state; the per-request pieces (DB session, user store) are
assembled here. Tests override get_user_store with an in-memory fake.
"""

from typing import Optional

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from devnorth.db.engine import get_db
from devnorth.domain.ports import UserStore
from devnorth.domain.user import Identity
from devnorth.errors import InvalidTokenError
from devnorth.repositories.users import SqlAlchemyUserStore
from devnorth.services.auth_service import AuthService


def get_user_store(db: AsyncSession = Depends(get_db)) -> UserStore:
    return SqlAlchemyUserStore(db)


def get_auth_service(
    request: Request,
    users: UserStore = Depends(get_user_store),
) -> AuthService:
    state = request.app.state
    return AuthService(users=users, hasher=state.password_hasher, tokens=state.token_service)


def get_current_identity(
    authorization: Optional[str] = Header(None),
    service: AuthService = Depends(get_auth_service),
) -> Identity:
    """Resolve the Bearer token to an Identity (401 if missing or invalid).

    Learn: Verification itself never queries the database (the session
    behind the store is opened lazily and stays unused). The identity
    is a claims echo; routes needing fresh user data must load it from
    the store.
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise InvalidTokenError("authentication required")
    token = authorization[len("Bearer "):].strip()
    return service.authenticate(token)

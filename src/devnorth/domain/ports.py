"""Storage interfaces the services depend on.

Learn: Services only see these Protocols. The SQLAlchemy adapters in
devnorth.repositories implement them for production; tests pass small
in-memory fakes. Lookups that find nothing raise the matching NotFound
error instead of returning None.
"""

from typing import Protocol

from devnorth.domain.competency import Competency
from devnorth.domain.user import User, UserRole


class UserStore(Protocol):
    async def get_by_email(self, email: str) -> User:
        """Return the user with this email or raise UserNotFoundError."""
        ...

    async def create(self, email: str, hashed_password: str, role: UserRole) -> User:
        ...


class CompetencyStore(Protocol):
    async def create(self, name: str, description: str) -> Competency:
        ...

    async def get_by_id(self, competency_id: int) -> Competency:
        """Return the competency or raise CompetencyNotFoundError."""
        ...

    async def get_by_name(self, name: str) -> Competency:
        """Return the competency or raise CompetencyNotFoundError."""
        ...

    async def list_all(self) -> list[Competency]:
        ...

    async def update_description(self, competency_id: int, description: str) -> Competency:
        """Update and return the competency or raise CompetencyNotFoundError."""
        ...

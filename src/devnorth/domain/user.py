"""User entity and the identity record carried by tokens."""

import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


class UserRole(str, enum.Enum):
    USER = "USER"
    ADMIN = "ADMIN"


@dataclass(frozen=True)
class Identity:
    """Claims a token binds to: who the caller is and what role they hold.

    Learn: This is a claims echo, not a database read. Anything that needs
    current user data (e.g. a role changed after the token was issued)
    must re-fetch from the user store.
    """

    user_id: int
    email: str
    role: UserRole

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


@dataclass
class User:
    id: int
    email: str
    hashed_password: str
    role: UserRole = UserRole.USER
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def is_user(self) -> bool:
        return self.role == UserRole.USER

    def identity(self) -> Identity:
        return Identity(user_id=self.id, email=self.email, role=self.role)

"""Pydantic schemas for registration, login and the current identity.

Learn: Request schemas only check presence. The real rules (email shape,
password 8..72) live in AuthService so every caller gets them, not just
the HTTP layer. UserRead never carries the password hash.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class RegisterRequest(BaseModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class UserRead(BaseModel):
    id: int
    email: str
    role: str
    created_at: Optional[datetime] = None


class AuthResponse(BaseModel):
    token: Optional[str] = None
    user: UserRead
    message: Optional[str] = None


class IdentityRead(BaseModel):
    user_id: int
    email: str
    role: str

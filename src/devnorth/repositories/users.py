"""SQLAlchemy implementation of the UserStore port."""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from devnorth.db.models import UserRow
from devnorth.domain.user import User, UserRole
from devnorth.errors import EmailAlreadyExistsError, UserNotFoundError


def _to_domain(row: UserRow) -> User:
    return User(
        id=row.id,
        email=row.email,
        hashed_password=row.hashed_password,
        role=UserRole(row.role),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class SqlAlchemyUserStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_email(self, email: str) -> User:
        result = await self.db.execute(select(UserRow).where(UserRow.email == email))
        row = result.scalars().first()
        if row is None:
            raise UserNotFoundError()
        return _to_domain(row)

    async def create(self, email: str, hashed_password: str, role: UserRole) -> User:
        row = UserRow(email=email, hashed_password=hashed_password, role=role)
        self.db.add(row)
        try:
            await self.db.commit()
        except IntegrityError as exc:
            # Lost a race with a concurrent registration for the same email.
            await self.db.rollback()
            raise EmailAlreadyExistsError() from exc
        await self.db.refresh(row)
        return _to_domain(row)

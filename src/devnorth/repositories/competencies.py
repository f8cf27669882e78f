"""SQLAlchemy implementation of the CompetencyStore port."""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from devnorth.db.models import CompetencyRow
from devnorth.domain.competency import Competency
from devnorth.errors import CompetencyAlreadyExistsError, CompetencyNotFoundError


def _to_domain(row: CompetencyRow) -> Competency:
    return Competency(
        id=row.id,
        name=row.name,
        description=row.description or "",
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class SqlAlchemyCompetencyStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, name: str, description: str) -> Competency:
        row = CompetencyRow(name=name, description=description or None)
        self.db.add(row)
        try:
            await self.db.commit()
        except IntegrityError as exc:
            await self.db.rollback()
            raise CompetencyAlreadyExistsError() from exc
        await self.db.refresh(row)
        return _to_domain(row)

    async def get_by_id(self, competency_id: int) -> Competency:
        row = await self.db.get(CompetencyRow, competency_id)
        if row is None:
            raise CompetencyNotFoundError()
        return _to_domain(row)

    async def get_by_name(self, name: str) -> Competency:
        result = await self.db.execute(
            select(CompetencyRow).where(CompetencyRow.name == name)
        )
        row = result.scalars().first()
        if row is None:
            raise CompetencyNotFoundError()
        return _to_domain(row)

    async def list_all(self) -> list[Competency]:
        result = await self.db.execute(select(CompetencyRow).order_by(CompetencyRow.name))
        return [_to_domain(row) for row in result.scalars().all()]

    async def update_description(self, competency_id: int, description: str) -> Competency:
        row = await self.db.get(CompetencyRow, competency_id)
        if row is None:
            raise CompetencyNotFoundError()
        row.description = description or None
        await self.db.commit()
        await self.db.refresh(row)
        return _to_domain(row)

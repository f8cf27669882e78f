"""Competency service — CRUD rules for competencies.

Learn: Names are trimmed and must be 2–100 characters; uniqueness is
checked here (and enforced again by the CITEXT unique index, so two
names differing only in case collide).
"""

import structlog

from devnorth.domain.competency import Competency
from devnorth.domain.ports import CompetencyStore
from devnorth.errors import (
    CompetencyAlreadyExistsError,
    CompetencyNotFoundError,
    InvalidCompetencyNameError,
)

logger = structlog.get_logger()

MIN_NAME_LENGTH = 2
MAX_NAME_LENGTH = 100


class CompetencyService:
    """Business logic for competencies."""

    def __init__(self, store: CompetencyStore):
        if store is None:
            raise ValueError("competency store cannot be None")
        self.store = store

    async def create(self, name: str, description: str = "") -> Competency:
        name = name.strip()
        description = description.strip()
        _validate_name(name)

        try:
            await self.store.get_by_name(name)
        except CompetencyNotFoundError:
            pass
        else:
            logger.info("competency.create_rejected", reason="exists", name=name)
            raise CompetencyAlreadyExistsError()

        competency = await self.store.create(name, description)
        logger.info("competency.created", competency_id=competency.id, name=competency.name)
        return competency

    async def get_by_id(self, competency_id: int) -> Competency:
        return await self.store.get_by_id(competency_id)

    async def get_by_name(self, name: str) -> Competency:
        return await self.store.get_by_name(name.strip())

    async def list_all(self) -> list[Competency]:
        competencies = await self.store.list_all()
        logger.debug("competency.listed", count=len(competencies))
        return competencies

    async def update_description(self, competency_id: int, description: str) -> Competency:
        competency = await self.store.update_description(competency_id, description.strip())
        logger.info("competency.description_updated", competency_id=competency.id)
        return competency


def _validate_name(name: str) -> None:
    if not MIN_NAME_LENGTH <= len(name) <= MAX_NAME_LENGTH:
        raise InvalidCompetencyNameError()

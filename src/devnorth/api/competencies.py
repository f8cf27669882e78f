"""Competency API — create, read, list, update description.

All routes require a valid bearer token (applied at include_router level).
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from devnorth.db.engine import get_db
from devnorth.domain.ports import CompetencyStore
from devnorth.repositories.competencies import SqlAlchemyCompetencyStore
from devnorth.schemas.competency import (
    CompetencyCreate,
    CompetencyDescriptionUpdate,
    CompetencyList,
    CompetencyRead,
)
from devnorth.services.competency_service import CompetencyService

router = APIRouter(prefix="/competencies")


def get_competency_store(db: AsyncSession = Depends(get_db)) -> CompetencyStore:
    return SqlAlchemyCompetencyStore(db)


def get_competency_service(
    store: CompetencyStore = Depends(get_competency_store),
) -> CompetencyService:
    return CompetencyService(store)


@router.post("", response_model=CompetencyRead, status_code=201)
async def create_competency(
    body: CompetencyCreate,
    service: CompetencyService = Depends(get_competency_service),
):
    return await service.create(body.name, body.description)


@router.get("", response_model=CompetencyList)
async def list_competencies(service: CompetencyService = Depends(get_competency_service)):
    competencies = await service.list_all()
    return CompetencyList(
        competencies=[CompetencyRead.model_validate(c) for c in competencies],
        count=len(competencies),
    )


@router.get("/{competency_id}", response_model=CompetencyRead)
async def get_competency(
    competency_id: int,
    service: CompetencyService = Depends(get_competency_service),
):
    return await service.get_by_id(competency_id)


@router.patch("/{competency_id}/description", response_model=CompetencyRead)
async def update_competency_description(
    competency_id: int,
    body: CompetencyDescriptionUpdate,
    service: CompetencyService = Depends(get_competency_service),
):
    return await service.update_description(competency_id, body.description)

"""Pydantic schemas for competencies."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class CompetencyCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: str = ""


class CompetencyDescriptionUpdate(BaseModel):
    # Empty string clears the description.
    description: str = ""


class CompetencyRead(BaseModel):
    id: int
    name: str
    description: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class CompetencyList(BaseModel):
    competencies: list[CompetencyRead]
    count: int

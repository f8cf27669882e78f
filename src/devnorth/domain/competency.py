"""Competency entity — the CRUD resource exposed next to auth."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class Competency:
    id: int
    name: str
    description: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def has_description(self) -> bool:
        return self.description != ""

"""Base model and helpers for all in-memory domain entities.

Provides:
- Entity: pydantic base class carrying a UUID primary key
- utcnow: the single clock every entity and command reads from
- as_utc: normalizes incoming datetimes so they compare with utcnow

Entities live in process memory only. Every aggregate and sub-entity
inherits from Entity so repositories can index them by ``id``.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat a naive datetime as UTC; convert aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Entity(BaseModel):
    """Declarative base for all collaboration entities.

    Adds:
    - id: UUID primary key (auto-generated)
    """

    id: uuid.UUID = Field(default_factory=uuid.uuid4)


class Snapshot(BaseModel):
    """Immutable value copied out of an entity at one point in time."""

    model_config = ConfigDict(frozen=True)

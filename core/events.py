"""Pydantic event models exchanged between the store and the simulation host."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Literal
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator

from core.event_types import EventType


def utc_now() -> datetime:
    """Return current UTC timestamp with timezone information."""

    return datetime.now(UTC)


class BaseEvent(BaseModel):
    """Base event payload shared by all event models."""

    event_id: str = Field(default_factory=lambda: str(uuid4()))
    event_type: EventType
    timestamp: datetime = Field(default_factory=utc_now)
    source: str
    run_id: str

    @field_validator("timestamp")
    @classmethod
    def ensure_utc_timestamp(cls, value: datetime) -> datetime:
        """Ensure event timestamps are timezone-aware and normalized to UTC."""

        if value.tzinfo is None:
            raise ValueError("timestamp must be timezone-aware")
        return value.astimezone(UTC)


class BackupRequestedEvent(BaseEvent):
    """Host asks the store to persist the region immediately."""

    event_type: Literal[EventType.BACKUP_REQUESTED] = EventType.BACKUP_REQUESTED
    region_name: str | None = None


class RegionSavedEvent(BaseEvent):
    """A save attempt committed a file to disk."""

    event_type: Literal[EventType.REGION_SAVED] = EventType.REGION_SAVED
    region_name: str
    path: str
    archival: bool = False


class MapTileStaleEvent(BaseEvent):
    """The persisted region changed, so its map tile must be regenerated."""

    event_type: Literal[EventType.MAP_TILE_STALE] = EventType.MAP_TILE_STALE
    region_name: str


class ErrorEvent(BaseEvent):
    """Error event emitted when a save attempt fails."""

    event_type: Literal[EventType.ERROR] = EventType.ERROR
    module: str
    error_type: str
    message: str
    region_name: str | None = None
    severity: Literal["WARNING", "ERROR", "CRITICAL"] = "ERROR"

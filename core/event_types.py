"""Event type definitions for the system event bus."""

from __future__ import annotations

from enum import StrEnum


class EventType(StrEnum):
    """Event categories emitted and consumed by the store and its host."""

    ALL = "ALL"
    BACKUP_REQUESTED = "BACKUP_REQUESTED"
    REGION_SAVED = "REGION_SAVED"
    MAP_TILE_STALE = "MAP_TILE_STALE"
    ERROR = "ERROR"

"""Persistence models for region snapshots and backup artifacts."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from pathlib import Path
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field


class SaveResult(StrEnum):
    """Outcome of one save attempt."""

    SAVED = "saved"
    SKIPPED = "skipped"
    FAILED = "failed"


class RegionInfo(BaseModel):
    """Region identity and metadata carried inside every snapshot."""

    region_name: str = ""
    region_id: str = Field(default_factory=lambda: str(uuid4()))
    location_x: int = 0
    location_y: int = 0
    size_x: int = 256
    size_y: int = 256
    region_type: str = ""
    object_capacity: int = 0
    port: int = 0
    deleted: bool = False
    extra: dict[str, Any] = Field(default_factory=dict)

    @property
    def needs_port(self) -> bool:
        """True when the host must assign a port before the region can start."""

        return self.port == 0


class ObjectGroup(BaseModel):
    """One scene object group; the payload is opaque to the store."""

    group_id: str
    is_attachment: bool = False
    temporary: bool = False
    temporary_on_rez: bool = False
    has_changed: bool = False
    payload: dict[str, Any] = Field(default_factory=dict)

    @property
    def persistable(self) -> bool:
        return not (self.is_attachment or self.temporary or self.temporary_on_rez)


class Parcel(BaseModel):
    """One land parcel; the payload is opaque to the store."""

    parcel_id: str
    payload: dict[str, Any] = Field(default_factory=dict)


class RegionSnapshot(BaseModel):
    """Full serializable state of a region at one point in time."""

    region_info: RegionInfo | None = None
    object_groups: list[ObjectGroup] = Field(default_factory=list)
    parcels: list[Parcel] = Field(default_factory=list)
    terrain: bytes | None = None
    terrain_revert: bytes | None = None
    water: bytes | None = None
    water_revert: bytes | None = None

    @classmethod
    def empty(cls, region_name: str = "") -> RegionSnapshot:
        """Return a freshly initialised snapshot for a brand-new region."""

        return cls(region_info=RegionInfo(region_name=region_name))

    @property
    def is_empty(self) -> bool:
        return (
            not self.object_groups
            and not self.parcels
            and self.terrain is None
            and self.terrain_revert is None
            and self.water is None
            and self.water_revert is None
        )

    def persistable_groups(self) -> list[ObjectGroup]:
        """Object groups that belong in a backup, in their original order."""

        return [group for group in self.object_groups if group.persistable]

    def release(self) -> None:
        """Drop buffers and collections so nothing is held across save intervals."""

        self.object_groups = []
        self.parcels = []
        self.terrain = None
        self.terrain_revert = None
        self.water = None
        self.water_revert = None
        self.region_info = None


class BackupRecord(BaseModel):
    """A timestamped archive file found on disk."""

    region_name: str
    timestamp: datetime
    path: Path

    @property
    def last_write_time(self) -> datetime:
        return datetime.fromtimestamp(self.path.stat().st_mtime)

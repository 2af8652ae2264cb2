"""Contract the simulation host implements so the store can capture state."""

from __future__ import annotations

from typing import Protocol

from persistence.models import RegionSnapshot


class RegionHost(Protocol):
    """Read side of the running region, as seen by the save pipeline."""

    @property
    def region_name(self) -> str:
        ...

    @property
    def is_deleted(self) -> bool:
        """Region was removed; nothing should be written for it any more."""
        ...

    @property
    def is_loading(self) -> bool:
        """A bulk object load is in progress and the scene is inconsistent."""
        ...

    def capture_snapshot(self) -> RegionSnapshot:
        """Return an internally consistent snapshot owned by the caller."""
        ...

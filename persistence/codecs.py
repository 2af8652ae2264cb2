"""Codec capability contract and the ordered load fallback chain."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

from core.logger import get_logger
from persistence.legacy_codec import LegacyCodec
from persistence.models import RegionSnapshot
from persistence.snapshot_codec import SnapshotCodec


class RegionCodec(Protocol):
    """Contract implemented by every on-disk region format."""

    file_extension: str

    def load(self, path: Path) -> RegionSnapshot | None:
        ...

    def save(self, path: Path, snapshot: RegionSnapshot) -> bool:
        ...


class CodecChain:
    """Try codecs in fixed priority order; the first one writes."""

    def __init__(self, codecs: Sequence[RegionCodec] | None = None) -> None:
        self._codecs: tuple[RegionCodec, ...] = tuple(codecs) if codecs else (SnapshotCodec(), LegacyCodec())
        self._logger = get_logger("persistence.codecs")

    @property
    def primary(self) -> RegionCodec:
        return self._codecs[0]

    @property
    def codecs(self) -> tuple[RegionCodec, ...]:
        return self._codecs

    def load(self, directory: Path, region_name: str) -> tuple[RegionSnapshot, RegionCodec | None]:
        """Load ``region_name`` from ``directory``.

        Returns the snapshot and the codec that produced it. When no codec can
        read a file, an empty snapshot named after the region is returned with
        codec None.
        """

        for codec in self._codecs:
            path = directory / f"{region_name}{codec.file_extension}"
            snapshot = codec.load(path)
            if snapshot is not None:
                return snapshot, codec

        self._logger.info("no_backup_found_starting_empty", region=region_name, directory=str(directory))
        return RegionSnapshot.empty(region_name), None

"""Reader for the older tar based region archive format (``.backup``).

Archives are (optionally gzip compressed) tar files::

    regioninfo.json
    terrain/terrain.raw
    terrain/revertterrain.raw
    water/water.raw
    water/revertwater.raw
    parcels/<n>.json
    objects/<n>.json

Only loading is supported; the store migrates these into the binary format on
its next save.
"""

from __future__ import annotations

import json
import tarfile
import zlib
from pathlib import Path

from pydantic import ValidationError

from core.logger import get_logger
from persistence.errors import CodecError
from persistence.models import ObjectGroup, Parcel, RegionInfo, RegionSnapshot

REGION_INFO_MEMBER = "regioninfo.json"
BUFFER_MEMBERS = {
    "terrain/terrain.raw": "terrain",
    "terrain/revertterrain.raw": "terrain_revert",
    "water/water.raw": "water",
    "water/revertwater.raw": "water_revert",
}
PARCEL_PREFIX = "parcels/"
OBJECT_PREFIX = "objects/"


def read_legacy_archive(path: Path) -> RegionSnapshot:
    """Decode one legacy archive, raising ``CodecError`` on bad input."""

    snapshot = RegionSnapshot()
    groups: list[tuple[str, ObjectGroup]] = []
    parcels: list[tuple[str, Parcel]] = []
    try:
        with tarfile.open(path, mode="r:*") as archive:
            for member in archive.getmembers():
                if not member.isfile():
                    continue
                name = member.name.removeprefix("./")
                stream = archive.extractfile(member)
                if stream is None:
                    continue
                data = stream.read()

                if name == REGION_INFO_MEMBER:
                    snapshot.region_info = RegionInfo.model_validate(json.loads(data))
                elif name in BUFFER_MEMBERS:
                    setattr(snapshot, BUFFER_MEMBERS[name], data)
                elif name.startswith(PARCEL_PREFIX):
                    parcels.append((name, Parcel.model_validate(json.loads(data))))
                elif name.startswith(OBJECT_PREFIX):
                    groups.append((name, ObjectGroup.model_validate(json.loads(data))))
    # ValueError covers bad JSON and invalid UTF-8 in a member
    except (tarfile.TarError, EOFError, zlib.error, ValueError, ValidationError) as exc:
        raise CodecError(f"unreadable legacy archive: {exc}") from exc

    if snapshot.region_info is None:
        raise CodecError("legacy archive has no regioninfo.json")
    snapshot.object_groups = [group for _, group in sorted(groups, key=lambda item: item[0])]
    snapshot.parcels = [parcel for _, parcel in sorted(parcels, key=lambda item: item[0])]
    return snapshot


class LegacyCodec:
    """Load-only codec for archives written by older releases."""

    file_extension = ".backup"

    def __init__(self) -> None:
        self._logger = get_logger("persistence.legacy_codec")

    def save(self, path: Path, snapshot: RegionSnapshot) -> bool:
        self._logger.error("legacy_format_is_read_only", path=str(path))
        return False

    def load(self, path: Path) -> RegionSnapshot | None:
        if not path.is_file():
            return None
        try:
            snapshot = read_legacy_archive(path)
        except (OSError, CodecError) as exc:
            self._logger.warning("legacy_decode_failed", path=str(path), error=str(exc))
            return None
        self._logger.info("legacy_archive_loaded", path=str(path))
        return snapshot

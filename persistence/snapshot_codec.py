"""Versioned binary codec for region snapshot files (``.sim``).

Layout::

    magic  b"RGNS"
    u16    format version (big-endian)
    field* tag:u8 length:u32 payload[length]

Fields are written in ascending tag order. Repeated fields (object groups and
parcels) appear once per element. Structured payloads are UTF-8 JSON documents
of the corresponding pydantic model; buffers are stored raw. Absent buffers are
omitted, an empty buffer is written with length zero. Readers skip tags they do
not know, so new optional fields can be appended without a version bump;
renumbering or reordering existing fields requires one.
"""

from __future__ import annotations

import struct
from enum import IntEnum
from pathlib import Path

from pydantic import ValidationError

from core.logger import get_logger
from persistence.errors import CodecError, SnapshotInvalidError
from persistence.models import ObjectGroup, Parcel, RegionInfo, RegionSnapshot

MAGIC = b"RGNS"
FORMAT_VERSION = 1

_HEADER = struct.Struct(">4sH")
_FIELD = struct.Struct(">BI")

_BUFFER_FIELDS = (
    ("terrain", 3),
    ("terrain_revert", 4),
    ("water", 5),
    ("water_revert", 6),
)


class FieldTag(IntEnum):
    """Field numbers of the on-disk record."""

    OBJECT_GROUPS = 1
    REGION_INFO = 2
    TERRAIN = 3
    TERRAIN_REVERT = 4
    WATER = 5
    WATER_REVERT = 6
    PARCELS = 7


def encode_snapshot(snapshot: RegionSnapshot) -> bytes:
    """Serialize a snapshot into the binary record format."""

    if snapshot.region_info is None:
        raise SnapshotInvalidError("snapshot has no region info")

    chunks: list[bytes] = [_HEADER.pack(MAGIC, FORMAT_VERSION)]
    for group in snapshot.object_groups:
        chunks.append(_field(FieldTag.OBJECT_GROUPS, group.model_dump_json().encode("utf-8")))
    chunks.append(_field(FieldTag.REGION_INFO, snapshot.region_info.model_dump_json().encode("utf-8")))
    for attribute, tag in _BUFFER_FIELDS:
        buffer = getattr(snapshot, attribute)
        if buffer is not None:
            chunks.append(_field(FieldTag(tag), bytes(buffer)))
    for parcel in snapshot.parcels:
        chunks.append(_field(FieldTag.PARCELS, parcel.model_dump_json().encode("utf-8")))
    return b"".join(chunks)


def decode_snapshot(data: bytes) -> RegionSnapshot:
    """Parse the binary record format, raising ``CodecError`` on bad input."""

    if len(data) < _HEADER.size:
        raise CodecError("file too short for header")
    magic, version = _HEADER.unpack_from(data, 0)
    if magic != MAGIC:
        raise CodecError(f"bad magic {magic!r}")
    if version != FORMAT_VERSION:
        raise CodecError(f"unsupported format version {version}")

    snapshot = RegionSnapshot()
    offset = _HEADER.size
    try:
        while offset < len(data):
            if offset + _FIELD.size > len(data):
                raise CodecError("truncated field header")
            tag, length = _FIELD.unpack_from(data, offset)
            offset += _FIELD.size
            end = offset + length
            if end > len(data):
                raise CodecError(f"truncated payload for field {tag}")
            payload = data[offset:end]
            offset = end

            if tag == FieldTag.OBJECT_GROUPS:
                snapshot.object_groups.append(ObjectGroup.model_validate_json(payload))
            elif tag == FieldTag.REGION_INFO:
                snapshot.region_info = RegionInfo.model_validate_json(payload)
            elif tag == FieldTag.PARCELS:
                snapshot.parcels.append(Parcel.model_validate_json(payload))
            else:
                for attribute, buffer_tag in _BUFFER_FIELDS:
                    if tag == buffer_tag:
                        setattr(snapshot, attribute, payload)
                        break
    except ValidationError as exc:
        raise CodecError(f"invalid field payload: {exc.error_count()} error(s)") from exc

    if snapshot.region_info is None:
        raise SnapshotInvalidError("record has no region info field")
    return snapshot


class SnapshotCodec:
    """Primary codec; the only one ever used for writing."""

    file_extension = ".sim"

    def __init__(self) -> None:
        self._logger = get_logger("persistence.snapshot_codec")

    def save(self, path: Path, snapshot: RegionSnapshot) -> bool:
        """Write the encoded snapshot to ``path``; False on any failure."""

        try:
            payload = encode_snapshot(snapshot)
            with path.open("wb") as stream:
                stream.write(payload)
        except (OSError, CodecError) as exc:
            self._logger.error("snapshot_encode_failed", path=str(path), error=str(exc))
            return False
        return True

    def load(self, path: Path) -> RegionSnapshot | None:
        """Read a snapshot; None when the file is missing or unreadable."""

        if not path.is_file():
            return None
        try:
            return decode_snapshot(path.read_bytes())
        except (OSError, CodecError) as exc:
            self._logger.warning("snapshot_decode_failed", path=str(path), error=str(exc))
            return None


def _field(tag: FieldTag, payload: bytes) -> bytes:
    return _FIELD.pack(int(tag), len(payload)) + payload

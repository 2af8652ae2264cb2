"""File naming for active region files and timestamped archive copies."""

from __future__ import annotations

import re
from datetime import datetime
from pathlib import Path

ARCHIVE_DELIMITER = "--"
ARCHIVE_TIME_FORMAT = "%Y-%m-%d-%H-%M"

_ARCHIVE_STEM = re.compile(r"^(?P<region>.+)--(?P<stamp>\d{4}-\d{2}-\d{2}-\d{2}-\d{2})$")


def active_file_path(directory: Path, region_name: str, extension: str) -> Path:
    return directory / f"{region_name}{extension}"


def archive_file_name(region_name: str, when: datetime, extension: str) -> str:
    """``Alpha`` at 2024-01-02 03:04 becomes ``Alpha--2024-01-02-03-04.sim``."""

    return f"{region_name}{ARCHIVE_DELIMITER}{when.strftime(ARCHIVE_TIME_FORMAT)}{extension}"


def parse_archive_name(path: Path, extension: str) -> tuple[str, datetime] | None:
    """Split an archive file name into region name and timestamp."""

    if path.suffix != extension:
        return None
    match = _ARCHIVE_STEM.match(path.stem)
    if match is None:
        return None
    try:
        stamp = datetime.strptime(match.group("stamp"), ARCHIVE_TIME_FORMAT)
    except ValueError:
        return None
    return match.group("region"), stamp


def is_archive_of(path: Path, region_name: str, extension: str) -> bool:
    """True when ``path`` is an archive of exactly ``region_name``."""

    if not path.name.startswith(f"{region_name}{ARCHIVE_DELIMITER}"):
        return False
    parsed = parse_archive_name(path, extension)
    return parsed is not None and parsed[0] == region_name

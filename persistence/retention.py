"""Age based pruning of timestamped archive files."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta
from pathlib import Path

from core.logger import get_logger
from persistence.naming import is_archive_of, parse_archive_name

TimestampSource = Callable[[Path], datetime]
Clock = Callable[[], datetime]


def creation_time(path: Path) -> datetime:
    """File creation time; falls back to ``st_ctime`` where birth time is unavailable."""

    stat = path.stat()
    created = getattr(stat, "st_birthtime", None)
    return datetime.fromtimestamp(created if created is not None else stat.st_ctime)


class RetentionPruner:
    """Delete archive files created before ``today - max_age_days``."""

    def __init__(
        self,
        archive_directory: Path,
        extension: str,
        *,
        created_at: TimestampSource = creation_time,
        clock: Clock = datetime.now,
    ) -> None:
        self._archive_directory = archive_directory
        self._extension = extension
        self._created_at = created_at
        self._clock = clock
        self._logger = get_logger("persistence.retention")

    def candidates(self, region_name: str | None = None) -> list[Path]:
        """Archive files following the backup naming convention."""

        if not self._archive_directory.is_dir():
            return []
        files = sorted(self._archive_directory.glob(f"*{self._extension}"))
        if region_name is not None:
            return [path for path in files if is_archive_of(path, region_name, self._extension)]
        return [path for path in files if parse_archive_name(path, self._extension) is not None]

    def prune(self, max_age_days: int, region_name: str | None = None) -> int:
        """Remove archives older than ``max_age_days``; negative disables pruning."""

        if max_age_days < 0:
            return 0

        files = self.candidates(region_name)
        if not files:
            return 0

        today = self._clock().replace(hour=0, minute=0, second=0, microsecond=0)
        threshold = today - timedelta(days=max_age_days)

        removed = 0
        for path in files:
            try:
                if self._created_at(path) >= threshold:
                    continue
                path.unlink()
            except FileNotFoundError:
                continue
            except OSError as exc:
                self._logger.warning("archive_delete_failed", path=str(path), error=str(exc))
                continue
            removed += 1

        self._logger.info(
            "archives_removed",
            removed=removed,
            max_age_days=max_age_days,
            region=region_name,
            operation="prune",
        )
        return removed

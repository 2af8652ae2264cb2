"""Crash-safe file commits through a temporary file and an atomic rename."""

from __future__ import annotations

import os
import shutil
from collections.abc import Callable
from pathlib import Path

from core.logger import get_logger

TEMP_SUFFIX = ".tmp"

Producer = Callable[[Path], bool]


def temp_path_for(target: Path) -> Path:
    return target.with_name(target.name + TEMP_SUFFIX)


class AtomicFileWriter:
    """Commit files so the target is always either the old or the new version.

    Content is produced into ``<target>.tmp``, flushed to disk and then renamed
    over the target with ``os.replace``. A failed producer leaves the target
    untouched and removes the temporary file.
    """

    def __init__(self) -> None:
        self._logger = get_logger("persistence.atomic_writer")

    def commit(self, target: Path, produce: Producer) -> bool:
        """Run ``produce`` against the temp path and move the result into place."""

        temp = temp_path_for(target)
        committed = False
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            # leftovers from an interrupted attempt
            temp.unlink(missing_ok=True)
            if not produce(temp) or not temp.is_file():
                self._logger.error("atomic_write_produce_failed", target=str(target))
                return False
            _fsync_file(temp)
            os.replace(temp, target)
            committed = True
        except OSError as exc:
            self._logger.error("atomic_write_failed", target=str(target), error=str(exc))
        finally:
            if not committed:
                self._discard(temp)
        if committed:
            self._sync_directory(target)
        return committed

    def write(self, target: Path, data: bytes) -> bool:
        """Atomically replace ``target`` with ``data``."""

        def _produce(path: Path) -> bool:
            path.write_bytes(data)
            return True

        return self.commit(target, _produce)

    def copy_into(self, source: Path, target: Path) -> bool:
        """Atomically replace ``target`` with a byte copy of ``source``."""

        def _produce(path: Path) -> bool:
            shutil.copyfile(source, path)
            return True

        return self.commit(target, _produce)

    def _sync_directory(self, target: Path) -> None:
        # the target is already replaced at this point
        try:
            _fsync_directory(target.parent)
        except OSError as exc:
            self._logger.warning("directory_fsync_failed", directory=str(target.parent), error=str(exc))

    def _discard(self, path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            self._logger.warning("temp_file_cleanup_failed", path=str(path), error=str(exc))


def _fsync_file(path: Path) -> None:
    with path.open("rb+") as stream:
        stream.flush()
        os.fsync(stream.fileno())


def _fsync_directory(directory: Path) -> None:
    if os.name != "posix":
        return
    fd = os.open(directory, os.O_RDONLY)
    try:
        os.fsync(fd)
    finally:
        os.close(fd)


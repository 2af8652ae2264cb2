"""Single-writer coordination of region saves."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

from core.event_bus import EventBus
from core.events import ErrorEvent, MapTileStaleEvent, RegionSavedEvent
from core.logger import get_logger
from persistence.atomic_writer import AtomicFileWriter
from persistence.codecs import RegionCodec
from persistence.host import RegionHost
from persistence.models import RegionSnapshot, SaveResult
from persistence.naming import active_file_path, archive_file_name


class SaveCoordinator:
    """Own the save lock, the dirty flag and the one-way shutdown state.

    Every save, periodic or forced, canonical or archival, goes through
    ``attempt_save`` and therefore through one non re-entrant lock. Failures
    are logged and reported as ``SaveResult.FAILED``; they never propagate and
    never touch the previously committed file.
    """

    def __init__(
        self,
        *,
        active_directory: Path,
        archive_directory: Path,
        codec: RegionCodec,
        writer: AtomicFileWriter | None = None,
        keep_first_archive: bool = True,
        event_bus: EventBus | None = None,
        run_id: str = "unknown",
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._active_directory = active_directory
        self._archive_directory = archive_directory
        self._codec = codec
        self._writer = writer or AtomicFileWriter()
        self._keep_first_archive = keep_first_archive
        self._event_bus = event_bus
        self._run_id = run_id
        self._clock = clock

        self._lock = asyncio.Lock()
        self._host: RegionHost | None = None
        self._backup_file = ""
        self._dirty = True
        self._shutting_down = False
        self._first_archive_done = False
        self._map_tile_needs_generated = False
        self._logger = get_logger("persistence.save_coordinator")

    @property
    def dirty(self) -> bool:
        return self._dirty

    @property
    def shutting_down(self) -> bool:
        return self._shutting_down

    @property
    def first_archive_done(self) -> bool:
        return self._first_archive_done

    @property
    def map_tile_needs_generated(self) -> bool:
        return self._map_tile_needs_generated

    @map_tile_needs_generated.setter
    def map_tile_needs_generated(self, value: bool) -> None:
        self._map_tile_needs_generated = value

    @property
    def backup_file(self) -> str:
        """Name of the active file (without extension) canonical saves go to."""

        if self._backup_file:
            return self._backup_file
        return self._host.region_name if self._host is not None else ""

    @backup_file.setter
    def backup_file(self, value: str) -> None:
        self._backup_file = value

    @property
    def host(self) -> RegionHost | None:
        return self._host

    def attach_host(self, host: RegionHost) -> None:
        self._host = host

    def mark_dirty(self) -> None:
        """Record that the region changed since the last canonical save."""

        self._dirty = True

    def set_event_bus(self, event_bus: EventBus | None) -> None:
        self._event_bus = event_bus

    async def attempt_save(self, is_archival: bool, *, forced: bool = False) -> SaveResult:
        """Save under the lock; skipped once shutdown has begun.

        A forced save clears the dirty flag even when it is skipped.
        """

        async with self._lock:
            result = await self._save_locked(is_archival, final=False, forced=forced)
            if forced and result == SaveResult.SKIPPED:
                # a forced request is consumed even when there was nothing to capture
                self._dirty = False
            return result

    async def finish(self, *, final_save: bool) -> SaveResult:
        """Enter the terminal shutdown state, optionally saving one last time."""

        async with self._lock:
            self._shutting_down = True
            if not final_save:
                return SaveResult.SKIPPED
            return await self._save_locked(False, final=True, forced=False)

    async def _save_locked(self, is_archival: bool, *, final: bool, forced: bool) -> SaveResult:
        operation = "archive" if is_archival else "save"
        if self._shutting_down and not final:
            self._logger.debug("save_skipped_shutting_down", operation=operation)
            return SaveResult.SKIPPED

        host = self._host
        if host is None or host.is_deleted:
            return SaveResult.SKIPPED
        region = host.region_name
        if host.is_loading:
            self._logger.info("not_saving_backup_host_loading", region=region, operation=operation)
            return SaveResult.SKIPPED

        self._logger.info("backing_up_region", region=region, operation=operation)
        try:
            snapshot = self._capture(host)
        except Exception as exc:  # noqa: BLE001
            self._logger.exception("snapshot_capture_failed", region=region, operation=operation)
            await self._publish_error(region, exc)
            return SaveResult.FAILED

        if not is_archival:
            # changes arriving while the write is in flight re-mark the flag
            self._dirty = False

        target = self._target_path(region, is_archival)
        try:
            committed = await asyncio.to_thread(
                self._writer.commit,
                target,
                lambda path: self._codec.save(path, snapshot),
            )
        except Exception as exc:  # noqa: BLE001
            self._logger.exception("backup_save_failed", region=region, operation=operation)
            committed = False
            await self._publish_error(region, exc)
        finally:
            snapshot.release()

        if not committed:
            if not is_archival:
                self._dirty = True
            self._logger.error("failed_to_save_backup", region=region, operation=operation, path=str(target))
            return SaveResult.FAILED

        if not is_archival and not forced and self._keep_first_archive and not self._first_archive_done:
            await self._copy_first_archive(region, target)

        self._map_tile_needs_generated = True
        self._logger.info("backup_saved", region=region, operation=operation, path=str(target))
        await self._publish_saved(region, target, is_archival)
        return SaveResult.SAVED

    def _capture(self, host: RegionHost) -> RegionSnapshot:
        snapshot = host.capture_snapshot()
        groups = snapshot.persistable_groups()
        for group in groups:
            group.has_changed = False
        snapshot.object_groups = groups
        return snapshot

    def _target_path(self, region: str, is_archival: bool) -> Path:
        extension = self._codec.file_extension
        if is_archival:
            return self._archive_directory / archive_file_name(region, self._clock(), extension)
        return active_file_path(self._active_directory, self.backup_file or region, extension)

    async def _copy_first_archive(self, region: str, canonical: Path) -> None:
        self._first_archive_done = True
        archive_path = self._archive_directory / archive_file_name(region, self._clock(), self._codec.file_extension)
        copied = await asyncio.to_thread(self._writer.copy_into, canonical, archive_path)
        if copied:
            self._logger.info("previous_backup_archived", region=region, path=str(archive_path))
        else:
            self._logger.warning("previous_backup_archive_failed", region=region, path=str(archive_path))

    async def _publish_saved(self, region: str, path: Path, is_archival: bool) -> None:
        if self._event_bus is None:
            return
        await self._event_bus.publish(
            RegionSavedEvent(
                source="persistence.save_coordinator",
                run_id=self._run_id,
                region_name=region,
                path=str(path),
                archival=is_archival,
            )
        )
        await self._event_bus.publish(
            MapTileStaleEvent(
                source="persistence.save_coordinator",
                run_id=self._run_id,
                region_name=region,
            )
        )

    async def _publish_error(self, region: str, exc: Exception) -> None:
        if self._event_bus is None:
            return
        await self._event_bus.publish(
            ErrorEvent(
                source="persistence.save_coordinator",
                run_id=self._run_id,
                module="persistence.save_coordinator",
                error_type=type(exc).__name__,
                message=str(exc),
                region_name=region,
            )
        )

"""Public façade of the file based region backup store."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta
from pathlib import Path

from core.config_models import BackupConfig
from core.event_bus import EventBus
from core.event_types import EventType
from core.events import BackupRequestedEvent, BaseEvent
from core.logger import get_logger
from persistence.atomic_writer import AtomicFileWriter
from persistence.codecs import CodecChain
from persistence.errors import StoreConfigurationError
from persistence.host import RegionHost
from persistence.models import BackupRecord, RegionSnapshot, SaveResult
from persistence.naming import active_file_path, is_archive_of, parse_archive_name
from persistence.retention import RetentionPruner, TimestampSource, creation_time
from persistence.save_coordinator import SaveCoordinator
from persistence.save_scheduler import SECONDS_PER_MINUTE, SaveScheduler

LATEST_BACKUP_WINDOW = timedelta(days=7)


class BackupStore:
    """Persist one region to ``<active>/<name>.sim`` with timestamped archives.

    Lifecycle: construct, ``load_most_recent`` the region, ``attach_host`` the
    running scene, ``start`` the periodic triggers, and finally ``shutdown``,
    which performs the last save and leaves the store unable to save again.
    """

    def __init__(
        self,
        config: BackupConfig,
        *,
        event_bus: EventBus | None = None,
        run_id: str = "unknown",
        codecs: CodecChain | None = None,
        clock: Callable[[], datetime] = datetime.now,
        created_at: TimestampSource = creation_time,
        seconds_per_minute: float = SECONDS_PER_MINUTE,
    ) -> None:
        self._config = config
        self._active_directory = Path(config.store_backup_directory)
        self._archive_directory = Path(config.previous_backup_directory)
        self._codecs = codecs or CodecChain()
        self._clock = clock
        self._writer = AtomicFileWriter()
        self._logger = get_logger("persistence.backup_store")

        self._coordinator = SaveCoordinator(
            active_directory=self._active_directory,
            archive_directory=self._archive_directory,
            codec=self._codecs.primary,
            writer=self._writer,
            keep_first_archive=config.save_previous_backup,
            event_bus=event_bus,
            run_id=run_id,
            clock=clock,
        )
        self._pruner = RetentionPruner(
            self._archive_directory,
            self._codecs.primary.file_extension,
            created_at=created_at,
            clock=clock,
        )
        self._scheduler = SaveScheduler(
            self._coordinator,
            self._pruner,
            config,
            seconds_per_minute=seconds_per_minute,
        )
        if event_bus is not None:
            self.attach(event_bus)

    @property
    def active_directory(self) -> Path:
        return self._active_directory

    @property
    def archive_directory(self) -> Path:
        return self._archive_directory

    @property
    def extension(self) -> str:
        return self._codecs.primary.file_extension

    @property
    def coordinator(self) -> SaveCoordinator:
        return self._coordinator

    @property
    def scheduler(self) -> SaveScheduler:
        return self._scheduler

    @property
    def backup_file(self) -> str:
        """Current backup identity: the region name canonical saves are written under."""

        return self._coordinator.backup_file

    @backup_file.setter
    def backup_file(self, value: str) -> None:
        self._coordinator.backup_file = value

    @property
    def backups_enabled(self) -> bool:
        return self._scheduler.backups_enabled

    @backups_enabled.setter
    def backups_enabled(self, value: bool) -> None:
        self._scheduler.backups_enabled = value

    @property
    def map_tile_needs_generated(self) -> bool:
        return self._coordinator.map_tile_needs_generated

    @map_tile_needs_generated.setter
    def map_tile_needs_generated(self, value: bool) -> None:
        self._coordinator.map_tile_needs_generated = value

    def ensure_directories(self) -> None:
        """Create the active and archive directories; fatal when impossible."""

        for directory in (self._active_directory, self._archive_directory):
            try:
                directory.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise StoreConfigurationError(f"cannot create store directory {directory}: {exc}") from exc

    async def start(self) -> None:
        """Prepare directories and start the periodic triggers."""

        self.ensure_directories()
        self._scheduler.start()
        self._logger.info(
            "backup_store_started",
            active_directory=str(self._active_directory),
            archive_directory=str(self._archive_directory),
            primary_enabled=self._scheduler.primary.enabled,
            archival_enabled=self._scheduler.archival.enabled,
        )

    def attach_host(self, host: RegionHost) -> None:
        """Bind the running region whose state is captured on every save."""

        self._coordinator.attach_host(host)
        if not self._coordinator.backup_file:
            self._coordinator.backup_file = host.region_name

    def attach(self, event_bus: EventBus) -> None:
        """Save immediately whenever the host publishes a backup request."""

        self._coordinator.set_event_bus(event_bus)

        async def _on_backup_requested(_: BaseEvent) -> None:
            await self.force_save()

        event_bus.subscribe(EventType.BACKUP_REQUESTED, _on_backup_requested, filter=self._is_own_request)

    def _is_own_request(self, event: BaseEvent) -> bool:
        # an empty region name addresses every store on the bus
        if not isinstance(event, BackupRequestedEvent):
            return False
        return not event.region_name or event.region_name == self.backup_file

    def mark_dirty(self) -> None:
        self._coordinator.mark_dirty()

    async def force_save(self) -> SaveResult:
        """Save now regardless of the dirty flag, pausing the periodic triggers."""

        self._scheduler.pause()
        try:
            return await self._coordinator.attempt_save(False, forced=True)
        finally:
            self._scheduler.resume()

    async def shutdown(self) -> SaveResult:
        """Stop the triggers for good and perform the final canonical save."""

        await self._scheduler.shutdown()
        final_save = self._config.save_changes and self._scheduler.backups_enabled
        result = await self._coordinator.finish(final_save=final_save)
        self._logger.info("backup_store_stopped", final_save=result.value)
        return result

    def load_most_recent(self, region_name: str) -> RegionSnapshot:
        """Load the region's active file, falling back to the legacy format, then to empty."""

        self._logger.info("restoring_region_backup", region=region_name, operation="load")
        snapshot, codec = self._codecs.load(self._active_directory, region_name)
        self._coordinator.backup_file = region_name
        if codec is not None and snapshot.region_info is not None and snapshot.region_info.needs_port:
            self._logger.warning("region_port_unset", region=region_name, operation="load")
        return snapshot

    def list_regions(self) -> list[str]:
        """Names of the regions that have an active file."""

        if not self._active_directory.is_dir():
            return []
        return sorted(path.stem for path in self._active_directory.glob(f"*{self.extension}") if path.is_file())

    def list_backups(self, region_name: str) -> list[BackupRecord] | None:
        """Archive entries of exactly ``region_name``, oldest first.

        None when the archive directory does not exist yet.
        """

        if not self._archive_directory.is_dir():
            return None

        records: list[BackupRecord] = []
        for path in sorted(self._archive_directory.glob(f"*{self.extension}")):
            if not is_archive_of(path, region_name, self.extension):
                continue
            parsed = parse_archive_name(path, self.extension)
            if parsed is None:
                continue
            records.append(BackupRecord(region_name=parsed[0], timestamp=parsed[1], path=path))
        return sorted(records, key=lambda record: record.timestamp)

    def latest_backup_of(self, region_name: str) -> Path | None:
        """Most recently written backup within the last seven days, if any."""

        backups = self.list_backups(region_name)
        if not backups:
            return None

        floor = self._clock() - LATEST_BACKUP_WINDOW
        latest: Path | None = None
        latest_time = floor
        for record in backups:
            try:
                written = record.last_write_time
            except FileNotFoundError:
                continue
            if written > latest_time:
                latest, latest_time = record.path, written
        return latest

    def restore_from_backup(self, path: Path, region_name: str) -> bool:
        """Replace the region's active file with a verbatim copy of ``path``.

        The host must quiesce saves first; this does not take the save lock.
        """

        if not path.is_file():
            self._logger.error("restore_source_missing", region=region_name, path=str(path))
            return False

        target = active_file_path(self._active_directory, region_name, self.extension)
        restored = self._writer.copy_into(path, target)
        if restored:
            self._logger.info("region_restored", region=region_name, path=str(path), operation="restore")
        return restored

    def restore_last_backup(self, region_name: str) -> bool:
        latest = self.latest_backup_of(region_name)
        if latest is None:
            self._logger.info("no_recent_backup_to_restore", region=region_name, operation="restore")
            return False
        return self.restore_from_backup(latest, region_name)

    def remove_region(self, region_name: str | None = None) -> bool:
        """Delete the region's active file; archives are kept."""

        name = region_name or self.backup_file
        if not name:
            return False
        target = active_file_path(self._active_directory, name, self.extension)
        existed = target.exists()
        target.unlink(missing_ok=True)
        self._logger.info("region_removed", region=name, operation="remove", existed=existed)
        return existed

    def cleanup_backups(self, days: int | None = None, region_name: str | None = None) -> int:
        """Delete archives older than ``days`` (configured ``ArchiveDays`` by default)."""

        return self._pruner.prune(self._config.archive_days if days is None else days, region_name)

"""Periodic save triggers driving the coordinator."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

from core.config_models import BackupConfig
from core.logger import get_logger
from persistence.models import SaveResult
from persistence.retention import RetentionPruner
from persistence.save_coordinator import SaveCoordinator

SECONDS_PER_MINUTE = 60.0


class PeriodicTrigger:
    """Cancellable asyncio task calling ``callback`` every ``period_seconds``.

    The task awaits its callback before sleeping again, so a slow save delays
    the next fire instead of queueing more of them. ``stop`` cancels a sleeping
    task immediately; a fire already in progress is allowed to finish.
    """

    def __init__(self, name: str, period_seconds: float, callback: Callable[[], Awaitable[Any]]) -> None:
        self._name = name
        self._period = period_seconds
        self._callback = callback
        self._task: asyncio.Task[None] | None = None
        self._stop_requested = False
        self._firing = False
        self._closed = False
        self._logger = get_logger("persistence.save_scheduler")

    @property
    def name(self) -> str:
        return self._name

    @property
    def enabled(self) -> bool:
        return self._period > 0 and not self._closed

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done() and not self._stop_requested

    def start(self) -> None:
        if not self.enabled:
            return
        self._stop_requested = False
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._run(), name=f"{self._name}-trigger")

    def stop(self) -> None:
        self._stop_requested = True
        if self._task is not None and not self._firing:
            self._task.cancel()
            self._task = None

    async def close(self) -> None:
        """Stop permanently, waiting for an in-flight fire to complete."""

        self._closed = True
        task = self._task
        self.stop()
        if task is None or task.done() or task is asyncio.current_task():
            return
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _run(self) -> None:
        while not self._stop_requested:
            await asyncio.sleep(self._period)
            if self._stop_requested:
                break
            self._firing = True
            try:
                await self._callback()
            except Exception:  # noqa: BLE001
                self._logger.exception("trigger_callback_failed", trigger=self._name)
            finally:
                self._firing = False


class SaveScheduler:
    """Primary (dirty-gated) and archival (unconditional) save triggers."""

    def __init__(
        self,
        coordinator: SaveCoordinator,
        pruner: RetentionPruner,
        config: BackupConfig,
        *,
        seconds_per_minute: float = SECONDS_PER_MINUTE,
    ) -> None:
        self._coordinator = coordinator
        self._pruner = pruner
        self._config = config
        self._backups_enabled = True
        self._started = False
        self._display_not_saving_notice = True
        self._logger = get_logger("persistence.save_scheduler")

        primary_period = config.time_between_saves * seconds_per_minute if config.primary_save_enabled else 0.0
        archival_period = (
            config.time_between_backup_saves * seconds_per_minute if config.archival_save_enabled else 0.0
        )
        self._primary = PeriodicTrigger("primary-save", primary_period, self.run_primary_cycle)
        self._archival = PeriodicTrigger("archival-save", archival_period, self.run_archival_cycle)

    @property
    def backups_enabled(self) -> bool:
        return self._backups_enabled

    @backups_enabled.setter
    def backups_enabled(self, value: bool) -> None:
        self._backups_enabled = value

    @property
    def primary(self) -> PeriodicTrigger:
        return self._primary

    @property
    def archival(self) -> PeriodicTrigger:
        return self._archival

    def start(self) -> None:
        self._started = True
        self._primary.start()
        self._archival.start()

    def pause(self) -> None:
        self._primary.stop()
        self._archival.stop()

    def resume(self) -> None:
        if not self._started or self._coordinator.shutting_down:
            return
        self._primary.start()
        self._archival.start()

    async def shutdown(self) -> None:
        await self._primary.close()
        await self._archival.close()

    async def run_primary_cycle(self) -> SaveResult:
        """One primary fire: save only when the region changed."""

        if not self._coordinator.dirty:
            if self._display_not_saving_notice:
                self._display_not_saving_notice = False
                self._logger.info("not_saving_backup_not_required", operation="save")
            return SaveResult.SKIPPED

        self._display_not_saving_notice = True
        if not (self._config.save_changes and self._backups_enabled):
            return SaveResult.SKIPPED
        return await self._coordinator.attempt_save(False)

    async def run_archival_cycle(self) -> SaveResult:
        """One archival fire: timestamped copy regardless of dirty, then prune."""

        result = await self._coordinator.attempt_save(True)
        if self._coordinator.shutting_down:
            return result

        host = self._coordinator.host
        region = host.region_name if host is not None else None
        await asyncio.to_thread(self._pruner.prune, self._config.archive_days, region)
        return result

"""Background removal of expired files and abandoned uploads."""

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import final, override

from django.conf import settings

from server.apps.files.exceptions import CorruptFileRecord
from server.apps.files.infrastructure.metadata import is_partial_name
from server.apps.files.infrastructure.storage import (
    BlobStorage,
    RecordStore,
    get_record_store,
    get_upload_storage,
)
from server.apps.files.logic.lifecycle import remove_stored_file

logger = logging.getLogger(__name__)


@final
@dataclass
class SweepReport:
    """Names handled by one reaper sweep."""

    expired: list[str] = field(default_factory=list)
    orphaned: list[str] = field(default_factory=list)
    stale_partials: list[str] = field(default_factory=list)
    unreadable: list[str] = field(default_factory=list)
    # Names whose removal failed, retried on the next sweep
    failed: list[str] = field(default_factory=list)


@final
class Reaper:
    """Delete expired files together with their records.

    Each sweep also removes records whose blob is gone and
    ``.partial`` files of uploads abandoned for longer than
    ``partial_max_age`` seconds.

    Deletions are idempotent, so a sweep may race with an expired
    download or another sweep without failing.
    """

    def __init__(
        self,
        storage: BlobStorage,
        records: RecordStore,
        partial_max_age: int,
    ) -> None:
        """Initialize the reaper.

        Args:
            storage: Blob storage.
            records: Record storage.
            partial_max_age: Age in seconds after which an unfinished
                upload counts as abandoned.
        """
        self.storage = storage
        self.records = records
        self.partial_max_age = partial_max_age

    def sweep(self, now: float, *, dry_run: bool = False) -> SweepReport:
        """Run one cleanup cycle.

        A record that cannot be read, or a file that cannot be removed,
        is logged and skipped so the remaining files are still handled.

        Args:
            now: Current unix timestamp.
            dry_run: Only report what would be removed.

        Returns:
            Report of removed (or removable) names.
        """
        report = SweepReport()
        for name in self.records.names():
            self._sweep_record(name, now, report, dry_run=dry_run)
        self._sweep_partials(now, report, dry_run=dry_run)
        return report

    def _sweep_record(
        self,
        name: str,
        now: float,
        report: SweepReport,
        *,
        dry_run: bool,
    ) -> None:
        try:
            record = self.records.read(name)
        except (CorruptFileRecord, OSError):
            logger.exception('Error while reading file record %s', name)
            report.unreadable.append(name)
            return

        if record is None:
            # Removed since the listing
            return

        if not self.storage.exists(name):
            if not dry_run and not self._remove(name, report, orphan=True):
                return
            report.orphaned.append(name)
        elif record.is_expired(int(now)):
            if not dry_run and not self._remove(name, report, orphan=False):
                return
            report.expired.append(name)

    def _remove(self, name: str, report: SweepReport, *, orphan: bool) -> bool:
        try:
            if orphan:
                self.records.delete(name)
            else:
                remove_stored_file(name, self.storage, self.records)
        except OSError:
            logger.exception('Failed to remove file %s', name)
            report.failed.append(name)
            return False

        if orphan:
            logger.info('Removed record %s without a stored file', name)
        else:
            logger.info('File %s got removed because the ttl was reached', name)
        return True

    def _sweep_partials(
        self,
        now: float,
        report: SweepReport,
        *,
        dry_run: bool,
    ) -> None:
        try:
            _, names = self.storage.listdir('')
        except FileNotFoundError:
            return

        for name in names:
            if not is_partial_name(name):
                continue
            try:
                age = now - self.storage.modified_timestamp(name)
            except FileNotFoundError:
                # Committed or rolled back since the listing
                continue
            if age <= self.partial_max_age:
                continue

            if not dry_run:
                try:
                    self.storage.delete(name)
                except OSError:
                    logger.exception('Failed to remove abandoned upload %s', name)
                    report.failed.append(name)
                    continue
                logger.info('Removed abandoned upload %s', name)
            report.stale_partials.append(name)


@final
class ReaperThread(threading.Thread):
    """Daemon thread running ``Reaper.sweep`` at a fixed interval."""

    def __init__(self, reaper: Reaper, interval: float) -> None:
        """Initialize the thread.

        Args:
            reaper: Reaper to run.
            interval: Seconds between the end of a sweep and the next one.
        """
        super().__init__(name='reaper', daemon=True)
        self.reaper = reaper
        self.interval = interval
        self._stop_requested = threading.Event()

    @override
    def run(self) -> None:
        """Sweep until ``stop()`` is called."""
        logger.info('Started reaper, sweeping every %s seconds', self.interval)
        while not self._stop_requested.is_set():
            self.run_once()
            self._stop_requested.wait(self.interval)
        logger.info('Stopped reaper')

    def run_once(self) -> SweepReport | None:
        """Run one sweep, logging instead of raising on failure.

        Returns:
            The sweep report, or None if the sweep failed.
        """
        try:
            return self.reaper.sweep(time.time())
        except Exception:
            # The next cycle retries
            logger.exception('Error while running reaper')
            return None

    def stop(self) -> None:
        """Ask the thread to finish after the current sweep."""
        self._stop_requested.set()


def get_reaper() -> Reaper:
    """Build a reaper for the configured storage directories."""
    return Reaper(
        storage=get_upload_storage(),
        records=get_record_store(),
        partial_max_age=settings.PARTIAL_UPLOAD_MAX_AGE,
    )

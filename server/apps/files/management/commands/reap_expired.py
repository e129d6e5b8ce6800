"""Management command to remove expired files and abandoned uploads."""

import time
from typing import Any

from django.conf import settings
from django.core.management.base import BaseCommand

from server.apps.files.logic.reaper import ReaperThread, SweepReport, get_reaper


class Command(BaseCommand):
    """Run the reaper once, or forever with ``--loop``."""

    help = 'Remove files whose ttl was reached'

    def add_arguments(self, parser: Any) -> None:
        """Add command line arguments.

        Args:
            parser: Argument parser.
        """
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show what would be removed without removing',
        )
        parser.add_argument(
            '--loop',
            action='store_true',
            help='Keep sweeping every REAPER_INTERVAL seconds',
        )

    def handle(self, *args: Any, **options: Any) -> None:
        """Execute the reap command.

        Args:
            args: Positional arguments (unused).
            options: Command options.
        """
        reaper = get_reaper()

        if options['loop']:
            thread = ReaperThread(reaper, settings.REAPER_INTERVAL)
            self.stdout.write(
                f'Sweeping every {settings.REAPER_INTERVAL} seconds',
            )
            try:
                thread.run()
            except KeyboardInterrupt:
                thread.stop()
                self.stdout.write(self.style.WARNING('\nStopped'))
            return

        dry_run = options['dry_run']
        report = reaper.sweep(time.time(), dry_run=dry_run)
        self._write_report(report, dry_run=dry_run)

    def _write_report(self, report: SweepReport, *, dry_run: bool) -> None:
        verb = 'Would remove' if dry_run else 'Removed'
        for name in report.expired:
            self.stdout.write(f'{verb} expired file: {name}')
        for name in report.orphaned:
            self.stdout.write(f'{verb} record without file: {name}')
        for name in report.stale_partials:
            self.stdout.write(f'{verb} abandoned upload: {name}')
        for name in report.unreadable:
            self.stderr.write(f'Unreadable file record: {name}')
        for name in report.failed:
            self.stderr.write(f'Failed to remove: {name}')

        self.stdout.write(
            self.style.SUCCESS(
                f'{verb} {len(report.expired)} expired files, '
                f'{len(report.stale_partials)} abandoned uploads, '
                f'{len(report.failed)} failed',
            ),
        )

"""Management command to remove stored files by name."""

from typing import Any

from django.core.management.base import BaseCommand, CommandError

from server.apps.files.infrastructure.metadata import is_valid_filename
from server.apps.files.infrastructure.storage import (
    get_record_store,
    get_upload_storage,
)
from server.apps.files.logic.lifecycle import remove_stored_file


class Command(BaseCommand):
    """Delete files together with their records."""

    help = 'Delete stored files, e.g. 1a2b3c4d_report.pdf'

    def add_arguments(self, parser: Any) -> None:
        """Add command line arguments.

        Args:
            parser: Argument parser.
        """
        parser.add_argument('names', nargs='+', help='Committed file names')

    def handle(self, *args: Any, **options: Any) -> None:
        """Execute the delete command.

        Args:
            args: Positional arguments (unused).
            options: Command options.

        Raises:
            CommandError: If a name is not a valid file name.
        """
        names = options['names']
        invalid = [name for name in names if not is_valid_filename(name)]
        if invalid:
            raise CommandError(f'Invalid file names: {", ".join(invalid)}')

        storage = get_upload_storage()
        records = get_record_store()
        deleted = 0
        for name in names:
            exists = storage.exists(name)
            # A leftover record is removed even without its file
            remove_stored_file(name, storage, records)
            if exists:
                deleted += 1
                self.stdout.write(f'Deleted: {name}')
            else:
                self.stderr.write(f'No such file: {name}')

        self.stdout.write(self.style.SUCCESS(f'Deleted {deleted} files'))

"""Management command to hash a password for the auth config file."""

import getpass
from typing import Any, final, override

from django.core.management.base import BaseCommand, CommandError

from server.apps.authorization.schemes.basic import hash_password


@final
class Command(BaseCommand):
    """Print a bcrypt hash usable as ``password`` of a ``[[basic]]`` entry."""

    help = 'Hash a password for a [[basic]] entry of the auth config'

    @override
    def add_arguments(self, parser: Any) -> None:
        """Add command line arguments.

        Args:
            parser: Argument parser.
        """
        parser.add_argument(
            '--password',
            default=None,
            help='Password to hash (prompted for when omitted)',
        )

    @override
    def handle(self, *args: Any, **options: Any) -> None:
        """Execute the command.

        Args:
            args: Positional arguments (unused).
            options: Command options.
        """
        password = options['password']
        if password is None:
            password = getpass.getpass('Password: ')
            if password != getpass.getpass('Password (again): '):
                raise CommandError('Passwords do not match')

        if not password:
            raise CommandError('Password must not be empty')

        self.stdout.write(hash_password(password))

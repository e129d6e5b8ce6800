"""Django management command to run the file server."""

import logging
import time
from typing import Any, final, override

from cheroot.wsgi import Server as WSGIServer
from django.conf import settings
from django.core.management.base import BaseCommand
from django.core.wsgi import get_wsgi_application

from server.apps.authorization.engine import get_engine
from server.apps.files.infrastructure.storage import prepare_directories
from server.apps.files.logic.reaper import ReaperThread, get_reaper

logger = logging.getLogger(__name__)


@final
class Command(BaseCommand):
    """Run the upload/download service using cheroot WSGI server."""

    help = 'Run the file server together with the reaper'

    @override
    def add_arguments(self, parser: Any) -> None:
        """Add command arguments.

        Args:
            parser: Argument parser.
        """
        parser.add_argument(
            '--host',
            type=str,
            default=None,
            help='Host to bind to (default: FILE_SERVER_HOST)',
        )
        parser.add_argument(
            '--port',
            type=int,
            default=None,
            help='Port to bind to (default: FILE_SERVER_PORT)',
        )
        parser.add_argument(
            '--no-reaper',
            action='store_true',
            default=False,
            help='Do not remove expired files in the background',
        )

    @override
    def handle(self, *args: Any, **options: Any) -> None:
        """Execute the command.

        Args:
            args: Positional arguments.
            options: Keyword arguments from command line.
        """
        host = options['host'] or settings.FILE_SERVER_HOST
        port = options['port'] or settings.FILE_SERVER_PORT

        # Fail on a broken policy or directory layout before binding
        get_engine()
        prepare_directories()

        reaper_thread = None
        if not options['no_reaper']:
            reaper = get_reaper()
            report = reaper.sweep(time.time())
            logger.info(
                'Recovery sweep removed %d expired and %d abandoned files',
                len(report.expired),
                len(report.stale_partials),
            )
            reaper_thread = ReaperThread(reaper, settings.REAPER_INTERVAL)
            reaper_thread.start()

        self.stdout.write(
            self.style.SUCCESS(f'Starting file server on {host}:{port}'),
        )

        server = WSGIServer(
            bind_addr=(host, port),
            wsgi_app=get_wsgi_application(),
        )
        server.server_name = 'FileServer'

        try:
            logger.info('File server starting on %s:%d', host, port)
            server.start()
        except KeyboardInterrupt:
            self.stdout.write(self.style.WARNING('\nShutting down...'))
        finally:
            server.stop()
            if reaper_thread is not None:
                reaper_thread.stop()
            self.stdout.write(self.style.SUCCESS('File server stopped'))

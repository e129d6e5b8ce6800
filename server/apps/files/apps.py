"""Django app configuration for the upload/download service."""

from typing import override

from django.apps import AppConfig


class FilesConfig(AppConfig):
    """Stored files: ingestion, downloads and expiry."""

    name = 'server.apps.files'
    label = 'files'
    verbose_name = 'Stored files'

    @override
    def ready(self) -> None:
        """Connect the storage cache reset to ``setting_changed``."""
        from server.apps.files import signals  # noqa: F401

"""Django app configuration for authorization app."""

from typing import override

from django.apps import AppConfig


class AuthorizationConfig(AppConfig):
    """Configuration for authorization app."""

    name = 'server.apps.authorization'
    label = 'authorization'
    verbose_name = 'Authorization'

    @override
    def ready(self) -> None:
        """Import signal handlers when app is ready."""
        from server.apps.authorization import signals  # noqa: F401

"""Signal handlers for authorization app."""

import logging

from django.core.signals import setting_changed
from django.dispatch import receiver

from server.apps.authorization.engine import get_engine

logger = logging.getLogger(__name__)


@receiver(setting_changed)
def reload_policy(
    sender: object,
    setting: str,
    **kwargs: object,
) -> None:
    """Drop the cached engine when the policy location changes.

    Args:
        sender: Signal sender.
        setting: Name of the changed setting.
        **kwargs: Additional signal arguments.
    """
    if setting != 'AUTH_CONFIG_PATH':
        return

    logger.debug('AUTH_CONFIG_PATH changed, policy will be reloaded')
    get_engine.cache_clear()

"""Signal handlers for files app."""

import logging
from typing import Final

from django.core.signals import setting_changed
from django.dispatch import receiver

from server.apps.files.infrastructure.storage import (
    get_record_store,
    get_upload_storage,
)

logger = logging.getLogger(__name__)

_STORAGE_SETTINGS: Final = frozenset(('UPLOAD_DIRECTORY', 'DATA_DIRECTORY'))


@receiver(setting_changed)
def reset_storages(
    sender: object,
    setting: str,
    **kwargs: object,
) -> None:
    """Drop cached storages when a storage directory changes.

    Both caches are cleared, since each storage checks that the
    directories do not overlap.

    Args:
        sender: Signal sender.
        setting: Name of the changed setting.
        **kwargs: Additional signal arguments.
    """
    if setting not in _STORAGE_SETTINGS:
        return

    logger.debug('%s changed, storages will be recreated', setting)
    get_upload_storage.cache_clear()
    get_record_store.cache_clear()

"""
Board configuration service: password, upload folder name and page size.
"""

from __future__ import annotations

import logging
from typing import Any

from sheetboard.cache import PostCache
from sheetboard.errors import AuthError, StorageError, ValidationError
from sheetboard.locks import BoardLock, held
from sheetboard.settings_store import BoardConfig, SettingsStore

logger = logging.getLogger(__name__)

ALLOWED_PAGE_SIZES = (5, 10, 20, 30)
DEFAULT_LOCK_TIMEOUT_SECONDS = 10.0


def coerce_page_size(value: Any) -> int:
    """Accept ints and numeric strings from the allowed set; reject everything else."""
    try:
        numeric = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid page size: {value!r}")
    if not numeric.is_integer() or int(numeric) not in ALLOWED_PAGE_SIZES:
        raise ValidationError(f"Invalid page size: {value!r}")
    return int(numeric)


class ConfigService:
    def __init__(
        self,
        store: SettingsStore,
        lock: BoardLock,
        cache: PostCache,
        lock_timeout: float = DEFAULT_LOCK_TIMEOUT_SECONDS,
    ):
        self.store = store
        self.lock = lock
        self.cache = cache
        self.lock_timeout = lock_timeout
        self._config: BoardConfig = store.read()

    def get(self) -> BoardConfig:
        return self._config

    @property
    def page_size(self) -> int:
        return self._config.page_size

    @property
    def folder_name(self) -> str:
        return self._config.folder_name

    def verify_password(self, password: Any) -> bool:
        return password == self._config.password

    def check_password(self, password: Any) -> None:
        if not self.verify_password(password):
            raise AuthError()

    def set_page_size(self, value: Any) -> int:
        page_size = coerce_page_size(value)
        with held(self.lock, self.lock_timeout):
            try:
                self.store.write_page_size(page_size)
            except Exception as e:
                logger.exception("Failed to persist page size %s", page_size)
                raise StorageError(f"Failed to update page size: {e}") from e
            self._config.page_size = page_size
            self.cache.invalidate()
        logger.info("Page size set to %s", page_size)
        return page_size

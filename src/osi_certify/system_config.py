"""
System configuration service — the single in-memory SystemConfig.

Loaded from the store at startup and replaced only through `apply` (persist,
then swap) or `reload` (read back from the store). Request handlers read the
current value through `current`; nothing else holds a copy.
"""

from __future__ import annotations

import threading

import structlog
from railway.result import Result

from osi_certify.access import require_admin
from osi_certify.domain.models import Caller, SystemConfig
from osi_certify.domain.ports import SystemConfigStore

log = structlog.get_logger()


class SystemConfigService:
    def __init__(self, store: SystemConfigStore, initial: SystemConfig | None = None) -> None:
        self._store = store
        self._lock = threading.Lock()
        self._current = initial or SystemConfig()

    @property
    def current(self) -> SystemConfig:
        return self._current

    def _swap(self, config: SystemConfig) -> None:
        with self._lock:
            self._current = config
        log.info("system_config.active", **config.to_rows())

    def reload(self) -> Result[SystemConfig]:
        """Re-read the store. On failure the previous config stays active."""
        return (
            self._store.load()
            .peek(self._swap)
            .peek_failure(lambda e: log.error("system_config.reload_failed", error=e.message))
        )

    def apply(self, config: SystemConfig, caller: Caller) -> Result[SystemConfig]:
        return (
            require_admin(caller, "change system configuration")
            .flat_map(lambda _: self._store.save(config))
            .peek(self._swap)
        )

# aishe_portal/core/maintenance.py

import time
from dataclasses import dataclass
from typing import Awaitable, Callable

from loguru import logger

from aishe_portal.schemas.maintenance import MaintenanceStatus

# Admin login stays open so maintenance can always be switched off again
EXEMPT_PATHS = ("/health", "/", "/api/admin/login")
EXEMPT_PREFIXES = ("/api/admin/maintenance",)
DEFAULT_MESSAGE = "Service is under maintenance"


@dataclass(frozen=True)
class MaintenanceState:
    enabled: bool = False
    message: str = ""
    last_refreshed: float | None = None


class MaintenanceGate:
    """
    Process-wide maintenance switch backed by the app_settings table.

    The persisted flag is cached for `ttl_seconds`. Concurrent refreshes are
    not serialised; they issue the same read. A failed read keeps the gate
    open (not in maintenance) and is retried on the next request.
    """

    def __init__(
        self,
        loader: Callable[[], Awaitable[MaintenanceStatus]],
        ttl_seconds: float = 15.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._loader = loader
        self._ttl = ttl_seconds
        self._clock = clock
        self._state = MaintenanceState()

    @property
    def state(self) -> MaintenanceState:
        return self._state

    def is_stale(self) -> bool:
        refreshed = self._state.last_refreshed
        return refreshed is None or self._clock() - refreshed > self._ttl

    def invalidate(self) -> None:
        self._state = MaintenanceState(
            enabled=self._state.enabled,
            message=self._state.message,
            last_refreshed=None,
        )

    def set(self, status: MaintenanceStatus) -> MaintenanceState:
        self._state = MaintenanceState(
            enabled=status.enabled,
            message=status.message,
            last_refreshed=self._clock(),
        )
        return self._state

    async def current(self) -> MaintenanceState:
        if not self.is_stale():
            return self._state

        try:
            status = await self._loader()
        except Exception as e:
            logger.warning(f"Maintenance flag refresh failed, treating as open: {e}")
            # Leave last_refreshed unset so the next request retries the read
            self._state = MaintenanceState(enabled=False, message="", last_refreshed=None)
            return self._state

        return self.set(status)

    @staticmethod
    def is_exempt(path: str) -> bool:
        if path in EXEMPT_PATHS:
            return True
        return any(path.startswith(prefix) for prefix in EXEMPT_PREFIXES)

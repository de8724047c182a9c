import asyncio
import logging
import time
from collections.abc import Callable

from gymsheets.config import LOAD_TIMEOUT, SESSION_IDLE_TIMEOUT
from gymsheets.errors import MissingOwnerError
from gymsheets.models import HistoryLog, Sheet
from gymsheets.services.migration import MigrationReport, migrate_ownership
from gymsheets.services.projector import SheetProjector
from gymsheets.store import RecordStore

logger = logging.getLogger(__name__)


class WorkoutSession:
    """Binds one owner to the record store and to a live projection of their data."""

    def __init__(self, store: RecordStore, owner_id: str, load_timeout: float = LOAD_TIMEOUT):
        if not owner_id:
            raise MissingOwnerError("A workout session needs an owner id")
        self.store = store
        self.owner_id = owner_id
        self.projector = SheetProjector(store, owner_id, load_timeout)
        self.migration: MigrationReport | None = None

    @property
    def sheets(self) -> list[Sheet]:
        return self.projector.sheets

    @property
    def history_logs(self) -> list[HistoryLog]:
        return self.projector.history_logs

    @property
    def active_sheet(self) -> Sheet | None:
        return self.projector.active_sheet

    @property
    def is_loading(self) -> bool:
        return self.projector.is_loading

    def get_sheet(self, sheet_id: str) -> Sheet | None:
        return self.projector.get_sheet(sheet_id)

    def get_history_log(self, log_id: str) -> HistoryLog | None:
        return self.projector.get_history_log(log_id)

    async def open(self) -> "WorkoutSession":
        self.migration = await migrate_ownership(self.store, self.owner_id)
        await self.projector.start()
        return self

    async def close(self) -> None:
        await self.projector.stop()


class SessionRegistry:
    """One open WorkoutSession per owner, shared across requests.

    Sessions nobody has asked for within ``idle_timeout`` seconds are closed
    the next time the registry is used, so their live queries stop running.
    """

    def __init__(
        self,
        store: RecordStore,
        load_timeout: float = LOAD_TIMEOUT,
        idle_timeout: float = SESSION_IDLE_TIMEOUT,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.store = store
        self.load_timeout = load_timeout
        self.idle_timeout = idle_timeout
        self.clock = clock
        self._sessions: dict[str, WorkoutSession] = {}
        self._last_used: dict[str, float] = {}
        self._lock = asyncio.Lock()

    @property
    def owners(self) -> list[str]:
        return list(self._sessions)

    async def get(self, owner_id: str) -> WorkoutSession:
        if not owner_id:
            raise MissingOwnerError("A workout session needs an owner id")
        async with self._lock:
            now = self.clock()
            await self._close_idle(now, keep=owner_id)
            session = self._sessions.get(owner_id)
            if session is None:
                session = await WorkoutSession(self.store, owner_id, self.load_timeout).open()
                self._sessions[owner_id] = session
                logger.info("Opened workout session for %s", owner_id)
            self._last_used[owner_id] = now
            return session

    async def close_idle(self) -> int:
        """Close every session idle for longer than ``idle_timeout``."""
        async with self._lock:
            return await self._close_idle(self.clock())

    async def close_all(self) -> None:
        async with self._lock:
            for session in self._sessions.values():
                await session.close()
            self._sessions.clear()
            self._last_used.clear()

    async def _close_idle(self, now: float, keep: str | None = None) -> int:
        idle = [
            owner_id
            for owner_id, last_used in self._last_used.items()
            if owner_id != keep and now - last_used > self.idle_timeout
        ]
        for owner_id in idle:
            del self._last_used[owner_id]
            await self._sessions.pop(owner_id).close()
            logger.info("Closed idle workout session for %s", owner_id)
        return len(idle)

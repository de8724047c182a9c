import asyncio
import logging

from gymsheets.config import LOAD_TIMEOUT
from gymsheets.errors import StoreError
from gymsheets.models import HistoryLog, Sheet
from gymsheets.store import HISTORY, SHEETS, RecordStore, Subscription

logger = logging.getLogger(__name__)


class SheetProjector:
    """In-memory view of one owner's sheets and history logs.

    Each push from the store replaces the whole list. Sorting happens here
    because the store queries only filter by owner: sheets oldest first,
    history newest first. The active sheet is derived from the sheet list on
    every read and never stored separately.
    """

    def __init__(self, store: RecordStore, owner_id: str, load_timeout: float = LOAD_TIMEOUT):
        self.store = store
        self.owner_id = owner_id
        self.load_timeout = load_timeout
        self.sheets: list[Sheet] = []
        self.history_logs: list[HistoryLog] = []
        self.is_loading = True
        self._loaded = asyncio.Event()
        self._subscriptions: list[Subscription] = []
        self._timeout_task: asyncio.Task | None = None

    @property
    def active_sheet(self) -> Sheet | None:
        return next((sheet for sheet in self.sheets if sheet.is_active), None)

    @property
    def is_running(self) -> bool:
        return bool(self._subscriptions)

    def get_sheet(self, sheet_id: str) -> Sheet | None:
        return next((sheet for sheet in self.sheets if sheet.id == sheet_id), None)

    def get_history_log(self, log_id: str) -> HistoryLog | None:
        return next((log for log in self.history_logs if log.id == log_id), None)

    async def start(self) -> None:
        if self.is_running:
            return
        self._subscriptions = [
            await self.store.subscribe(SHEETS, self.owner_id, self._on_sheets, self._on_sheets_error),
            await self.store.subscribe(HISTORY, self.owner_id, self._on_history, self._on_history_error),
        ]
        if self.is_loading:
            self._timeout_task = asyncio.create_task(self._expire_loading())

    async def stop(self) -> None:
        for subscription in self._subscriptions:
            subscription.unsubscribe()
        self._subscriptions = []
        if self._timeout_task is not None:
            self._timeout_task.cancel()
            self._timeout_task = None

    async def wait_loaded(self) -> None:
        await self._loaded.wait()

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def _on_sheets(self, records: list[Sheet]) -> None:
        self.sheets = sorted(records, key=lambda sheet: sheet.created_at)
        self._finish_loading()

    def _on_history(self, records: list[HistoryLog]) -> None:
        self.history_logs = sorted(records, key=lambda log: log.date, reverse=True)
        self._finish_loading()

    def _on_sheets_error(self, error: StoreError) -> None:
        logger.error("Error fetching sheets for %s: %s", self.owner_id, error)
        self._finish_loading()

    def _on_history_error(self, error: StoreError) -> None:
        logger.error("Error fetching history for %s: %s", self.owner_id, error)

    def _finish_loading(self) -> None:
        if not self.is_loading:
            return
        self.is_loading = False
        self._loaded.set()
        if self._timeout_task is not None:
            self._timeout_task.cancel()
            self._timeout_task = None

    async def _expire_loading(self) -> None:
        await asyncio.sleep(self.load_timeout)
        if self.is_loading:
            logger.warning(
                "Store has not answered within %.1fs for %s; showing an empty view",
                self.load_timeout,
                self.owner_id,
            )
            self._timeout_task = None
            self._finish_loading()

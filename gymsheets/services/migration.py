import asyncio
import logging
from dataclasses import dataclass

from gymsheets.errors import MissingOwnerError, StoreError
from gymsheets.store import HISTORY, SHEETS, RecordStore

logger = logging.getLogger(__name__)


@dataclass
class MigrationReport:
    sheets: int = 0
    history_logs: int = 0

    @property
    def total(self) -> int:
        return self.sheets + self.history_logs


async def migrate_ownership(store: RecordStore, owner_id: str) -> MigrationReport | None:
    """Assign ``owner_id`` to every sheet and history log that has no owner.

    Records that already belong to someone are left alone, so running this
    again is a no-op. All assignments go out as one batched write. Returns
    ``None`` if the store failed.
    """
    if not owner_id:
        raise MissingOwnerError("Ownership migration needs an owner id")

    try:
        sheets, logs = await asyncio.gather(store.scan(SHEETS), store.scan(HISTORY))
    except StoreError:
        logger.exception("Error scanning records for ownership migration")
        return None

    writes = [(SHEETS, sheet.id, {"owner_id": owner_id}) for sheet in sheets if sheet.owner_id is None]
    sheet_count = len(writes)
    writes += [(HISTORY, log.id, {"owner_id": owner_id}) for log in logs if log.owner_id is None]

    report = MigrationReport(sheets=sheet_count, history_logs=len(writes) - sheet_count)
    if not writes:
        return report

    try:
        await store.batch_update(writes)
    except StoreError:
        logger.exception("Error assigning unowned records to %s", owner_id)
        return None

    logger.info(
        "Assigned %d sheets and %d history logs to %s",
        report.sheets,
        report.history_logs,
        owner_id,
    )
    return report

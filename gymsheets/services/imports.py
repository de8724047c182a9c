import asyncio
import logging
from dataclasses import dataclass, field

from gymsheets.errors import StoreError
from gymsheets.models import HistoryLog, Sheet, new_id
from gymsheets.schemas import SourceDocument, WorkoutDraft
from gymsheets.services.session import WorkoutSession
from gymsheets.services.sheets import create_sheet
from gymsheets.store import HISTORY

logger = logging.getLogger(__name__)

PROGRAM_TITLE = "Full Program"
IMPORTED_SHEET_TITLE = "Imported Workout"


@dataclass
class ImportResult:
    ok: bool
    group_id: str | None = None
    sheets: list[Sheet] = field(default_factory=list)
    history_log: HistoryLog | None = None
    skipped: int = 0


async def import_batch(
    ws: WorkoutSession,
    drafts: list[WorkoutDraft],
    source: SourceDocument | None = None,
    title: str = PROGRAM_TITLE,
) -> ImportResult:
    """Save reviewed drafts as one program: a sheet per draft plus one history log.

    Drafts without exercises are skipped. Every sheet and the history log
    share a fresh group id, which is also the history log's own id. When the
    owner had no sheets before the import, the first saved sheet is made
    active. A failure part way through is reported but nothing already
    written is undone.
    """
    usable = [draft for draft in drafts if draft.exercises]
    skipped = len(drafts) - len(usable)
    if not usable:
        logger.info("Refusing import of %d drafts with no exercises", len(drafts))
        return ImportResult(ok=False, skipped=skipped)

    group_id = new_id()
    collection_was_empty = not ws.sheets

    created = await asyncio.gather(
        *(
            create_sheet(
                ws,
                draft.title.strip() or IMPORTED_SHEET_TITLE,
                draft.exercises,
                group_id=group_id,
                source=source,
                is_active=collection_was_empty and index == 0,
            )
            for index, draft in enumerate(usable)
        )
    )
    sheets = [sheet for sheet in created if sheet is not None]
    if len(sheets) != len(usable):
        logger.error("Import %s saved %d of %d sheets", group_id, len(sheets), len(usable))
        return ImportResult(ok=False, group_id=group_id, sheets=sheets, skipped=skipped)

    history_log = HistoryLog(
        id=group_id,
        title=title,
        group_id=group_id,
        pdf_url=source.pdf_url if source else None,
        pdf_name=source.pdf_name if source else None,
        owner_id=ws.owner_id,
    )
    try:
        await ws.store.create(HISTORY, history_log)
    except StoreError:
        logger.exception("Error adding history log for import %s", group_id)
        return ImportResult(ok=False, group_id=group_id, sheets=sheets, skipped=skipped)

    logger.info("Imported %d sheets as program %s (%d skipped)", len(sheets), group_id, skipped)
    return ImportResult(
        ok=True, group_id=group_id, sheets=sheets, history_log=history_log, skipped=skipped
    )

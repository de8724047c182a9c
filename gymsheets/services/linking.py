import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum

from gymsheets.errors import StoreError
from gymsheets.models import HistoryLog, Sheet
from gymsheets.schemas import SourceDocument
from gymsheets.services.session import WorkoutSession
from gymsheets.store import HISTORY, SHEETS

logger = logging.getLogger(__name__)


class LinkOutcome(str, Enum):
    LINKED = "linked"
    NO_ORPHANS = "no_orphans"
    ALREADY_GROUPED = "already_grouped"
    NOT_FOUND = "not_found"
    FAILED = "failed"


@dataclass
class LinkResult:
    outcome: LinkOutcome
    linked: list[str] = field(default_factory=list)


def orphan_sheets(sheets: list[Sheet]) -> list[Sheet]:
    return [sheet for sheet in sheets if not sheet.group_id]


def program_sheets(ws: WorkoutSession, log: HistoryLog) -> list[Sheet]:
    """Sheets imported in the same batch as ``log``."""
    if not log.group_id:
        return []
    return [sheet for sheet in ws.sheets if sheet.group_id == log.group_id]


@dataclass
class Program:
    group_id: str
    sheets: list[Sheet]
    history_log: HistoryLog | None = None

    @property
    def lead(self) -> Sheet:
        return self.sheets[0]


@dataclass
class SheetLibrary:
    manual: list[Sheet]
    programs: list[Program]


def sheet_library(ws: WorkoutSession) -> SheetLibrary:
    """The owner's inactive sheets, split into hand-made ones and programs.

    A program is every sheet sharing a group id, sorted by title so imported
    A/B/C splits read in order. Programs appear in the order their first
    sheet was created; the active sheet is left out.
    """
    manual: list[Sheet] = []
    grouped: dict[str, list[Sheet]] = {}
    for sheet in ws.sheets:
        if sheet.is_active:
            continue
        if sheet.group_id:
            grouped.setdefault(sheet.group_id, []).append(sheet)
        else:
            manual.append(sheet)

    programs = [
        Program(
            group_id=group_id,
            sheets=sorted(sheets, key=lambda sheet: sheet.title.casefold()),
            history_log=ws.get_history_log(group_id),
        )
        for group_id, sheets in grouped.items()
    ]
    return SheetLibrary(manual=manual, programs=programs)


async def link_orphans(ws: WorkoutSession, history_log_id: str) -> LinkResult:
    """Attach every ungrouped sheet to one ungrouped history log.

    The log's own id becomes the group id. All current orphans go to this one
    log, so an owner with several ungrouped imports ends up with everything
    under whichever log was linked first.
    """
    log = ws.get_history_log(history_log_id)
    if log is None:
        return LinkResult(LinkOutcome.NOT_FOUND)
    if log.group_id:
        logger.info("History log %s is already grouped under %s", log.id, log.group_id)
        return LinkResult(LinkOutcome.ALREADY_GROUPED)

    orphans = orphan_sheets(ws.sheets)
    if not orphans:
        return LinkResult(LinkOutcome.NO_ORPHANS)

    try:
        await ws.store.update(HISTORY, log.id, {"group_id": log.id}, ws.owner_id)
        await asyncio.gather(
            *(ws.store.update(SHEETS, sheet.id, {"group_id": log.id}, ws.owner_id) for sheet in orphans)
        )
    except StoreError:
        logger.exception("Error linking orphan sheets to history log %s", log.id)
        return LinkResult(LinkOutcome.FAILED)

    logger.info("Linked %d orphan sheets to history log %s", len(orphans), log.id)
    return LinkResult(LinkOutcome.LINKED, [sheet.id for sheet in orphans])


async def attach_source(ws: WorkoutSession, history_log_id: str, source: SourceDocument) -> bool:
    """Attach a source document to a history log after the fact."""
    try:
        await ws.store.update(
            HISTORY,
            history_log_id,
            {"pdf_url": source.pdf_url, "pdf_name": source.pdf_name},
            ws.owner_id,
        )
    except StoreError:
        logger.exception("Error attaching source to history log %s", history_log_id)
        return False
    return True

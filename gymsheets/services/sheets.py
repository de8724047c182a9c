import asyncio
import logging

from gymsheets.errors import InvalidSheetError, RecordNotFoundError, StoreError
from gymsheets.models import Sheet
from gymsheets.schemas import Exercise, InsightData, SourceDocument
from gymsheets.services.session import WorkoutSession
from gymsheets.store import SHEETS

logger = logging.getLogger(__name__)

DEFAULT_SHEET_TITLE = "Untitled Workout"


def is_valid_sheet(sheet: Sheet) -> bool:
    """Only sheets with at least one exercise can be analysed or trained."""
    return bool(sheet.exercises)


def valid_sheets(sheets: list[Sheet]) -> list[Sheet]:
    return [sheet for sheet in sheets if is_valid_sheet(sheet)]


def sheet_exercises(sheet: Sheet) -> list[Exercise]:
    return [Exercise.model_validate(exercise) for exercise in sheet.exercises]


async def create_sheet(
    ws: WorkoutSession,
    title: str,
    exercises: list[Exercise],
    group_id: str | None = None,
    source: SourceDocument | None = None,
    is_active: bool | None = None,
) -> Sheet | None:
    """Persist a new sheet for the session's owner.

    Without an explicit ``is_active`` the sheet becomes active only when the
    owner has no sheets yet. Returns ``None`` if the store write failed.
    """
    if is_active is None:
        is_active = not ws.sheets

    sheet = Sheet(
        title=title,
        exercises=[exercise.model_dump() for exercise in exercises],
        is_active=is_active,
        group_id=group_id,
        pdf_url=source.pdf_url if source else None,
        pdf_name=source.pdf_name if source else None,
        owner_id=ws.owner_id,
    )
    try:
        await ws.store.create(SHEETS, sheet)
    except StoreError:
        logger.exception("Error adding sheet %r", title)
        return None
    return sheet


async def activate(ws: WorkoutSession, sheet_id: str | None) -> bool:
    """Make ``sheet_id`` the owner's only active sheet.

    Any other sheet the projection shows as active is switched off first, then
    the target is switched on. The writes are separate, so observers can
    briefly see zero or two active sheets; the last write wins. An empty
    ``sheet_id`` only deactivates.
    """
    previous = [sheet for sheet in ws.sheets if sheet.is_active and sheet.id != sheet_id]
    try:
        if previous:
            await asyncio.gather(
                *(ws.store.update(SHEETS, sheet.id, {"is_active": False}, ws.owner_id) for sheet in previous)
            )
        if sheet_id:
            await ws.store.update(SHEETS, sheet_id, {"is_active": True}, ws.owner_id)
    except StoreError:
        logger.exception("Error setting active sheet %s", sheet_id)
        return False
    return True


async def deactivate(ws: WorkoutSession) -> bool:
    return await activate(ws, None)


async def update_sheet(
    ws: WorkoutSession,
    sheet_id: str,
    title: str | None = None,
    exercises: list[Exercise] | None = None,
) -> bool:
    changes: dict = {}
    if title is not None:
        changes["title"] = title.strip() or DEFAULT_SHEET_TITLE
    if exercises is not None:
        if not exercises:
            raise InvalidSheetError("A sheet must have at least one exercise")
        changes["exercises"] = [exercise.model_dump() for exercise in exercises]
    if not changes:
        return True

    try:
        await ws.store.update(SHEETS, sheet_id, changes, ws.owner_id)
    except StoreError:
        logger.exception("Error updating sheet %s", sheet_id)
        return False
    return True


async def delete_sheet(ws: WorkoutSession, sheet_id: str) -> bool:
    # Siblings in the same group and the history log are left untouched
    try:
        await ws.store.delete(SHEETS, sheet_id, ws.owner_id)
    except StoreError:
        logger.exception("Error deleting sheet %s", sheet_id)
        return False
    return True


async def attach_insights(ws: WorkoutSession, sheet_id: str, insights: InsightData) -> bool:
    try:
        await ws.store.update(SHEETS, sheet_id, {"insights": insights.model_dump()}, ws.owner_id)
    except StoreError:
        logger.exception("Error saving insights for sheet %s", sheet_id)
        return False
    return True


def workout_sheet(ws: WorkoutSession) -> Sheet:
    """The active sheet, provided it has something to train."""
    sheet = ws.active_sheet
    if sheet is None:
        raise RecordNotFoundError(SHEETS, "active")
    if not is_valid_sheet(sheet):
        raise InvalidSheetError(f"Sheet {sheet.id} has no exercises to train")
    return sheet

from fastapi import APIRouter, HTTPException
from sqlmodel import SQLModel

from gymsheets.dependencies import WorkoutSessionDep
from gymsheets.errors import InvalidSheetError, RecordNotFoundError
from gymsheets.models import Sheet
from gymsheets.schemas import Exercise, InsightData, SourceDocument
from gymsheets.services import sheets as sheet_service
from gymsheets.services.imports import PROGRAM_TITLE
from gymsheets.services.linking import Program, sheet_library
from gymsheets.services.session import WorkoutSession

router = APIRouter()


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class SheetRead(SQLModel):
    id: str
    title: str
    created_at: str  # ISO format
    exercises: list[Exercise]
    is_active: bool
    group_id: str | None
    pdf_url: str | None
    pdf_name: str | None
    insights: InsightData | None


class ProgramRead(SQLModel):
    group_id: str
    title: str
    created_at: str  # ISO format, from the first sheet
    pdf_url: str | None
    pdf_name: str | None
    sheets: list[SheetRead]


class SheetLibraryRead(SQLModel):
    manual: list[SheetRead]
    programs: list[ProgramRead]


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class SheetCreate(SQLModel):
    title: str
    exercises: list[Exercise] = []
    group_id: str | None = None
    pdf_url: str | None = None
    pdf_name: str | None = None
    is_active: bool | None = None


class SheetUpdate(SQLModel):
    title: str | None = None
    exercises: list[Exercise] | None = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def build_sheet_read(sheet: Sheet) -> SheetRead:
    return SheetRead(
        id=sheet.id,
        title=sheet.title,
        created_at=sheet.created_at.isoformat(),
        exercises=sheet_service.sheet_exercises(sheet),
        is_active=sheet.is_active,
        group_id=sheet.group_id,
        pdf_url=sheet.pdf_url,
        pdf_name=sheet.pdf_name,
        insights=InsightData.model_validate(sheet.insights) if sheet.insights else None,
    )


def build_program_read(program: Program) -> ProgramRead:
    lead = program.lead
    return ProgramRead(
        group_id=program.group_id,
        title=program.history_log.title if program.history_log else PROGRAM_TITLE,
        created_at=lead.created_at.isoformat(),
        pdf_url=lead.pdf_url,
        pdf_name=lead.pdf_name,
        sheets=[build_sheet_read(sheet) for sheet in program.sheets],
    )


def _get_sheet_or_404(ws: WorkoutSession, sheet_id: str) -> Sheet:
    sheet = ws.get_sheet(sheet_id)
    if sheet is None:
        raise HTTPException(status_code=404, detail="Sheet not found")
    return sheet


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@router.get("/", response_model=list[SheetRead])
def list_sheets(ws: WorkoutSessionDep, valid_only: bool = False):
    sheets = sheet_service.valid_sheets(ws.sheets) if valid_only else ws.sheets
    return [build_sheet_read(sheet) for sheet in sheets]


@router.get("/active", response_model=SheetRead)
def get_active_sheet(ws: WorkoutSessionDep):
    if ws.active_sheet is None:
        raise HTTPException(status_code=404, detail="No active sheet")
    return build_sheet_read(ws.active_sheet)


@router.get("/programs", response_model=SheetLibraryRead)
def list_programs(ws: WorkoutSessionDep):
    library = sheet_library(ws)
    return SheetLibraryRead(
        manual=[build_sheet_read(sheet) for sheet in library.manual],
        programs=[build_program_read(program) for program in library.programs],
    )


@router.get("/active/workout", response_model=SheetRead)
def get_workout_sheet(ws: WorkoutSessionDep):
    try:
        sheet = sheet_service.workout_sheet(ws)
    except RecordNotFoundError as exc:
        raise HTTPException(status_code=404, detail="No active sheet") from exc
    except InvalidSheetError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return build_sheet_read(sheet)


@router.post("/", response_model=SheetRead, status_code=201)
async def create_sheet(body: SheetCreate, ws: WorkoutSessionDep):
    sheet = await sheet_service.create_sheet(
        ws,
        body.title.strip() or sheet_service.DEFAULT_SHEET_TITLE,
        body.exercises,
        group_id=body.group_id,
        source=SourceDocument(pdf_url=body.pdf_url, pdf_name=body.pdf_name),
        is_active=body.is_active,
    )
    if sheet is None:
        raise HTTPException(status_code=503, detail="Could not save sheet")
    return build_sheet_read(sheet)


@router.post("/deactivate", status_code=204)
async def deactivate_sheets(ws: WorkoutSessionDep):
    if not await sheet_service.deactivate(ws):
        raise HTTPException(status_code=503, detail="Could not deactivate sheet")


@router.get("/{sheet_id}", response_model=SheetRead)
def get_sheet(sheet_id: str, ws: WorkoutSessionDep):
    return build_sheet_read(_get_sheet_or_404(ws, sheet_id))


@router.patch("/{sheet_id}", response_model=SheetRead)
async def update_sheet(sheet_id: str, body: SheetUpdate, ws: WorkoutSessionDep):
    _get_sheet_or_404(ws, sheet_id)
    try:
        saved = await sheet_service.update_sheet(ws, sheet_id, body.title, body.exercises)
    except InvalidSheetError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if not saved:
        raise HTTPException(status_code=503, detail="Could not update sheet")
    return build_sheet_read(_get_sheet_or_404(ws, sheet_id))


@router.delete("/{sheet_id}", status_code=204)
async def delete_sheet(sheet_id: str, ws: WorkoutSessionDep):
    _get_sheet_or_404(ws, sheet_id)
    if not await sheet_service.delete_sheet(ws, sheet_id):
        raise HTTPException(status_code=503, detail="Could not delete sheet")


@router.post("/{sheet_id}/activate", response_model=SheetRead)
async def activate_sheet(sheet_id: str, ws: WorkoutSessionDep):
    _get_sheet_or_404(ws, sheet_id)
    if not await sheet_service.activate(ws, sheet_id):
        raise HTTPException(status_code=503, detail="Could not activate sheet")
    return build_sheet_read(_get_sheet_or_404(ws, sheet_id))

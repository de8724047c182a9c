from fastapi import APIRouter, HTTPException
from sqlmodel import SQLModel

from gymsheets.dependencies import ExtractorDep, WorkoutSessionDep
from gymsheets.schemas import SourceDocument, WorkoutDraft
from gymsheets.services.imports import PROGRAM_TITLE, import_batch

router = APIRouter()


class ExtractRequest(SQLModel):
    text: str


class ExtractionRead(SQLModel):
    workouts: list[WorkoutDraft]


class ImportRequest(SQLModel):
    workouts: list[WorkoutDraft]
    title: str = PROGRAM_TITLE
    pdf_url: str | None = None
    pdf_name: str | None = None


class ImportRead(SQLModel):
    group_id: str
    history_log_id: str
    sheet_ids: list[str]
    skipped: int


@router.post("/extract", response_model=ExtractionRead)
async def extract_workouts(body: ExtractRequest, extractor: ExtractorDep):
    if not body.text.strip():
        raise HTTPException(status_code=400, detail="Paste some workout text first")
    drafts = await extractor.extract(body.text)
    if drafts is None:
        raise HTTPException(status_code=502, detail="Could not analyse the workout text")
    return ExtractionRead(workouts=drafts)


@router.post("/", response_model=ImportRead, status_code=201)
async def import_workouts(body: ImportRequest, ws: WorkoutSessionDep):
    if not any(draft.exercises for draft in body.workouts):
        raise HTTPException(status_code=400, detail="Add at least one exercise to save")

    result = await import_batch(
        ws,
        body.workouts,
        source=SourceDocument(pdf_url=body.pdf_url, pdf_name=body.pdf_name),
        title=body.title,
    )
    if not result.ok:
        raise HTTPException(
            status_code=503,
            detail=f"Import stopped after saving {len(result.sheets)} sheets",
        )
    return ImportRead(
        group_id=result.group_id,
        history_log_id=result.history_log.id,
        sheet_ids=[sheet.id for sheet in result.sheets],
        skipped=result.skipped,
    )

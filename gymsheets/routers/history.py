from fastapi import APIRouter, HTTPException
from sqlmodel import SQLModel

from gymsheets.dependencies import WorkoutSessionDep
from gymsheets.models import HistoryLog
from gymsheets.routers.sheets import SheetRead, build_sheet_read
from gymsheets.schemas import SourceDocument
from gymsheets.services.linking import LinkOutcome, attach_source, link_orphans, program_sheets
from gymsheets.services.session import WorkoutSession

router = APIRouter()


class HistoryLogRead(SQLModel):
    id: str
    title: str
    date: str  # ISO format
    pdf_url: str | None
    pdf_name: str | None
    group_id: str | None


class HistoryLogDetail(HistoryLogRead):
    sheets: list[SheetRead]


class LinkRead(SQLModel):
    outcome: LinkOutcome
    linked_sheet_ids: list[str]


def _build_history_read(log: HistoryLog) -> HistoryLogRead:
    return HistoryLogRead(
        id=log.id,
        title=log.title,
        date=log.date.isoformat(),
        pdf_url=log.pdf_url,
        pdf_name=log.pdf_name,
        group_id=log.group_id,
    )


def _get_log_or_404(ws: WorkoutSession, log_id: str) -> HistoryLog:
    log = ws.get_history_log(log_id)
    if log is None:
        raise HTTPException(status_code=404, detail="History log not found")
    return log


@router.get("/", response_model=list[HistoryLogRead])
def list_history(ws: WorkoutSessionDep):
    return [_build_history_read(log) for log in ws.history_logs]


@router.get("/{log_id}", response_model=HistoryLogDetail)
def get_history_log(log_id: str, ws: WorkoutSessionDep):
    log = _get_log_or_404(ws, log_id)
    return HistoryLogDetail(
        **_build_history_read(log).model_dump(),
        sheets=[build_sheet_read(sheet) for sheet in program_sheets(ws, log)],
    )


@router.patch("/{log_id}/source", response_model=HistoryLogRead)
async def attach_history_source(log_id: str, body: SourceDocument, ws: WorkoutSessionDep):
    _get_log_or_404(ws, log_id)
    if not await attach_source(ws, log_id, body):
        raise HTTPException(status_code=503, detail="Could not attach source document")
    return _build_history_read(_get_log_or_404(ws, log_id))


@router.post("/{log_id}/link-orphans", response_model=LinkRead)
async def link_orphan_sheets(log_id: str, ws: WorkoutSessionDep):
    result = await link_orphans(ws, log_id)
    if result.outcome is LinkOutcome.NOT_FOUND:
        raise HTTPException(status_code=404, detail="History log not found")
    if result.outcome is LinkOutcome.FAILED:
        raise HTTPException(status_code=503, detail="Could not link sheets")
    return LinkRead(outcome=result.outcome, linked_sheet_ids=result.linked)

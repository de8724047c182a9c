"""Tests for saving a reviewed batch of drafts as one program."""

import pytest

from gymsheets.models import Sheet
from gymsheets.schemas import Exercise, SourceDocument, WorkoutDraft
from gymsheets.services.imports import IMPORTED_SHEET_TITLE, PROGRAM_TITLE, import_batch
from gymsheets.services.session import WorkoutSession
from gymsheets.store import HISTORY, SHEETS

from conftest import OWNER, CountingStore

pytestmark = pytest.mark.anyio


def _draft(title: str, *names: str) -> WorkoutDraft:
    return WorkoutDraft(title=title, exercises=[Exercise(name=name) for name in names])


async def test_push_day_imported_pull_day_skipped(ws: WorkoutSession, store: CountingStore):
    drafts = [
        _draft("Push Day", "Bench Press", "Overhead Press", "Dips"),
        _draft("Pull Day"),
    ]

    result = await import_batch(ws, drafts)

    assert result.ok is True
    assert result.skipped == 1
    sheets = await store.list_owned(SHEETS, OWNER)
    assert [(s.title, s.is_active) for s in sheets] == [("Push Day", True)]
    logs = await store.list_owned(HISTORY, OWNER)
    assert len(logs) == 1
    assert logs[0].group_id == sheets[0].group_id == result.group_id


async def test_batch_shares_one_fresh_group(ws: WorkoutSession, store: CountingStore):
    drafts = [
        _draft("A", "Squat"),
        _draft("Empty"),
        _draft("B", "Row", "Curl"),
        _draft("C", "Plank"),
        _draft("Also empty"),
    ]

    result = await import_batch(ws, drafts)

    sheets = await store.list_owned(SHEETS, OWNER)
    assert len(sheets) == 3
    assert {s.group_id for s in sheets} == {result.group_id}
    logs = await store.list_owned(HISTORY, OWNER)
    assert len(logs) == 1
    assert logs[0].id == logs[0].group_id == result.group_id
    assert logs[0].title == PROGRAM_TITLE


async def test_consecutive_imports_get_different_groups(ws: WorkoutSession):
    first = await import_batch(ws, [_draft("A", "Squat")])
    second = await import_batch(ws, [_draft("B", "Row")])
    assert first.group_id != second.group_id


async def test_only_first_sheet_active_when_collection_empty(ws: WorkoutSession):
    result = await import_batch(ws, [_draft("Skipped"), _draft("A", "Squat"), _draft("B", "Row")])
    assert [s.is_active for s in result.sheets] == [True, False]
    assert ws.active_sheet.title == "A"


async def test_no_sheet_active_when_owner_has_sheets(ws: WorkoutSession, store: CountingStore):
    existing = Sheet(title="Old", owner_id=OWNER, is_active=True)
    await store.create(SHEETS, existing)

    result = await import_batch(ws, [_draft("A", "Squat"), _draft("B", "Row")])

    assert all(not s.is_active for s in result.sheets)
    assert ws.active_sheet.id == existing.id


async def test_source_document_propagates(ws: WorkoutSession):
    source = SourceDocument(pdf_url="https://files.example/plan.pdf", pdf_name="plan.pdf")

    result = await import_batch(ws, [_draft("A", "Squat"), _draft("B", "Row")], source=source)

    assert {s.pdf_name for s in result.sheets} == {"plan.pdf"}
    assert result.history_log.pdf_url == "https://files.example/plan.pdf"


async def test_blank_titles_get_default(ws: WorkoutSession):
    result = await import_batch(ws, [_draft("  ", "Squat")])
    assert result.sheets[0].title == IMPORTED_SHEET_TITLE


async def test_all_empty_drafts_refused_without_writes(ws: WorkoutSession, store: CountingStore):
    result = await import_batch(ws, [_draft("A"), _draft("B")])

    assert result.ok is False
    assert result.group_id is None
    assert store.writes == []


async def test_failure_keeps_partial_sheets(ws: WorkoutSession, store: CountingStore):
    store.fail_on.add("B")

    result = await import_batch(ws, [_draft("A", "Squat"), _draft("B", "Row"), _draft("C", "Curl")])

    assert result.ok is False
    assert result.history_log is None
    saved = sorted(s.title for s in await store.list_owned(SHEETS, OWNER))
    assert saved == ["A", "C"]
    assert await store.list_owned(HISTORY, OWNER) == []


async def test_history_log_failure_keeps_sheets(ws: WorkoutSession, store: CountingStore):
    store.fail_on.add(PROGRAM_TITLE)

    result = await import_batch(ws, [_draft("A", "Squat")])

    assert result.ok is False
    assert [s.title for s in result.sheets] == ["A"]
    assert len(await store.list_owned(SHEETS, OWNER)) == 1

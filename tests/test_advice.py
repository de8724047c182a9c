"""Tests for sheet insights and exercise substitutions."""

import json

import pytest
from openai import OpenAIError

from gymsheets.errors import InvalidSheetError, RecordNotFoundError, StoreError
from gymsheets.models import Sheet
from gymsheets.services.advice import CoachAdvisor, generate_insights
from gymsheets.services.session import WorkoutSession
from gymsheets.store import SHEETS

from conftest import OWNER, CountingStore

pytestmark = pytest.mark.anyio

INSIGHTS_REPLY = {
    "totalVolume": "About 240 reps/week",
    "muscleDistribution": {"Chest": 60, "Triceps": 40},
    "classification": "Hypertrophy",
    "issuesDetected": ["No back work"],
    "historicalComparison": "More chest volume than before",
    "coachTips": ["Add rows"],
    "estimatedRPE": "High intensity",
    "exerciseDiversity": "Mostly free weights",
    "periodizationTip": "Deload in week 4",
}


def _exercise_dicts(count: int) -> list[dict]:
    return [{"id": str(i), "name": f"Exercise {i}", "sets": 3, "reps": "10"} for i in range(count)]


async def _add_sheet(store: CountingStore, title: str, exercise_count: int = 3, **fields) -> Sheet:
    sheet = Sheet(title=title, exercises=_exercise_dicts(exercise_count), owner_id=OWNER, **fields)
    await store.create(SHEETS, sheet)
    return sheet


async def test_sheet_insights_parses_reply(fake_openai):
    advisor = CoachAdvisor(client=fake_openai(json.dumps(INSIGHTS_REPLY)))
    sheet = Sheet(id="s1", title="Push", exercises=_exercise_dicts(2))

    insights = await advisor.sheet_insights(sheet, [sheet])

    assert insights.total_volume == "About 240 reps/week"
    assert insights.muscle_distribution == {"Chest": 60, "Triceps": 40}
    assert insights.estimated_rpe == "High intensity"
    assert insights.coach_tips == ["Add rows"]


async def test_sheet_insights_partial_reply_gets_defaults(fake_openai):
    advisor = CoachAdvisor(client=fake_openai(json.dumps({"classification": "Strength"})))
    insights = await advisor.sheet_insights(Sheet(id="s1", title="Push"), [])
    assert insights.classification == "Strength"
    assert insights.issues_detected == []


async def test_sheet_insights_sends_truncated_siblings(fake_openai):
    client = fake_openai(json.dumps(INSIGHTS_REPLY))
    advisor = CoachAdvisor(client=client)
    target = Sheet(id="target", title="Push", exercises=_exercise_dicts(2))
    sibling = Sheet(id="other", title="Legs", exercises=_exercise_dicts(8))

    await advisor.sheet_insights(target, [target, sibling])

    prompt = client.chat.completions.calls[0]["messages"][1]["content"]
    siblings = json.loads(prompt.split("OTHER SHEETS FOR COMPARISON:\n", 1)[1])
    assert [s["title"] for s in siblings] == ["Legs"]
    assert len(siblings[0]["exercises"]) == 5


async def test_sheet_insights_failure_is_none(fake_openai):
    advisor = CoachAdvisor(client=fake_openai(error=OpenAIError("timeout")))
    assert await advisor.sheet_insights(Sheet(id="s1", title="Push"), []) is None


async def test_sheet_insights_null_fields_get_defaults(fake_openai):
    reply = dict(INSIGHTS_REPLY, issuesDetected=None, totalVolume=None, muscleDistribution=None)
    advisor = CoachAdvisor(client=fake_openai(json.dumps(reply)))

    insights = await advisor.sheet_insights(Sheet(id="s1", title="Push"), [])

    assert insights.classification == "Hypertrophy"
    assert insights.issues_detected == []
    assert insights.total_volume == ""
    assert insights.muscle_distribution == {}


async def test_sheet_insights_fractional_distribution_is_rounded(fake_openai):
    reply = dict(INSIGHTS_REPLY, muscleDistribution={"Chest": 33.3, "Back": 66.7, "Core": "n/a"})
    advisor = CoachAdvisor(client=fake_openai(json.dumps(reply)))

    insights = await advisor.sheet_insights(Sheet(id="s1", title="Push"), [])

    assert insights.muscle_distribution == {"Chest": 33, "Back": 67}


async def test_sheet_insights_single_tip_becomes_list(fake_openai):
    advisor = CoachAdvisor(client=fake_openai(json.dumps({"coachTips": "just one tip"})))
    insights = await advisor.sheet_insights(Sheet(id="s1", title="Push"), [])
    assert insights.coach_tips == ["just one tip"]


async def test_sheet_insights_non_object_reply_is_none(fake_openai):
    advisor = CoachAdvisor(client=fake_openai(json.dumps(["Add rows"])))
    assert await advisor.sheet_insights(Sheet(id="s1", title="Push"), []) is None


async def test_exercise_substitution(fake_openai):
    reply = {"suggestion": "Pec Deck", "reason": "Same muscle, easier on shoulders", "execution": "Elbows high"}
    client = fake_openai(json.dumps(reply))
    advisor = CoachAdvisor(client=client)

    substitution = await advisor.exercise_substitution("Cable Fly", "Chest Day")

    assert substitution.suggestion == "Pec Deck"
    prompt = client.chat.completions.calls[0]["messages"][1]["content"]
    assert '"Cable Fly"' in prompt
    assert '"Chest Day"' in prompt


async def test_exercise_substitution_missing_suggestion_is_none(fake_openai):
    advisor = CoachAdvisor(client=fake_openai(json.dumps({"reason": "?"})))
    assert await advisor.exercise_substitution("Cable Fly", "Chest Day") is None


# ---------------------------------------------------------------------------
# generate_insights
# ---------------------------------------------------------------------------


async def test_generate_insights_saves_result(ws: WorkoutSession, store: CountingStore, fake_openai):
    sheet = await _add_sheet(store, "Push")
    advisor = CoachAdvisor(client=fake_openai(json.dumps(INSIGHTS_REPLY)))

    insights = await generate_insights(ws, advisor, sheet.id)

    assert insights.classification == "Hypertrophy"
    assert ws.get_sheet(sheet.id).insights["classification"] == "Hypertrophy"


async def test_generate_insights_uses_cache(ws: WorkoutSession, store: CountingStore, fake_openai):
    sheet = await _add_sheet(store, "Push", insights={"classification": "Cached"})
    client = fake_openai(json.dumps(INSIGHTS_REPLY))

    insights = await generate_insights(ws, CoachAdvisor(client=client), sheet.id)

    assert insights.classification == "Cached"
    assert client.chat.completions.calls == []


async def test_generate_insights_force_refreshes(ws: WorkoutSession, store: CountingStore, fake_openai):
    sheet = await _add_sheet(store, "Push", insights={"classification": "Cached"})
    client = fake_openai(json.dumps(INSIGHTS_REPLY))

    insights = await generate_insights(ws, CoachAdvisor(client=client), sheet.id, force=True)

    assert insights.classification == "Hypertrophy"
    assert len(client.chat.completions.calls) == 1


async def test_generate_insights_rejects_empty_sheet(ws: WorkoutSession, store: CountingStore, fake_openai):
    sheet = await _add_sheet(store, "Empty", exercise_count=0)
    with pytest.raises(InvalidSheetError):
        await generate_insights(ws, CoachAdvisor(client=fake_openai("{}")), sheet.id)


async def test_generate_insights_unknown_sheet(ws: WorkoutSession, fake_openai):
    with pytest.raises(RecordNotFoundError):
        await generate_insights(ws, CoachAdvisor(client=fake_openai("{}")), "missing")


async def test_generate_insights_failure_saves_nothing(ws: WorkoutSession, store: CountingStore, fake_openai):
    sheet = await _add_sheet(store, "Push")
    store.writes.clear()

    insights = await generate_insights(ws, CoachAdvisor(client=fake_openai(error=OpenAIError("down"))), sheet.id)

    assert insights is None
    assert store.writes == []


async def test_generate_insights_save_failure_raises(ws: WorkoutSession, store: CountingStore, fake_openai):
    sheet = await _add_sheet(store, "Push")
    store.fail_on.add(sheet.id)
    client = fake_openai(json.dumps(INSIGHTS_REPLY))

    with pytest.raises(StoreError):
        await generate_insights(ws, CoachAdvisor(client=client), sheet.id)

    assert ws.get_sheet(sheet.id).insights is None

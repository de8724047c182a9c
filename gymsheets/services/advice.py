import json
import logging

from openai import AsyncOpenAI
from pydantic import ValidationError

from gymsheets.config import ADVICE_MODEL
from gymsheets.errors import InvalidSheetError, RecordNotFoundError, StoreError
from gymsheets.models import Sheet
from gymsheets.schemas import ExerciseSubstitution, InsightData
from gymsheets.services.llm import JSON_ONLY_SYSTEM_PROMPT, get_openai_client, request_json
from gymsheets.services.session import WorkoutSession
from gymsheets.services.sheets import attach_insights, is_valid_sheet
from gymsheets.store import SHEETS

logger = logging.getLogger(__name__)

# Exercises per sibling sheet sent along for comparison
SIBLING_EXERCISE_LIMIT = 5

INSIGHTS_PROMPT = """\
You are a high-performance coach acting as an AI assistant that reviews workout sheets.
You receive one target sheet and some of the user's other sheets.
Answer STRICTLY with a JSON object in exactly this shape:
{{
  "totalVolume": "Short weekly volume estimate (e.g. 'About 240 reps/week')",
  "muscleDistribution": {{"Chest": 20, "Back": 30}},
  "classification": "Training style (e.g. Strength, Hypertrophy ABCD, Full Body)",
  "issuesDetected": ["Main muscle imbalances or excess/missing volume; empty if none"],
  "historicalComparison": "Short comparison with the other sheets",
  "coachTips": ["Essential tips for this sheet"],
  "estimatedRPE": "Intensity estimate (e.g. 'High intensity', 'Metabolic focus')",
  "exerciseDiversity": "Short note on angle/machine/free-weight variety",
  "periodizationTip": "Short periodization suggestion"
}}
muscleDistribution values are integers summing to 100.

TARGET SHEET:
Title: {title}
Exercises: {exercises}

OTHER SHEETS FOR COMPARISON:
{siblings}
"""

SUBSTITUTION_PROMPT = """\
You are a high-performance coach acting as an AI assistant.
The user is looking at the sheet "{sheet_title}" and wants one replacement for the \
exercise "{exercise_name}". Suggest ONE alternative that trains the same muscles and \
answer STRICTLY with a JSON object in exactly this shape:
{{
  "suggestion": "Replacement exercise name",
  "reason": "Why it is a good swap",
  "execution": "One quick execution cue"
}}
"""


class CoachAdvisor:
    def __init__(self, client: AsyncOpenAI | None = None, model: str = ADVICE_MODEL):
        self.client = client or get_openai_client()
        self.model = model

    async def sheet_insights(self, sheet: Sheet, all_sheets: list[Sheet]) -> InsightData | None:
        siblings = [
            {"title": other.title, "exercises": other.exercises[:SIBLING_EXERCISE_LIMIT]}
            for other in all_sheets
            if other.id != sheet.id
        ]
        prompt = INSIGHTS_PROMPT.format(
            title=sheet.title,
            exercises=json.dumps(sheet.exercises, ensure_ascii=False),
            siblings=json.dumps(siblings, ensure_ascii=False),
        )
        payload = await request_json(self.client, self.model, JSON_ONLY_SYSTEM_PROMPT, prompt)
        if payload is None:
            return None
        try:
            return InsightData.model_validate(payload)
        except ValidationError:
            logger.exception("Insights for sheet %s did not match the expected shape", sheet.id)
            return None

    async def exercise_substitution(
        self, exercise_name: str, sheet_title: str
    ) -> ExerciseSubstitution | None:
        prompt = SUBSTITUTION_PROMPT.format(exercise_name=exercise_name, sheet_title=sheet_title)
        payload = await request_json(self.client, self.model, JSON_ONLY_SYSTEM_PROMPT, prompt)
        if payload is None:
            return None
        try:
            return ExerciseSubstitution.model_validate(payload)
        except ValidationError:
            logger.exception("Substitution for %r did not match the expected shape", exercise_name)
            return None


async def generate_insights(
    ws: WorkoutSession, advisor: CoachAdvisor, sheet_id: str, force: bool = False
) -> InsightData | None:
    """Return the sheet's insights, asking the advisor only when none are stored.

    Fresh insights are saved on the sheet. ``None`` means the advisor failed;
    a failed save raises StoreError.
    """
    sheet = ws.get_sheet(sheet_id)
    if sheet is None:
        raise RecordNotFoundError(SHEETS, sheet_id)
    if not is_valid_sheet(sheet):
        raise InvalidSheetError(f"Sheet {sheet_id} has no exercises to analyse")

    if sheet.insights and not force:
        return InsightData.model_validate(sheet.insights)

    insights = await advisor.sheet_insights(sheet, ws.sheets)
    if insights is None:
        return None
    if not await attach_insights(ws, sheet.id, insights):
        raise StoreError(f"Could not save insights for sheet {sheet_id}")
    return insights

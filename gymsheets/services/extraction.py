"""Turn pasted workout text into reviewable drafts."""

from __future__ import annotations

import logging
from typing import Any

from openai import AsyncOpenAI
from pydantic import BaseModel, ValidationError, field_validator

from gymsheets.config import EXTRACTION_MODEL
from gymsheets.schemas import Exercise, WorkoutDraft
from gymsheets.services.llm import get_openai_client, request_json

logger = logging.getLogger(__name__)

EXTRACTION_PROMPT = """\
You extract gym workouts. The user pastes text (usually copied from a PDF or a \
chat message) that may contain ONE or MORE workout splits (e.g. Sheet A, Sheet B, \
Day 1, ...). Group the exercises under their split and extract the data.
- Put the split name (e.g. "Sheet A: Chest and Triceps") in "title". If no split \
is named, write a descriptive title (e.g. "Full Body").
- Extract each exercise with its name, sets, reps and weight (if any).
- Put cues, rest times or other remarks tied to an exercise in "notes".

Always return ONLY a JSON object in exactly this shape:
{
  "workouts": [
    {
      "title": "Workout name",
      "exercises": [
        {"name": "Exercise", "sets": "Sets", "reps": "Reps", "weight": "", "notes": ""}
      ]
    }
  ]
}"""


def _scalar_text(value: Any) -> str | None:
    """Best-effort text for a scalar field; anything unusable becomes ``None``."""
    if value is None or isinstance(value, (dict, list)):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip() or None


class _RawExercise(BaseModel):
    name: str | None = None
    sets: str | None = None
    reps: str | None = None
    weight: str | None = None
    notes: str | None = None

    @field_validator("name", "sets", "reps", "weight", "notes", mode="before")
    @classmethod
    def scalar_text(cls, value: Any) -> str | None:
        return _scalar_text(value)


class _RawWorkout(BaseModel):
    title: str | None = None
    exercises: list[_RawExercise] | None = None

    @field_validator("title", mode="before")
    @classmethod
    def scalar_text(cls, value: Any) -> str | None:
        return _scalar_text(value)

    @field_validator("exercises", mode="before")
    @classmethod
    def exercise_entries(cls, value: Any) -> Any:
        # A bare string is taken as the exercise name; other entries are dropped
        if not isinstance(value, list):
            return value
        entries = []
        for entry in value:
            if isinstance(entry, dict):
                entries.append(entry)
            elif _scalar_text(entry):
                entries.append({"name": entry})
        return entries


class _RawExtraction(BaseModel):
    workouts: list[_RawWorkout] | None = None


def parse_extraction(payload: Any) -> list[WorkoutDraft]:
    """Validate an extraction payload and fill in anything the model left out.

    Raises ``pydantic.ValidationError`` when the payload has the wrong shape.
    Every exercise gets a fresh id, whatever the payload says.
    """
    raw = _RawExtraction.model_validate(payload)
    drafts: list[WorkoutDraft] = []
    for w_index, workout in enumerate(raw.workouts or []):
        exercises = [
            Exercise(
                name=ex.name or f"Exercise {e_index + 1}",
                sets=ex.sets or 3,
                reps=ex.reps or "10",
                weight=ex.weight or "",
                notes=ex.notes or "",
            )
            for e_index, ex in enumerate(workout.exercises or [])
        ]
        drafts.append(WorkoutDraft(title=workout.title or f"Workout {w_index + 1}", exercises=exercises))
    return drafts


class WorkoutExtractor:
    def __init__(self, client: AsyncOpenAI | None = None, model: str = EXTRACTION_MODEL):
        self.client = client or get_openai_client()
        self.model = model

    async def extract(self, text: str) -> list[WorkoutDraft] | None:
        """Return the drafts found in ``text``, or ``None`` if extraction failed.

        An empty list means the model answered but found no workouts.
        """
        payload = await request_json(self.client, self.model, EXTRACTION_PROMPT, text)
        if payload is None:
            return None
        try:
            drafts = parse_extraction(payload)
        except ValidationError:
            logger.exception("Extraction payload did not match the expected shape")
            return None
        logger.info("Extracted %d workouts from %d characters", len(drafts), len(text))
        return drafts

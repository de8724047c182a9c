"""Value objects exchanged with the collaborators and stored inside sheets."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from gymsheets.models import new_id


class Exercise(BaseModel):
    id: str = Field(default_factory=new_id)
    name: str
    sets: int | str = 3
    reps: str = "10"
    weight: str = ""
    notes: str = ""


class WorkoutDraft(BaseModel):
    """One extracted (or hand-edited) workout waiting to be saved as a sheet."""

    title: str = ""
    exercises: list[Exercise] = []


class SourceDocument(BaseModel):
    """Opaque reference to the document a program was imported from."""

    pdf_url: str | None = None
    pdf_name: str | None = None


class InsightData(BaseModel):
    # The advice model answers in camelCase; everything we store is snake_case
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    total_volume: str = ""
    muscle_distribution: dict[str, int] = {}
    classification: str = ""
    issues_detected: list[str] = []
    historical_comparison: str = ""
    coach_tips: list[str] = []
    estimated_rpe: str = Field(default="", alias="estimatedRPE")
    exercise_diversity: str = ""
    periodization_tip: str = ""

    # A null or loosely typed field falls back to its default instead of
    # discarding the rest of the reply

    @field_validator(
        "total_volume",
        "classification",
        "historical_comparison",
        "estimated_rpe",
        "exercise_diversity",
        "periodization_tip",
        mode="before",
    )
    @classmethod
    def text_or_default(cls, value: Any) -> Any:
        if value is None:
            return ""
        if isinstance(value, (int, float)):
            return str(value)
        return value

    @field_validator("issues_detected", "coach_tips", mode="before")
    @classmethod
    def list_or_default(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        if isinstance(value, list):
            return [str(item) for item in value if item is not None]
        return value

    @field_validator("muscle_distribution", mode="before")
    @classmethod
    def whole_percentages(cls, value: Any) -> Any:
        if value is None:
            return {}
        if not isinstance(value, dict):
            return value
        distribution = {}
        for muscle, share in value.items():
            try:
                distribution[str(muscle)] = round(float(share))
            except (TypeError, ValueError, OverflowError):
                continue
        return distribution


class ExerciseSubstitution(BaseModel):
    suggestion: str
    reason: str = ""
    execution: str = ""

    @field_validator("reason", "execution", mode="before")
    @classmethod
    def text_or_default(cls, value: Any) -> Any:
        return "" if value is None else value

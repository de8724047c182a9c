from fastapi import APIRouter, HTTPException
from sqlmodel import SQLModel

from gymsheets.dependencies import AdvisorDep, WorkoutSessionDep
from gymsheets.errors import InvalidSheetError, RecordNotFoundError, StoreError
from gymsheets.schemas import ExerciseSubstitution, InsightData
from gymsheets.services.advice import generate_insights

router = APIRouter()


class SubstitutionRequest(SQLModel):
    exercise_name: str
    sheet_title: str


@router.post("/sheets/{sheet_id}", response_model=InsightData)
async def analyse_sheet(
    sheet_id: str, ws: WorkoutSessionDep, advisor: AdvisorDep, force: bool = False
):
    try:
        insights = await generate_insights(ws, advisor, sheet_id, force=force)
    except RecordNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Sheet not found") from exc
    except InvalidSheetError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except StoreError as exc:
        raise HTTPException(status_code=503, detail="Could not save insights") from exc
    if insights is None:
        raise HTTPException(status_code=502, detail="Could not generate insights")
    return insights


@router.post("/substitution", response_model=ExerciseSubstitution)
async def suggest_substitution(body: SubstitutionRequest, advisor: AdvisorDep):
    suggestion = await advisor.exercise_substitution(body.exercise_name, body.sheet_title)
    if suggestion is None:
        raise HTTPException(status_code=502, detail="Could not suggest a substitution")
    return suggestion

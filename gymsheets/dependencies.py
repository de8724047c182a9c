from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request

from gymsheets.services.advice import CoachAdvisor
from gymsheets.services.extraction import WorkoutExtractor
from gymsheets.services.session import SessionRegistry, WorkoutSession


def get_registry(request: Request) -> SessionRegistry:
    return request.app.state.sessions


async def get_workout_session(
    registry: Annotated[SessionRegistry, Depends(get_registry)],
    x_owner_id: Annotated[str | None, Header()] = None,
) -> WorkoutSession:
    # Authentication happens upstream; we only need to know whose data this is
    if not x_owner_id:
        raise HTTPException(status_code=401, detail="Missing X-Owner-Id header")
    return await registry.get(x_owner_id)


def get_extractor() -> WorkoutExtractor:
    return WorkoutExtractor()


def get_advisor() -> CoachAdvisor:
    return CoachAdvisor()


WorkoutSessionDep = Annotated[WorkoutSession, Depends(get_workout_session)]
ExtractorDep = Annotated[WorkoutExtractor, Depends(get_extractor)]
AdvisorDep = Annotated[CoachAdvisor, Depends(get_advisor)]

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

import gymsheets.models as _models  # noqa: F401  registers tables with SQLModel metadata
from gymsheets.config import LOG_LEVEL
from gymsheets.database import create_db_and_tables, engine
from gymsheets.routers import history, imports, insights, sheets
from gymsheets.services.session import SessionRegistry
from gymsheets.store import RecordStore


def configure_logging() -> None:
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    create_db_and_tables()
    app.state.sessions = SessionRegistry(RecordStore(engine))
    yield
    await app.state.sessions.close_all()


app = FastAPI(title="GymSheets", lifespan=lifespan)

app.include_router(sheets.router, prefix="/api/sheets", tags=["sheets"])
app.include_router(history.router, prefix="/api/history", tags=["history"])
app.include_router(imports.router, prefix="/api/imports", tags=["imports"])
app.include_router(insights.router, prefix="/api/insights", tags=["insights"])

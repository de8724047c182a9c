from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel


def new_id() -> str:
    return uuid4().hex


def utcnow() -> datetime:
    # SQLite drops tzinfo on the way back, so everything is stored as naive UTC
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Sheet(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    title: str
    created_at: datetime = Field(default_factory=utcnow)
    exercises: list[dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON))
    is_active: bool = False
    group_id: str | None = Field(default=None, index=True)
    pdf_url: str | None = None
    pdf_name: str | None = None
    insights: dict[str, Any] | None = Field(default=None, sa_column=Column(JSON))
    owner_id: str | None = Field(default=None, index=True)


class HistoryLog(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    title: str
    date: datetime = Field(default_factory=utcnow)
    pdf_url: str | None = None
    pdf_name: str | None = None
    group_id: str | None = Field(default=None, index=True)
    owner_id: str | None = Field(default=None, index=True)

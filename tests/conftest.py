from types import SimpleNamespace

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine

import gymsheets.models as _models  # noqa: F401  registers tables with SQLModel metadata
from gymsheets.errors import StoreError
from gymsheets.services.session import WorkoutSession
from gymsheets.store import RecordStore

OWNER = "owner-1"


class CountingStore(RecordStore):
    """RecordStore that remembers every write it is asked to make.

    Records whose id or title is in ``fail_on`` make the write raise
    StoreError, to simulate a network or permission failure.
    """

    def __init__(self, engine):
        super().__init__(engine)
        self.writes: list[tuple] = []
        self.fail_on: set[str] = set()

    async def create(self, collection, record):
        self.writes.append(("create", collection, record.id))
        if record.id in self.fail_on or getattr(record, "title", None) in self.fail_on:
            raise StoreError(f"simulated failure creating {record.id}")
        return await super().create(collection, record)

    async def update(self, collection, record_id, changes, owner_id):
        self.writes.append(("update", collection, record_id, changes))
        if record_id in self.fail_on:
            raise StoreError(f"simulated failure updating {record_id}")
        return await super().update(collection, record_id, changes, owner_id)

    async def delete(self, collection, record_id, owner_id):
        self.writes.append(("delete", collection, record_id))
        return await super().delete(collection, record_id, owner_id)

    async def batch_update(self, writes):
        writes = list(writes)
        self.writes.append(("batch", len(writes)))
        return await super().batch_update(writes)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(name="engine")
def engine_fixture():
    # StaticPool keeps every connection on the same in-memory database,
    # including those opened from the TestClient's thread pool.
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture(name="store")
def store_fixture(engine):
    return CountingStore(engine)


@pytest.fixture(name="ws")
async def workout_session_fixture(store: CountingStore):
    session = await WorkoutSession(store, OWNER, load_timeout=0.05).open()
    yield session
    await session.close()


class _FakeCompletions:
    def __init__(self, content, error):
        self.content = content
        self.error = error
        self.calls: list[dict] = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


@pytest.fixture(name="fake_openai")
def fake_openai_fixture():
    """Factory for stand-ins of AsyncOpenAI that answer with fixed content."""

    def make(content: str | None = None, error: Exception | None = None):
        return SimpleNamespace(chat=SimpleNamespace(completions=_FakeCompletions(content, error)))

    return make

"""Document-style record store with owner-filtered live queries.

Every collection maps onto one SQLModel table. Database work runs on a worker
thread so the event loop stays free; writes are committed straight away and
then every live query of an owner the write touched is re-run and its full
result set pushed to the listener, the same way a hosted document store
pushes snapshots. Queries never order their results; consumers sort locally.
"""

import logging
import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any, TypeVar

from anyio import to_thread
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, SQLModel, select

from gymsheets.errors import RecordNotFoundError, StoreError
from gymsheets.models import HistoryLog, Sheet

logger = logging.getLogger(__name__)

SHEETS = "sheets"
HISTORY = "history"

COLLECTIONS: dict[str, type[SQLModel]] = {SHEETS: Sheet, HISTORY: HistoryLog}

SnapshotListener = Callable[[list[Any]], None]
ErrorListener = Callable[[StoreError], None]

T = TypeVar("T")


@dataclass(eq=False)
class Subscription:
    store: "RecordStore"
    collection: str
    owner_id: str
    on_snapshot: SnapshotListener
    on_error: ErrorListener | None = None
    active: bool = True

    def unsubscribe(self) -> None:
        if not self.active:
            return
        self.active = False
        self.store._subscriptions[self.collection].remove(self)


def _model_for(collection: str) -> type[SQLModel]:
    try:
        return COLLECTIONS[collection]
    except KeyError:
        raise ValueError(f"Unknown collection {collection!r}") from None


class RecordStore:
    def __init__(self, engine: Engine):
        self.engine = engine
        self._subscriptions: dict[str, list[Subscription]] = {name: [] for name in COLLECTIONS}
        # SQLite takes one writer at a time, and the in-memory test engine
        # shares a single connection between threads
        self._db_lock = threading.Lock()

    def _session(self) -> Session:
        return Session(self.engine, expire_on_commit=False)

    async def _run(self, func: Callable[..., T], *args: Any) -> T:
        """Run blocking database work on a worker thread."""

        def locked() -> T:
            with self._db_lock:
                return func(*args)

        return await to_thread.run_sync(locked)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get(self, collection: str, record_id: str, owner_id: str) -> Any | None:
        model = _model_for(collection)
        try:
            record = await self._run(self._get, model, record_id)
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to read {collection} record {record_id}") from exc
        if record is None or record.owner_id != owner_id:
            return None
        return record

    async def list_owned(self, collection: str, owner_id: str) -> list[Any]:
        model = _model_for(collection)
        try:
            return await self._run(self._query, model, owner_id)
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to list {collection}") from exc

    async def scan(self, collection: str) -> list[Any]:
        """Return every record in the collection regardless of owner."""
        model = _model_for(collection)
        try:
            return await self._run(self._scan, model)
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to scan {collection}") from exc

    def _get(self, model: type[SQLModel], record_id: str) -> Any | None:
        with self._session() as session:
            return session.get(model, record_id)

    def _query(self, model: type[SQLModel], owner_id: str) -> list[Any]:
        with self._session() as session:
            return list(session.exec(select(model).where(model.owner_id == owner_id)).all())

    def _scan(self, model: type[SQLModel]) -> list[Any]:
        with self._session() as session:
            return list(session.exec(select(model)).all())

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create(self, collection: str, record: SQLModel) -> str:
        model = _model_for(collection)
        if not isinstance(record, model):
            raise TypeError(f"{collection} expects {model.__name__}, got {type(record).__name__}")
        try:
            await self._run(self._create, record)
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to create {collection} record") from exc
        logger.debug("Created %s record %s", collection, record.id)
        await self._notify(collection, {record.owner_id})
        return record.id

    async def update(
        self, collection: str, record_id: str, changes: dict[str, Any], owner_id: str
    ) -> None:
        model = _model_for(collection)
        try:
            await self._run(self._update, collection, model, record_id, changes, owner_id)
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to update {collection} record {record_id}") from exc
        await self._notify(collection, {owner_id})

    async def delete(self, collection: str, record_id: str, owner_id: str) -> None:
        model = _model_for(collection)
        try:
            await self._run(self._delete, collection, model, record_id, owner_id)
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to delete {collection} record {record_id}") from exc
        await self._notify(collection, {owner_id})

    async def batch_update(self, writes: Iterable[tuple[str, str, dict[str, Any]]]) -> int:
        """Apply several partial updates in a single commit.

        Not owner-scoped: this is the one write path that can touch records
        with no owner at all. Either every update lands or none does.
        """
        writes = list(writes)
        for collection, _, _ in writes:
            _model_for(collection)
        try:
            touched = await self._run(self._batch_update, writes)
        except SQLAlchemyError as exc:
            raise StoreError("Batched write failed") from exc
        for collection, owners in touched.items():
            await self._notify(collection, owners)
        return len(writes)

    def _create(self, record: SQLModel) -> None:
        with self._session() as session:
            session.add(record)
            session.commit()
            session.refresh(record)

    def _update(
        self,
        collection: str,
        model: type[SQLModel],
        record_id: str,
        changes: dict[str, Any],
        owner_id: str,
    ) -> None:
        with self._session() as session:
            record = session.get(model, record_id)
            if record is None or record.owner_id != owner_id:
                raise RecordNotFoundError(collection, record_id)
            _apply(record, changes)
            session.add(record)
            session.commit()

    def _delete(self, collection: str, model: type[SQLModel], record_id: str, owner_id: str) -> None:
        with self._session() as session:
            record = session.get(model, record_id)
            if record is None or record.owner_id != owner_id:
                raise RecordNotFoundError(collection, record_id)
            session.delete(record)
            session.commit()

    def _batch_update(self, writes: list[tuple[str, str, dict[str, Any]]]) -> dict[str, set]:
        # Owners before and after each write, per collection
        touched: dict[str, set] = {}
        with self._session() as session:
            for collection, record_id, changes in writes:
                record = session.get(_model_for(collection), record_id)
                if record is None:
                    raise RecordNotFoundError(collection, record_id)
                owners = touched.setdefault(collection, set())
                owners.add(record.owner_id)
                _apply(record, changes)
                owners.add(record.owner_id)
                session.add(record)
            if writes:
                session.commit()
        return touched

    # ------------------------------------------------------------------
    # Live queries
    # ------------------------------------------------------------------

    async def subscribe(
        self,
        collection: str,
        owner_id: str,
        on_snapshot: SnapshotListener,
        on_error: ErrorListener | None = None,
    ) -> Subscription:
        """Register a live query and push the current result set right away."""
        _model_for(collection)
        subscription = Subscription(self, collection, owner_id, on_snapshot, on_error)
        self._subscriptions[collection].append(subscription)
        await self._push(subscription)
        return subscription

    async def _notify(self, collection: str, owners: set) -> None:
        for subscription in list(self._subscriptions[collection]):
            if subscription.active and subscription.owner_id in owners:
                await self._push(subscription)

    async def _push(self, subscription: Subscription) -> None:
        model = _model_for(subscription.collection)
        try:
            records = await self._run(self._query, model, subscription.owner_id)
        except SQLAlchemyError:
            logger.exception("Live query on %s failed", subscription.collection)
            if subscription.on_error is not None:
                subscription.on_error(StoreError(f"Live query on {subscription.collection} failed"))
            return
        # Unsubscribed while the query was running
        if not subscription.active:
            return
        try:
            subscription.on_snapshot(records)
        except Exception:
            # The write that triggered this push is already committed
            logger.exception("Snapshot listener for %s raised", subscription.collection)


def _apply(record: SQLModel, changes: dict[str, Any]) -> None:
    for key, value in changes.items():
        if key == "id" or key not in type(record).model_fields:
            raise ValueError(f"Cannot update field {key!r} on {type(record).__name__}")
        setattr(record, key, value)

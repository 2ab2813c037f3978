from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Mapping, Tuple, Type

import structlog
from sqlalchemy import func, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from src.chessacademy.infrastructure.persistence.base import Base
from src.chessacademy.infrastructure.persistence.records import (
    GameRecord,
    LessonProgressRecord,
    LessonRecord,
    ProfileRecord,
)

logger = structlog.get_logger("chessacademy.store")

COLLECTIONS: Dict[str, Type[Base]] = {
    "profiles": ProfileRecord,
    "games": GameRecord,
    "lessons": LessonRecord,
    "user_lesson_progress": LessonProgressRecord,
}

# Columns identifying an existing row when upserting.
CONFLICT_KEYS: Dict[str, Tuple[str, ...]] = {
    "profiles": ("user_id",),
    "games": ("id",),
    "lessons": ("id",),
    "user_lesson_progress": ("user_id", "lesson_id"),
}


@dataclass(frozen=True)
class StoreResult:
    """Either ``data`` or an ``error`` message, never an exception."""

    data: Any = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class RecordStore:
    """Generic fetch/upsert client over the named record collections."""

    def __init__(self, session_factory: sessionmaker) -> None:
        self._factory = session_factory

    def select(
        self,
        collection: str,
        *,
        filters: Mapping[str, Any] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> StoreResult:
        model = _model(collection)
        criteria = dict(filters or {})
        _check_columns(model, criteria)
        if order_by is not None:
            _check_columns(model, (order_by,))

        def _work(session: Session) -> list[dict[str, Any]]:
            query = session.query(model).filter_by(**criteria)
            if order_by is not None:
                column = getattr(model, order_by)
                query = query.order_by(column.desc() if descending else column.asc())
            if limit is not None:
                query = query.limit(limit)
            return [_to_dict(record) for record in query.all()]

        return self._run("select", collection, _work)

    def select_one(self, collection: str, **filters: Any) -> StoreResult:
        """Fetch exactly one row; an absent row is reported as ``not_found``."""
        result = self.select(collection, filters=filters, limit=2)
        if not result.ok:
            return result
        if not result.data:
            return StoreResult(error="not_found")
        if len(result.data) > 1:
            return StoreResult(error="multiple_rows")
        return StoreResult(data=result.data[0])

    def insert(self, collection: str, values: Mapping[str, Any]) -> StoreResult:
        model = _model(collection)
        payload = dict(values)
        _check_columns(model, payload)

        def _work(session: Session) -> dict[str, Any]:
            record = model(**payload)
            session.add(record)
            session.flush()
            session.refresh(record)
            return _to_dict(record)

        return self._run("insert", collection, _work)

    def upsert(self, collection: str, values: Mapping[str, Any]) -> StoreResult:
        """Update the row matching the collection's conflict keys, or insert it."""
        model = _model(collection)
        payload = dict(values)
        _check_columns(model, payload)
        keys = CONFLICT_KEYS[collection]

        def _work(session: Session) -> dict[str, Any]:
            record = None
            if all(payload.get(key) is not None for key in keys):
                record = session.query(model).filter_by(**{key: payload[key] for key in keys}).one_or_none()
            if record is None:
                record = model(**payload)
                session.add(record)
            else:
                for key, value in payload.items():
                    setattr(record, key, value)
            session.flush()
            session.refresh(record)
            return _to_dict(record)

        return self._run("upsert", collection, _work)

    def increment(self, collection: str, counters: Iterable[str], **filters: Any) -> StoreResult:
        """Add one to each of ``counters`` on the rows matching ``filters``.

        The addition happens inside the UPDATE statement, so concurrent callers
        never overwrite each other. ``data`` is the number of rows touched.
        """
        model = _model(collection)
        names = tuple(counters)
        if not names or not filters:
            raise ValueError("increment needs at least one counter and one filter")
        _check_columns(model, (*names, *filters))

        def _work(session: Session) -> int:
            statement = (
                update(model)
                .filter_by(**filters)
                .values({name: func.coalesce(getattr(model, name), 0) + 1 for name in names})
                .execution_options(synchronize_session=False)
            )
            return session.execute(statement).rowcount

        return self._run("increment", collection, _work)

    def _run(self, operation: str, collection: str, work: Callable[[Session], Any]) -> StoreResult:
        session = self._factory()
        try:
            data = work(session)
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            logger.warning(
                "store_query_failed",
                operation=operation,
                collection=collection,
                error=str(exc),
            )
            return StoreResult(error=str(exc))
        finally:
            session.close()
        return StoreResult(data=data)


def _model(collection: str) -> Type[Base]:
    try:
        return COLLECTIONS[collection]
    except KeyError as exc:
        raise KeyError(f"Unknown collection {collection!r}.") from exc


def _check_columns(model: Type[Base], keys: Iterable[str]) -> None:
    known = {column.key for column in model.__table__.columns}
    unknown = sorted(set(keys) - known)
    if unknown:
        raise ValueError(f"Unknown columns for {model.__tablename__}: {', '.join(unknown)}")


def _to_dict(record: Base) -> dict[str, Any]:
    return {column.key: getattr(record, column.key) for column in record.__table__.columns}


__all__ = ["COLLECTIONS", "CONFLICT_KEYS", "RecordStore", "StoreResult"]

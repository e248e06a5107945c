from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple, Type

from sqlalchemy import delete, func, insert, select, text, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from app.core.errors import PersistenceFailure
from app.db.models import Base

logger = logging.getLogger(__name__)

SMALL_BATCH_LIMIT = 50
MEDIUM_BATCH_LIMIT = 500
MEDIUM_BATCH_SIZE = 50
MAX_BATCH_SIZE = 100

BASE_TIMEOUT_SECONDS = 10.0
PER_RECORD_TIMEOUT_SECONDS = 0.1
MAX_TIMEOUT_SECONDS = 120.0


def batch_size_for(total: int) -> int:
    if total <= SMALL_BATCH_LIMIT:
        return max(total, 1)
    if total <= MEDIUM_BATCH_LIMIT:
        return MEDIUM_BATCH_SIZE
    return MAX_BATCH_SIZE

def timeout_for(batch_size: int) -> float:
    return min(BASE_TIMEOUT_SECONDS + PER_RECORD_TIMEOUT_SECONDS * batch_size, MAX_TIMEOUT_SECONDS)

def _where(model: Type[Base], scope: Mapping[str, Any]) -> list:
    return [getattr(model, k) == v for k, v in scope.items()]


class BatchPersistence:
    """
    Writes record sets in size-adaptive batches, one transaction per batch.
    Every SQLAlchemy failure surfaces as PersistenceFailure naming the entity.
    """

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    @contextmanager
    def _transaction(self, entity: str, timeout: float) -> Iterator[Session]:
        try:
            with self.session_factory.begin() as db:
                if db.get_bind().dialect.name == "postgresql":
                    # SET LOCAL only lives until this transaction ends
                    db.execute(text(f"SET LOCAL statement_timeout = {int(timeout * 1000)}"))
                yield db
        except SQLAlchemyError as e:
            logger.error("[SYNC] Persisting %s failed: %s", entity, e)
            raise PersistenceFailure(entity, e) from e

    @staticmethod
    def _load_existing(
        db: Session,
        model: Type[Base],
        key_fields: Sequence[str],
        batch: List[Dict[str, Any]],
    ) -> Dict[Tuple[Any, ...], Base]:
        # one query per batch; IN per key column is a superset, exact match happens below
        conds = [getattr(model, f).in_({rec[f] for rec in batch}) for f in key_fields]
        rows = db.scalars(select(model).where(*conds)).all()
        return {tuple(getattr(r, f) for f in key_fields): r for r in rows}

    def upsert(self, model: Type[Base], records: Sequence[Dict[str, Any]], key_fields: Sequence[str]) -> int:
        """Insert-or-update by natural key. Running it twice with the same records changes nothing."""
        records = list(records)
        if not records:
            return 0

        entity = model.__tablename__
        size = batch_size_for(len(records))
        for start in range(0, len(records), size):
            batch = records[start:start + size]
            with self._transaction(entity, timeout_for(len(batch))) as db:
                existing = self._load_existing(db, model, key_fields, batch)
                for rec in batch:
                    key = tuple(rec[f] for f in key_fields)
                    row = existing.get(key)
                    if row is None:
                        row = model(**rec)
                        db.add(row)
                        existing[key] = row
                    else:
                        for k, v in rec.items():
                            setattr(row, k, v)
            logger.debug("[SYNC] Upserted %d %s (%d-%d of %d)", len(batch), entity, start + 1, start + len(batch), len(records))
        return len(records)

    def replace_scope(self, model: Type[Base], scope: Mapping[str, Any], records: Sequence[Dict[str, Any]]) -> int:
        """Delete everything in `scope` and insert `records`, atomically."""
        records = list(records)
        entity = model.__tablename__
        with self._transaction(entity, timeout_for(len(records))) as db:
            db.execute(delete(model).where(*_where(model, scope)))
            if records:
                db.execute(insert(model), records)
        logger.debug("[SYNC] Replaced %s for %s with %d rows", entity, dict(scope), len(records))
        return len(records)

    def update_where(self, model: Type[Base], scope: Mapping[str, Any], values: Mapping[str, Any]) -> int:
        with self._transaction(model.__tablename__, BASE_TIMEOUT_SECONDS) as db:
            res = db.execute(update(model).where(*_where(model, scope)).values(**values))
            return res.rowcount or 0

    def count(self, model: Type[Base], scope: Mapping[str, Any]) -> int:
        try:
            with self.session_factory() as db:
                return db.scalar(select(func.count()).select_from(model).where(*_where(model, scope))) or 0
        except SQLAlchemyError as e:
            raise PersistenceFailure(model.__tablename__, e) from e

    def first(self, model: Type[Base], scope: Mapping[str, Any]) -> Optional[Base]:
        try:
            with self.session_factory() as db:
                return db.scalars(select(model).where(*_where(model, scope)).limit(1)).first()
        except SQLAlchemyError as e:
            raise PersistenceFailure(model.__tablename__, e) from e

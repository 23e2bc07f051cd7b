import time
from typing import Any, Callable

from sqlalchemy import delete, select
from sqlalchemy.orm import Session, sessionmaker

from navigator.db.models.cache_entry import CacheEntryORM
from navigator.services.cache import CacheStore


class CacheRepositorySQLAlchemy(CacheStore):
    """Cache store backed by the ``cache_entries`` table.

    Shared by every instance pointed at the same database, so entries survive
    restarts. Expired rows are removed when read; ``purge_expired`` can be run
    periodically to sweep the rest.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        clock: Callable[[], float] = time.time,
    ):
        self._session_factory = session_factory
        self._clock = clock

    def _session(self) -> Session:
        return self._session_factory()

    def get(self, key: str) -> Any | None:
        with self._session() as db:
            orm = db.get(CacheEntryORM, key)
            if orm is None:
                return None
            if orm.expires_at <= self._clock():
                db.delete(orm)
                db.commit()
                return None
            return orm.value

    def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        with self._session() as db:
            db.merge(CacheEntryORM(
                key=key,
                value=value,
                expires_at=self._clock() + ttl_seconds,
            ))
            db.commit()

    def delete(self, key: str) -> None:
        with self._session() as db:
            db.execute(delete(CacheEntryORM).where(CacheEntryORM.key == key))
            db.commit()

    def scan_by_prefix(self, prefix: str) -> list[Any]:
        with self._session() as db:
            rows = db.scalars(
                select(CacheEntryORM)
                .where(CacheEntryORM.key.startswith(prefix, autoescape=True))
                .where(CacheEntryORM.expires_at > self._clock())
                .order_by(CacheEntryORM.key.asc())
            ).all()
            return [r.value for r in rows]

    def clear(self) -> None:
        with self._session() as db:
            db.execute(delete(CacheEntryORM))
            db.commit()

    def purge_expired(self) -> int:
        """Delete every expired row. Returns the number of rows removed."""
        with self._session() as db:
            result = db.execute(
                delete(CacheEntryORM).where(CacheEntryORM.expires_at <= self._clock())
            )
            db.commit()
            return result.rowcount or 0

from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Float, String

from navigator.db.base import Base


class CacheEntryORM(Base):
    __tablename__ = "cache_entries"

    key = Column(String(255), primary_key=True)
    value = Column(JSON, nullable=False)

    # Epoch seconds, compared against the cache clock
    expires_at = Column(Float, nullable=False, index=True)

    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

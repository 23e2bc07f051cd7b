from navigator.db.models.cache_entry import CacheEntryORM

__all__ = [
    "CacheEntryORM",
]

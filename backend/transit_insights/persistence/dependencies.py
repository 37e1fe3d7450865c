from __future__ import annotations

from functools import lru_cache

from transit_insights.core.config import get_settings
from transit_insights.persistence.store import JsonFileRecordStore, RecordStore


@lru_cache
def _store_for(path: str) -> JsonFileRecordStore:
    # One store (and therefore one write lock) per data file.
    return JsonFileRecordStore(path)


def get_record_store() -> RecordStore:
    """FastAPI dependency that yields the configured record store."""
    return _store_for(str(get_settings().data_store_path))

from typing import Any, Mapping

from .base import JourneyStore
from .memory import MemoryJourneyStore
from .sqlite import SQLiteJourneyStore


def build_store(cfg: Mapping[str, Any] | None) -> JourneyStore:
    """Factory for journey stores based on the ``storage`` config mapping."""

    cfg = cfg or {}
    store_type = str(cfg.get("type", "sqlite")).lower()
    if store_type == "sqlite":
        return SQLiteJourneyStore(str(cfg.get("path", "journeys.db")))
    if store_type == "memory":
        max_journeys = cfg.get("max_journeys")
        return MemoryJourneyStore(max_journeys=int(max_journeys) if max_journeys is not None else None)
    raise ValueError(f"Unknown storage type '{store_type}'")


__all__ = ["JourneyStore", "MemoryJourneyStore", "SQLiteJourneyStore", "build_store"]

"""In-memory journey store for tests and ephemeral sessions."""

from __future__ import annotations

import json
from typing import Dict, List, Optional

from ..errors import StorageError
from ..models import Journey
from .base import JourneyStore


class MemoryJourneyStore(JourneyStore):
    """Keeps serialized journey records in a dict.

    Records are stored as JSON text so callers always read back an independent,
    re-validated copy. ``max_journeys`` emulates a storage quota.
    """

    def __init__(self, max_journeys: int | None = None) -> None:
        self.max_journeys = max_journeys
        self._records: Dict[str, str] = {}

    async def put(self, journey: Journey) -> None:
        if (
            self.max_journeys is not None
            and journey.id not in self._records
            and len(self._records) >= self.max_journeys
        ):
            raise StorageError(f"Failed to save journey: quota of {self.max_journeys} journeys exceeded")
        self._records[journey.id] = json.dumps(journey.to_record())

    async def get(self, journey_id: str) -> Optional[Journey]:
        payload = self._records.get(journey_id)
        if payload is None:
            return None
        return Journey.from_record(json.loads(payload))

    async def get_all(self) -> List[Journey]:
        journeys = [Journey.from_record(json.loads(payload)) for payload in self._records.values()]
        return sorted(journeys, key=lambda j: j.start_time, reverse=True)

    async def delete(self, journey_id: str) -> None:
        self._records.pop(journey_id, None)

    async def clear_all(self) -> None:
        self._records.clear()

    def __len__(self) -> int:
        return len(self._records)

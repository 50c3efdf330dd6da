"""Storage abstraction for recorded journeys."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional

from ..models import Journey


class JourneyStore(ABC):
    """Durable keyed storage of journeys, ordered by start time.

    Every operation raises :class:`~sjr.errors.StorageError` when the
    underlying medium fails. A missing journey is not a failure: ``get``
    returns ``None`` and ``delete`` does nothing.
    """

    @abstractmethod
    async def put(self, journey: Journey) -> None:
        """Insert or replace the full journey atomically."""

    @abstractmethod
    async def get(self, journey_id: str) -> Optional[Journey]:
        ...

    @abstractmethod
    async def get_all(self) -> List[Journey]:
        """Return every journey, most recent ``startTime`` first."""

    @abstractmethod
    async def delete(self, journey_id: str) -> None:
        ...

    @abstractmethod
    async def clear_all(self) -> None:
        ...

    def close(self) -> None:
        ...

    async def __aenter__(self) -> "JourneyStore":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.close()

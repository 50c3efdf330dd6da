"""Position source contract and a simulated implementation."""

from __future__ import annotations

import asyncio
import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, AsyncIterator, Mapping

import numpy as np

from ..errors import LocationPermissionError, PositionTimeoutError, PositionUnavailableError
from ..models import now_ms

logger = logging.getLogger(__name__)

METERS_PER_DEGREE = 111_320.0


@dataclass(frozen=True)
class PositionFix:
    latitude: float
    longitude: float
    accuracy: float
    timestamp: int


class PositionSource(ABC):
    """Yields geographic fixes, one-shot or as a continuous subscription.

    ``get_current_position`` raises :class:`LocationPermissionError`,
    :class:`PositionUnavailableError` or :class:`PositionTimeoutError`.
    ``watch`` delivers fixes until the consuming task is cancelled.
    """

    @abstractmethod
    async def get_current_position(self) -> PositionFix:
        ...

    @abstractmethod
    def watch(self) -> AsyncIterator[PositionFix]:
        ...

    async def request_permission(self) -> bool:
        """Probe for authorization with a one-shot request; other failures propagate."""

        try:
            await self.get_current_position()
        except LocationPermissionError:
            return False
        return True


async def request_fix(source: PositionSource, timeout_s: float | None = None) -> PositionFix:
    """One-shot request bounded by ``timeout_s``."""

    if not timeout_s:
        return await source.get_current_position()
    try:
        return await asyncio.wait_for(source.get_current_position(), timeout=timeout_s)
    except asyncio.TimeoutError as exc:
        raise PositionTimeoutError("Location request timed out. Please try again.") from exc


class SimulatedPositionSource(PositionSource):
    """Random walk around a start coordinate, for demos and tests."""

    def __init__(
        self,
        start_latitude: float = 52.5200,
        start_longitude: float = 13.4050,
        step_m: float = 15.0,
        accuracy_m: float = 8.0,
        update_interval_s: float = 1.0,
        deny_permission: bool = False,
        failure_chance: float = 0.0,
        seed: int | None = None,
    ) -> None:
        self.latitude = float(start_latitude)
        self.longitude = float(start_longitude)
        self.step_m = step_m
        self.accuracy_m = accuracy_m
        self.update_interval_s = update_interval_s
        self.deny_permission = deny_permission
        self.failure_chance = failure_chance
        self.rng = np.random.default_rng(seed)

    def _next_fix(self) -> PositionFix:
        north, east = self.rng.normal(scale=self.step_m, size=2)
        self.latitude = float(np.clip(self.latitude + north / METERS_PER_DEGREE, -90.0, 90.0))
        lon_scale = METERS_PER_DEGREE * max(math.cos(math.radians(self.latitude)), 1e-6)
        longitude = self.longitude + east / lon_scale
        self.longitude = float((longitude + 180.0) % 360.0 - 180.0)
        accuracy = float(abs(self.rng.normal(self.accuracy_m, self.accuracy_m * 0.25)))
        return PositionFix(self.latitude, self.longitude, accuracy, now_ms())

    async def get_current_position(self) -> PositionFix:
        if self.deny_permission:
            raise LocationPermissionError()
        await asyncio.sleep(0)
        if self.failure_chance and self.rng.random() < self.failure_chance:
            raise PositionUnavailableError("Unable to determine your location. Please check your device settings.")
        return self._next_fix()

    async def watch(self) -> AsyncIterator[PositionFix]:
        if self.deny_permission:
            raise LocationPermissionError()
        while True:
            yield self._next_fix()
            await asyncio.sleep(self.update_interval_s)


def build_position_source(cfg: Mapping[str, Any] | None) -> PositionSource:
    """Factory for position sources based on the ``position`` config mapping."""

    cfg = cfg or {}
    source_type = str(cfg.get("type", "simulated")).lower()
    if source_type in {"simulated", "demo"}:
        return SimulatedPositionSource(
            start_latitude=float(cfg.get("start_latitude", 52.5200)),
            start_longitude=float(cfg.get("start_longitude", 13.4050)),
            step_m=float(cfg.get("step_m", 15.0)),
            accuracy_m=float(cfg.get("accuracy_m", 8.0)),
            update_interval_s=float(cfg.get("update_interval_s", 1.0)),
            seed=cfg.get("seed"),
        )
    raise ValueError(f"Unknown position source type '{source_type}'")

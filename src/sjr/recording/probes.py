"""Throughput probe contract with HTTP and simulated implementations."""

from __future__ import annotations

import asyncio
import logging
import math
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from http.client import HTTPException
from typing import Any, Callable, Mapping, Optional
from urllib import request

import numpy as np

from ..models import Transport, now_ms

logger = logging.getLogger(__name__)

DEFAULT_TEST_URL = "https://cdnjs.cloudflare.com/ajax/libs/leaflet/1.9.4/leaflet.js"
DEFAULT_TEST_BYTES = 150_000


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of one probe run; ``throughput_mbps`` is ``None`` when unmeasurable."""

    throughput_mbps: Optional[float]
    transport: Transport

    @property
    def measured(self) -> bool:
        return self.throughput_mbps is not None


class ThroughputProbe(ABC):
    """Performs one bounded network transfer per ``measure`` call.

    Timeouts and network failures are reported as an unmeasurable result,
    never raised.
    """

    @abstractmethod
    async def measure(self) -> ProbeResult:
        ...

    async def measure_average(self, count: int = 3) -> ProbeResult:
        if count <= 0:
            raise ValueError("count must be positive")
        results = [await self.measure() for _ in range(count)]
        rates = [r.throughput_mbps for r in results if r.throughput_mbps is not None]
        transport = results[-1].transport
        if not rates:
            return ProbeResult(None, transport)
        return ProbeResult(round(float(np.mean(rates)), 2), transport)


def _is_timeout(exc: BaseException) -> bool:
    if isinstance(exc, (asyncio.TimeoutError, TimeoutError)):
        return True
    return isinstance(getattr(exc, "reason", None), TimeoutError)


class HttpThroughputProbe(ThroughputProbe):
    """Downloads a test resource and reports the rate in Mbps."""

    def __init__(
        self,
        url: str = DEFAULT_TEST_URL,
        expected_bytes: int = DEFAULT_TEST_BYTES,
        timeout_s: float = 5.0,
        transport_detector: Callable[[], Transport] | None = None,
    ) -> None:
        if timeout_s <= 0:
            raise ValueError("timeout_s must be positive")
        self.url = url
        self.expected_bytes = int(expected_bytes)
        self.timeout_s = float(timeout_s)
        self.transport_detector = transport_detector or (lambda: Transport.UNKNOWN)

    def _download(self, url: str) -> int:
        req = request.Request(url, headers={"Cache-Control": "no-store"})
        with request.urlopen(req, timeout=self.timeout_s) as resp:  # noqa: S310
            if resp.status >= 300:
                raise RuntimeError(f"HTTP error: {resp.status}")
            return len(resp.read())

    async def measure(self) -> ProbeResult:
        transport = self.transport_detector()
        if transport is Transport.DISCONNECTED:
            return ProbeResult(None, Transport.DISCONNECTED)

        separator = "&" if "?" in self.url else "?"
        url = f"{self.url}{separator}_t={now_ms()}"
        started = time.perf_counter()
        try:
            size = await asyncio.wait_for(asyncio.to_thread(self._download, url), timeout=self.timeout_s)
        except (asyncio.TimeoutError, OSError, HTTPException, RuntimeError, ValueError) as exc:
            if _is_timeout(exc):
                logger.info("Throughput probe timed out after %.1fs", self.timeout_s)
                return ProbeResult(None, Transport.DISCONNECTED)
            logger.info("Throughput probe failed: %s", exc)
            return ProbeResult(None, transport)

        elapsed = time.perf_counter() - started
        if elapsed <= 0:
            return ProbeResult(None, transport)
        size = size or self.expected_bytes
        mbps = (size * 8) / elapsed / 1_000_000
        return ProbeResult(round(mbps, 2), transport)


class SimulatedThroughputProbe(ThroughputProbe):
    """Log-normal throughput with occasional dropouts."""

    def __init__(
        self,
        median_mbps: float = 6.0,
        sigma: float = 0.8,
        dropout_chance: float = 0.1,
        transport: Transport | str = Transport.WIDE_AREA_WIRELESS,
        latency_s: float = 0.0,
        seed: int | None = None,
    ) -> None:
        if median_mbps <= 0:
            raise ValueError("median_mbps must be positive")
        self.median_mbps = median_mbps
        self.sigma = sigma
        self.dropout_chance = dropout_chance
        self.transport = Transport(transport)
        self.latency_s = latency_s
        self.rng = np.random.default_rng(seed)

    async def measure(self) -> ProbeResult:
        await asyncio.sleep(self.latency_s)
        if self.rng.random() < self.dropout_chance:
            return ProbeResult(None, Transport.DISCONNECTED)
        rate = float(self.rng.lognormal(mean=math.log(self.median_mbps), sigma=self.sigma))
        return ProbeResult(round(rate, 2), self.transport)


def build_probe(cfg: Mapping[str, Any] | None) -> ThroughputProbe:
    """Factory for throughput probes based on the ``probe`` config mapping."""

    cfg = cfg or {}
    probe_type = str(cfg.get("type", "http")).lower()
    if probe_type == "http":
        hint = Transport(str(cfg.get("transport", Transport.UNKNOWN.value)))
        return HttpThroughputProbe(
            url=str(cfg.get("url", DEFAULT_TEST_URL)),
            expected_bytes=int(cfg.get("expected_bytes", DEFAULT_TEST_BYTES)),
            timeout_s=float(cfg.get("timeout_s", 5.0)),
            transport_detector=lambda: hint,
        )
    if probe_type in {"simulated", "demo"}:
        return SimulatedThroughputProbe(
            median_mbps=float(cfg.get("median_mbps", 6.0)),
            sigma=float(cfg.get("sigma", 0.8)),
            dropout_chance=float(cfg.get("dropout_chance", 0.1)),
            transport=str(cfg.get("transport", Transport.WIDE_AREA_WIRELESS.value)),
            latency_s=float(cfg.get("latency_s", 0.0)),
            seed=cfg.get("seed"),
        )
    raise ValueError(f"Unknown probe type '{probe_type}'")

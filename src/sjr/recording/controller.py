"""Recording state machine: periodic sampling with incremental persistence."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, List, Mapping, Optional

from ..errors import LocationPermissionError, RecorderStateError, StorageError
from ..logging_utils import log_event
from ..models import DEFAULT_THRESHOLDS, Journey, QualityThresholds, Sample, now_ms
from ..storage import JourneyStore, build_store
from .positions import PositionFix, PositionSource, build_position_source, request_fix
from .probes import ThroughputProbe, build_probe

logger = logging.getLogger(__name__)

SampleListener = Callable[[Sample, Journey], None]


class RecorderState(str, Enum):
    IDLE = "idle"
    STARTING = "starting"
    RECORDING = "recording"
    STOPPING = "stopping"


@dataclass
class StopResult:
    """Outcome of :meth:`RecordingController.stop`.

    ``error`` holds the storage failure of the final save, if any. Samples
    persisted by earlier cycles are unaffected by it.
    """

    journey: Journey
    error: Optional[StorageError] = None

    @property
    def saved(self) -> bool:
        return self.error is None


class RecordingController:
    """Drives one recording session at a time.

    Each sample cycle reads the latest position (or requests one), runs the
    throughput probe once, appends the sample to the current journey and
    writes the whole journey back to the store before notifying the
    listener. A failing cycle is logged and skipped; it never ends the
    session.
    """

    def __init__(
        self,
        store: JourneyStore,
        position_source: PositionSource,
        probe: ThroughputProbe,
        *,
        interval_s: float = 30.0,
        first_fix_wait_s: float = 0.5,
        position_timeout_s: float | None = 10.0,
        thresholds: QualityThresholds = DEFAULT_THRESHOLDS,
    ) -> None:
        if interval_s <= 0:
            raise ValueError("interval_s must be positive")
        if first_fix_wait_s < 0:
            raise ValueError("first_fix_wait_s cannot be negative")
        self.store = store
        self.position_source = position_source
        self.probe = probe
        self.interval_s = float(interval_s)
        self.first_fix_wait_s = float(first_fix_wait_s)
        self.position_timeout_s = position_timeout_s
        self.thresholds = thresholds
        self.last_error: Optional[Exception] = None

        self._state = RecorderState.IDLE
        self._journey: Optional[Journey] = None
        self._latest: Optional[PositionFix] = None
        self._listener: Optional[SampleListener] = None
        self._sampling_task: Optional[asyncio.Task] = None
        self._watch_task: Optional[asyncio.Task] = None
        self._cycle_lock = asyncio.Lock()
        self._closing = False

    @classmethod
    def create_from_config(
        cls,
        cfg: Mapping[str, Any],
        *,
        store: JourneyStore | None = None,
        position_source: PositionSource | None = None,
        probe: ThroughputProbe | None = None,
    ) -> "RecordingController":
        recording_cfg = cfg.get("recording", {}) or {}
        thresholds_cfg = cfg.get("thresholds", {}) or {}
        position_cfg = cfg.get("position", {}) or {}
        thresholds = QualityThresholds(
            moderate_floor=float(thresholds_cfg.get("moderate_floor", DEFAULT_THRESHOLDS.moderate_floor)),
            good_floor=float(thresholds_cfg.get("good_floor", DEFAULT_THRESHOLDS.good_floor)),
        )
        timeout = position_cfg.get("timeout_s", 10.0)
        return cls(
            store=store or build_store(cfg.get("storage")),
            position_source=position_source or build_position_source(position_cfg),
            probe=probe or build_probe(cfg.get("probe")),
            interval_s=float(recording_cfg.get("interval_s", 30.0)),
            first_fix_wait_s=float(recording_cfg.get("first_fix_wait_s", 0.5)),
            position_timeout_s=float(timeout) if timeout else None,
            thresholds=thresholds,
        )

    @property
    def state(self) -> RecorderState:
        return self._state

    @property
    def is_recording(self) -> bool:
        return self._state is RecorderState.RECORDING

    @property
    def current_journey(self) -> Optional[Journey]:
        return self._journey

    @property
    def latest_position(self) -> Optional[PositionFix]:
        return self._latest

    @property
    def listener(self) -> Optional[SampleListener]:
        return self._listener

    def set_listener(self, listener: Optional[SampleListener]) -> None:
        """Register the single sample listener, or clear it with ``None``."""

        self._listener = listener

    async def start(self, name: str | None = None) -> Journey:
        """Begin a new session and return its journey.

        Raises :class:`LocationPermissionError` when location access is denied;
        that is recoverable and the controller is back to idle with nothing
        persisted. Any other failure before sampling begins also returns to
        idle and propagates.
        A ``close()`` issued while the authorization fix is pending makes it
        raise :class:`RecorderStateError` instead of starting.
        """

        if self._state is not RecorderState.IDLE:
            raise RecorderStateError(f"Cannot start recording while {self._state.value}")
        self._state = RecorderState.STARTING
        self.last_error = None
        self._closing = False

        try:
            await request_fix(self.position_source, self.position_timeout_s)
        except LocationPermissionError:
            logger.warning("Location permission is required to record a journey")
            self._state = RecorderState.IDLE
            raise
        except BaseException:
            self._state = RecorderState.IDLE
            raise

        if self._closing:
            # closed while waiting for the authorization fix
            self._state = RecorderState.IDLE
            raise RecorderStateError("Recorder was closed while starting")

        journey = Journey.create(name.strip() if name and name.strip() else None)
        self._journey = journey
        self._state = RecorderState.RECORDING
        try:
            self._watch_task = asyncio.create_task(self._follow_position(), name="sjr-position-watch")
            if self.first_fix_wait_s:
                await asyncio.sleep(self.first_fix_wait_s)
            if not self._is_active(journey):
                # stopped while waiting for the first fix
                return journey
            self._sampling_task = asyncio.create_task(self._sampling_loop(journey), name="sjr-sampling")
        except BaseException:
            if self._journey is journey:
                await self._release_tasks()
                self._latest = None
                self._journey = None
                self._state = RecorderState.IDLE
            raise

        log_event(logger, "recording_started", journey_id=journey.id, name=journey.name, interval_s=self.interval_s)
        return journey

    async def stop(self) -> Optional[StopResult]:
        """End the session; a no-op returning ``None`` unless recording.

        The sampling timer and the position subscription are released before
        the final save. A failed final save is reported in the result and in
        ``last_error`` rather than raised; the controller returns to idle either
        way.
        """

        journey = self._journey
        if self._state is not RecorderState.RECORDING or journey is None:
            return None
        self._state = RecorderState.STOPPING
        result = StopResult(journey=journey)
        try:
            await self._release_tasks()
            self._latest = None
            journey.end(max(now_ms(), journey.start_time))
            try:
                await self.store.put(journey)
            except StorageError as exc:
                logger.error("Failed to save journey %s on stop: %s", journey.id, exc)
                self.last_error = exc
                result.error = exc
        finally:
            self._journey = None
            self._state = RecorderState.IDLE

        log_event(
            logger,
            "recording_stopped",
            journey_id=journey.id,
            samples=len(journey.samples),
            saved=result.saved,
        )
        return result

    async def close(self) -> None:
        """Tear down: stop an active session and release every task."""

        if self._state is RecorderState.STARTING:
            self._closing = True
        if self._state is RecorderState.RECORDING:
            await self.stop()
        await self._release_tasks()
        self._latest = None

    async def sample_now(self) -> Optional[Sample]:
        """Run one sample cycle immediately; returns ``None`` if it was skipped."""

        journey = self._journey
        if journey is None or not self._is_active(journey):
            return None
        return await self._run_cycle(journey)

    async def __aenter__(self) -> "RecordingController":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    def _is_active(self, journey: Journey) -> bool:
        return self._journey is journey and self._state is RecorderState.RECORDING

    async def _follow_position(self) -> None:
        stream = self.position_source.watch()
        try:
            async for fix in stream:
                self._latest = fix
        except Exception as exc:
            logger.warning("Position subscription ended: %s", exc)
        finally:
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()

    async def _sampling_loop(self, journey: Journey) -> None:
        loop = asyncio.get_running_loop()
        while self._is_active(journey):
            started = loop.time()
            await self._run_cycle(journey)
            elapsed = loop.time() - started
            await asyncio.sleep(max(self.interval_s - elapsed, 0.0))

    async def _run_cycle(self, journey: Journey) -> Optional[Sample]:
        async with self._cycle_lock:
            if not self._is_active(journey):
                return None
            try:
                position = self._latest
                if position is None:
                    position = await request_fix(self.position_source, self.position_timeout_s)
                result = await self.probe.measure()
                sample = Sample(
                    timestamp=now_ms(),
                    latitude=position.latitude,
                    longitude=position.longitude,
                    accuracy=position.accuracy,
                    throughput_mbps=result.throughput_mbps,
                    transport=result.transport,
                )
                if not self._is_active(journey):
                    logger.info("Discarding sample for journey %s; recording already stopped", journey.id)
                    return None
                journey.append_sample(sample)
                await self.store.put(journey)
            except Exception as exc:
                logger.warning("Skipping sample for journey %s: %s", journey.id, exc)
                self.last_error = exc
                return None

            log_event(
                logger,
                "sample_recorded",
                journey_id=journey.id,
                index=len(journey.samples) - 1,
                throughput_mbps=sample.throughput_mbps,
                quality=sample.quality(self.thresholds).value,
            )
            self._notify(sample, journey)
            return sample

    def _notify(self, sample: Sample, journey: Journey) -> None:
        if self._listener is None:
            return
        try:
            self._listener(sample, journey)
        except Exception:
            logger.exception("Sample listener failed")

    async def _release_tasks(self) -> None:
        tasks: List[asyncio.Task] = [t for t in (self._sampling_task, self._watch_task) if t is not None]
        self._sampling_task = None
        self._watch_task = None
        current = asyncio.current_task()
        pending = [t for t in tasks if t is not current]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

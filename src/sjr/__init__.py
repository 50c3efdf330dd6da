"""Journey recording and persistence engine."""

from .errors import (
    JourneyRecorderError,
    LocationPermissionError,
    PositionError,
    PositionTimeoutError,
    PositionUnavailableError,
    RecorderStateError,
    StorageError,
    TransferFormatError,
    ValidationError,
)
from .models import Journey, JourneyStats, QualityClass, QualityThresholds, Sample, Transport
from .recording import (
    HttpThroughputProbe,
    PositionFix,
    PositionSource,
    ProbeResult,
    RecorderState,
    RecordingController,
    SimulatedPositionSource,
    SimulatedThroughputProbe,
    StopResult,
    ThroughputProbe,
)
from .storage import JourneyStore, MemoryJourneyStore, SQLiteJourneyStore, build_store
from .transfer import FORMAT_VERSION, export_filename, import_journey, parse_payload, write_export

__all__ = [
    "JourneyRecorderError",
    "LocationPermissionError",
    "PositionError",
    "PositionTimeoutError",
    "PositionUnavailableError",
    "RecorderStateError",
    "StorageError",
    "TransferFormatError",
    "ValidationError",
    "Journey",
    "JourneyStats",
    "QualityClass",
    "QualityThresholds",
    "Sample",
    "Transport",
    "RecorderState",
    "RecordingController",
    "StopResult",
    "PositionFix",
    "PositionSource",
    "SimulatedPositionSource",
    "ThroughputProbe",
    "ProbeResult",
    "HttpThroughputProbe",
    "SimulatedThroughputProbe",
    "JourneyStore",
    "MemoryJourneyStore",
    "SQLiteJourneyStore",
    "build_store",
    "FORMAT_VERSION",
    "export_filename",
    "import_journey",
    "parse_payload",
    "write_export",
]

"""Signal Journey Recorder: configuration, reporting and service surfaces."""

from importlib import metadata

try:
    __version__ = metadata.version("signal-journey-recorder")
except metadata.PackageNotFoundError:  # pragma: no cover - fallback for editable installs
    __version__ = "0.1.0"

from .config import apply_defaults, load_config, load_recorder_config, validate_config
from .reporting import (
    format_duration,
    format_position,
    format_speed,
    format_time,
    quality_label,
    render_journey_report,
    write_journey_report,
)
from .service import create_app
from sjr.logging_utils import configure_logging, log_event
from sjr.models import Journey, Sample, Transport
from sjr.recording import RecordingController
from sjr.storage import MemoryJourneyStore, SQLiteJourneyStore
from sjr.transfer import import_journey, parse_payload, write_export

__all__ = [
    "apply_defaults",
    "load_config",
    "load_recorder_config",
    "validate_config",
    "format_duration",
    "format_position",
    "format_speed",
    "format_time",
    "quality_label",
    "render_journey_report",
    "write_journey_report",
    "create_app",
    "configure_logging",
    "log_event",
    "Journey",
    "Sample",
    "Transport",
    "RecordingController",
    "MemoryJourneyStore",
    "SQLiteJourneyStore",
    "import_journey",
    "parse_payload",
    "write_export",
    "__version__",
]

"""Export/import of single journeys for cross-device exchange."""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Mapping

from .errors import TransferFormatError, ValidationError
from .logging_utils import log_event
from .models import DEFAULT_THRESHOLDS, Journey, QualityThresholds, now_ms
from .storage import JourneyStore

logger = logging.getLogger(__name__)

FORMAT_VERSION = "1.0"

# keys written by the browser version of the recorder
_LEGACY_JOURNEY_KEYS = {"dataPoints": "samples"}
_LEGACY_SAMPLE_KEYS = {"speedMbps": "throughputMbps", "connectionType": "transport"}


def build_export_payload(journey: Journey, exported_at: datetime | None = None) -> Dict[str, Any]:
    exported_at = exported_at or datetime.now(timezone.utc)
    return {
        "version": FORMAT_VERSION,
        "exportedAt": exported_at.isoformat().replace("+00:00", "Z"),
        "journey": journey.to_record(),
    }


def dumps_payload(journey: Journey, exported_at: datetime | None = None) -> str:
    return json.dumps(build_export_payload(journey, exported_at), indent=2)


def export_filename(journey: Journey, timestamp_ms: int | None = None) -> str:
    """``journey-<name>-<ms>.json`` with every non-alphanumeric character replaced by ``-``."""

    slug = re.sub(r"[^a-z0-9]", "-", journey.name.lower())
    return f"journey-{slug}-{timestamp_ms if timestamp_ms is not None else now_ms()}.json"


def _translate_legacy(record: Mapping[str, Any]) -> Dict[str, Any]:
    translated = {_LEGACY_JOURNEY_KEYS.get(k, k): v for k, v in record.items()}
    samples = translated.get("samples")
    if isinstance(samples, list):
        translated["samples"] = [
            {_LEGACY_SAMPLE_KEYS.get(k, k): v for k, v in s.items()} if isinstance(s, Mapping) else s
            for s in samples
        ]
    return translated


def _check_version(version: Any) -> None:
    if version is None:
        return
    if not isinstance(version, str):
        raise TransferFormatError("Invalid journey file format: 'version' must be a string")
    if version.split(".", 1)[0] != FORMAT_VERSION.split(".", 1)[0]:
        raise TransferFormatError(f"Unsupported journey file version '{version}' (expected {FORMAT_VERSION})")


def parse_payload(data: str | bytes | Mapping[str, Any]) -> Journey:
    """Validate a transfer payload and return the embedded journey.

    Raises :class:`TransferFormatError` describing the first problem found.
    """

    if isinstance(data, (str, bytes)):
        try:
            data = json.loads(data)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise TransferFormatError(f"Failed to import journey: invalid JSON ({exc})") from exc

    if not isinstance(data, Mapping):
        raise TransferFormatError("Invalid journey file format: payload must be an object")
    record = data.get("journey")
    if record is None:
        raise TransferFormatError("Invalid journey file format: missing 'journey'")
    if not isinstance(record, Mapping):
        raise TransferFormatError("Invalid journey file format: 'journey' must be an object")
    _check_version(data.get("version"))

    try:
        return Journey.from_record(_translate_legacy(record))
    except ValidationError as exc:
        raise TransferFormatError(f"Failed to import journey: {exc}") from exc


def write_export(journey: Journey, directory: str | Path, exported_at: datetime | None = None) -> Path:
    """Write the transfer file for ``journey`` into ``directory`` and return its path."""

    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    output = directory / export_filename(journey)
    output.write_text(dumps_payload(journey, exported_at), encoding="utf-8")
    log_event(logger, "journey_exported", journey_id=journey.id, path=str(output))
    return output


async def import_journey(data: str | bytes | Mapping[str, Any], store: JourneyStore) -> Journey:
    """Parse a transfer payload and persist the journey it carries."""

    journey = parse_payload(data)
    await store.put(journey)
    log_event(logger, "journey_imported", journey_id=journey.id, samples=len(journey.samples))
    return journey


async def import_journey_file(path: str | Path, store: JourneyStore) -> Journey:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(path)
    return await import_journey(path.read_bytes(), store)


def export_samples_csv(
    journey: Journey, output_path: str | Path, thresholds: QualityThresholds = DEFAULT_THRESHOLDS
) -> Path:
    """Write the journey's samples, with their quality class, as CSV."""

    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)
    df = journey.to_dataframe(thresholds)
    df.to_csv(output, index=False)
    return output

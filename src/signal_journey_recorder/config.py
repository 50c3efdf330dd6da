"""Configuration loading and validation for recorder settings."""

from __future__ import annotations

import copy
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping

import yaml

from sjr.recording.probes import DEFAULT_TEST_BYTES, DEFAULT_TEST_URL

DEFAULT_CONFIG: Dict[str, Dict[str, Any]] = {
    "recording": {"interval_s": 30.0, "first_fix_wait_s": 0.5},
    "thresholds": {"moderate_floor": 1.0, "good_floor": 5.0},
    "probe": {
        "type": "http",
        "url": DEFAULT_TEST_URL,
        "expected_bytes": DEFAULT_TEST_BYTES,
        "timeout_s": 5.0,
        "transport": "unknown",
    },
    "position": {"type": "simulated", "timeout_s": 10.0},
    "storage": {"type": "sqlite", "path": "journeys.db"},
}

# (section, key) -> bounds; "gt" is exclusive, "min" inclusive
CONSTRAINTS: Dict[tuple[str, str], Dict[str, float]] = {
    ("recording", "interval_s"): {"gt": 0},
    ("recording", "first_fix_wait_s"): {"min": 0},
    ("thresholds", "moderate_floor"): {"min": 0},
    ("thresholds", "good_floor"): {"min": 0},
    ("probe", "timeout_s"): {"gt": 0, "warn_above": 30},
    ("probe", "expected_bytes"): {"gt": 0},
    ("position", "timeout_s"): {"min": 0},
}


@dataclass
class ValidationResult:
    errors: list[str]
    warnings: list[str]
    normalized: Dict[str, Any]

    @property
    def ok(self) -> bool:
        return not self.errors

    def as_dict(self) -> Dict[str, Any]:
        return {
            "errors": self.errors,
            "warnings": self.warnings,
            "normalized": self.normalized,
        }


def apply_defaults(config: Mapping[str, Any]) -> Dict[str, Any]:
    """Merge ``config`` over the defaults one section deep, without mutating either."""

    normalized = copy.deepcopy(DEFAULT_CONFIG)
    for section, values in config.items():
        if isinstance(values, Mapping) and isinstance(normalized.get(section), dict):
            normalized[section].update(values)
        else:
            normalized[section] = copy.deepcopy(values)
    return normalized


def validate_config(config: Mapping[str, Any]) -> ValidationResult:
    """Validate a configuration mapping after applying defaults.

    Unknown sections produce warnings; missing or out-of-range values produce
    errors.
    """

    errors: list[str] = []
    warnings: list[str] = []
    normalized = apply_defaults(config)

    for section in config:
        if section not in DEFAULT_CONFIG:
            warnings.append(f"Unknown config section '{section}' is ignored")
        elif not isinstance(config[section], Mapping):
            errors.append(f"Config section '{section}' must be a mapping")

    for (section, key), bounds in CONSTRAINTS.items():
        values = normalized.get(section)
        if not isinstance(values, Mapping):
            continue
        value = values.get(key)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            errors.append(f"Field '{section}.{key}' must be a number (got {type(value).__name__})")
            continue
        if "gt" in bounds and value <= bounds["gt"]:
            errors.append(f"Field '{section}.{key}' must be > {bounds['gt']} (got {value})")
        if "min" in bounds and value < bounds["min"]:
            errors.append(f"Field '{section}.{key}' must be >= {bounds['min']} (got {value})")
        if "warn_above" in bounds and value > bounds["warn_above"]:
            warnings.append(f"Field '{section}.{key}' is unusually high ({value} > {bounds['warn_above']})")

    thresholds = normalized.get("thresholds")
    if isinstance(thresholds, Mapping):
        moderate, good = thresholds.get("moderate_floor"), thresholds.get("good_floor")
        if isinstance(moderate, (int, float)) and isinstance(good, (int, float)) and good < moderate:
            errors.append("Field 'thresholds.good_floor' must be >= 'thresholds.moderate_floor'")

    return ValidationResult(errors=errors, warnings=warnings, normalized=normalized)


def load_config(path: str | Path) -> Dict[str, Any]:
    """Load a raw configuration mapping from YAML or JSON."""

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")
    text = path.read_text(encoding="utf-8")
    loaded = json.loads(text) if path.suffix.lower() == ".json" else yaml.safe_load(text)
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ValueError("Config file must contain a mapping/object at the top level")
    return loaded


def load_recorder_config(path: str | Path | None = None) -> Dict[str, Any]:
    """Load, default and validate a config file; defaults only when ``path`` is None."""

    raw = load_config(path) if path else {}
    result = validate_config(raw)
    if result.errors:
        raise ValueError("Invalid configuration: " + "; ".join(result.errors))
    return result.normalized

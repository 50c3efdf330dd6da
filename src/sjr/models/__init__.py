"""Pydantic models for samples and journeys."""

from .journey import Journey, JourneyStats, now_ms
from .quality import (
    DEFAULT_THRESHOLDS,
    QUALITY_COLORS,
    QualityClass,
    QualityThresholds,
    classify_throughput,
    quality_color,
)
from .sample import Sample, Transport

__all__ = [
    "Journey",
    "JourneyStats",
    "Sample",
    "Transport",
    "QualityClass",
    "QualityThresholds",
    "DEFAULT_THRESHOLDS",
    "QUALITY_COLORS",
    "classify_throughput",
    "quality_color",
    "now_ms",
]

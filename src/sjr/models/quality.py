"""Quality classification derived from measured throughput."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class QualityClass(str, Enum):
    GOOD = "good"
    MODERATE = "moderate"
    POOR = "poor"
    OFFLINE = "offline"


QUALITY_COLORS = {
    QualityClass.GOOD: "#4CAF50",
    QualityClass.MODERATE: "#FFC107",
    QualityClass.POOR: "#f44336",
    QualityClass.OFFLINE: "#9E9E9E",
}


@dataclass(frozen=True)
class QualityThresholds:
    """Lower bounds (Mbps) of the moderate and good classes."""

    moderate_floor: float = 1.0
    good_floor: float = 5.0

    def __post_init__(self) -> None:
        if self.moderate_floor < 0:
            raise ValueError("moderate_floor must be non-negative")
        if self.good_floor < self.moderate_floor:
            raise ValueError("good_floor must be >= moderate_floor")


DEFAULT_THRESHOLDS = QualityThresholds()


def classify_throughput(
    throughput_mbps: Optional[float], thresholds: QualityThresholds = DEFAULT_THRESHOLDS
) -> QualityClass:
    """Map a throughput value to its quality class; boundaries go to the higher class."""

    if throughput_mbps is None:
        return QualityClass.OFFLINE
    if throughput_mbps >= thresholds.good_floor:
        return QualityClass.GOOD
    if throughput_mbps >= thresholds.moderate_floor:
        return QualityClass.MODERATE
    return QualityClass.POOR


def quality_color(quality: QualityClass | str) -> str:
    return QUALITY_COLORS[QualityClass(quality)]

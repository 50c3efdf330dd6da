"""Journey aggregate: an ordered, owned collection of samples."""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Annotated, Any, Dict, List, Mapping, Optional

import numpy as np
import pandas as pd
from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic import ValidationError as PydanticValidationError

from ..errors import ValidationError
from .quality import DEFAULT_THRESHOLDS, QualityClass, QualityThresholds
from .sample import Millis, Sample

SAMPLE_COLUMNS = [
    "timestamp",
    "latitude",
    "longitude",
    "accuracy",
    "throughput_mbps",
    "transport",
    "quality",
]


def now_ms() -> int:
    return int(time.time() * 1000)


def _new_id() -> str:
    return str(uuid.uuid4())


@dataclass
class JourneyStats:
    """Statistics recomputed from the sample sequence on every call."""

    point_count: int
    mean_throughput: Optional[float]
    max_throughput: Optional[float]
    min_throughput: Optional[float]
    quality_counts: Dict[str, int] = field(default_factory=dict)
    duration_ms: int = 0

    def as_dict(self) -> Dict[str, Any]:
        return {
            "pointCount": self.point_count,
            "meanThroughput": self.mean_throughput,
            "maxThroughput": self.max_throughput,
            "minThroughput": self.min_throughput,
            "qualityCounts": dict(self.quality_counts),
            "durationMs": self.duration_ms,
        }


class Journey(BaseModel):
    """A recorded journey.

    A journey starts without an end time, accrues samples one at a time and is
    ended once. The model does not stop appends after ``end``; the recording
    controller owns that rule.
    """

    model_config = ConfigDict(populate_by_name=True, validate_assignment=True)

    id: Annotated[str, Field(strict=True, min_length=1)] = Field(default_factory=_new_id, frozen=True)
    name: Annotated[str, Field(strict=True, min_length=1)]
    start_time: Millis = Field(alias="startTime", frozen=True)
    end_time: Optional[Millis] = Field(default=None, alias="endTime")
    samples: List[Sample] = Field(default_factory=list)

    def __init__(self, /, **data: Any) -> None:
        try:
            super().__init__(**data)
        except PydanticValidationError as exc:
            raise ValidationError.from_pydantic(exc) from None

    def __setattr__(self, name: str, value: Any) -> None:
        try:
            super().__setattr__(name, value)
        except PydanticValidationError as exc:
            raise ValidationError.from_pydantic(exc) from None

    @field_validator("end_time")
    @classmethod
    def _not_before_start(cls, value: Optional[int], info: ValidationInfo) -> Optional[int]:
        # also runs on assignment, where info.data holds the current start_time
        start = info.data.get("start_time")
        if value is not None and start is not None and value < start:
            raise ValueError("must be greater than or equal to startTime")
        return value

    @classmethod
    def create(cls, name: Optional[str] = None, start_time: Optional[int] = None) -> "Journey":
        """Start a new, empty journey named after its creation date unless given a name."""

        start = now_ms() if start_time is None else start_time
        if not isinstance(start, int) or isinstance(start, bool) or start <= 0:
            raise ValidationError("startTime", "must be a positive integer")
        if not name:
            name = f"Journey {datetime.fromtimestamp(start / 1000.0).strftime('%Y-%m-%d')}"
        return cls(name=name, start_time=start)

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Journey":
        """Rebuild a journey from a plain record, re-validating every sample."""

        if not isinstance(record, Mapping):
            raise ValidationError("journey", f"expected a mapping, got {type(record).__name__}")
        return cls(**{str(k): v for k, v in record.items()})

    def to_record(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

    @property
    def is_recording(self) -> bool:
        return self.end_time is None

    def append_sample(self, sample: Sample | Mapping[str, Any]) -> Sample:
        point = Sample.from_record(sample)
        self.samples.append(point)
        return point

    def end(self, timestamp: Optional[int] = None) -> None:
        """Set the end time. Calling it again overwrites the previous value."""

        end = now_ms() if timestamp is None else timestamp
        if not isinstance(end, int) or isinstance(end, bool) or end <= 0:
            raise ValidationError("endTime", "must be a positive integer")
        if end < self.start_time:
            raise ValidationError("endTime", "must be greater than or equal to startTime")
        self.end_time = end

    def duration_ms(self, now: Optional[int] = None) -> int:
        end = self.end_time if self.end_time is not None else (now_ms() if now is None else now)
        return end - self.start_time

    def stats(self, thresholds: QualityThresholds = DEFAULT_THRESHOLDS, now: Optional[int] = None) -> JourneyStats:
        measured = np.asarray(
            [s.throughput_mbps for s in self.samples if s.throughput_mbps is not None],
            dtype=float,
        )
        counts = {quality.value: 0 for quality in QualityClass}
        for sample in self.samples:
            counts[sample.quality(thresholds).value] += 1

        if measured.size:
            mean, high, low = float(measured.mean()), float(measured.max()), float(measured.min())
        else:
            mean = high = low = None

        return JourneyStats(
            point_count=len(self.samples),
            mean_throughput=mean,
            max_throughput=high,
            min_throughput=low,
            quality_counts=counts,
            duration_ms=self.duration_ms(now),
        )

    def to_dataframe(self, thresholds: QualityThresholds = DEFAULT_THRESHOLDS) -> pd.DataFrame:
        rows = [
            {
                "timestamp": pd.Timestamp(s.timestamp, unit="ms", tz="UTC"),
                "latitude": s.latitude,
                "longitude": s.longitude,
                "accuracy": s.accuracy,
                "throughput_mbps": s.throughput_mbps,
                "transport": s.transport.value,
                "quality": s.quality(thresholds).value,
            }
            for s in self.samples
        ]
        return pd.DataFrame(rows, columns=SAMPLE_COLUMNS)

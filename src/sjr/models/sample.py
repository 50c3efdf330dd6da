"""Single validated measurement of position and throughput."""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from ..errors import ValidationError
from .quality import DEFAULT_THRESHOLDS, QualityClass, QualityThresholds, classify_throughput, quality_color


class Transport(str, Enum):
    """Coarse network medium reported by the throughput probe."""

    LOCAL_WIRELESS = "wifi"
    WIDE_AREA_WIRELESS = "cellular"
    UNKNOWN = "unknown"
    DISCONNECTED = "offline"


Millis = Annotated[int, Field(strict=True, gt=0)]
Latitude = Annotated[float, Field(strict=True, ge=-90.0, le=90.0, allow_inf_nan=False)]
Longitude = Annotated[float, Field(strict=True, ge=-180.0, le=180.0, allow_inf_nan=False)]
NonNegative = Annotated[float, Field(strict=True, ge=0.0, allow_inf_nan=False)]


class Sample(BaseModel):
    """One measurement taken during a journey.

    ``throughput_mbps`` is ``None`` when no measurement was obtained, which is
    not the same as a measured rate of zero. Both the attribute and the record
    key are required so the absence is always explicit.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    timestamp: Millis
    latitude: Latitude
    longitude: Longitude
    accuracy: NonNegative
    throughput_mbps: Optional[NonNegative] = Field(alias="throughputMbps")
    transport: Transport

    def __init__(self, /, **data: Any) -> None:
        try:
            super().__init__(**data)
        except PydanticValidationError as exc:
            raise ValidationError.from_pydantic(exc) from None

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Sample":
        if isinstance(record, Sample):
            return record
        if not isinstance(record, Mapping):
            raise ValidationError("sample", f"expected a mapping, got {type(record).__name__}")
        return cls(**{str(k): v for k, v in record.items()})

    def to_record(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

    @property
    def has_measurement(self) -> bool:
        return self.throughput_mbps is not None

    def quality(self, thresholds: QualityThresholds = DEFAULT_THRESHOLDS) -> QualityClass:
        return classify_throughput(self.throughput_mbps, thresholds)

    def color(self, thresholds: QualityThresholds = DEFAULT_THRESHOLDS) -> str:
        return quality_color(self.quality(thresholds))

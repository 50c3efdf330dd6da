"""Display formatting and Markdown journey summaries."""

from __future__ import annotations

import math
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from jinja2 import Template

from sjr.models import DEFAULT_THRESHOLDS, Journey, QualityClass, QualityThresholds, classify_throughput

_MARKDOWN_TEMPLATE = """# {{ title }}

- Journey: {{ journey.name }} (`{{ journey.id }}`)
- Started: {{ started }}
- Ended: {{ ended }}
- Duration: {{ duration }}
- Samples: {{ stats.point_count }}

## Throughput
{% if stats.mean_throughput is not none %}
- Mean: {{ format_speed(stats.mean_throughput) }}
- Max: {{ format_speed(stats.max_throughput) }}
- Min: {{ format_speed(stats.min_throughput) }}
{% else %}
No throughput measurements were obtained.
{% endif %}

## Quality
{% for quality, count in stats.quality_counts.items() %}- {{ quality_label_for(quality) }}: {{ count }}
{% endfor %}
## Samples
{% if samples %}
| Time | Position | Speed | Accuracy | Transport |
| --- | --- | --- | --- | --- |
{% for s in samples %}| {{ format_time(s.timestamp) }} | {{ format_position(s.latitude, s.longitude) }} | {{ format_speed(s.throughput_mbps) }} | ±{{ s.accuracy | round | int }}m | {{ s.transport.value }} |
{% endfor %}
{% else %}
No samples recorded.
{% endif %}
"""

_QUALITY_LABELS = {
    QualityClass.GOOD: "Good",
    QualityClass.MODERATE: "Moderate",
    QualityClass.POOR: "Poor",
    QualityClass.OFFLINE: "Offline",
}


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def format_speed(throughput_mbps: Optional[float]) -> str:
    if throughput_mbps is None:
        return "Offline"
    if throughput_mbps >= 10:
        return f"{_round_half_up(throughput_mbps)} Mbps"
    return f"{throughput_mbps:.1f} Mbps"


def format_position(latitude: float, longitude: float) -> str:
    lat_dir = "N" if latitude >= 0 else "S"
    lon_dir = "E" if longitude >= 0 else "W"
    return f"{abs(latitude):.5f}°{lat_dir}, {abs(longitude):.5f}°{lon_dir}"


def format_time(timestamp_ms: int) -> str:
    return datetime.fromtimestamp(timestamp_ms / 1000.0).strftime("%b %d, %H:%M")


def format_duration(duration_ms: int) -> str:
    seconds = max(duration_ms, 0) // 1000
    minutes = seconds // 60
    hours = minutes // 60
    if hours > 0:
        return f"{hours}h {minutes % 60}m"
    if minutes > 0:
        return f"{minutes}m {seconds % 60}s"
    return f"{seconds}s"


def quality_label(throughput_mbps: Optional[float], thresholds: QualityThresholds = DEFAULT_THRESHOLDS) -> str:
    return _QUALITY_LABELS[classify_throughput(throughput_mbps, thresholds)]


def render_journey_report(
    journey: Journey,
    thresholds: QualityThresholds = DEFAULT_THRESHOLDS,
    title: str = "Journey Report",
    now: Optional[int] = None,
) -> str:
    stats = journey.stats(thresholds, now=now)
    context: dict[str, Any] = {
        "title": title,
        "journey": journey,
        "stats": stats,
        "samples": journey.samples,
        "started": format_time(journey.start_time),
        "ended": format_time(journey.end_time) if journey.end_time is not None else "ongoing",
        "duration": format_duration(stats.duration_ms),
        "format_speed": format_speed,
        "format_time": format_time,
        "format_position": format_position,
        "quality_label_for": lambda q: _QUALITY_LABELS[QualityClass(q)],
    }
    return Template(_MARKDOWN_TEMPLATE).render(**context)


def write_journey_report(
    journey: Journey,
    output_path: str | Path,
    thresholds: QualityThresholds = DEFAULT_THRESHOLDS,
) -> Path:
    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(render_journey_report(journey, thresholds), encoding="utf-8")
    return output

from .controller import RecorderState, RecordingController, SampleListener, StopResult
from .positions import PositionFix, PositionSource, SimulatedPositionSource, build_position_source, request_fix
from .probes import HttpThroughputProbe, ProbeResult, SimulatedThroughputProbe, ThroughputProbe, build_probe

__all__ = [
    "RecorderState",
    "RecordingController",
    "SampleListener",
    "StopResult",
    "PositionFix",
    "PositionSource",
    "SimulatedPositionSource",
    "build_position_source",
    "request_fix",
    "ThroughputProbe",
    "ProbeResult",
    "HttpThroughputProbe",
    "SimulatedThroughputProbe",
    "build_probe",
]

"""Host telemetry readers and counter math for HostPulse."""

from .models import (
    CompositeSample,
    CpuTimesSnapshot,
    DiskSnapshot,
    HostReadings,
    MemorySnapshot,
    NetworkIoSnapshot,
    NetworkUsageRow,
    ThermalCandidate,
    iso_from_ms,
)
from .rates import cpu_usage_percent, counter_delta, is_fresh, network_deltas, rate_per_second
from .readers import HostReader
from .thermal import THERMAL_SCORE_RULES, select_cpu_temp, thermal_label_score

__all__ = [
    "CompositeSample",
    "CpuTimesSnapshot",
    "DiskSnapshot",
    "HostReader",
    "HostReadings",
    "MemorySnapshot",
    "NetworkIoSnapshot",
    "NetworkUsageRow",
    "THERMAL_SCORE_RULES",
    "ThermalCandidate",
    "counter_delta",
    "cpu_usage_percent",
    "is_fresh",
    "iso_from_ms",
    "network_deltas",
    "rate_per_second",
    "select_cpu_temp",
    "thermal_label_score",
]

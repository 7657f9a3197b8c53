"""Typed telemetry models."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone


def iso_from_ms(at_ms: int) -> str:
    """UTC ISO-8601 timestamp with millisecond precision and a ``Z`` suffix."""
    stamp = datetime.fromtimestamp(at_ms / 1000, tz=timezone.utc)
    return stamp.isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class CpuTimesSnapshot:
    idle_ticks: int
    total_ticks: int


@dataclass(frozen=True)
class MemorySnapshot:
    total_bytes: int
    available_bytes: int
    used_bytes: int
    usage_percent: float


@dataclass(frozen=True)
class DiskSnapshot:
    mount_path: str
    total_bytes: int
    free_bytes: int
    used_bytes: int
    usage_percent: float | None


@dataclass(frozen=True)
class NetworkIoSnapshot:
    rx_bytes: int
    tx_bytes: int


@dataclass(frozen=True)
class ThermalCandidate:
    temp_c: float
    label: str


@dataclass(frozen=True)
class HostReadings:
    cpu_times: CpuTimesSnapshot | None
    memory: MemorySnapshot | None
    disk: DiskSnapshot | None
    cpu_temp_c: float | None
    network: NetworkIoSnapshot | None


@dataclass(frozen=True)
class CompositeSample:
    taken_at_ms: int
    cpu_usage_percent: float | None
    cpu_temp_c: float | None
    memory_usage_percent: float | None
    memory_used_bytes: int | None
    memory_total_bytes: int | None
    disk_usage_percent: float | None
    disk_used_bytes: int | None
    disk_total_bytes: int | None

    @property
    def taken_at_iso(self) -> str:
        return iso_from_ms(self.taken_at_ms)


@dataclass(frozen=True)
class NetworkUsageRow:
    at_ms: int
    taken_at_iso: str
    inbound_bytes_total: int | None
    outbound_bytes_total: int | None
    inbound_bytes_delta: int | None
    outbound_bytes_delta: int | None

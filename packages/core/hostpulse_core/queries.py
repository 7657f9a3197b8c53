"""Read-only summaries over the live window and the retention store.

These back the dashboard's metrics and network-usage endpoints. Nothing here
mutates sampler state; ``metrics_report`` only goes through
``Sampler.ensure_fresh``.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from typing import Any, Iterable, Sequence

import psutil

from hostpulse_telemetry.models import CompositeSample, iso_from_ms
from hostpulse_telemetry.rates import as_whole_number, clamp, is_fresh, rate_per_second, round1
from hostpulse_telemetry.readers import read_cpu_model

from .sampler import Sampler
from .store import RetentionStore


@dataclass(frozen=True)
class WindowSummary:
    avg: float | None
    min: float | None
    max: float | None


def summarize_window(values: Iterable[float | None]) -> WindowSummary:
    nums = [v for v in values if v is not None and math.isfinite(v)]
    if not nums:
        return WindowSummary(avg=None, min=None, max=None)
    return WindowSummary(
        avg=round1(sum(nums) / len(nums)),
        min=round1(min(nums)),
        max=round1(max(nums)),
    )


def window_samples(samples: Iterable[CompositeSample], now_ms: int, window_ms: int) -> list[CompositeSample]:
    cutoff = now_ms - window_ms
    return [s for s in samples if s.taken_at_ms >= cutoff]


def coverage_percent(sample_count: int, expected_samples: int) -> float:
    if expected_samples <= 0:
        return 0.0
    return round1(clamp(sample_count / expected_samples * 100.0, 0.0, 100.0))


@dataclass(frozen=True)
class NetworkTotals:
    inbound_bytes: int
    outbound_bytes: int


@dataclass(frozen=True)
class NetworkCurrent:
    sampled_at: str | None
    inbound_bps: float | None
    outbound_bps: float | None


@dataclass(frozen=True)
class NetworkDailyRollup:
    day: str
    sample_count: int
    inbound_bytes: int
    outbound_bytes: int


@dataclass(frozen=True)
class NetworkRatePoint:
    ts: str
    inbound_bps: float | None
    outbound_bps: float | None


@dataclass(frozen=True)
class NetworkUsageSummary:
    retention_ms: int
    interval_ms: int
    started_at: str
    sample_count: int
    expected_samples: int
    coverage_percent: float
    first_sample_at: str | None
    last_sample_at: str | None
    totals: NetworkTotals
    current: NetworkCurrent
    daily: list[NetworkDailyRollup] = field(default_factory=list)
    recent: list[NetworkRatePoint] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _optional_int(value: Any) -> int | None:
    return int(value) if isinstance(value, (int, float)) and not isinstance(value, bool) else None


def network_usage_summary(
    store: RetentionStore,
    now_ms: int,
    interval_ms: int = 5_000,
    retention_ms: int = 30 * 24 * 60 * 60_000,
    window_ms: int = 5 * 60_000,
) -> NetworkUsageSummary:
    cutoff = now_ms - retention_ms
    interval_seconds = interval_ms / 1000.0

    summary = store.summary(cutoff)
    sample_count = int(summary.get("sample_count") or 0)
    expected = retention_ms // interval_ms if interval_ms > 0 else 0
    first_at = _optional_int(summary.get("first_at"))
    last_at = _optional_int(summary.get("last_at"))

    latest = store.latest(cutoff)
    latest_at = latest.at_ms if latest is not None else None
    fresh = is_fresh(latest_at, now_ms, interval_ms)
    current = NetworkCurrent(
        sampled_at=iso_from_ms(latest_at) if latest_at is not None else None,
        inbound_bps=rate_per_second(latest.inbound_bytes_delta, interval_seconds) if fresh and latest else None,
        outbound_bps=rate_per_second(latest.outbound_bytes_delta, interval_seconds) if fresh and latest else None,
    )

    daily = [
        NetworkDailyRollup(
            day=str(row["day"]),
            sample_count=int(row.get("sample_count") or 0),
            inbound_bytes=as_whole_number(row.get("total_inbound_bytes")),
            outbound_bytes=as_whole_number(row.get("total_outbound_bytes")),
        )
        for row in store.daily(cutoff)
    ]
    recent = [
        NetworkRatePoint(
            ts=row.taken_at_iso,
            inbound_bps=rate_per_second(row.inbound_bytes_delta, interval_seconds),
            outbound_bps=rate_per_second(row.outbound_bytes_delta, interval_seconds),
        )
        for row in store.rows_since(now_ms - window_ms)
    ]

    return NetworkUsageSummary(
        retention_ms=retention_ms,
        interval_ms=interval_ms,
        started_at=iso_from_ms(cutoff),
        sample_count=sample_count,
        expected_samples=expected,
        coverage_percent=coverage_percent(sample_count, expected),
        first_sample_at=iso_from_ms(first_at) if first_at is not None else None,
        last_sample_at=iso_from_ms(last_at) if last_at is not None else None,
        totals=NetworkTotals(
            inbound_bytes=as_whole_number(summary.get("total_inbound_bytes")),
            outbound_bytes=as_whole_number(summary.get("total_outbound_bytes")),
        ),
        current=current,
        daily=daily,
        recent=recent,
    )


def sampler_network_usage(sampler: Sampler, now_ms: int | None = None) -> NetworkUsageSummary:
    return network_usage_summary(
        sampler.store,
        now_ms=sampler.now_ms() if now_ms is None else now_ms,
        interval_ms=sampler.config.interval_ms,
        retention_ms=sampler.retention.retention_ms,
        window_ms=sampler.config.window_ms,
    )


def _difference(total: int | None, used: int | None) -> int | None:
    if total is None or used is None:
        return None
    return max(0, total - used)


def _load_average() -> list[float] | None:
    try:
        return [round1(v) for v in psutil.getloadavg()]
    except (AttributeError, OSError):
        return None


def _window_block(summary: WindowSummary, unit: str) -> dict[str, float | None]:
    return {f"avg_{unit}": summary.avg, f"min_{unit}": summary.min, f"max_{unit}": summary.max}


def metrics_report(sampler: Sampler, now_ms: int | None = None) -> dict[str, Any]:
    """Latest composite sample, per-metric window summaries, and the buffered samples."""
    latest = sampler.ensure_fresh()
    now = sampler.now_ms() if now_ms is None else now_ms
    samples: Sequence[CompositeSample] = window_samples(sampler.samples(), now, sampler.config.window_ms)

    cpu_window = summarize_window(s.cpu_usage_percent for s in samples)
    thermal_window = summarize_window(s.cpu_temp_c for s in samples)
    memory_window = summarize_window(s.memory_usage_percent for s in samples)
    disk_window = summarize_window(s.disk_usage_percent for s in samples)

    return {
        "window_ms": sampler.config.window_ms,
        "interval_ms": sampler.config.interval_ms,
        "sampled_at": latest.taken_at_iso,
        "cpu": {
            "usage_percent": latest.cpu_usage_percent,
            "cores": psutil.cpu_count(logical=True),
            "model": read_cpu_model(sampler.config.proc_root),
            "load_avg": _load_average(),
            "window": _window_block(cpu_window, "percent"),
        },
        "thermal": {
            "cpu_temp_c": latest.cpu_temp_c,
            "window": _window_block(thermal_window, "c"),
        },
        "memory": {
            "usage_percent": latest.memory_usage_percent,
            "used_bytes": latest.memory_used_bytes,
            "total_bytes": latest.memory_total_bytes,
            "available_bytes": _difference(latest.memory_total_bytes, latest.memory_used_bytes),
            "window": _window_block(memory_window, "percent"),
        },
        "disk": {
            "mount_path": sampler.config.disk_mount,
            "usage_percent": latest.disk_usage_percent,
            "used_bytes": latest.disk_used_bytes,
            "total_bytes": latest.disk_total_bytes,
            "free_bytes": _difference(latest.disk_total_bytes, latest.disk_used_bytes),
            "window": _window_block(disk_window, "percent"),
        },
        "samples": [
            {
                "ts": s.taken_at_iso,
                "cpu_usage_percent": s.cpu_usage_percent,
                "cpu_temp_c": s.cpu_temp_c,
                "memory_usage_percent": s.memory_usage_percent,
                "disk_usage_percent": s.disk_usage_percent,
            }
            for s in samples
        ],
    }

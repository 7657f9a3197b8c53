"""Counter deltas, usage percentages and byte rates."""

from __future__ import annotations

import math

from .models import CpuTimesSnapshot, NetworkIoSnapshot

FRESHNESS_INTERVALS = 3


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def round1(value: float) -> float:
    # Half-up like the dashboard expects; round() would use banker's rounding.
    return math.floor(value * 10 + 0.5) / 10


def as_whole_number(value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    if not math.isfinite(value):
        return 0
    return max(0, int(math.floor(value + 0.5)))


def percent_of(part: float, total: float) -> float:
    return round1(clamp(part / total * 100.0, 0.0, 100.0))


def cpu_usage_percent(previous: CpuTimesSnapshot | None, current: CpuTimesSnapshot | None) -> float | None:
    """Busy share of the ticks elapsed between two snapshots.

    Returns ``None`` when no ticks elapsed (or the counters went backwards),
    so a clock anomaly never shows up as 0 % or a negative usage.
    """
    if previous is None or current is None:
        return None
    total_delta = current.total_ticks - previous.total_ticks
    if total_delta <= 0:
        return None
    idle_delta = current.idle_ticks - previous.idle_ticks
    return percent_of(total_delta - idle_delta, total_delta)


def counter_delta(previous: int | None, current: int | None) -> int | None:
    if previous is None or current is None:
        return None
    delta = current - previous
    if delta < 0:
        return None
    return delta


def network_deltas(
    previous: NetworkIoSnapshot | None,
    current: NetworkIoSnapshot | None,
) -> tuple[int | None, int | None]:
    """Inbound/outbound byte deltas; a regressed counter yields ``None`` for that direction only."""
    if previous is None or current is None:
        return None, None
    return (
        counter_delta(previous.rx_bytes, current.rx_bytes),
        counter_delta(previous.tx_bytes, current.tx_bytes),
    )


def rate_per_second(delta: int | None, interval_seconds: float) -> float | None:
    if delta is None or interval_seconds <= 0:
        return None
    return round1(delta / interval_seconds)


def is_fresh(sample_at_ms: int | None, now_ms: int, interval_ms: int) -> bool:
    if sample_at_ms is None:
        return False
    return now_ms - sample_at_ms <= interval_ms * FRESHNESS_INTERVALS

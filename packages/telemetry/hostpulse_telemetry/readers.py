"""Point-in-time OS readers with graceful fallbacks.

Every reader returns ``None`` instead of raising when its source is missing or
unreadable, so one absent interface only blanks one field of a sample.
"""

from __future__ import annotations

import logging
import platform
import re
from pathlib import Path

import psutil

from .models import (
    CpuTimesSnapshot,
    DiskSnapshot,
    HostReadings,
    MemorySnapshot,
    NetworkIoSnapshot,
    ThermalCandidate,
)
from .rates import clamp, percent_of
from .thermal import parse_temp_c, select_cpu_temp

logger = logging.getLogger("hostpulse.readers")

# psutil reports seconds; ticks are hundredths (USER_HZ).
_TICKS_PER_SECOND = 100
# Already included in user/nice on Linux.
_CPU_EXCLUDED_FIELDS = ("guest", "guest_nice")
_CPU_IDLE_FIELDS = ("idle", "iowait")

_MEMINFO_RE = re.compile(r"^(MemTotal|MemAvailable):\s+(\d+)\s+kB$", re.MULTILINE)
_LOOPBACK_RE = re.compile(r"^lo\d*$")


def read_cpu_times() -> CpuTimesSnapshot | None:
    try:
        per_cpu = psutil.cpu_times(percpu=True)
    except Exception:
        logger.debug("cpu times unavailable", exc_info=True)
        return None
    if not per_cpu:
        return None

    idle = 0.0
    total = 0.0
    for times in per_cpu:
        fields = times._asdict()
        for name, value in fields.items():
            if name in _CPU_EXCLUDED_FIELDS:
                continue
            total += value
            if name in _CPU_IDLE_FIELDS:
                idle += value
    return CpuTimesSnapshot(
        idle_ticks=int(round(idle * _TICKS_PER_SECOND)),
        total_ticks=int(round(total * _TICKS_PER_SECOND)),
    )


def _memory_snapshot(total: float, available: float) -> MemorySnapshot | None:
    if total <= 0:
        return None
    bounded = clamp(available, 0, total)
    used = max(0.0, total - bounded)
    return MemorySnapshot(
        total_bytes=int(total),
        available_bytes=int(bounded),
        used_bytes=int(used),
        usage_percent=percent_of(used, total),
    )


def _read_meminfo(proc_root: Path) -> MemorySnapshot | None:
    meminfo = proc_root / "meminfo"
    if not meminfo.exists():
        return None
    try:
        text = meminfo.read_text(encoding="utf-8")
    except (OSError, ValueError):
        logger.debug("meminfo unreadable", exc_info=True)
        return None

    values = {name: int(kb) * 1024 for name, kb in _MEMINFO_RE.findall(text)}
    if "MemTotal" not in values or "MemAvailable" not in values:
        return None
    return _memory_snapshot(values["MemTotal"], values["MemAvailable"])


def read_memory(proc_root: str | Path = "/proc") -> MemorySnapshot | None:
    """Memory usage, preferring ``MemAvailable`` which accounts for reclaimable caches."""
    snapshot = _read_meminfo(Path(proc_root))
    if snapshot is not None:
        return snapshot

    try:
        vm = psutil.virtual_memory()
    except Exception:
        logger.debug("virtual memory unavailable", exc_info=True)
        return None
    return _memory_snapshot(float(vm.total), float(vm.free))


def read_disk(mount_path: str = "/") -> DiskSnapshot | None:
    try:
        du = psutil.disk_usage(mount_path)
    except Exception:
        logger.debug("disk usage unavailable for %s", mount_path, exc_info=True)
        return None

    total = int(du.total)
    if total <= 0:
        return DiskSnapshot(mount_path=mount_path, total_bytes=0, free_bytes=0, used_bytes=0, usage_percent=None)

    free = int(clamp(du.free, 0, total))
    used = max(0, total - free)
    return DiskSnapshot(
        mount_path=mount_path,
        total_bytes=total,
        free_bytes=free,
        used_bytes=used,
        usage_percent=percent_of(used, total),
    )


def _sysfs_thermal_candidates(thermal_root: Path) -> list[ThermalCandidate]:
    candidates: list[ThermalCandidate] = []
    for zone in sorted(thermal_root.glob("thermal_zone*")):
        temp_path = zone / "temp"
        if not temp_path.exists():
            continue
        try:
            temp_c = parse_temp_c(temp_path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            temp_c = None
        if temp_c is None:
            continue
        try:
            label = (zone / "type").read_text(encoding="utf-8").strip()
        except (OSError, ValueError):
            label = ""
        candidates.append(ThermalCandidate(temp_c=temp_c, label=label))
    return candidates


def _psutil_thermal_candidates() -> list[ThermalCandidate]:
    sensors = getattr(psutil, "sensors_temperatures", None)
    if sensors is None:
        return []
    temps = sensors()
    candidates: list[ThermalCandidate] = []
    for chip, entries in (temps or {}).items():
        for entry in entries:
            temp_c = parse_temp_c(entry.current)
            if temp_c is None:
                continue
            label = f"{chip} {entry.label}".strip()
            candidates.append(ThermalCandidate(temp_c=temp_c, label=label))
    return candidates


def thermal_candidates(sys_root: str | Path = "/sys") -> list[ThermalCandidate] | None:
    """All plausible CPU-ish sensor readings, or ``None`` when no sensor interface exists."""
    thermal_root = Path(sys_root) / "class" / "thermal"
    try:
        if thermal_root.is_dir():
            return _sysfs_thermal_candidates(thermal_root)
        if not hasattr(psutil, "sensors_temperatures"):
            return None
        return _psutil_thermal_candidates()
    except Exception:
        logger.debug("thermal sensors unavailable", exc_info=True)
        return None


def read_cpu_temp_c(sys_root: str | Path = "/sys") -> float | None:
    candidates = thermal_candidates(sys_root)
    if not candidates:
        return None
    return select_cpu_temp(candidates)


def _is_loopback(iface: str) -> bool:
    return bool(_LOOPBACK_RE.match(iface))


def _parse_net_dev(text: str) -> tuple[int, int]:
    rx_total = 0
    tx_total = 0
    # First two lines are column headers.
    for line in text.splitlines()[2:]:
        iface, sep, stats = line.strip().partition(":")
        iface = iface.strip()
        if not sep or not iface or _is_loopback(iface):
            continue
        fields = stats.split()
        if len(fields) < 16:
            continue
        try:
            rx = int(fields[0])
            tx = int(fields[8])
        except ValueError:
            continue
        rx_total += rx
        tx_total += tx
    return rx_total, tx_total


def read_network(proc_root: str | Path = "/proc") -> NetworkIoSnapshot | None:
    """Cumulative rx/tx bytes over non-loopback interfaces.

    All-zero counters mean "no network telemetry", not "no traffic".
    """
    net_dev = Path(proc_root) / "net" / "dev"
    try:
        if net_dev.exists():
            rx, tx = _parse_net_dev(net_dev.read_text(encoding="utf-8"))
        else:
            counters = psutil.net_io_counters(pernic=True) or {}
            rx = sum(c.bytes_recv for name, c in counters.items() if not _is_loopback(name))
            tx = sum(c.bytes_sent for name, c in counters.items() if not _is_loopback(name))
    except Exception:
        logger.debug("network counters unavailable", exc_info=True)
        return None

    if rx <= 0 and tx <= 0:
        return None
    return NetworkIoSnapshot(rx_bytes=max(0, rx), tx_bytes=max(0, tx))


def read_cpu_model(proc_root: str | Path = "/proc") -> str | None:
    cpuinfo = Path(proc_root) / "cpuinfo"
    try:
        if cpuinfo.exists():
            for line in cpuinfo.read_text(encoding="utf-8").splitlines():
                key, sep, value = line.partition(":")
                if sep and key.strip() == "model name" and value.strip():
                    return value.strip()
    except (OSError, ValueError):
        logger.debug("cpuinfo unreadable", exc_info=True)
    return platform.processor().strip() or None


class HostReader:
    """Bundles the individual readers for one sampling tick."""

    def __init__(self, disk_mount: str = "/", proc_root: str | Path = "/proc", sys_root: str | Path = "/sys") -> None:
        self.disk_mount = disk_mount
        self.proc_root = Path(proc_root)
        self.sys_root = Path(sys_root)

    def read_cpu_times(self) -> CpuTimesSnapshot | None:
        return read_cpu_times()

    def read_network(self) -> NetworkIoSnapshot | None:
        return read_network(self.proc_root)

    def read(self) -> HostReadings:
        return HostReadings(
            cpu_times=self.read_cpu_times(),
            memory=read_memory(self.proc_root),
            disk=read_disk(self.disk_mount),
            cpu_temp_c=read_cpu_temp_c(self.sys_root),
            network=self.read_network(),
        )

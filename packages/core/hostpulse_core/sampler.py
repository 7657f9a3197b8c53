"""Tick computation, sampler state ownership, and the periodic scheduler."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Protocol

from hostpulse_telemetry.models import (
    CompositeSample,
    CpuTimesSnapshot,
    HostReadings,
    NetworkIoSnapshot,
    NetworkUsageRow,
    iso_from_ms,
)
from hostpulse_telemetry.rates import cpu_usage_percent, network_deltas
from hostpulse_telemetry.readers import HostReader

from .config import RetentionConfig, SamplerConfig
from .logging_setup import get_logger
from .store import RetentionStore, RetentionStoreError
from .window import SampleWindow


class Reader(Protocol):
    def read(self) -> HostReadings: ...

    def read_cpu_times(self) -> CpuTimesSnapshot | None: ...

    def read_network(self) -> NetworkIoSnapshot | None: ...


def wall_clock_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class SamplerState:
    cpu_times: CpuTimesSnapshot | None = None
    network: NetworkIoSnapshot | None = None


@dataclass(frozen=True)
class TickResult:
    state: SamplerState
    sample: CompositeSample
    network_row: NetworkUsageRow


@dataclass
class SamplerStatus:
    running: bool = False
    ticks: int = 0
    tick_failures: int = 0
    persist_failures: int = 0
    last_tick_at_ms: int | None = None
    last_prune_at_ms: int | None = None
    last_error: str | None = None
    events: list[dict[str, Any]] = field(default_factory=list)


def compute_tick(state: SamplerState, readings: HostReadings, at_ms: int) -> TickResult:
    """Turn one set of readings into a sample, a network row and the next state.

    A reading that failed keeps the previous snapshot as the baseline, so the
    next successful reading still yields a delta.
    """
    memory = readings.memory
    disk = readings.disk
    sample = CompositeSample(
        taken_at_ms=at_ms,
        cpu_usage_percent=cpu_usage_percent(state.cpu_times, readings.cpu_times),
        cpu_temp_c=readings.cpu_temp_c,
        memory_usage_percent=memory.usage_percent if memory else None,
        memory_used_bytes=memory.used_bytes if memory else None,
        memory_total_bytes=memory.total_bytes if memory else None,
        disk_usage_percent=disk.usage_percent if disk else None,
        disk_used_bytes=disk.used_bytes if disk else None,
        disk_total_bytes=disk.total_bytes if disk else None,
    )

    network = readings.network
    inbound_delta, outbound_delta = network_deltas(state.network, network)
    row = NetworkUsageRow(
        at_ms=at_ms,
        taken_at_iso=iso_from_ms(at_ms),
        inbound_bytes_total=network.rx_bytes if network else None,
        outbound_bytes_total=network.tx_bytes if network else None,
        inbound_bytes_delta=inbound_delta,
        outbound_bytes_delta=outbound_delta,
    )

    next_state = SamplerState(
        cpu_times=readings.cpu_times or state.cpu_times,
        network=network or state.network,
    )
    return TickResult(state=next_state, sample=sample, network_row=row)


class Sampler:
    """Single owner of the live window, the counter baselines and the prune clock."""

    def __init__(
        self,
        store: RetentionStore,
        sampler_config: SamplerConfig | None = None,
        retention_config: RetentionConfig | None = None,
        reader: Reader | None = None,
        clock: Callable[[], int] = wall_clock_ms,
    ) -> None:
        self.config = sampler_config or SamplerConfig()
        self.retention = retention_config or RetentionConfig()
        self.store = store
        self.reader = reader or HostReader(
            disk_mount=self.config.disk_mount,
            proc_root=self.config.proc_root,
            sys_root=self.config.sys_root,
        )
        self._clock = clock
        self._window = SampleWindow(self.config.window_ms, self.config.max_samples)
        self._state = SamplerState()
        self._last_prune_at_ms: int | None = None
        self._status = SamplerStatus()
        self._tick_lock = threading.Lock()
        self._status_lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self.logger = get_logger("sampler")

    @property
    def window(self) -> SampleWindow:
        return self._window

    @property
    def state(self) -> SamplerState:
        return self._state

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def now_ms(self) -> int:
        return self._clock()

    def status(self) -> SamplerStatus:
        with self._status_lock:
            return replace(self._status, running=self.running, events=list(self._status.events))

    def samples(self) -> tuple[CompositeSample, ...]:
        return self._window.snapshot()

    def latest(self) -> CompositeSample | None:
        return self._window.latest()

    def _log_event(self, event: str, **fields: Any) -> None:
        row = {"ts_utc": iso_from_ms(self._clock()), "event": event}
        row.update(fields)
        with self._status_lock:
            self._status.events.append(row)
            if len(self._status.events) > 200:
                self._status.events = self._status.events[-200:]

    def prime(self) -> CompositeSample:
        """Record counter baselines, clear expired rows, and take the first sample."""
        with self._tick_lock:
            self._state = SamplerState(
                cpu_times=self.reader.read_cpu_times(),
                network=self.reader.read_network(),
            )
        self.prune(force=True)
        return self.tick()

    def tick(self, at_ms: int | None = None) -> CompositeSample:
        with self._tick_lock:
            return self._tick_locked(at_ms)

    def _tick_locked(self, at_ms: int | None) -> CompositeSample:
        at = self._clock() if at_ms is None else at_ms
        result = compute_tick(self._state, self.reader.read(), at)
        self._state = result.state

        self._window.append(result.sample)
        self._window.trim(at)

        self._persist(result.network_row)
        self._prune_locked(at, force=False)

        with self._status_lock:
            self._status.ticks += 1
            self._status.last_tick_at_ms = at
        return result.sample

    def _persist(self, row: NetworkUsageRow) -> None:
        try:
            self.store.upsert(row)
        except RetentionStoreError as exc:
            with self._status_lock:
                self._status.persist_failures += 1
                self._status.last_error = str(exc)
            self._log_event("persist_error", at_ms=row.at_ms, error=str(exc))
            self.logger.error(
                "network usage row not persisted",
                exc_info=True,
                extra={"event": "persist_error", "at_ms": row.at_ms},
            )

    def ensure_fresh(self, min_gap_ms: int | None = None) -> CompositeSample:
        """Latest sample if it is recent enough, otherwise an out-of-band tick."""
        gap = self.config.min_fresh_gap_ms if min_gap_ms is None else min_gap_ms
        with self._tick_lock:
            latest = self._window.latest()
            if latest is not None and self._clock() - latest.taken_at_ms < gap:
                return latest
            return self._tick_locked(None)

    def prune(self, now_ms: int | None = None, force: bool = False) -> int | None:
        with self._tick_lock:
            return self._prune_locked(self._clock() if now_ms is None else now_ms, force)

    def _prune_locked(self, now_ms: int, force: bool) -> int | None:
        last = self._last_prune_at_ms
        if not force and last is not None and now_ms - last < self.retention.prune_interval_ms:
            return None

        cutoff = now_ms - self.retention.retention_ms
        try:
            deleted = self.store.prune(cutoff)
        except RetentionStoreError as exc:
            with self._status_lock:
                self._status.last_error = str(exc)
            self._log_event("prune_error", error=str(exc))
            self.logger.error("retention prune failed", exc_info=True, extra={"event": "prune_error"})
            return None

        self._last_prune_at_ms = now_ms
        with self._status_lock:
            self._status.last_prune_at_ms = now_ms
        if deleted:
            self._log_event("prune", deleted=deleted)
            self.logger.info("pruned expired network usage rows", extra={"event": "prune", "deleted": deleted})
        return deleted

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="hostpulse-sampler", daemon=True)
        self._thread.start()
        self.logger.info("sampler started", extra={"event": "sampler_started"})

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop.set()
        thread = self._thread
        if thread is not None:
            thread.join(timeout)
        self._thread = None
        self.logger.info("sampler stopped", extra={"event": "sampler_stopped"})

    def _run(self) -> None:
        interval = self.config.interval_ms / 1000.0
        while not self._stop.wait(interval):
            started = time.monotonic()
            try:
                self.tick()
            except Exception as exc:
                with self._status_lock:
                    self._status.tick_failures += 1
                    self._status.last_error = str(exc)
                self._log_event("tick_error", error=str(exc))
                self.logger.exception("sampler tick failed", extra={"event": "tick_error"})
            # A slow tick shortens the next wait instead of overlapping it.
            elapsed = time.monotonic() - started
            interval = max(0.0, self.config.interval_ms / 1000.0 - elapsed)

"""Bounded in-memory window of recent composite samples."""

from __future__ import annotations

import bisect
import threading

from hostpulse_telemetry.models import CompositeSample


class SampleWindow:
    """Samples sorted by ``taken_at_ms``, bounded by age and by count.

    Mutated only by the sampler; readers get tuple snapshots.
    """

    def __init__(self, window_ms: int, max_samples: int) -> None:
        self.window_ms = window_ms
        self.max_samples = max_samples
        self._samples: list[CompositeSample] = []
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._samples)

    def append(self, sample: CompositeSample) -> None:
        with self._lock:
            if not self._samples or sample.taken_at_ms >= self._samples[-1].taken_at_ms:
                self._samples.append(sample)
                return
            keys = [s.taken_at_ms for s in self._samples]
            self._samples.insert(bisect.bisect_right(keys, sample.taken_at_ms), sample)

    def trim(self, now_ms: int) -> int:
        cutoff = now_ms - self.window_ms
        with self._lock:
            before = len(self._samples)
            start = 0
            while start < before and self._samples[start].taken_at_ms < cutoff:
                start += 1
            start = max(start, before - self.max_samples)
            if start:
                del self._samples[:start]
            return start

    def snapshot(self) -> tuple[CompositeSample, ...]:
        with self._lock:
            return tuple(self._samples)

    def since(self, cutoff_ms: int) -> tuple[CompositeSample, ...]:
        return tuple(s for s in self.snapshot() if s.taken_at_ms >= cutoff_ms)

    def latest(self) -> CompositeSample | None:
        with self._lock:
            return self._samples[-1] if self._samples else None

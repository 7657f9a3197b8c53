import sys
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT / "packages" / "telemetry"))
sys.path.insert(0, str(ROOT / "packages" / "core"))

from hostpulse_telemetry.models import CompositeSample
from hostpulse_core.window import SampleWindow


def _sample(at_ms: int, cpu: float | None = 10.0) -> CompositeSample:
    return CompositeSample(
        taken_at_ms=at_ms,
        cpu_usage_percent=cpu,
        cpu_temp_c=None,
        memory_usage_percent=None,
        memory_used_bytes=None,
        memory_total_bytes=None,
        disk_usage_percent=None,
        disk_used_bytes=None,
        disk_total_bytes=None,
    )


class SampleWindowTests(unittest.TestCase):
    def test_trims_by_age(self):
        window = SampleWindow(window_ms=300_000, max_samples=68)
        for at in (0, 100_000, 200_000, 400_000):
            window.append(_sample(at))
        removed = window.trim(now_ms=400_000)
        self.assertEqual(removed, 2)
        self.assertEqual([s.taken_at_ms for s in window.snapshot()], [200_000, 400_000])

    def test_trims_by_count(self):
        window = SampleWindow(window_ms=10_000_000, max_samples=5)
        for i in range(12):
            window.append(_sample(i * 1000))
            window.trim(now_ms=i * 1000)
            self.assertLessEqual(len(window), 5)
        self.assertEqual(window.snapshot()[0].taken_at_ms, 7000)

    def test_stays_sorted_on_out_of_order_append(self):
        window = SampleWindow(window_ms=300_000, max_samples=68)
        for at in (1000, 3000, 2000, 500):
            window.append(_sample(at))
        self.assertEqual([s.taken_at_ms for s in window.snapshot()], [500, 1000, 2000, 3000])
        self.assertEqual(window.latest().taken_at_ms, 3000)

    def test_snapshot_is_detached(self):
        window = SampleWindow(window_ms=300_000, max_samples=68)
        window.append(_sample(1000))
        snap = window.snapshot()
        window.append(_sample(2000))
        self.assertEqual(len(snap), 1)
        self.assertEqual(len(window.since(1500)), 1)

    def test_empty_window(self):
        window = SampleWindow(window_ms=300_000, max_samples=68)
        self.assertIsNone(window.latest())
        self.assertEqual(window.trim(now_ms=1_000_000), 0)


if __name__ == "__main__":
    unittest.main()

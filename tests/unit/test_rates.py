import sys
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT / "packages" / "telemetry"))

from hostpulse_telemetry.models import CpuTimesSnapshot, NetworkIoSnapshot
from hostpulse_telemetry.rates import (
    as_whole_number,
    counter_delta,
    cpu_usage_percent,
    is_fresh,
    network_deltas,
    rate_per_second,
    round1,
)


class CpuUsageTests(unittest.TestCase):
    def test_busy_share_of_elapsed_ticks(self):
        prev = CpuTimesSnapshot(idle_ticks=100, total_ticks=200)
        cur = CpuTimesSnapshot(idle_ticks=150, total_ticks=400)
        self.assertEqual(cpu_usage_percent(prev, cur), 75.0)

    def test_no_elapsed_ticks_is_none(self):
        snap = CpuTimesSnapshot(idle_ticks=100, total_ticks=200)
        self.assertIsNone(cpu_usage_percent(snap, snap))
        self.assertIsNone(cpu_usage_percent(snap, CpuTimesSnapshot(idle_ticks=90, total_ticks=150)))

    def test_missing_snapshot_is_none(self):
        snap = CpuTimesSnapshot(idle_ticks=1, total_ticks=2)
        self.assertIsNone(cpu_usage_percent(None, snap))
        self.assertIsNone(cpu_usage_percent(snap, None))

    def test_clamped_to_percent_range(self):
        prev = CpuTimesSnapshot(idle_ticks=500, total_ticks=1000)
        # Idle ran backwards: raw share would exceed 100.
        self.assertEqual(cpu_usage_percent(prev, CpuTimesSnapshot(idle_ticks=400, total_ticks=1100)), 100.0)
        # Idle advanced more than total: raw share would be negative.
        self.assertEqual(cpu_usage_percent(prev, CpuTimesSnapshot(idle_ticks=700, total_ticks=1100)), 0.0)

    def test_rounded_to_one_decimal(self):
        prev = CpuTimesSnapshot(idle_ticks=0, total_ticks=0)
        cur = CpuTimesSnapshot(idle_ticks=2, total_ticks=3)
        self.assertEqual(cpu_usage_percent(prev, cur), 33.3)


class NetworkDeltaTests(unittest.TestCase):
    def test_regression_drops_only_that_direction(self):
        prev = NetworkIoSnapshot(rx_bytes=1000, tx_bytes=500)
        cur = NetworkIoSnapshot(rx_bytes=1500, tx_bytes=300)
        inbound, outbound = network_deltas(prev, cur)
        self.assertEqual(inbound, 500)
        self.assertIsNone(outbound)
        self.assertEqual(rate_per_second(inbound, 5.0), 100.0)
        self.assertIsNone(rate_per_second(outbound, 5.0))

    def test_first_sample_has_no_delta(self):
        self.assertEqual(network_deltas(None, NetworkIoSnapshot(rx_bytes=1, tx_bytes=1)), (None, None))

    def test_counter_delta_never_negative(self):
        for prev, cur in ((10, 3), (0, 0), (7, 7), (3, 10)):
            delta = counter_delta(prev, cur)
            self.assertTrue(delta is None or delta >= 0)
        self.assertEqual(counter_delta(3, 10), 7)
        self.assertEqual(counter_delta(7, 7), 0)

    def test_rate_rejects_bad_interval(self):
        self.assertIsNone(rate_per_second(100, 0))


class FreshnessTests(unittest.TestCase):
    def test_fresh_within_three_intervals(self):
        self.assertTrue(is_fresh(100_000, 115_000, 5_000))
        self.assertFalse(is_fresh(100_000, 115_001, 5_000))
        self.assertFalse(is_fresh(None, 115_000, 5_000))


class NumberHelperTests(unittest.TestCase):
    def test_round1_half_up(self):
        self.assertEqual(round1(0.25), 0.3)
        self.assertEqual(round1(12.34), 12.3)

    def test_as_whole_number(self):
        self.assertEqual(as_whole_number(None), 0)
        self.assertEqual(as_whole_number(-5), 0)
        self.assertEqual(as_whole_number(2.6), 3)
        self.assertEqual(as_whole_number(float("nan")), 0)


if __name__ == "__main__":
    unittest.main()

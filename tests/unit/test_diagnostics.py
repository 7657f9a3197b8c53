import json
import sys
import tempfile
import unittest
import zipfile
from pathlib import Path
from unittest.mock import patch

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT / "packages" / "core"))
sys.path.insert(0, str(ROOT / "packages" / "telemetry"))

from hostpulse_core import logging_setup
from hostpulse_core.config import AppConfig
from hostpulse_core.diagnostics import DiagnosticsExporter, build_doctor_payload, source_availability
from hostpulse_core.store import RetentionStore


class DiagnosticsTests(unittest.TestCase):
    def test_source_availability_against_fixture_roots(self):
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            (root / "proc" / "net").mkdir(parents=True)
            (root / "proc" / "meminfo").write_text("MemTotal: 1 kB\n", encoding="utf-8")
            cfg = AppConfig()
            cfg.sampler.proc_root = str(root / "proc")
            cfg.sampler.sys_root = str(root / "sys")
            sources = source_availability(cfg)
        self.assertTrue(sources["proc_meminfo"])
        self.assertFalse(sources["proc_net_dev"])
        self.assertFalse(sources["sys_thermal"])

    def test_bundle_exports_zip(self):
        cfg = AppConfig()
        store = RetentionStore(":memory:")
        with tempfile.TemporaryDirectory() as tmp, patch.object(logging_setup, "config_root", return_value=Path(tmp)):
            doctor = build_doctor_payload(cfg, store)
            self.assertEqual(doctor["store"]["rows"], 0)
            self.assertIn("readings", doctor)

            bundle = DiagnosticsExporter().bundle(
                cfg=cfg,
                doctor_payload=doctor,
                store=store,
                now_ms=1_700_000_000_000,
                output_dir=Path(tmp) / "out",
            )
            self.assertTrue(bundle.exists())

            with zipfile.ZipFile(bundle, "r") as zf:
                names = set(zf.namelist())
                self.assertIn("manifest.json", names)
                self.assertIn("doctor.json", names)
                self.assertIn("config.json", names)
                usage = json.loads(zf.read("network_usage.json"))
                self.assertEqual(usage["sample_count"], 0)
        store.close()


if __name__ == "__main__":
    unittest.main()

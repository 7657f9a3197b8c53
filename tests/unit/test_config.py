import json
import os
import sys
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT / "packages" / "telemetry"))
sys.path.insert(0, str(ROOT / "packages" / "core"))

from hostpulse_core.config import DB_PATH_ENV, AppConfig, db_path, load_config, save_config


class ConfigTests(unittest.TestCase):
    def test_load_default_when_missing(self):
        with tempfile.TemporaryDirectory() as tmp:
            cfg = load_config(Path(tmp) / "missing.json")
            self.assertIsInstance(cfg, AppConfig)
            self.assertEqual(cfg.sampler.interval_ms, 5_000)
            self.assertEqual(cfg.sampler.window_ms, 300_000)
            self.assertEqual(cfg.sampler.max_samples, 68)
            self.assertEqual(cfg.retention.retention_days, 30)
            self.assertEqual(cfg.retention.retention_ms, 30 * 24 * 60 * 60_000)

    def test_save_and_reload(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.json"
            cfg = load_config(path)
            cfg.sampler.disk_mount = "/srv"
            cfg.retention.retention_days = 7
            save_config(cfg, path)
            reloaded = load_config(path)
            self.assertEqual(reloaded.sampler.disk_mount, "/srv")
            self.assertEqual(reloaded.retention.retention_days, 7)

    def test_out_of_range_values_normalized(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.json"
            raw = {
                "sampler": {"interval_ms": 10, "window_ms": 1, "unknown": True},
                "retention": {"retention_days": 9000, "prune_interval_ms": 5},
                "logging": {"level": "chatty"},
            }
            path.write_text(json.dumps(raw), encoding="utf-8")
            cfg = load_config(path)
            self.assertEqual(cfg.sampler.interval_ms, 1_000)
            self.assertEqual(cfg.sampler.window_ms, 1_000)
            self.assertEqual(cfg.retention.retention_days, 365)
            self.assertEqual(cfg.retention.prune_interval_ms, 60_000)
            self.assertEqual(cfg.logging.level, "INFO")
            self.assertFalse(hasattr(cfg.sampler, "unknown"))

    def test_corrupt_file_falls_back_to_defaults(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.json"
            path.write_text("{not json", encoding="utf-8")
            self.assertEqual(load_config(path), AppConfig())

    def test_db_path_resolution(self):
        cfg = AppConfig()
        cfg.retention.db_path = "/var/lib/hostpulse/data.sqlite"
        with patch.dict(os.environ, {}, clear=False):
            os.environ.pop(DB_PATH_ENV, None)
            self.assertEqual(db_path(cfg), Path("/var/lib/hostpulse/data.sqlite"))
        with patch.dict(os.environ, {DB_PATH_ENV: "/tmp/override.sqlite"}):
            self.assertEqual(db_path(cfg), Path("/tmp/override.sqlite"))


if __name__ == "__main__":
    unittest.main()

"""Diagnostics export helpers for local support bundles."""

from __future__ import annotations

import json
import platform
import tempfile
import zipfile
from dataclasses import asdict, is_dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import psutil

from hostpulse_telemetry.readers import HostReader

from .config import AppConfig, config_path, db_path
from .logging_setup import log_dir
from .queries import network_usage_summary
from .store import RetentionStore


def _jsonable(value: Any) -> Any:
    if is_dataclass(value):
        return asdict(value)
    if isinstance(value, Path):
        return str(value)
    return value


def source_availability(cfg: AppConfig) -> dict[str, bool]:
    proc_root = Path(cfg.sampler.proc_root)
    sys_root = Path(cfg.sampler.sys_root)
    return {
        "proc_meminfo": (proc_root / "meminfo").exists(),
        "proc_net_dev": (proc_root / "net" / "dev").exists(),
        "sys_thermal": (sys_root / "class" / "thermal").is_dir(),
        "psutil_sensors": hasattr(psutil, "sensors_temperatures"),
        "disk_mount": Path(cfg.sampler.disk_mount).exists(),
    }


def build_doctor_payload(cfg: AppConfig, store: RetentionStore | None = None) -> dict[str, Any]:
    reader = HostReader(
        disk_mount=cfg.sampler.disk_mount,
        proc_root=cfg.sampler.proc_root,
        sys_root=cfg.sampler.sys_root,
    )
    payload: dict[str, Any] = {
        "ts_utc": datetime.now(timezone.utc).isoformat(),
        "platform": platform.platform(),
        "python": platform.python_version(),
        "psutil": psutil.__version__,
        "config": asdict(cfg),
        "sources": source_availability(cfg),
        "readings": asdict(reader.read()),
        "store": {"path": str(store.path if store is not None else db_path(cfg))},
    }
    if store is not None:
        payload["store"]["rows"] = store.count()
    return payload


class DiagnosticsExporter:
    def __init__(self, app_name: str = "HostPulse") -> None:
        self.app_name = app_name

    def bundle(
        self,
        cfg: AppConfig,
        doctor_payload: dict[str, Any],
        store: RetentionStore | None = None,
        now_ms: int | None = None,
        output_dir: Path | None = None,
    ) -> Path:
        output_base = output_dir or Path(tempfile.gettempdir())
        output_base.mkdir(parents=True, exist_ok=True)
        stamp = datetime.now().strftime("%Y%m%d-%H%M%S")
        zip_path = output_base / f"hostpulse-diagnostics-{stamp}.zip"

        logs = sorted(log_dir().glob("*.log*"))

        with zipfile.ZipFile(zip_path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            manifest = {
                "app": self.app_name,
                "created_utc": datetime.now(timezone.utc).isoformat(),
                "host": platform.platform(),
                "python": platform.python_version(),
                "config_path": str(config_path()),
                "log_dir": str(log_dir()),
            }
            zf.writestr("manifest.json", json.dumps(manifest, indent=2, sort_keys=True))
            zf.writestr("doctor.json", json.dumps(doctor_payload, indent=2, sort_keys=True, default=_jsonable))
            zf.writestr("config.json", json.dumps(asdict(cfg), indent=2, sort_keys=True))

            if store is not None:
                at = now_ms if now_ms is not None else int(datetime.now(timezone.utc).timestamp() * 1000)
                usage = network_usage_summary(
                    store,
                    now_ms=at,
                    interval_ms=cfg.sampler.interval_ms,
                    retention_ms=cfg.retention.retention_ms,
                    window_ms=cfg.sampler.window_ms,
                )
                zf.writestr("network_usage.json", json.dumps(usage.to_dict(), indent=2, sort_keys=True))

            for item in logs:
                zf.write(item, arcname=f"logs/{item.name}")

            fault_file = log_dir() / "fault.log"
            if fault_file.exists() and fault_file not in logs:
                zf.write(fault_file, arcname="logs/fault.log")

        return zip_path

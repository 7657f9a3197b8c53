"""Persistent sampler settings schema and load/save helpers."""

from __future__ import annotations

import json
import math
import os
import platform
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any


CONFIG_VERSION = 1
DB_PATH_ENV = "HOSTPULSE_DB_PATH"

_DAY_MS = 24 * 60 * 60_000


@dataclass
class SamplerConfig:
    interval_ms: int = 5_000
    window_ms: int = 5 * 60_000
    min_fresh_gap_ms: int = 1_200
    disk_mount: str = "/"
    proc_root: str = "/proc"
    sys_root: str = "/sys"

    @property
    def max_samples(self) -> int:
        return math.ceil(self.window_ms / self.interval_ms) + 8


@dataclass
class RetentionConfig:
    retention_days: int = 30
    prune_interval_ms: int = 5 * 60_000
    db_path: str | None = None

    @property
    def retention_ms(self) -> int:
        return self.retention_days * _DAY_MS


@dataclass
class LoggingConfig:
    keep_log_files: int = 7
    console: bool = True
    level: str = "INFO"


@dataclass
class AppConfig:
    config_version: int = CONFIG_VERSION
    sampler: SamplerConfig = field(default_factory=SamplerConfig)
    retention: RetentionConfig = field(default_factory=RetentionConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def config_root() -> Path:
    system = platform.system()
    if system == "Windows":
        base = Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
        return base / "HostPulse"
    if system == "Darwin":
        return Path.home() / "Library" / "Application Support" / "HostPulse"
    return Path.home() / ".config" / "hostpulse"


def config_path() -> Path:
    return config_root() / "config.json"


def db_path(cfg: AppConfig) -> Path:
    override = os.environ.get(DB_PATH_ENV)
    if override:
        return Path(override).expanduser()
    if cfg.retention.db_path:
        return Path(cfg.retention.db_path).expanduser()
    return config_root() / "telemetry.sqlite"


def _merge(dataclass_type, raw: dict[str, Any]):
    defaults = dataclass_type()  # type: ignore[misc]
    for k, v in (raw or {}).items():
        if k in defaults.__dataclass_fields__:
            setattr(defaults, k, v)
    return defaults


def _normalize_sampler(cfg: AppConfig) -> None:
    s = cfg.sampler
    s.interval_ms = max(1_000, min(60_000, int(s.interval_ms)))
    s.window_ms = max(s.interval_ms, int(s.window_ms))
    s.min_fresh_gap_ms = max(0, min(s.interval_ms, int(s.min_fresh_gap_ms)))
    s.disk_mount = str(s.disk_mount or "/")


def _normalize_retention(cfg: AppConfig) -> None:
    r = cfg.retention
    r.retention_days = max(1, min(365, int(r.retention_days)))
    r.prune_interval_ms = max(60_000, int(r.prune_interval_ms))


def _normalize_logging(cfg: AppConfig) -> None:
    cfg.logging.keep_log_files = max(2, int(cfg.logging.keep_log_files))
    level = str(cfg.logging.level).upper()
    cfg.logging.level = level if level in ("DEBUG", "INFO", "WARNING", "ERROR") else "INFO"


def load_config(path: Path | None = None) -> AppConfig:
    path = path or config_path()
    if not path.exists():
        return AppConfig()

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except Exception:
        return AppConfig()
    if not isinstance(raw, dict):
        return AppConfig()

    cfg = AppConfig(
        config_version=int(raw.get("config_version", CONFIG_VERSION)),
        sampler=_merge(SamplerConfig, raw.get("sampler", {})),
        retention=_merge(RetentionConfig, raw.get("retention", {})),
        logging=_merge(LoggingConfig, raw.get("logging", {})),
    )

    _normalize_sampler(cfg)
    _normalize_retention(cfg)
    _normalize_logging(cfg)
    return cfg


def save_config(cfg: AppConfig, path: Path | None = None) -> Path:
    cfg.config_version = CONFIG_VERSION
    path = path or config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(asdict(cfg), indent=2, sort_keys=True), encoding="utf-8")
    return path

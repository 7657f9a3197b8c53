"""Core services: settings, logging, the sampler, its stores, and read-side summaries."""

from .config import AppConfig, LoggingConfig, RetentionConfig, SamplerConfig, db_path, load_config, save_config
from .diagnostics import DiagnosticsExporter, build_doctor_payload
from .queries import (
    NetworkUsageSummary,
    WindowSummary,
    coverage_percent,
    metrics_report,
    network_usage_summary,
    sampler_network_usage,
    summarize_window,
    window_samples,
)
from .sampler import Sampler, SamplerState, SamplerStatus, TickResult, compute_tick
from .store import RetentionStore, RetentionStoreError
from .window import SampleWindow

__all__ = [
    "AppConfig",
    "DiagnosticsExporter",
    "LoggingConfig",
    "NetworkUsageSummary",
    "RetentionConfig",
    "RetentionStore",
    "RetentionStoreError",
    "SampleWindow",
    "Sampler",
    "SamplerConfig",
    "SamplerState",
    "SamplerStatus",
    "TickResult",
    "WindowSummary",
    "build_doctor_payload",
    "compute_tick",
    "coverage_percent",
    "db_path",
    "load_config",
    "metrics_report",
    "network_usage_summary",
    "sampler_network_usage",
    "save_config",
    "summarize_window",
    "window_samples",
]

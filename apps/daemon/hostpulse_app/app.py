"""Long-running sampler daemon runtime."""

from __future__ import annotations

import signal
import threading
from importlib import metadata

from hostpulse_core import AppConfig, RetentionStore, Sampler, db_path, load_config
from hostpulse_core.logging_setup import close_fault_handler, configure_logging, get_logger, install_crash_hooks


def _app_version() -> str:
    try:
        return metadata.version("hostpulse")
    except Exception:
        return "0.1.0"


def build_sampler(cfg: AppConfig, store: RetentionStore) -> Sampler:
    return Sampler(store, sampler_config=cfg.sampler, retention_config=cfg.retention)


def run_daemon(cfg: AppConfig | None = None, stop_event: threading.Event | None = None) -> int:
    cfg = cfg or load_config()
    configure_logging(
        keep_files=cfg.logging.keep_log_files,
        console=cfg.logging.console,
        level=cfg.logging.level,
    )
    install_crash_hooks()
    logger = get_logger()

    stop = stop_event or threading.Event()
    if stop_event is None and threading.current_thread() is threading.main_thread():
        for signum in (signal.SIGINT, signal.SIGTERM):
            signal.signal(signum, lambda *_: stop.set())

    store = RetentionStore(db_path(cfg))
    sampler = build_sampler(cfg, store)
    logger.info(
        f"daemon starting version={_app_version()} db={store.path}",
        extra={"event": "daemon_start"},
    )
    try:
        sampler.prime()
        sampler.start()
        stop.wait()
    finally:
        sampler.stop()
        store.close()
        logger.info("daemon shutdown", extra={"event": "shutdown"})
        close_fault_handler()
    return 0

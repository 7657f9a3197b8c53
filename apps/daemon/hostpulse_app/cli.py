"""CLI entrypoints for the HostPulse daemon, one-shot readings, and diagnostics."""

from __future__ import annotations

import argparse
import json
from dataclasses import asdict
from pathlib import Path

from hostpulse_core import (
    DiagnosticsExporter,
    RetentionStore,
    build_doctor_payload,
    db_path,
    load_config,
    metrics_report,
    sampler_network_usage,
)
from hostpulse_core.logging_setup import configure_logging

from .app import build_sampler, run_daemon


def _print_json(data: object) -> None:
    print(json.dumps(data, indent=2, sort_keys=True, default=str))


def _config_from(args: argparse.Namespace):
    return load_config(Path(args.config).expanduser() if getattr(args, "config", None) else None)


def cmd_run(args: argparse.Namespace) -> int:
    return run_daemon(_config_from(args))


def cmd_sample(args: argparse.Namespace) -> int:
    cfg = _config_from(args)
    store = RetentionStore(db_path(cfg))
    try:
        sampler = build_sampler(cfg, store)
        sample = sampler.prime()
        payload = asdict(sample)
        payload["taken_at"] = sample.taken_at_iso
        row = store.get(sample.taken_at_ms)
        payload["network"] = asdict(row) if row is not None else None
        _print_json(payload)
    finally:
        store.close()
    return 0


def cmd_metrics(args: argparse.Namespace) -> int:
    cfg = _config_from(args)
    store = RetentionStore(db_path(cfg))
    try:
        sampler = build_sampler(cfg, store)
        sampler.prime()
        _print_json(metrics_report(sampler))
    finally:
        store.close()
    return 0


def cmd_network_usage(args: argparse.Namespace) -> int:
    cfg = _config_from(args)
    store = RetentionStore(db_path(cfg))
    try:
        sampler = build_sampler(cfg, store)
        sampler.prune(force=True)
        _print_json(sampler_network_usage(sampler).to_dict())
    finally:
        store.close()
    return 0


def cmd_prune(args: argparse.Namespace) -> int:
    cfg = _config_from(args)
    store = RetentionStore(db_path(cfg))
    try:
        sampler = build_sampler(cfg, store)
        deleted = sampler.prune(force=True)
        _print_json({"deleted": deleted, "remaining": store.count(), "retention_days": cfg.retention.retention_days})
    finally:
        store.close()
    return 0 if deleted is not None else 1


def cmd_doctor(args: argparse.Namespace) -> int:
    cfg = _config_from(args)
    store = RetentionStore(db_path(cfg))
    try:
        payload = build_doctor_payload(cfg, store)

        if args.export:
            exporter = DiagnosticsExporter()
            out_dir = Path(args.out_dir).expanduser().resolve() if args.out_dir else None
            bundle = exporter.bundle(cfg=cfg, doctor_payload=payload, store=store, output_dir=out_dir)
            payload["diagnostics_bundle"] = str(bundle)

        _print_json(payload)
    finally:
        store.close()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="hostpulse", description="Host telemetry sampler and retention store")
    parser.add_argument("--config", default=None, help="Optional path to a config.json")
    sub = parser.add_subparsers(dest="command", required=True)

    run_cmd = sub.add_parser("run", help="Run the sampler daemon until interrupted")
    run_cmd.set_defaults(func=cmd_run)

    sample_cmd = sub.add_parser("sample", help="Take one sample and persist its network row")
    sample_cmd.set_defaults(func=cmd_sample)

    metrics_cmd = sub.add_parser("metrics", help="Print the live metrics report")
    metrics_cmd.set_defaults(func=cmd_metrics)

    usage_cmd = sub.add_parser("network-usage", help="Print the retained network usage summary")
    usage_cmd.set_defaults(func=cmd_network_usage)

    prune_cmd = sub.add_parser("prune", help="Delete network rows past the retention horizon")
    prune_cmd.set_defaults(func=cmd_prune)

    doctor_cmd = sub.add_parser("doctor", help="Print diagnostics and OS source availability")
    doctor_cmd.add_argument("--export", action="store_true", help="Export offline diagnostics bundle")
    doctor_cmd.add_argument("--out-dir", default=None, help="Optional output directory for diagnostics bundle")
    doctor_cmd.set_defaults(func=cmd_doctor)

    return parser


def main(argv: list[str] | None = None) -> int:
    configure_logging(console=False)
    parser = build_parser()
    args = parser.parse_args(argv)
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())

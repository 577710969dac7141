"""Command line entry point for backpropnet training runs."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Iterable

from backpropnet.core.types import STRATEGY_NAMES
from backpropnet.training import pipelines


def _format_result(result) -> str:
    payload = {
        "iterations": result.iterations,
        "final_error": round(result.final_error, 5),
        "reached_threshold": result.reached_threshold,
        "accuracy": result.accuracy,
        "metrics": result.metrics_path,
        "manifest": result.manifest_path,
    }
    return json.dumps(payload, sort_keys=True)


def parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    preset_names = sorted(pipelines.presets().keys())
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--preset",
        choices=preset_names,
        default="xor-rprop",
        help="Preset configuration to execute",
    )
    parser.add_argument("--config", type=Path, help="Optional JSON/YAML config override")
    parser.add_argument("--strategy", choices=STRATEGY_NAMES, help="Weight-update strategy")
    parser.add_argument("--seed", type=int, help="Seed used for weight initialisation")
    parser.add_argument("--max-iterations", type=int, help="Cap on weight updates")
    parser.add_argument(
        "--error-threshold", type=float, help="Stop once the batch MSE falls below this"
    )
    parser.add_argument("--log-every", type=int, help="Log progress every N iterations")
    parser.add_argument("--run-dir", type=Path, help="Directory for metrics and manifest")
    parser.add_argument(
        "--enable-plots", action="store_true", help="Write an error curve after training"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Log training progress")
    parser.add_argument(
        "--list-presets", action="store_true", help="List available presets and exit"
    )
    parser.add_argument(
        "--dump-config", type=Path, help="Dump the resolved config to a JSON file"
    )
    return parser.parse_args(argv)


def resolve_config(args: argparse.Namespace) -> dict:
    config = dict(pipelines.load_preset(args.preset))
    if args.config:
        override = pipelines.read_config(args.config)
        if {"data", "model", "train"} <= set(override.keys()):
            config = json.loads(json.dumps(override))
        else:
            config = pipelines.merge_config(config, override)

    train_overrides = {
        "strategy": args.strategy,
        "seed": args.seed,
        "max_iterations": args.max_iterations,
        "error_threshold": args.error_threshold,
        "log_every": args.log_every,
        "run_dir": str(args.run_dir) if args.run_dir else None,
    }
    train_overrides = {k: v for k, v in train_overrides.items() if v is not None}
    if args.enable_plots:
        train_overrides["enable_plots"] = True
    if train_overrides:
        config = pipelines.merge_config(config, {"train": train_overrides})
    return config


def main(argv: Iterable[str] | None = None) -> None:
    args = parse_args(argv)

    if args.list_presets:
        for name in sorted(pipelines.presets().keys()):
            print(name)
        raise SystemExit(0)

    if args.verbose:
        logging.basicConfig(level=logging.INFO, format="%(message)s")

    config = resolve_config(args)

    if args.dump_config:
        args.dump_config.parent.mkdir(parents=True, exist_ok=True)
        args.dump_config.write_text(json.dumps(config, indent=2))

    result = pipelines.run_pipeline(config)
    print(_format_result(result))


if __name__ == "__main__":
    main()

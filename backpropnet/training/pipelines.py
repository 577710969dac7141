"""Pipeline assembly: presets and config files to a trained network."""

from __future__ import annotations

import json
import logging
import time
from copy import deepcopy
from pathlib import Path
from typing import Dict, List, Mapping

import numpy as np

from .. import data as datasets
from ..core.errors import InvalidConfigurationError
from ..core.network import Network
from ..core.types import RunResult, TrainingOptions
from ..reporting.artifacts import write_manifest
from ..reporting.metrics import CsvSink, JsonlSink
from ..reporting.plots import ErrorCurve
from .evaluation import round_accuracy

logger = logging.getLogger(__name__)

# Keys of the ``train`` section that configure the run rather than the optimiser.
_RUN_KEYS = {"seed", "run_dir", "enable_plots"}

_PRESETS: Dict[str, Mapping[str, object]] = {
    "xor-rprop": {
        "data": {"name": "xor"},
        "model": {"hidden": [2], "init_range": [-0.5, 0.5], "nguyen_widrow": True},
        "train": {
            "strategy": "rprop",
            "max_iterations": 1000,
            "error_threshold": 0.01,
            "log_every": 100,
            "seed": 0,
            "run_dir": "runs/xor-rprop",
            "enable_plots": False,
        },
    },
    "xor-momentum": {
        "data": {"name": "xor"},
        "model": {"hidden": [2], "init_range": [-0.5, 0.5], "nguyen_widrow": True},
        "train": {
            "strategy": "momentum",
            "learning_rate": 0.7,
            "momentum": 0.3,
            "max_iterations": 5000,
            "error_threshold": 0.005,
            "log_every": 500,
            "seed": 0,
            "run_dir": "runs/xor-momentum",
            "enable_plots": False,
        },
    },
    "or-rprop": {
        "data": {"name": "or"},
        "model": {"hidden": [2]},
        "train": {
            "strategy": "rprop",
            "max_iterations": 500,
            "error_threshold": 0.01,
            "seed": 1,
            "run_dir": "runs/or-rprop",
        },
    },
    "and-momentum": {
        "data": {"name": "and"},
        "model": {"hidden": []},
        "train": {
            "strategy": "momentum",
            "learning_rate": 0.5,
            "momentum": 0.1,
            "max_iterations": 2000,
            "error_threshold": 0.01,
            "seed": 2,
            "run_dir": "runs/and-momentum",
        },
    },
}

_PRESET_DIR = Path(__file__).resolve().parents[2] / "configs" / "presets"
_FILE_PRESETS_CACHE: Dict[str, Mapping[str, object]] | None = None


def read_config(path: str | Path) -> Mapping[str, object]:
    """Load a JSON or YAML config file into a mapping."""

    path = Path(path)
    text = path.read_text()
    suffix = path.suffix.lower()
    if suffix in {".yaml", ".yml"}:
        import yaml

        data = yaml.safe_load(text) or {}
    elif suffix == ".json":
        data = json.loads(text or "{}")
    else:
        raise InvalidConfigurationError(f"Unsupported config file type: {path.suffix}")

    if not isinstance(data, Mapping):
        raise InvalidConfigurationError(f"Config {path.name} must decode to a mapping")
    return data


def _file_presets() -> Dict[str, Mapping[str, object]]:
    global _FILE_PRESETS_CACHE
    if _FILE_PRESETS_CACHE is None:
        presets: Dict[str, Mapping[str, object]] = {}
        if _PRESET_DIR.exists():
            for file in sorted(_PRESET_DIR.iterdir()):
                if file.suffix.lower() not in {".yaml", ".yml", ".json"}:
                    continue
                data = read_config(file)
                missing = {"data", "model", "train"} - set(data)
                if missing:
                    raise InvalidConfigurationError(
                        f"Preset {file.name} is missing required sections: "
                        f"{', '.join(sorted(missing))}"
                    )
                presets[file.stem] = json.loads(json.dumps(data))
        _FILE_PRESETS_CACHE = presets
    return {name: deepcopy(cfg) for name, cfg in _FILE_PRESETS_CACHE.items()}


def presets() -> Mapping[str, Mapping[str, object]]:
    combined: Dict[str, Mapping[str, object]] = {}
    combined.update({name: deepcopy(cfg) for name, cfg in _PRESETS.items()})
    combined.update(_file_presets())
    return combined


def load_preset(name: str) -> Mapping[str, object]:
    file_overrides = _file_presets()
    if name in file_overrides:
        return file_overrides[name]
    try:
        return deepcopy(_PRESETS[name])
    except KeyError as exc:
        raise KeyError(f"Unknown preset: {name}") from exc


def merge_config(base: Mapping[str, object], override: Mapping[str, object]) -> dict:
    """Recursively merge ``override`` into a copy of ``base``."""

    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = merge_config(merged[key], value)  # type: ignore[arg-type]
        else:
            merged[key] = value
    return merged


def build_shape(model_cfg: Mapping[str, object], d_in: int, d_out: int) -> List[int]:
    """Return the layer sizes described by ``model_cfg`` for the dataset dims."""

    if "shape" in model_cfg:
        shape = [int(size) for size in model_cfg["shape"]]  # type: ignore[union-attr]
        if shape[0] != d_in or shape[-1] != d_out:
            raise InvalidConfigurationError(
                f"Configured shape {shape} does not match dataset dims ({d_in}, {d_out})"
            )
        return shape
    hidden = [int(size) for size in model_cfg.get("hidden", [])]  # type: ignore[union-attr]
    return [d_in, *hidden, d_out]


def run_pipeline(config: Mapping[str, object]) -> RunResult:
    """Train the network described by ``config`` and write run artifacts."""

    missing = {"data", "model", "train"} - set(config)
    if missing:
        raise InvalidConfigurationError(
            f"Config is missing required sections: {', '.join(sorted(missing))}"
        )
    data_cfg = dict(config["data"])  # type: ignore[arg-type]
    model_cfg = dict(config["model"])  # type: ignore[arg-type]
    train_cfg = dict(config["train"])  # type: ignore[arg-type]

    dataset = datasets.get_dataset(str(data_cfg["name"]), **data_cfg.get("options", {}))
    shape = build_shape(model_cfg, dataset.d_in, dataset.d_out)
    seed = int(train_cfg.get("seed", 0))
    init_range = model_cfg.get("init_range", (-0.5, 0.5))
    network = Network(
        shape,
        rng=np.random.default_rng(seed),
        init_range=(float(init_range[0]), float(init_range[1])),  # type: ignore[index]
        nguyen_widrow=bool(model_cfg.get("nguyen_widrow", True)),
    )
    options = TrainingOptions.from_mapping(
        {k: v for k, v in train_cfg.items() if k not in _RUN_KEYS}
    )

    run_dir = _resolve_run_dir(train_cfg, dataset.name, options.strategy)
    run_dir.mkdir(parents=True, exist_ok=True)
    logger.info(
        "Training %s on %s with %s (%d parameters)",
        shape,
        dataset.name,
        options.strategy,
        network.weights.parameter_count(),
    )

    jsonl = JsonlSink(run_dir / "metrics.jsonl", seed=seed)
    csv_sink = CsvSink(run_dir / "metrics.csv")
    curve = ErrorCurve(run_dir, enable_plots=bool(train_cfg.get("enable_plots", False)))
    result = network.train(dataset.samples, options, callbacks=[jsonl, csv_sink, curve])
    curve.close(result, options)

    accuracy = round_accuracy(network, dataset.samples)
    summary = dict(result.as_dict(), accuracy=accuracy)
    curve_summary = curve.summary()
    if curve_summary is not None:
        summary["best_error"] = curve_summary.best_error
        summary["non_increasing_fraction"] = curve_summary.non_increasing_fraction
    resolved = json.loads(json.dumps(config))
    resolved["model"]["shape"] = shape
    manifest = write_manifest(
        run_dir / "manifest.json",
        config=resolved,
        result=summary,
        dataset_provenance=dataset.provenance,
    )
    return RunResult(
        iterations=result.iterations,
        final_error=result.final_error,
        reached_threshold=result.reached_threshold,
        accuracy=accuracy,
        metrics_path=str(jsonl.path),
        manifest_path=manifest,
    )


def _resolve_run_dir(train_cfg: Mapping[str, object], dataset: str, strategy: str) -> Path:
    if "run_dir" in train_cfg:
        return Path(str(train_cfg["run_dir"]))
    timestamp = time.strftime("%Y%m%d-%H%M%S")
    return Path("runs") / timestamp / dataset / strategy


__all__ = ["build_shape", "load_preset", "merge_config", "presets", "read_config", "run_pipeline"]

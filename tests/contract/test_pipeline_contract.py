import json
from pathlib import Path

import pytest

from backpropnet.core.errors import InvalidConfigurationError
from backpropnet.core.types import TrainingOptions, TrainResult
from backpropnet.training import pipelines


def test_pipeline_produces_artifacts(tmp_path):
    config = pipelines.load_preset("xor-rprop")
    config["train"]["run_dir"] = str(tmp_path / "run")
    result = pipelines.run_pipeline(config)

    metrics = [
        json.loads(line)
        for line in Path(result.metrics_path).read_text().splitlines()
        if line
    ]
    assert len(metrics) == result.iterations
    assert metrics[0]["iteration"] == 1
    assert all("error" in entry and "sha" in entry for entry in metrics)
    assert metrics[-1]["error"] == pytest.approx(result.final_error)

    manifest = json.loads(Path(result.manifest_path).read_text())
    assert manifest["config"]["model"]["shape"] == [2, 2, 1]
    assert manifest["dataset"]["gate"] == "xor"
    assert manifest["result"]["iterations"] == result.iterations
    assert (tmp_path / "run" / "metrics.csv").exists()
    assert 0.0 <= result.accuracy <= 1.0


def test_pipeline_is_deterministic(tmp_path):
    config = pipelines.load_preset("or-rprop")
    config["train"]["run_dir"] = str(tmp_path / "a")
    first = pipelines.run_pipeline(config)
    config["train"]["run_dir"] = str(tmp_path / "b")
    second = pipelines.run_pipeline(config)

    assert first.iterations == second.iterations
    assert first.final_error == second.final_error
    strip = lambda text: [  # noqa: E731
        {k: v for k, v in json.loads(line).items() if k != "sha"}
        for line in text.splitlines()
    ]
    assert strip(Path(first.metrics_path).read_text()) == strip(
        Path(second.metrics_path).read_text()
    )


def test_yaml_preset_is_discovered():
    assert "nand-rprop" in pipelines.presets()
    config = pipelines.load_preset("nand-rprop")
    assert config["data"]["name"] == "nand"
    assert config["model"]["hidden"] == [3]


def test_explicit_shape_must_match_dataset(tmp_path):
    config = pipelines.load_preset("xor-rprop")
    config["model"] = {"shape": [3, 2, 1]}
    config["train"]["run_dir"] = str(tmp_path)
    with pytest.raises(InvalidConfigurationError):
        pipelines.run_pipeline(config)


def test_missing_sections_are_rejected():
    with pytest.raises(InvalidConfigurationError):
        pipelines.run_pipeline({"data": {"name": "xor"}})


def test_unknown_preset():
    with pytest.raises(KeyError):
        pipelines.load_preset("does-not-exist")


def test_merge_config_is_recursive():
    base = {"train": {"seed": 1, "max_iterations": 10}, "data": {"name": "xor"}}
    merged = pipelines.merge_config(base, {"train": {"seed": 2}})
    assert merged == {"train": {"seed": 2, "max_iterations": 10}, "data": {"name": "xor"}}
    assert base["train"]["seed"] == 1


def test_read_config_yaml_and_json(tmp_path):
    yaml_path = tmp_path / "cfg.yaml"
    yaml_path.write_text("train:\n  max_iterations: 5\n")
    assert pipelines.read_config(yaml_path) == {"train": {"max_iterations": 5}}
    json_path = tmp_path / "cfg.json"
    json_path.write_text(json.dumps({"train": {"seed": 4}}))
    assert pipelines.read_config(json_path) == {"train": {"seed": 4}}
    with pytest.raises(InvalidConfigurationError):
        pipelines.read_config(tmp_path / "cfg.txt")


def test_error_curve_summary_is_recorded_without_plots(tmp_path):
    from backpropnet.reporting.plots import ErrorCurve

    curve = ErrorCurve(tmp_path / "none")
    assert curve.summary() is None
    for iteration, error in enumerate([0.3, 0.2, 0.25, 0.1], start=1):
        curve.on_step(iteration, {"error": error})
    summary = curve.summary()
    assert summary.iterations == 4
    assert summary.first_error == pytest.approx(0.3)
    assert summary.best_error == pytest.approx(0.1)
    assert summary.best_iteration == 4
    assert summary.non_increasing_fraction == pytest.approx(2 / 3)
    result = TrainResult(final_error=0.1, iterations=4, reached_threshold=False)
    assert curve.close(result, TrainingOptions(max_iterations=4)) is None
    assert not (tmp_path / "none").exists()


def test_error_curve_renders_threshold_and_cap(tmp_path):
    pytest.importorskip("matplotlib")
    from backpropnet.reporting.plots import ErrorCurve

    curve = ErrorCurve(tmp_path, enable_plots=True)
    curve.on_step(1, {"error": 0.25})
    curve.on_step(2, {"error": 0.005})
    result = TrainResult(final_error=0.005, iterations=2, reached_threshold=True)
    path = curve.close(result, TrainingOptions(max_iterations=10, error_threshold=0.01))
    assert path == tmp_path / "error.png"
    assert path.exists()


def test_manifest_records_curve_summary(tmp_path):
    config = pipelines.load_preset("or-rprop")
    config["train"]["run_dir"] = str(tmp_path)
    result = pipelines.run_pipeline(config)
    manifest = json.loads(Path(result.manifest_path).read_text())
    assert manifest["result"]["best_error"] <= manifest["result"]["final_error"] + 1e-5
    assert 0.0 <= manifest["result"]["non_increasing_fraction"] <= 1.0

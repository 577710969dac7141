from __future__ import annotations

import logging
from typing import List

import numpy as np
import pytest

from backpropnet.core.errors import (
    InvalidConfigurationError,
    NumericInstabilityError,
    ShapeMismatchError,
)
from backpropnet.core.network import Network
from backpropnet.core.strategies import MomentumDescent, Rprop
from backpropnet.core.types import TrainingOptions
from backpropnet.data import get_dataset
from backpropnet.training.evaluation import dataset_error, round_accuracy

XOR = [([1, 0], [1]), ([0, 0], [0]), ([0, 1], [1]), ([1, 1], [0])]


class _Capture:
    def __init__(self) -> None:
        self.errors: List[float] = []

    def on_step(self, iteration, metrics) -> None:
        self.errors.append(float(metrics["error"]))


def test_rprop_reduces_xor_error_for_every_seed():
    # 2-2-1 XOR under RPROP often settles in a local minimum, so only error
    # reduction is asserted per seed; the seed range is fixed for determinism.
    solved = 0
    for seed in range(10):
        net = Network([2, 2, 1], seed=seed)
        initial = dataset_error(net, XOR)
        result = net.train(XOR, max_iterations=1000, error_threshold=0.01)
        assert result.final_error < initial
        if result.reached_threshold and round_accuracy(net, XOR) == 1.0:
            solved += 1
            assert result.final_error < 0.01
    assert solved >= 3


def test_rprop_error_mostly_non_increasing_on_or():
    net = Network([2, 2, 1], seed=1)
    capture = _Capture()
    net.train(
        get_dataset("or").samples,
        max_iterations=200,
        error_threshold=None,
        callbacks=[capture],
    )
    errors = np.array(capture.errors[10:])
    non_increasing = np.sum(np.diff(errors) <= 1e-12)
    assert non_increasing > 0.5 * (len(errors) - 1)
    assert capture.errors[-1] < capture.errors[0]


def test_momentum_learns_and_gate():
    data = get_dataset("and").samples
    net = Network([2, 1], seed=2)
    before = dataset_error(net, data)
    result = net.train(
        data,
        TrainingOptions(
            strategy="momentum",
            learning_rate=0.5,
            momentum=0.1,
            max_iterations=3000,
            error_threshold=0.02,
        ),
    )
    assert result.final_error < before
    assert round_accuracy(net, data) == 1.0


def test_iteration_cap_without_threshold():
    net = Network([2, 2, 1], seed=0)
    capture = _Capture()
    result = net.train(XOR, max_iterations=7, error_threshold=None, callbacks=[capture])
    assert result.iterations == 7
    assert result.reached_threshold is False
    assert len(capture.errors) == 7
    assert result.final_error == pytest.approx(capture.errors[-1])


def test_threshold_stops_training_early():
    net = Network([2, 1], seed=0)
    result = net.train(XOR, max_iterations=50, error_threshold=10.0)
    assert result.iterations == 1
    assert result.reached_threshold is True


def test_options_accept_camel_case_mapping():
    net = Network([2, 1], seed=0)
    result = net.train(XOR, {"maxIterations": 3, "errorThreshold": None})
    assert result.iterations == 3
    with pytest.raises(InvalidConfigurationError):
        net.train(XOR, {"epochs": 3})


@pytest.mark.parametrize(
    "options",
    [
        {"max_iterations": 0},
        {"log_every": 0},
        {"learning_rate": -1.0},
        {"momentum": -0.1},
        {"strategy": "adam"},
        {"max_iterations": 2.5},
        {"max_iterations": True},
        {"max_iterations": "10"},
        {"log_every": 1.5},
        {"log_every": False},
        {"learning_rate": "0.5"},
        {"momentum": None},
        {"error_threshold": "0.01"},
        {"error_threshold": float("nan")},
    ],
)
def test_invalid_options_are_rejected(options):
    with pytest.raises(InvalidConfigurationError):
        TrainingOptions.from_mapping(options)


def test_invalid_data_is_rejected_before_any_update():
    net = Network([2, 2, 1], seed=0)
    before = net.weights.copy()
    with pytest.raises(InvalidConfigurationError):
        net.train([])
    with pytest.raises(ShapeMismatchError):
        net.train([([1, 0], [1]), ([1, 0, 1], [0])])
    with pytest.raises(ShapeMismatchError):
        net.train([([1, 0], [1, 0])])
    assert net.weights.allclose(before)


def test_non_finite_error_raises_without_touching_weights():
    net = Network([2, 2, 1], seed=0)
    before = net.weights.copy()
    with pytest.raises(NumericInstabilityError):
        net.train([([float("nan"), 0.0], [1.0])])
    assert net.weights.allclose(before)


def test_progress_is_logged_every_n_iterations(caplog):
    net = Network([2, 2, 1], seed=0)
    with caplog.at_level(logging.INFO, logger="backpropnet.training.trainer"):
        net.train(XOR, max_iterations=10, error_threshold=None, log_every=5)
    messages = [r.getMessage() for r in caplog.records if r.levelno == logging.INFO]
    assert len(messages) == 2
    assert messages[0].startswith("[5] error:")
    assert messages[1].startswith("[10] error:")


def test_step_sizes_persist_between_train_calls():
    net = Network([2, 2, 1], seed=0)
    net.train(XOR, max_iterations=20, error_threshold=None)
    state = net.strategy_state
    steps = state["step_sizes"].copy()
    assert not steps.allclose(type(steps).filled(steps.shape, 0.1))

    net.train(XOR, max_iterations=1, error_threshold=None)
    assert net.strategy_state is state


def test_switching_strategy_initialises_new_state():
    net = Network([2, 2, 1], seed=0)
    net.train(XOR, max_iterations=5, error_threshold=None)
    net.train(XOR, max_iterations=5, error_threshold=None, strategy=MomentumDescent())
    assert isinstance(net.strategy, MomentumDescent)
    assert set(net.strategy_state.matrices) == {"changes"}


def test_explicit_strategy_instance_is_used():
    net = Network([2, 2, 1], seed=0)
    rprop = Rprop(initial_step=0.05)
    net.train(XOR, max_iterations=1, error_threshold=None, strategy=rprop)
    assert net.strategy is rprop


def test_train_xy_pairs_inputs_with_targets():
    net = Network([2, 2, 1], seed=0)
    inputs = [x for x, _ in XOR]
    targets = [y for _, y in XOR]
    result = net.train_xy(inputs, targets, max_iterations=5, error_threshold=None)
    assert result.iterations == 5
    with pytest.raises(InvalidConfigurationError):
        net.train_xy(inputs, targets[:2])


def test_strategy_can_be_named():
    net = Network([2, 2, 1], seed=0)
    net.train(XOR, max_iterations=2, error_threshold=None, strategy="momentum", momentum=0.5)
    assert isinstance(net.strategy, MomentumDescent)
    assert net.strategy.momentum == 0.5


def test_fractional_iteration_cap_is_rejected():
    net = Network([2, 1], seed=0)
    with pytest.raises(InvalidConfigurationError):
        net.train(XOR, max_iterations=2.5, error_threshold=None)


def test_loading_weights_discards_strategy_state():
    net = Network([2, 2, 1], seed=0)
    net.train(XOR, max_iterations=20, error_threshold=None)
    assert net.strategy_state is not None
    net.load_state_dict(Network([2, 2, 1], seed=1).state_dict())
    assert net.strategy is None
    assert net.strategy_state is None

    net.train(XOR, max_iterations=1, error_threshold=None)
    state = net.strategy_state
    assert state is not None
    steps = state["step_sizes"]
    assert steps.allclose(type(steps).filled(steps.shape, 0.1))

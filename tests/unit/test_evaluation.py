import numpy as np
import pytest

from backpropnet.core.errors import InvalidConfigurationError
from backpropnet.core.network import Network
from backpropnet.training.evaluation import (
    argmax_accuracy,
    dataset_error,
    mean_squared_error,
    round_accuracy,
)


@pytest.fixture
def two_class_net():
    # Input 1 favours output 0, input -1 favours output 1, input 0 ties at 0.5.
    net = Network([1, 2], seed=0)
    net.weights[1] = np.array([[2.0, 0.0], [-2.0, 0.0]])
    return net


def test_mean_squared_error_of_known_vector():
    assert mean_squared_error(np.array([1.0, -2.0, 3.0])) == pytest.approx(14.0 / 3.0)
    assert mean_squared_error(np.zeros(4)) == 0.0


def test_argmax_accuracy_on_one_hot_targets(two_class_net):
    data = [([1.0], [1, 0]), ([-1.0], [0, 1]), ([1.0], [0, 1]), ([-1.0], [1, 0])]
    assert argmax_accuracy(two_class_net, data) == pytest.approx(0.5)
    assert argmax_accuracy(two_class_net, data[:2]) == 1.0


def test_argmax_ties_resolve_to_first_output(two_class_net):
    output = two_class_net.run([0.0])
    assert output[0] == pytest.approx(output[1])
    assert argmax_accuracy(two_class_net, [([0.0], [1, 0])]) == 1.0
    assert argmax_accuracy(two_class_net, [([0.0], [0, 1])]) == 0.0


def test_dataset_error_averages_per_sample_mse(two_class_net):
    expected = np.mean([np.mean((two_class_net.run([x]) - np.array(t)) ** 2)
                        for x, t in [(1.0, [1, 0]), (-1.0, [1, 0])]])
    data = [([1.0], [1, 0]), ([-1.0], [1, 0])]
    assert dataset_error(two_class_net, data) == pytest.approx(expected)


@pytest.mark.parametrize("metric", [argmax_accuracy, round_accuracy, dataset_error])
def test_empty_dataset_is_rejected(two_class_net, metric):
    with pytest.raises(InvalidConfigurationError):
        metric(two_class_net, [])

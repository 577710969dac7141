"""Training loop, evaluation and pipelines for backpropnet."""

from .evaluation import argmax_accuracy, dataset_error, mean_squared_error, round_accuracy
from .trainer import Trainer

__all__ = [
    "Trainer",
    "argmax_accuracy",
    "dataset_error",
    "mean_squared_error",
    "round_accuracy",
]

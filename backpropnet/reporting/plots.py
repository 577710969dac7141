"""Batch-error history and the optional convergence plot."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Mapping

import numpy as np

from ..core.types import TrainingOptions, TrainResult


@dataclass(frozen=True)
class CurveSummary:
    """Shape of a recorded error curve."""

    iterations: int
    first_error: float
    best_error: float
    best_iteration: int
    non_increasing_fraction: float


class ErrorCurve:
    """Training callback recording the batch error of every iteration.

    The history is always kept so :meth:`summary` works headless; the figure
    is only rendered when ``enable_plots`` is set.
    """

    def __init__(self, run_dir: str | Path, enable_plots: bool = False) -> None:
        self.run_dir = Path(run_dir)
        self.enable_plots = enable_plots
        self.iterations: List[int] = []
        self.errors: List[float] = []

    def on_step(self, iteration: int, metrics: Mapping[str, float]) -> None:
        self.iterations.append(int(iteration))
        self.errors.append(float(metrics["error"]))

    __call__ = on_step

    def summary(self) -> CurveSummary | None:
        if not self.errors:
            return None
        errors = np.asarray(self.errors)
        best = int(np.argmin(errors))
        steps = np.diff(errors)
        fraction = float(np.mean(steps <= 0.0)) if steps.size else 1.0
        return CurveSummary(
            iterations=len(errors),
            first_error=float(errors[0]),
            best_error=float(errors[best]),
            best_iteration=self.iterations[best],
            non_increasing_fraction=fraction,
        )

    def close(self, result: TrainResult, options: TrainingOptions) -> Path | None:
        """Render ``error.png`` with the threshold and iteration-cap markers."""

        if not self.enable_plots or not self.errors:
            return None
        import matplotlib

        matplotlib.use("Agg", force=True)
        import matplotlib.pyplot as plt  # imported lazily for headless safety

        self.run_dir.mkdir(parents=True, exist_ok=True)
        fig, ax = plt.subplots()
        ax.semilogy(self.iterations, self.errors, label=f"{options.strategy} batch MSE")
        if options.error_threshold is not None:
            ax.axhline(options.error_threshold, linestyle="--", color="tab:green", label="threshold")
        ax.axvline(options.max_iterations, linestyle=":", color="tab:red", label="iteration cap")
        marker = "o" if result.reached_threshold else "x"
        ax.plot([result.iterations], [result.final_error], marker=marker, color="black")
        ax.set_xlabel("Iteration")
        ax.set_ylabel("Batch MSE")
        ax.set_xlim(0, max(options.max_iterations, result.iterations) * 1.02)
        ax.legend()
        plot_path = self.run_dir / "error.png"
        fig.savefig(plot_path)
        plt.close(fig)
        return plot_path

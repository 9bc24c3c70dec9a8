"""Headless-safe plotting adapters."""

from __future__ import annotations

from pathlib import Path
from typing import List, Sequence, Tuple

from ..core.types import LossGrid


def _pyplot():
    import matplotlib

    matplotlib.use("Agg", force=True)
    import matplotlib.pyplot as plt  # imported lazily for headless safety

    return plt


class PlotAdapter:
    """Collect per-step losses and optionally emit a loss curve."""

    def __init__(self, run_dir: str | Path, enable_plots: bool = False):
        self.enable_plots = enable_plots
        self.run_dir = Path(run_dir)
        self._history: List[Tuple[int, float]] = []
        if self.enable_plots:
            self.run_dir.mkdir(parents=True, exist_ok=True)

    def on_step(self, step: int, metrics):
        if not self.enable_plots:
            return
        self._history.append((step, float(metrics.get("loss", 0.0))))

    def close(self) -> str | None:
        if not self.enable_plots or not self._history:
            return None
        plt = _pyplot()
        steps, losses = zip(*self._history)
        fig, ax = plt.subplots()
        ax.plot(steps, losses)
        ax.set_xlabel("Step")
        ax.set_ylabel("Loss")
        ax.set_title("Training Curve")
        plot_path = self.run_dir / "loss.png"
        fig.savefig(plot_path)
        plt.close(fig)
        return str(plot_path)

    __call__ = on_step


def plot_loss_grid(
    grid: LossGrid,
    path: str | Path,
    trajectory: Sequence[Tuple[float, float]] = (),
    levels: int = 30,
) -> str:
    """Contour the loss surface and overlay the descent path, if given."""

    plt = _pyplot()
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    xs, ys = grid.axis_values(0), grid.axis_values(1)
    # as_array is indexed [i, j] = [axis-1, axis-2]; contour wants rows along y
    fig, ax = plt.subplots()
    contour = ax.contour(xs, ys, grid.as_array().T, levels=levels)
    fig.colorbar(contour, ax=ax)
    if trajectory:
        px, py = zip(*trajectory)
        ax.plot(px, py, marker=".", color="tab:red", linewidth=1)
    ax.set_xlabel(grid.axes[0])
    ax.set_ylabel(grid.axes[1])
    ax.set_title("Loss Surface")
    fig.savefig(path)
    plt.close(fig)
    return str(path)


__all__ = ["PlotAdapter", "plot_loss_grid"]

"""Loss-curve rendering for training runs."""

from __future__ import annotations

import math
from pathlib import Path
from typing import Mapping, Sequence

import matplotlib

# Non-interactive backend for headless runs.
matplotlib.use("Agg", force=True)
import matplotlib.pyplot as plt  # noqa: E402


def save_loss_curves(
    loss_history: Mapping[str, Sequence[float]],
    *,
    output_path: Path | str,
    best_epoch: int | None = None,
    ylabel: str = "Pairwise loss",
    title: str = "Sampled pairwise loss per epoch",
) -> Path:
    """
    Render per-epoch pairwise loss series to a PNG file.

    Parameters
    ----------
    loss_history:
        Series label -> per-epoch loss, first entry is epoch 1. NaN entries
        (epochs with nothing to score) are drawn as gaps.
    output_path:
        PNG destination; missing parent directories are created.
    best_epoch:
        Optional epoch highlighted with a vertical marker, usually the one the
        early-stopping controller kept.
    """
    series = {
        label: list(values)
        for label, values in loss_history.items()
        if values and not all(math.isnan(v) for v in values)
    }
    if not series:
        raise ValueError("Loss history is empty; nothing to plot.")

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    fig, ax = plt.subplots(figsize=(8, 5))
    for label, values in series.items():
        ax.plot(range(1, len(values) + 1), values, marker="o", label=label)

    if best_epoch is not None:
        ax.axvline(best_epoch, color="grey", linestyle=":", label=f"best epoch ({best_epoch})")

    ax.set_xlabel("Epoch")
    ax.set_ylabel(ylabel)
    ax.set_title(title)
    ax.grid(True, linestyle="--", linewidth=0.5, alpha=0.7)
    ax.legend()

    fig.tight_layout()
    fig.savefig(output_path, dpi=180)
    plt.close(fig)

    return output_path

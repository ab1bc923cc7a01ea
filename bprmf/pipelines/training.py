"""
Training orchestration entry point.

Couples data loading, dataset construction, trainer setup and the epoch loop,
keeping scripts thin while the pieces stay testable on their own.
"""

from __future__ import annotations

import math
import random
import time
from dataclasses import dataclass, field
from itertools import product
from pathlib import Path
from typing import Any, Mapping, Sequence

import numpy as np
import torch
from loguru import logger

from bprmf.data import InteractionData, build_interaction_data, load_interactions
from bprmf.models import BPRConfig, BPRTrainer
from bprmf.reporting import save_loss_curves
from bprmf.utils import clone_config, get_by_dotted_path, set_by_dotted_path


@dataclass
class TrainingHistory:
    train_loss: list[float] = field(default_factory=list)
    epoch_seconds: list[float] = field(default_factory=list)


@dataclass
class TrainingResult:
    config: Mapping[str, Any]
    trainer: BPRTrainer
    data: InteractionData
    history: TrainingHistory
    runtime_seconds: float
    best_loss: float | None
    best_epoch: int | None
    stopped_early: bool = False
    overrides: Mapping[str, Any] | None = None
    loss_plot_path: Path | None = None


@dataclass
class EarlyStoppingController:
    metric: str = "train_loss"
    mode: str = "min"
    patience: int = 3
    min_delta: float = 0.0
    best_value: float | None = None
    best_epoch: int | None = None
    epochs_without_improvement: int = 0

    def update(self, value: float | None, epoch: int) -> bool:
        """Update the controller and return True if training should stop."""
        if value is None or math.isnan(value):
            # Nothing to monitor; disable early stopping behaviour.
            return False

        if self.best_value is None:
            improved = True
        elif self.mode == "max":
            improved = value > (self.best_value + self.min_delta)
        else:
            improved = value < (self.best_value - self.min_delta)

        if improved:
            self.best_value = value
            self.best_epoch = epoch
            self.epochs_without_improvement = 0
            return False

        self.epochs_without_improvement += 1
        return self.epochs_without_improvement >= max(self.patience, 1)


def _seed_everything(seed: int) -> torch.Generator:
    random.seed(seed)
    np.random.seed(seed)
    torch.manual_seed(seed)
    return torch.Generator().manual_seed(seed)


def _load_interaction_data(data_config: Mapping[str, Any]) -> InteractionData:
    data_dir = Path(data_config.get("root", "data"))
    user_col = str(data_config.get("user_col", "user_id"))
    item_col = str(data_config.get("item_col", "item_id"))

    logger.info("Loading interactions from {}", data_dir)
    frame = load_interactions(
        data_dir,
        filename=data_config.get("interactions_file"),
        user_col=user_col,
        item_col=item_col,
        limit=data_config.get("interactions_limit"),
    )
    return build_interaction_data(
        frame,
        user_col=user_col,
        item_col=item_col,
        rating_col=data_config.get("rating_col"),
        min_rating=data_config.get("min_rating"),
        min_user_interactions=int(data_config.get("min_user_interactions", 0)),
        min_item_interactions=int(data_config.get("min_item_interactions", 0)),
    )


def _run_single_experiment(
    config: Mapping[str, Any],
    data: InteractionData | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> TrainingResult:
    config = dict(config)
    experiment_cfg = dict(config.get("experiment", {}) or {})
    experiment_name = str(experiment_cfg.get("name", "experiment"))
    generator = None
    if "seed" in experiment_cfg:
        generator = _seed_everything(int(experiment_cfg["seed"]))

    start_time = time.time()

    if data is None:
        data = _load_interaction_data(dict(config.get("data", {}) or {}))

    logger.debug(
        "Interaction data summary | users={} items={} interactions={}",
        data.num_users,
        data.num_items,
        data.num_interactions,
    )

    bpr_config = BPRConfig.from_mapping(config)
    logger.info("BPR configuration [{}] | {}", experiment_name, bpr_config.describe())

    training_cfg = dict(config.get("training", {}) or {})
    num_epochs = int(training_cfg.get("num_epochs", 10))
    loss_sample_size = training_cfg.get("loss_sample_size")
    if loss_sample_size is not None:
        loss_sample_size = int(loss_sample_size)

    early_stopping_cfg = training_cfg.get("early_stopping")
    controller: EarlyStoppingController | None = None
    if early_stopping_cfg:
        controller = EarlyStoppingController(
            patience=int(early_stopping_cfg.get("patience", 3)),
            min_delta=float(early_stopping_cfg.get("min_delta", 0.0)),
        )

    trainer = BPRTrainer(bpr_config, generator=generator)
    history = TrainingHistory()
    stopped_early = False
    if data.num_interactions == 0:
        # An empty item universe cannot be reset or sampled from.
        logger.warning("No training interactions available; exiting early.")
        num_epochs = 0
    else:
        trainer.reset(data)

    for epoch in range(1, num_epochs + 1):
        epoch_start = time.time()
        trainer.train_one_iteration(data)
        elapsed = time.time() - epoch_start

        avg_loss = trainer.estimate_pairwise_loss(data, max_pairs=loss_sample_size)
        history.train_loss.append(float(avg_loss))
        history.epoch_seconds.append(elapsed)
        logger.info(
            "Epoch {:03d}/{:03d} | train_loss={:.4f} | {:.2f}s",
            epoch,
            num_epochs,
            avg_loss,
            elapsed,
        )

        if controller is not None and controller.update(avg_loss, epoch):
            logger.info(
                "Early stopping at epoch {} (best train_loss={:.4f} at epoch {}).",
                epoch,
                controller.best_value,
                controller.best_epoch,
            )
            stopped_early = True
            break

    if controller is not None:
        best_loss, best_epoch = controller.best_value, controller.best_epoch
    else:
        finite = [(loss, idx + 1) for idx, loss in enumerate(history.train_loss) if not math.isnan(loss)]
        best_loss, best_epoch = min(finite) if finite else (None, None)

    loss_plot_path: Path | None = None
    reporting_cfg = dict(config.get("reporting", {}) or {})
    loss_plot = reporting_cfg.get("loss_plot")
    if loss_plot and history.train_loss:
        try:
            loss_plot_path = save_loss_curves(
                {"Train": history.train_loss},
                best_epoch=best_epoch,
                output_path=Path(str(loss_plot).format(experiment=experiment_name)),
            )
            logger.info("Saved loss curve to {}", loss_plot_path)
        except ValueError as exc:
            logger.warning("Skipping loss curve: {}", exc)

    return TrainingResult(
        config=config,
        trainer=trainer,
        data=data,
        history=history,
        runtime_seconds=time.time() - start_time,
        best_loss=best_loss,
        best_epoch=best_epoch,
        stopped_early=stopped_early,
        overrides=overrides,
        loss_plot_path=loss_plot_path,
    )


def _run_experiment_grid(
    config: Mapping[str, Any],
    grid: Mapping[str, Sequence[Any]],
    data: InteractionData | None = None,
) -> list[TrainingResult]:
    if not grid:
        return [_run_single_experiment(config, data)]

    if data is None:
        # Load once; every sweep point trains on the same interactions.
        data = _load_interaction_data(dict(config.get("data", {}) or {}))

    base_name = str(get_by_dotted_path(config, "experiment.name", "experiment"))
    keys = list(grid.keys())
    values_product = list(product(*[grid[key] for key in keys]))
    results: list[TrainingResult] = []

    for idx, combination in enumerate(values_product):
        overrides = dict(zip(keys, combination))
        run_config = clone_config(config)
        for key, value in overrides.items():
            set_by_dotted_path(run_config, key, value)
        set_by_dotted_path(run_config, "experiment.name", f"{base_name}_sweep{idx:02d}")
        result = _run_single_experiment(run_config, data, overrides=overrides)
        results.append(result)

    return results


def run_training(
    config: Mapping[str, Any],
    data: InteractionData | None = None,
) -> list[TrainingResult] | TrainingResult:
    """
    Train one model, or one per point of `experiment.grid`.

    Parameters
    ----------
    config:
        Nested run configuration (`experiment`, `data`, `model`, `training`,
        `reporting`).
    data:
        Pre-built interactions. When omitted they are loaded from the `data`
        section.
    """
    grid = get_by_dotted_path(config, "experiment.grid") or {}

    if grid:
        results = _run_experiment_grid(config, grid, data)
    else:
        results = [_run_single_experiment(config, data)]

    if len(results) == 1:
        return results[0]
    return results

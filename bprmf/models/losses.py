"""
Pairwise loss and regularisation strategies.

A loss maps the margin `m = score(u, i) - score(u, j)` and a label to a loss
value and to its derivative with respect to the margin. The trainer subtracts
`learn_rate * gradient`, so every gradient here points uphill on the loss.
Penalties supply the derivative of the regulariser for a parameter tensor.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Protocol

import numpy as np
import torch


class PairwiseLoss(Protocol):
    loss_type: str

    def value(self, margin: float, label: float) -> float:
        ...

    def gradient(self, margin: float, label: float) -> float:
        ...


class Penalty(Protocol):
    penalty_type: str

    def gradient(self, param: torch.Tensor) -> torch.Tensor:
        ...


def _sigmoid(x: float) -> float:
    if x >= 0:
        return 1.0 / (1.0 + math.exp(-x))
    z = math.exp(x)
    return z / (1.0 + z)


def _softplus(x: float) -> float:
    # log(1 + exp(x)) without overflow for large x
    if x > 0:
        return x + math.log1p(math.exp(-x))
    return math.log1p(math.exp(x))


@dataclass(frozen=True)
class LogLoss:
    """Logistic loss `log(1 + exp(-y m))`, the BPR objective."""

    loss_type: str = "LOG"

    def value(self, margin: float, label: float) -> float:
        return _softplus(-label * margin)

    def gradient(self, margin: float, label: float) -> float:
        return -label * _sigmoid(-label * margin)


@dataclass(frozen=True)
class SquaredLoss:
    loss_type: str = "SQUARED"

    def value(self, margin: float, label: float) -> float:
        diff = margin - label
        return 0.5 * diff * diff

    def gradient(self, margin: float, label: float) -> float:
        return margin - label


@dataclass(frozen=True)
class HingeLoss:
    loss_type: str = "HINGE"

    def value(self, margin: float, label: float) -> float:
        return max(0.0, 1.0 - label * margin)

    def gradient(self, margin: float, label: float) -> float:
        return -label if label * margin < 1.0 else 0.0


@dataclass(frozen=True)
class SquaredHingeLoss:
    loss_type: str = "SQUARED_HINGE"

    def value(self, margin: float, label: float) -> float:
        slack = max(0.0, 1.0 - label * margin)
        return 0.5 * slack * slack

    def gradient(self, margin: float, label: float) -> float:
        return -label * max(0.0, 1.0 - label * margin)


@dataclass(frozen=True)
class ExponentialLoss:
    loss_type: str = "EXPONENTIAL"

    def value(self, margin: float, label: float) -> float:
        return float(np.exp(-label * margin))

    def gradient(self, margin: float, label: float) -> float:
        return -label * float(np.exp(-label * margin))


@dataclass(frozen=True)
class L2Penalty:
    """Squared L2 norm; derivative `2 * theta`."""

    penalty_type: str = "L2"

    def gradient(self, param: torch.Tensor) -> torch.Tensor:
        return 2.0 * param


@dataclass(frozen=True)
class L1Penalty:
    """L1 norm; subgradient `sign(theta)` (zero at zero)."""

    penalty_type: str = "L1"

    def gradient(self, param: torch.Tensor) -> torch.Tensor:
        return torch.sign(param)


_LOSSES: dict[str, Callable[[], PairwiseLoss]] = {
    "LOG": LogLoss,
    "SQUARED": SquaredLoss,
    "HINGE": HingeLoss,
    "SQUARED_HINGE": SquaredHingeLoss,
    "EXPONENTIAL": ExponentialLoss,
}

_PENALTIES: dict[str, Callable[[], Penalty]] = {
    "L1": L1Penalty,
    "L2": L2Penalty,
}


def available_losses() -> list[str]:
    return sorted(_LOSSES)


def available_penalties() -> list[str]:
    return sorted(_PENALTIES)


def create_loss(loss_type: str) -> PairwiseLoss:
    """Instantiate a loss strategy from its tag (case-insensitive)."""
    key = str(loss_type).upper()
    try:
        return _LOSSES[key]()
    except KeyError as exc:
        raise ValueError(
            f"Unknown loss type '{loss_type}'. Expected one of {available_losses()}."
        ) from exc


def create_penalty(penalty_type: str) -> Penalty:
    """Instantiate a penalty strategy from its tag (case-insensitive)."""
    key = str(penalty_type).upper()
    try:
        return _PENALTIES[key]()
    except KeyError as exc:
        raise ValueError(
            f"Unknown penalty type '{penalty_type}'. Expected one of {available_penalties()}."
        ) from exc

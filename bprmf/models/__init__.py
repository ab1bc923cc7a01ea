"""Parameter store, loss strategies and the pairwise trainer."""

from .bpr import BPRConfig, BPRTrainer  # noqa: F401
from .factorization import ImplicitFactorModel  # noqa: F401
from .losses import (  # noqa: F401
    PairwiseLoss,
    Penalty,
    available_losses,
    available_penalties,
    create_loss,
    create_penalty,
)

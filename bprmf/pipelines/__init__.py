"""Training pipelines."""

from .training import (  # noqa: F401
    EarlyStoppingController,
    TrainingHistory,
    TrainingResult,
    run_training,
)

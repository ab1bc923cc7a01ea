"""Experiment artefact writers."""

from .plots import save_loss_curves  # noqa: F401

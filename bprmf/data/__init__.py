"""Interaction data access, id mapping and negative sampling."""

from .datasets import InteractionData  # noqa: F401
from .indexers import IndexMapping, build_index_mapping  # noqa: F401
from .loaders import load_interactions  # noqa: F401
from .preprocessing import build_interaction_data  # noqa: F401
from .samplers import NegativeSampler, SamplingExhausted  # noqa: F401

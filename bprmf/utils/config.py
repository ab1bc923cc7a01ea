"""Run-configuration helpers: YAML loading and dotted-key overrides."""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Any, Iterable, Mapping, MutableMapping

import yaml


def load_config(config_path: Path) -> Mapping[str, Any]:
    """
    Read a run configuration (`experiment`, `data`, `model`, `training`,
    `reporting` sections) from YAML. An empty file yields an empty mapping.
    """
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with config_path.open("r", encoding="utf-8") as handle:
        return yaml.safe_load(handle) or {}


def clone_config(config: Mapping[str, Any]) -> dict[str, Any]:
    return copy.deepcopy(config)


def set_by_dotted_path(config: MutableMapping[str, Any], dotted_key: str, value: Any) -> None:
    """
    Write `value` at `dotted_key`, creating intermediate sections as needed.
    A non-mapping value sitting on the path is replaced by a new section.

    >>> run = {"training": {"learn_rate": 0.1}}
    >>> set_by_dotted_path(run, "model.num_dim", 32)
    >>> run["model"]
    {'num_dim': 32}
    """
    *parents, leaf = dotted_key.split(".")
    section: MutableMapping[str, Any] = config
    for key in parents:
        child = section.get(key)
        if not isinstance(child, MutableMapping):
            child = section[key] = {}
        section = child
    section[leaf] = value


def get_by_dotted_path(config: Mapping[str, Any], dotted_key: str, default: Any = None) -> Any:
    """Read the value at `dotted_key`, or `default` when any segment is missing."""
    node: Any = config
    for key in dotted_key.split("."):
        if not isinstance(node, Mapping) or key not in node:
            return default
        node = node[key]
    return node


def parse_override(expression: str) -> tuple[str, Any]:
    """
    Split a `dotted.key=value` override into its key and a YAML-typed value.

    >>> parse_override("training.num_neg=3")
    ('training.num_neg', 3)
    """
    if "=" not in expression:
        raise ValueError(f"Override must look like 'key=value', got '{expression}'")
    key, raw_value = expression.split("=", 1)
    key = key.strip()
    if not key:
        raise ValueError(f"Override is missing a key: '{expression}'")
    return key, yaml.safe_load(raw_value)


def apply_overrides(config: Mapping[str, Any], expressions: Iterable[str]) -> dict[str, Any]:
    """
    Return a copy of `config` with every `key=value` expression applied in
    order; later expressions win. The input mapping is left untouched.
    """
    updated = clone_config(config)
    for expression in expressions:
        key, value = parse_override(expression)
        set_by_dotted_path(updated, key, value)
    return updated

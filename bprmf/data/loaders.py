"""
Typed data loading helpers for interaction logs.

Interaction logs are CSV files with at least a user column and an item column;
an optional rating column can be used to binarise explicit feedback.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import pandas as pd
from loguru import logger


DEFAULT_INTERACTIONS_FILENAME = "interactions.csv"


def _read_csv(
    path: Path, *, dtype: Optional[dict[str, str]] = None, nrows: Optional[int] = None
) -> pd.DataFrame:
    if not path.exists():
        raise FileNotFoundError(f"Expected CSV at {path} but file was not found.")
    return pd.read_csv(path, dtype=dtype, nrows=nrows)


def load_interactions(
    data_dir: Path,
    *,
    filename: str | None = None,
    user_col: str = "user_id",
    item_col: str = "item_id",
    limit: Optional[int] = None,
) -> pd.DataFrame:
    """
    Load and return the user-item interaction records.

    Parameters
    ----------
    data_dir:
        Directory containing the interactions CSV (default: `interactions.csv`).
    user_col, item_col:
        Identifier columns; both are read as strings so numeric-looking ids
        keep leading zeros.
    limit:
        Optional row cap for quick experiments.
    """
    target = data_dir / (filename or DEFAULT_INTERACTIONS_FILENAME)
    frame = _read_csv(
        target,
        dtype={user_col: "string", item_col: "string"},
        nrows=limit,
    )

    missing = {user_col, item_col} - set(frame.columns)
    if missing:
        raise ValueError(
            f"Interactions file {target} is missing required columns: {sorted(missing)}"
        )

    logger.debug("Loaded {} interaction rows from {}", len(frame), target)
    return frame

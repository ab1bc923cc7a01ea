"""
Turn a raw interaction frame into the dense `InteractionData` the trainer consumes.
"""

from __future__ import annotations

from typing import Optional

import pandas as pd
from loguru import logger

from .datasets import InteractionData
from .indexers import build_index_mapping


def _filter_by_frequency(
    interactions: pd.DataFrame,
    *,
    user_col: str,
    item_col: str,
    min_user_interactions: int,
    min_item_interactions: int,
) -> pd.DataFrame:
    # Repeat until stable: dropping items can push users under the threshold and vice versa.
    prev_size = -1
    while prev_size != len(interactions):
        prev_size = len(interactions)
        if min_item_interactions > 0 and not interactions.empty:
            item_counts = interactions[item_col].value_counts()
            valid_items = item_counts[item_counts >= min_item_interactions].index
            interactions = interactions[interactions[item_col].isin(valid_items)]
        if min_user_interactions > 0 and not interactions.empty:
            user_counts = interactions[user_col].value_counts()
            valid_users = user_counts[user_counts >= min_user_interactions].index
            interactions = interactions[interactions[user_col].isin(valid_users)]
        interactions = interactions.reset_index(drop=True)
    return interactions


def build_interaction_data(
    interactions: pd.DataFrame,
    *,
    user_col: str = "user_id",
    item_col: str = "item_id",
    rating_col: Optional[str] = None,
    min_rating: Optional[float] = None,
    min_user_interactions: int = 0,
    min_item_interactions: int = 0,
) -> InteractionData:
    """
    Convert a raw interaction frame into dense per-user rated-item sets.

    Parameters
    ----------
    interactions:
        Frame with at least `user_col` and `item_col`.
    rating_col, min_rating:
        When both are given, rows rated below `min_rating` are dropped so
        explicit ratings become implicit positives.
    min_user_interactions, min_item_interactions:
        Iterative frequency thresholds applied on distinct (user, item) pairs.
    """
    if user_col not in interactions.columns or item_col not in interactions.columns:
        raise ValueError(
            f"Interactions must contain '{user_col}' and '{item_col}' columns."
        )

    frame = interactions.dropna(subset=[user_col, item_col]).copy()

    if rating_col is not None and min_rating is not None:
        if rating_col not in frame.columns:
            raise ValueError(f"Rating column '{rating_col}' not found in interactions.")
        before = len(frame)
        frame = frame[frame[rating_col] >= float(min_rating)]
        logger.info(
            "Dropped {} interactions rated below {}.", before - len(frame), min_rating
        )

    frame = frame[[user_col, item_col]].drop_duplicates().reset_index(drop=True)

    min_user_interactions = max(int(min_user_interactions), 0)
    min_item_interactions = max(int(min_item_interactions), 0)
    if frame.empty:
        logger.warning("No interactions remain after cleaning.")
    elif min_user_interactions > 0 or min_item_interactions > 0:
        before_filter = len(frame)
        frame = _filter_by_frequency(
            frame,
            user_col=user_col,
            item_col=item_col,
            min_user_interactions=min_user_interactions,
            min_item_interactions=min_item_interactions,
        )
        filtered = before_filter - len(frame)
        if filtered > 0:
            logger.info(
                "Filtered {} interactions using min_user_interactions={} and min_item_interactions={}.",
                filtered,
                min_user_interactions,
                min_item_interactions,
            )
        if frame.empty:
            logger.warning(
                "All interactions were filtered out by frequency thresholds (user>={}, item>={}).",
                min_user_interactions,
                min_item_interactions,
            )

    user_mapping = build_index_mapping(frame[user_col])
    item_mapping = build_index_mapping(frame[item_col])

    user_idx = frame[user_col].map(user_mapping.id_to_index).astype("int64")
    item_idx = frame[item_col].map(item_mapping.id_to_index).astype("int64")
    indexed = pd.DataFrame({"user_idx": user_idx, "item_idx": item_idx})

    user_rated_items = {
        int(user): set(map(int, group["item_idx"].tolist()))
        for user, group in indexed.groupby("user_idx")
    }

    return InteractionData(
        num_users=len(user_mapping),
        num_items=len(item_mapping),
        user_rated_items=user_rated_items,
        user_mapping=user_mapping,
        item_mapping=item_mapping,
    )

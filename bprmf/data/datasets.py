"""
In-memory implicit-feedback dataset consumed by the trainer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional

from .indexers import IndexMapping


@dataclass(frozen=True)
class InteractionData:
    """
    Per-user rated-item sets over dense user and item id ranges.

    Parameters
    ----------
    num_users, num_items:
        Sizes of the dense id ranges. Every id referenced by
        `user_rated_items` must fall inside them.
    user_rated_items:
        Mapping from user id to the set of item ids that user interacted with.
        A user inside `[0, num_users)` without an entry is a dataset defect and
        makes the trainer abort.
    user_mapping, item_mapping:
        Optional translation back to raw identifiers.
    """

    num_users: int
    num_items: int
    user_rated_items: dict[int, set[int]]
    user_mapping: Optional[IndexMapping] = field(default=None, compare=False)
    item_mapping: Optional[IndexMapping] = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if self.num_users < 0 or self.num_items < 0:
            raise ValueError("num_users and num_items must be non-negative.")
        for user_id, items in self.user_rated_items.items():
            if not 0 <= user_id < self.num_users:
                raise ValueError(
                    f"User id {user_id} outside [0, {self.num_users})."
                )
            for item_id in items:
                if not 0 <= item_id < self.num_items:
                    raise ValueError(
                        f"Item id {item_id} rated by user {user_id} outside [0, {self.num_items})."
                    )

    @property
    def num_interactions(self) -> int:
        return sum(len(items) for items in self.user_rated_items.values())

    def rated_items(self, user_id: int) -> set[int]:
        """Return the rated set of `user_id`, raising `KeyError` when it was never recorded."""
        try:
            return self.user_rated_items[user_id]
        except KeyError as exc:
            raise KeyError(
                f"User {user_id} has no recorded interaction set; dataset indexing is inconsistent."
            ) from exc

    @classmethod
    def from_pairs(
        cls,
        pairs: Iterable[tuple[int, int]],
        *,
        num_users: int | None = None,
        num_items: int | None = None,
    ) -> "InteractionData":
        """
        Build a dataset from dense `(user_id, item_id)` pairs.

        When the sizes are omitted they are inferred as `max id + 1`. Users
        inside the range that never appear get an empty rated set.
        """
        rated: dict[int, set[int]] = {}
        max_user = -1
        max_item = -1
        for user_id, item_id in pairs:
            user_id = int(user_id)
            item_id = int(item_id)
            rated.setdefault(user_id, set()).add(item_id)
            max_user = max(max_user, user_id)
            max_item = max(max_item, item_id)

        users = max_user + 1 if num_users is None else int(num_users)
        items = max_item + 1 if num_items is None else int(num_items)
        for user_id in range(users):
            rated.setdefault(user_id, set())
        return cls(num_users=users, num_items=items, user_rated_items=rated)

    @classmethod
    def from_rated_items(
        cls,
        rated_items: Mapping[int, Iterable[int]],
        *,
        num_users: int,
        num_items: int,
    ) -> "InteractionData":
        """Build a dataset from an explicit user -> items mapping, keeping absent users absent."""
        return cls(
            num_users=int(num_users),
            num_items=int(num_items),
            user_rated_items={
                int(user_id): set(map(int, items)) for user_id, items in rated_items.items()
            },
        )

"""
Dense id mappings for users and items.

The trainer and the parameter store only ever see contiguous integer ids; this
module keeps the translation back to the raw identifiers found in the source
interaction log.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Hashable, Iterable


@dataclass(frozen=True)
class IndexMapping:
    """Bidirectional mapping between raw identifiers and dense ids `[0, n)`."""

    id_to_index: dict[Hashable, int]
    index_to_id: list[Hashable]

    def __len__(self) -> int:
        return len(self.index_to_id)

    def to_index(self, raw_id: Hashable) -> int:
        try:
            return self.id_to_index[raw_id]
        except KeyError as exc:
            raise KeyError(f"Identifier {raw_id!r} missing from index mapping") from exc

    def to_id(self, index: int) -> Hashable:
        if index < 0 or index >= len(self.index_to_id):
            raise IndexError(
                f"Dense id {index} out of range [0, {len(self.index_to_id)})"
            )
        return self.index_to_id[index]


def build_index_mapping(values: Iterable[Hashable]) -> IndexMapping:
    """
    Assign dense ids in order of first appearance.

    Parameters
    ----------
    values:
        Raw user or item identifiers, duplicates allowed.
    """
    id_to_index: dict[Hashable, int] = {}
    index_to_id: list[Hashable] = []

    for value in values:
        if value not in id_to_index:
            id_to_index[value] = len(index_to_id)
            index_to_id.append(value)

    return IndexMapping(id_to_index=id_to_index, index_to_id=index_to_id)

"""Negative item sampling."""

from __future__ import annotations

from typing import Collection

import torch


DEFAULT_MAX_ATTEMPTS = 1000


class SamplingExhausted(RuntimeError):
    """Raised when no unrated item could be drawn for a user."""


class NegativeSampler:
    """
    Uniform rejection sampler over the item universe.

    Draws an item id from `[0, num_items)` and redraws while it belongs to the
    user's rated set. The expected number of draws is
    `1 / (1 - |rated| / num_items)`, so users who rated nearly every item make
    sampling slow; after `max_attempts` rejected draws `SamplingExhausted` is
    raised instead of looping forever.

    Parameters
    ----------
    num_items:
        Size of the item universe.
    generator:
        Source of randomness. Pass a seeded `torch.Generator` for reproducible
        draws; the default generator is seeded from the global torch state.
    max_attempts:
        Maximum draws per sample before giving up.
    """

    def __init__(
        self,
        num_items: int,
        *,
        generator: torch.Generator | None = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ) -> None:
        if num_items <= 0:
            raise ValueError("num_items must be positive.")
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least one.")
        self.num_items = int(num_items)
        self.max_attempts = int(max_attempts)
        self.generator = generator

    def _draw(self) -> int:
        return int(
            torch.randint(0, self.num_items, (1,), generator=self.generator).item()
        )

    def sample_negative(self, rated_items: Collection[int]) -> int:
        """Return an item id not contained in `rated_items`."""
        if len(rated_items) >= self.num_items:
            raise SamplingExhausted(
                f"Rated set covers all {self.num_items} items; no negative exists."
            )

        for _ in range(self.max_attempts):
            candidate = self._draw()
            if candidate not in rated_items:
                return candidate

        raise SamplingExhausted(
            f"No unrated item found after {self.max_attempts} draws "
            f"({len(rated_items)} of {self.num_items} items rated)."
        )

    def sample_negatives(self, rated_items: Collection[int], count: int) -> list[int]:
        """Draw `count` independent negatives for the same rated set."""
        if count < 0:
            raise ValueError("count must be non-negative.")
        return [self.sample_negative(rated_items) for _ in range(count)]

"""
Parameter store for implicit matrix factorization.

`ImplicitFactorModel` owns the user and item latent matrices, the item bias
vector and, when AdaGrad is enabled, the matching squared-gradient
accumulators. Each tensor is an arena of fixed-size rows addressed by dense
ids; rows are mutated in place by the trainer and the whole set is replaced on
`reset`.
"""

from __future__ import annotations

from typing import Optional

import torch
from torch import nn

from bprmf.data.datasets import InteractionData


class ImplicitFactorModel(nn.Module):
    """
    Latent-factor model scoring `score(u, i) = <w_u, v_i> + b_i`.

    Parameters
    ----------
    num_dim:
        Latent dimension shared by every user and item row.
    using_bias_term:
        Include the per-item bias in predictions.
    using_adagrad:
        Allocate squared-gradient accumulators on reset.
    init_std:
        Standard deviation of the normal initialisation of latent rows.
    dtype:
        Floating point type of every tensor. Double precision keeps long
        AdaGrad runs stable.
    """

    def __init__(
        self,
        *,
        num_dim: int,
        using_bias_term: bool = True,
        using_adagrad: bool = True,
        init_std: float = 0.01,
        dtype: torch.dtype = torch.float64,
    ) -> None:
        super().__init__()
        if num_dim <= 0:
            raise ValueError("num_dim must be positive.")
        if init_std < 0:
            raise ValueError("init_std must be non-negative.")
        self.num_dim = int(num_dim)
        self.using_bias_term = bool(using_bias_term)
        self.using_adagrad = bool(using_adagrad)
        self.init_std = float(init_std)
        self.dtype = dtype
        self.num_users = 0
        self.num_items = 0

        for name in (
            "user_factors",
            "item_factors",
            "item_bias",
            "user_factors_sq_grad",
            "item_factors_sq_grad",
            "item_bias_sq_grad",
        ):
            self.register_buffer(name, None)

    def reset(
        self, data: InteractionData, *, generator: Optional[torch.Generator] = None
    ) -> None:
        """Allocate and initialise every row for the shapes defined by `data`."""
        self.num_users = int(data.num_users)
        self.num_items = int(data.num_items)
        shape_users = (self.num_users, self.num_dim)
        shape_items = (self.num_items, self.num_dim)

        self.register_buffer(
            "user_factors",
            torch.randn(shape_users, generator=generator, dtype=self.dtype) * self.init_std,
        )
        self.register_buffer(
            "item_factors",
            torch.randn(shape_items, generator=generator, dtype=self.dtype) * self.init_std,
        )
        self.register_buffer("item_bias", torch.zeros(self.num_items, dtype=self.dtype))

        if self.using_adagrad:
            self.register_buffer("user_factors_sq_grad", torch.zeros(shape_users, dtype=self.dtype))
            self.register_buffer("item_factors_sq_grad", torch.zeros(shape_items, dtype=self.dtype))
            self.register_buffer("item_bias_sq_grad", torch.zeros(self.num_items, dtype=self.dtype))
        else:
            self.register_buffer("user_factors_sq_grad", None)
            self.register_buffer("item_factors_sq_grad", None)
            self.register_buffer("item_bias_sq_grad", None)

    @property
    def is_initialised(self) -> bool:
        return self.user_factors is not None

    def check_user(self, user_id: int) -> None:
        if not 0 <= user_id < self.num_users:
            raise IndexError(f"User id {user_id} outside [0, {self.num_users}).")

    def check_item(self, item_id: int) -> None:
        if not 0 <= item_id < self.num_items:
            raise IndexError(f"Item id {item_id} outside [0, {self.num_items}).")

    def predict(self, user_id: int, item_id: int) -> float:
        """Score a single (user, item) pair."""
        if not self.is_initialised:
            raise RuntimeError("Model has not been reset on a dataset yet.")
        self.check_user(user_id)
        self.check_item(item_id)
        score = torch.dot(self.user_factors[user_id], self.item_factors[item_id])
        if self.using_bias_term:
            score = score + self.item_bias[item_id]
        return float(score.item())

    def score_items(self, user_id: int) -> torch.Tensor:
        """Return the scores of every item for one user."""
        if not self.is_initialised:
            raise RuntimeError("Model has not been reset on a dataset yet.")
        self.check_user(user_id)
        scores = self.item_factors @ self.user_factors[user_id]
        if self.using_bias_term:
            scores = scores + self.item_bias
        return scores

    def forward(self, user_indices: torch.Tensor, item_indices: torch.Tensor) -> torch.Tensor:
        """Vectorised scores for aligned user and item index tensors."""
        if not self.is_initialised:
            raise RuntimeError("Model has not been reset on a dataset yet.")
        if user_indices.dtype != torch.long or item_indices.dtype != torch.long:
            raise ValueError("Indices must be torch.long tensors.")
        if user_indices.numel() and (
            int(user_indices.min()) < 0 or int(user_indices.max()) >= self.num_users
        ):
            raise IndexError("User indices out of range.")
        if item_indices.numel() and (
            int(item_indices.min()) < 0 or int(item_indices.max()) >= self.num_items
        ):
            raise IndexError("Item indices out of range.")
        scores = (self.user_factors[user_indices] * self.item_factors[item_indices]).sum(dim=-1)
        if self.using_bias_term:
            scores = scores + self.item_bias[item_indices]
        return scores

"""
Bayesian personalised ranking trainer.

For every user, every rated item `i` is paired with `num_neg` sampled unrated
items `j`, and each pair takes one stochastic gradient step on
`loss(score(u, i) - score(u, j), 1.0)` plus a norm penalty. With AdaGrad
enabled, every touched coordinate is rescaled by its own accumulated squared
gradient history before the step.

The trainer is single-threaded. Updates for different users touch shared item
rows, so parallelising the epoch needs row-level locking or sharding.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from typing import Any, Mapping, Optional

import torch

from bprmf.data.datasets import InteractionData
from bprmf.data.samplers import DEFAULT_MAX_ATTEMPTS, NegativeSampler
from .factorization import ImplicitFactorModel
from .losses import PairwiseLoss, Penalty, create_loss, create_penalty


@dataclass(frozen=True)
class BPRConfig:
    """Static hyper-parameters of one training run."""

    learn_rate: float = 0.1
    beta: float = 1.0
    lambda_: float = 0.01
    loss: str = "LOG"
    penalty: str = "L2"
    num_dim: int = 10
    num_neg: int = 5
    using_bias_term: bool = True
    using_adagrad: bool = True
    init_std: float = 0.01
    max_sampling_attempts: int = DEFAULT_MAX_ATTEMPTS

    def __post_init__(self) -> None:
        if not self.learn_rate > 0:
            raise ValueError("learn_rate must be positive.")
        if self.lambda_ < 0:
            raise ValueError("lambda must be non-negative.")
        if self.num_dim < 1:
            raise ValueError("num_dim must be a positive integer.")
        if self.num_neg < 0:
            raise ValueError("num_neg must be non-negative.")
        if self.max_sampling_attempts < 1:
            raise ValueError("max_sampling_attempts must be at least one.")
        # Fail fast on unknown tags.
        create_loss(self.loss)
        create_penalty(self.penalty)

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any]) -> "BPRConfig":
        """
        Build a config from the `model` and `training` sections of a run config.

        Keys missing from both sections keep their defaults. `lambda` is
        accepted as an alias of `lambda_`.
        """
        merged: dict[str, Any] = {}
        merged.update(dict(config.get("model", {}) or {}))
        merged.update(dict(config.get("training", {}) or {}))
        if "lambda" in merged:
            merged["lambda_"] = merged.pop("lambda")

        defaults = cls()
        kwargs: dict[str, Any] = {}
        for name, default in asdict(defaults).items():
            if name not in merged or merged[name] is None:
                continue
            value = merged[name]
            if isinstance(default, bool):
                kwargs[name] = bool(value)
            elif isinstance(default, int):
                kwargs[name] = int(value)
            elif isinstance(default, float):
                kwargs[name] = float(value)
            else:
                kwargs[name] = str(value)
        return cls(**kwargs)

    def describe(self) -> str:
        return (
            f"{{lambda: {self.lambda_}}}, {{learn_rate: {self.learn_rate}}}, "
            f"{{beta: {self.beta}}}, {{loss: {self.loss}}}, {{penalty: {self.penalty}}}, "
            f"{{dim: {self.num_dim}}}, {{bias_term: {self.using_bias_term}}}, "
            f"{{adagrad: {self.using_adagrad}}}, {{num_neg: {self.num_neg}}}"
        )


class BPRTrainer:
    """
    Pairwise SGD trainer over an `ImplicitFactorModel`.

    Parameters
    ----------
    config:
        Immutable hyper-parameters.
    generator:
        Random source for initialisation and negative sampling. Seed it for
        reproducible runs.
    """

    def __init__(
        self,
        config: BPRConfig,
        *,
        generator: Optional[torch.Generator] = None,
    ) -> None:
        self.config = config
        self.generator = generator
        self.loss: PairwiseLoss = create_loss(config.loss)
        self.penalty: Penalty = create_penalty(config.penalty)
        self.model = ImplicitFactorModel(
            num_dim=config.num_dim,
            using_bias_term=config.using_bias_term,
            using_adagrad=config.using_adagrad,
            init_std=config.init_std,
        )
        self.sampler: Optional[NegativeSampler] = None

    def reset(self, data: InteractionData) -> None:
        """Reinitialise all parameters and the sampler for `data`."""
        self.model.reset(data, generator=self.generator)
        self.sampler = NegativeSampler(
            data.num_items,
            generator=self.generator,
            max_attempts=self.config.max_sampling_attempts,
        )

    def _check_compatible(self, data: InteractionData) -> NegativeSampler:
        if self.sampler is None or not self.model.is_initialised:
            raise RuntimeError("Call reset(data) before training.")
        if data.num_users != self.model.num_users or data.num_items != self.model.num_items:
            raise ValueError(
                f"Dataset shape ({data.num_users} users, {data.num_items} items) does not match "
                f"the model ({self.model.num_users} users, {self.model.num_items} items)."
            )
        return self.sampler

    def train_one_iteration(self, data: InteractionData) -> None:
        """Run one sweep over every user's rated items."""
        sampler = self._check_compatible(data)
        for uid in range(data.num_users):
            rated = data.rated_items(uid)
            for iid in rated:
                for jid in sampler.sample_negatives(rated, self.config.num_neg):
                    self.train_one_pair(uid, iid, jid, 1.0)

    def train_one_pair(self, uid: int, iid: int, jid: int, label: float = 1.0) -> None:
        """Apply one pairwise update preferring item `iid` over `jid` for user `uid`."""
        model = self.model
        cfg = self.config
        lam = cfg.lambda_

        margin = model.predict(uid, iid) - model.predict(uid, jid)
        grad = self.loss.gradient(margin, label)

        w_u = model.user_factors[uid]
        v_i = model.item_factors[iid]
        v_j = model.item_factors[jid]

        # Every gradient is taken from pre-update values.
        uv_grad = grad * (v_i - v_j) + lam * self.penalty.gradient(w_u)
        iv_grad = grad * w_u + lam * self.penalty.gradient(v_i)
        jv_grad = -grad * w_u + lam * self.penalty.gradient(v_j)

        if cfg.using_bias_term:
            ib_grad = grad + lam * self.penalty.gradient(model.item_bias[iid])
            jb_grad = -grad + lam * self.penalty.gradient(model.item_bias[jid])

        if cfg.using_adagrad:
            if cfg.using_bias_term:
                model.item_bias_sq_grad[iid] += ib_grad * ib_grad
                model.item_bias_sq_grad[jid] += jb_grad * jb_grad
                ib_grad = ib_grad / (cfg.beta + torch.sqrt(model.item_bias_sq_grad[iid]))
                jb_grad = jb_grad / (cfg.beta + torch.sqrt(model.item_bias_sq_grad[jid]))
            model.user_factors_sq_grad[uid] += uv_grad * uv_grad
            model.item_factors_sq_grad[iid] += iv_grad * iv_grad
            model.item_factors_sq_grad[jid] += jv_grad * jv_grad
            uv_grad = uv_grad / (cfg.beta + torch.sqrt(model.user_factors_sq_grad[uid]))
            iv_grad = iv_grad / (cfg.beta + torch.sqrt(model.item_factors_sq_grad[iid]))
            jv_grad = jv_grad / (cfg.beta + torch.sqrt(model.item_factors_sq_grad[jid]))

        if cfg.using_bias_term:
            model.item_bias[iid] -= cfg.learn_rate * ib_grad
            model.item_bias[jid] -= cfg.learn_rate * jb_grad
        model.user_factors[uid] -= cfg.learn_rate * uv_grad
        model.item_factors[iid] -= cfg.learn_rate * iv_grad
        model.item_factors[jid] -= cfg.learn_rate * jv_grad

    def estimate_pairwise_loss(
        self, data: InteractionData, *, max_pairs: Optional[int] = None
    ) -> float:
        """
        Mean pairwise loss over one sampled negative per (user, rated item).

        Users are visited in id order and sampling stops after `max_pairs`
        pairs; the pairs are then scored in one batch. Returns `nan` when there
        is nothing to score.
        """
        sampler = self._check_compatible(data)
        users: list[int] = []
        positives: list[int] = []
        negatives: list[int] = []
        for uid in range(data.num_users):
            rated = data.rated_items(uid)
            for iid in rated:
                if max_pairs is not None and len(users) >= max_pairs:
                    break
                users.append(uid)
                positives.append(iid)
                negatives.append(sampler.sample_negative(rated))

        if not users:
            return math.nan

        user_index = torch.tensor(users, dtype=torch.long)
        margins = self.model(user_index, torch.tensor(positives, dtype=torch.long)) - self.model(
            user_index, torch.tensor(negatives, dtype=torch.long)
        )
        losses = [self.loss.value(float(margin), 1.0) for margin in margins.tolist()]
        return sum(losses) / len(losses)

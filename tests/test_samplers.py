import pytest
import torch

from bprmf.data import NegativeSampler, SamplingExhausted


def test_sample_negative_never_returns_rated_item():
    sampler = NegativeSampler(10, generator=torch.Generator().manual_seed(0))
    rated = {0, 2, 3, 5, 7, 9}

    draws = [sampler.sample_negative(rated) for _ in range(500)]

    assert all(item not in rated for item in draws)
    assert all(0 <= item < 10 for item in draws)
    assert set(draws) == {1, 4, 6, 8}


def test_sample_negatives_is_reproducible_with_seed():
    first = NegativeSampler(50, generator=torch.Generator().manual_seed(7))
    second = NegativeSampler(50, generator=torch.Generator().manual_seed(7))

    assert first.sample_negatives({1, 2}, 20) == second.sample_negatives({1, 2}, 20)
    assert first.sample_negatives({1}, 0) == []


def test_saturated_rated_set_raises():
    sampler = NegativeSampler(3)

    with pytest.raises(SamplingExhausted):
        sampler.sample_negative({0, 1, 2})


def test_retry_cap_raises_instead_of_looping():
    sampler = NegativeSampler(
        1000, generator=torch.Generator().manual_seed(0), max_attempts=1
    )
    rated = set(range(999))

    with pytest.raises(SamplingExhausted):
        # 999 of 1000 items are rated; a single draw per sample fails almost surely.
        for _ in range(20):
            sampler.sample_negative(rated)


def test_invalid_arguments():
    with pytest.raises(ValueError):
        NegativeSampler(0)
    with pytest.raises(ValueError):
        NegativeSampler(5, max_attempts=0)

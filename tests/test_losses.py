import math

import pytest
import torch

from bprmf.models import available_losses, create_loss, create_penalty


@pytest.mark.parametrize("loss_type", ["LOG", "SQUARED", "HINGE", "SQUARED_HINGE", "EXPONENTIAL"])
@pytest.mark.parametrize("margin", [-1.3, 0.4, 2.1])
def test_gradient_matches_finite_difference(loss_type, margin):
    loss = create_loss(loss_type)
    eps = 1e-6

    numeric = (loss.value(margin + eps, 1.0) - loss.value(margin - eps, 1.0)) / (2 * eps)

    assert loss.gradient(margin, 1.0) == pytest.approx(numeric, rel=1e-4, abs=1e-6)


def test_log_loss_values():
    loss = create_loss("log")

    assert loss.loss_type == "LOG"
    assert loss.value(0.0, 1.0) == pytest.approx(math.log(2.0))
    assert loss.gradient(0.0, 1.0) == pytest.approx(-0.5)
    # Stable for large margins in either direction.
    assert loss.value(1000.0, 1.0) == pytest.approx(0.0, abs=1e-12)
    assert loss.value(-1000.0, 1.0) == pytest.approx(1000.0)
    assert loss.gradient(-1000.0, 1.0) == pytest.approx(-1.0)


def test_monotone_losses_have_non_positive_gradient_for_positive_label():
    for loss_type in ["LOG", "HINGE", "SQUARED_HINGE", "EXPONENTIAL"]:
        loss = create_loss(loss_type)
        for margin in [-3.0, -0.5, 0.0, 0.5, 3.0]:
            assert loss.gradient(margin, 1.0) <= 0.0


def test_penalties():
    param = torch.tensor([-2.0, 0.0, 3.0])

    assert torch.equal(create_penalty("L2").gradient(param), torch.tensor([-4.0, 0.0, 6.0]))
    assert torch.equal(create_penalty("l1").gradient(param), torch.tensor([-1.0, 0.0, 1.0]))
    assert create_penalty("L2").penalty_type == "L2"


def test_unknown_tags_raise():
    assert "LOG" in available_losses()
    with pytest.raises(ValueError):
        create_loss("CROSS")
    with pytest.raises(ValueError):
        create_penalty("L3")

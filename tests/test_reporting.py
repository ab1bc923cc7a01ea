import math

import pytest

from bprmf.reporting import save_loss_curves


def test_save_loss_curves_writes_png(tmp_path):
    path = save_loss_curves(
        {"Train": [0.69, 0.5, 0.3], "Sweep": [0.7, math.nan, 0.4]},
        output_path=tmp_path / "nested" / "loss.png",
    )

    assert path.exists()
    assert path.read_bytes()[:8] == b"\x89PNG\r\n\x1a\n"


def test_save_loss_curves_rejects_empty_history(tmp_path):
    with pytest.raises(ValueError):
        save_loss_curves({"Train": []}, output_path=tmp_path / "loss.png")
    with pytest.raises(ValueError):
        save_loss_curves({"Train": [math.nan]}, output_path=tmp_path / "loss.png")


def test_save_loss_curves_marks_best_epoch(tmp_path):
    path = save_loss_curves(
        {"Train": [0.69, 0.41, 0.45]},
        output_path=tmp_path / "best.png",
        best_epoch=2,
    )

    assert path.exists()
    assert path.stat().st_size > 0

import pytest

from bprmf.data.indexers import IndexMapping, build_index_mapping


def test_build_index_mapping_preserves_order():
    mapping = build_index_mapping(["u7", "u2", "u7", "u9"])

    assert isinstance(mapping, IndexMapping)
    assert len(mapping) == 3
    assert mapping.index_to_id == ["u7", "u2", "u9"]
    assert mapping.to_index("u2") == 1
    assert mapping.to_id(2) == "u9"


def test_index_mapping_missing_id():
    mapping = build_index_mapping(["x"])

    with pytest.raises(KeyError):
        mapping.to_index("y")


def test_index_mapping_rejects_negative_index():
    mapping = build_index_mapping(["x", "y"])

    with pytest.raises(IndexError):
        mapping.to_id(-1)

"""Tests for the output set: add/update/remove rules and active-index bookkeeping."""

import pytest

from resizeit.errors import OutputIndexError
from resizeit.models import OutputSpec
from resizeit.output_set import OutputSet


def _set_of(*sizes: tuple[int, int], active: int = 0) -> OutputSet:
    return OutputSet([OutputSpec(w, h, "png") for w, h in sizes], active_index=active)


def test_starts_with_one_default_entry():
    outputs = OutputSet()
    assert len(outputs) == 1
    assert outputs.active_index == 0
    assert outputs.active == OutputSpec(512, 512, "png")
    assert not outputs.is_empty


def test_add_output_appends_default_and_activates_it():
    outputs = _set_of((100, 100), (200, 200))
    old_len = len(outputs)

    index = outputs.add_output()

    assert index == old_len
    assert len(outputs) == old_len + 1
    assert outputs.active_index == old_len
    assert outputs[index] == OutputSpec(512, 512, "png")


def test_update_output_replaces_only_given_fields():
    outputs = _set_of((100, 200))

    updated = outputs.update_output(0, width=640)

    assert updated == OutputSpec(640, 200, "png")
    assert outputs[0] == updated
    outputs.update_output(0, format="webp")
    assert outputs[0] == OutputSpec(640, 200, "webp")


def test_update_output_keeps_out_of_range_values_for_later_clamping():
    outputs = OutputSet()
    outputs.update_output(0, width=0, height=9999)
    assert outputs[0].width == 0
    assert outputs[0].height == 9999


def test_update_output_does_not_change_cardinality_or_active():
    outputs = _set_of((1, 1), (2, 2), active=1)
    outputs.update_output(0, height=50)
    assert len(outputs) == 2
    assert outputs.active_index == 1


@pytest.mark.parametrize("index", [-1, 2, 10])
def test_update_output_out_of_range_raises(index):
    outputs = _set_of((1, 1), (2, 2))
    with pytest.raises(OutputIndexError):
        outputs.update_output(index, width=5)


def test_output_index_error_is_an_index_error():
    outputs = OutputSet()
    with pytest.raises(IndexError):
        outputs.update_output(3, width=5)


def test_update_output_rejects_unknown_field():
    outputs = OutputSet()
    with pytest.raises(TypeError):
        outputs.update_output(0, depth=3)


def test_update_output_rejects_unknown_format():
    outputs = OutputSet()
    with pytest.raises(ValueError):
        outputs.update_output(0, format="gif")
    assert outputs[0].format == "png"


@pytest.mark.parametrize("length", [2, 3, 5])
def test_removing_active_entry_repoints_within_bounds(length):
    for active in range(length):
        outputs = _set_of(*[(i + 1, i + 1) for i in range(length)], active=active)

        outputs.remove_output(active)

        assert len(outputs) == length - 1
        assert outputs.active_index == min(active, length - 2)
        assert 0 <= outputs.active_index < len(outputs)


def test_removing_entry_before_active_keeps_index_value():
    outputs = _set_of((1, 1), (2, 2), (3, 3), active=1)

    removed = outputs.remove_output(0)

    assert removed == OutputSpec(1, 1, "png")
    assert outputs.active_index == 1
    assert outputs.active == OutputSpec(3, 3, "png")


def test_removing_last_entry_empties_the_set():
    outputs = OutputSet()

    outputs.remove_output(0)

    assert outputs.is_empty
    assert len(outputs) == 0
    assert outputs.active_index is None
    assert outputs.active is None


def test_add_after_empty_repopulates():
    outputs = OutputSet()
    outputs.remove_output(0)

    index = outputs.add_output()

    assert index == 0
    assert outputs.active_index == 0


def test_remove_out_of_range_raises_and_leaves_set_untouched():
    outputs = _set_of((1, 1), (2, 2), active=1)
    with pytest.raises(OutputIndexError):
        outputs.remove_output(2)
    assert len(outputs) == 2
    assert outputs.active_index == 1


def test_set_active():
    outputs = _set_of((1, 1), (2, 2), (3, 3))
    outputs.set_active(2)
    assert outputs.active == OutputSpec(3, 3, "png")


@pytest.mark.parametrize("index", [-1, 3])
def test_set_active_out_of_range_raises(index):
    outputs = _set_of((1, 1), (2, 2), (3, 3))
    with pytest.raises(OutputIndexError):
        outputs.set_active(index)
    assert outputs.active_index == 0


def test_set_active_on_empty_set_raises():
    outputs = OutputSet([])
    with pytest.raises(OutputIndexError):
        outputs.set_active(0)


def test_payload_preserves_insertion_order():
    outputs = _set_of((300, 200), (100, 100))
    outputs.add_output()
    outputs.update_output(2, format="jpeg")

    assert outputs.to_payload() == [
        {"width": 300, "height": 200, "format": "png"},
        {"width": 100, "height": 100, "format": "png"},
        {"width": 512, "height": 512, "format": "jpeg"},
    ]


def test_from_payload_builds_populated_set():
    outputs = OutputSet.from_payload([
        {"width": 64, "height": 32, "format": "webp"},
        {"width": 10, "height": 20, "format": "jpeg"},
    ])
    assert len(outputs) == 2
    assert outputs.active_index == 0
    assert outputs[1] == OutputSpec(10, 20, "jpeg")


def test_from_payload_rejects_incomplete_entries():
    with pytest.raises(ValueError):
        OutputSet.from_payload([{"width": 64, "format": "png"}])


def test_iteration_is_a_snapshot():
    outputs = _set_of((1, 1), (2, 2))
    seen = []
    for spec in outputs:
        seen.append(spec)
        if len(outputs) < 4:
            outputs.add_output()
    assert seen == [OutputSpec(1, 1, "png"), OutputSpec(2, 2, "png")]


def test_invalid_initial_active_index_rejected():
    with pytest.raises(OutputIndexError):
        OutputSet([OutputSpec()], active_index=1)

import numpy as np

from npzone import CurveBuffer, AttributeAccessor
from npzone import partition_curves, read_split_values
from npzone.partition import curve_offsets, read_partial_modes
from npzone.constants import AttributeOwner, PartialOutputMode


PRIM, DETAIL = AttributeOwner.PRIM, AttributeOwner.DETAIL
REPLACE, MODIFY, REMOVE = (m.code for m in PartialOutputMode)


def test_curve_offsets():
    assert curve_offsets(np.array([3, 2, 4], dtype=np.int64)).tolist() == [0, 3, 5, 9]
    assert curve_offsets(np.zeros(0, dtype=np.int64)).tolist() == [0]

def test_no_split_single_group():
    part = partition_curves([3, 2])

    assert list(part.groups) == [0]
    group = part.groups[0]
    assert group.mode == PartialOutputMode.REPLACE
    assert group.curve_indices == [0, 1]
    assert not part.partial_update
    assert part.start(1) == 3
    assert part.point_count(1) == 2

def test_no_split_ignores_modes():
    part = partition_curves([3, 2], modes=np.array([REMOVE, REMOVE]), mode_owner=PRIM)
    assert part.groups[0].curve_indices == [0, 1]
    assert not part.partial_update

def test_groups_by_key():
    part = partition_curves([1, 1, 1], np.array([4, 7, 4]), PRIM, {4: "a", 7: "b"})

    assert list(part.groups) == [4, 7]
    assert part.groups[4].curve_indices == [0, 2]
    assert part.groups[4].split_value == "a"
    assert part.groups[7].curve_indices == [1]

def test_detail_key():
    part = partition_curves([2, 2], np.array([5]), DETAIL, {5: "5"})
    assert part.groups[5].curve_indices == [0, 1]

def test_remove_after_modify():
    part = partition_curves([2, 2], np.array([0, 0]), PRIM, {0: "a"}, np.array([MODIFY, REMOVE]), PRIM)

    assert part.groups[0].mode == PartialOutputMode.REMOVE
    assert part.groups[0].curve_indices == []
    assert part.partial_update

def test_remove_before_modify():
    part = partition_curves([2, 2], np.array([0, 0]), PRIM, {0: "a"}, np.array([REMOVE, MODIFY]), PRIM)

    assert part.groups[0].mode == PartialOutputMode.REMOVE
    assert part.groups[0].curve_indices == []

def test_offsets_include_removed_curves():
    part = partition_curves([2, 3, 4], np.array([0, 1, 0]), PRIM, {0: "a", 1: "b"}, np.array([REMOVE, REPLACE, REPLACE]), PRIM)

    assert part.groups[1].curve_indices == [1]
    assert part.start(1) == 2
    assert part.start(2) == 5
    assert [g.split_value for g in part.output_groups()] == ["b"]
    assert part.remove_values() == {"a"}
    assert part.modify_values() == {"b"}

def test_modes_are_clamped():
    part = partition_curves([1, 1], np.array([0, 1]), PRIM, {0: "a", 1: "b"}, np.array([9, -3]), PRIM)

    assert part.groups[0].is_remove
    assert part.groups[1].mode == PartialOutputMode.REPLACE

def test_replace_only_is_not_partial():
    part = partition_curves([1, 1], np.array([0, 1]), PRIM, {}, np.array([REPLACE, REPLACE]), PRIM)
    assert not part.partial_update
    assert part.groups[1].split_value == "1"

# ----------------------------------------------------------------------------------------------------
# Read from a part
# ----------------------------------------------------------------------------------------------------

def test_read_string_split_values():
    buf = CurveBuffer([1, 1, 1])
    buf.new_attribute("unreal_split_value", 'PRIM', 'STRING', ["north", "south", "north"])

    keys, owner, values = read_split_values(AttributeAccessor(buf))

    assert keys.tolist() == [0, 1, 0]
    assert owner == PRIM
    assert values == {0: "north", 1: "south"}

def test_read_int_split_values_on_detail():
    buf = CurveBuffer([1, 1])
    buf.new_attribute("unreal_split_value", 'DETAIL', 'INT', [12])

    keys, owner, values = read_split_values(AttributeAccessor(buf))

    assert keys.tolist() == [12]
    assert owner == DETAIL
    assert values == {12: "12"}

def test_read_no_split_values():
    keys, owner, values = read_split_values(AttributeAccessor(CurveBuffer([1])))
    assert keys is None and owner is None and values == {}

def test_read_partial_modes_from_strings():
    buf = CurveBuffer([1, 1, 1])
    buf.new_attribute("unreal_partial_output_mode", 'PRIM', 'STRING', ["modify", "Remove", "2"])

    modes, owner = read_partial_modes(AttributeAccessor(buf))

    assert modes.tolist() == [MODIFY, REMOVE, REMOVE]
    assert owner == PRIM

def test_partition_from_part():
    buf = CurveBuffer([2, 1, 3])
    buf.new_attribute("unreal_split_value", 'PRIM', 'STRING', ["a", "b", "a"])
    buf.new_attribute("unreal_partial_output_mode", 'PRIM', 'INT', [MODIFY, REMOVE, MODIFY])
    acc = AttributeAccessor(buf)

    keys, owner, values = read_split_values(acc)
    modes, mode_owner = read_partial_modes(acc)
    part = partition_curves(acc.curve_counts(), keys, owner, values, modes, mode_owner)

    assert part.partial_update
    assert part.groups[0].curve_indices == [0, 2]
    assert part.groups[1].is_remove
    assert part.point_count(2) == 3

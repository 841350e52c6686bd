import logging

import numpy as np
import pytest

from npzone import ZoneShapeOutput, CurveBuffer, AttributeAccessor, is_part_valid
from npzone.constants import ShapeType, ShapePointType, PartialOutputMode, INHERIT_LANE_PROFILE
from npzone.constants import ATTRIB_OUTPUT_ZONE_SHAPE, ATTRIB_ZONE_SHAPE_TYPE, ATTRIB_ZONE_SHAPE_TAGS
from npzone.constants import ATTRIB_ZONE_LANE_PROFILE, ATTRIB_SPLIT_VALUE, ATTRIB_PARTIAL_OUTPUT_MODE
from npzone.constants import ATTRIB_SPLIT_ACTORS, ATTRIB_ROT
from npzone.errors import StructuralError, TransportError

from conftest import make_part, LANE_CAR, LANE_WALK


class ExtraPointBuffer(CurveBuffer):
    """Buffer declaring more points than its curves hold."""

    extra = 0

    @property
    def point_count(self):
        return int(np.sum(self._counts)) + self.extra


def _split_part(values, modes=None, actors=None):
    part = make_part([1]*len(values))
    part.new_attribute(ATTRIB_SPLIT_VALUE, 'PRIM', 'STRING', values)
    if modes is not None:
        part.new_attribute(ATTRIB_PARTIAL_OUTPUT_MODE, 'PRIM', 'INT', [m.code for m in modes])
    if actors is not None:
        part.new_attribute(ATTRIB_SPLIT_ACTORS, 'PRIM', 'INT', actors)
    return part

def _handles(output):
    return {o.split_value: o.handle for o in output.outputs}

# ----------------------------------------------------------------------------------------------------
# Part validity
# ----------------------------------------------------------------------------------------------------

def test_is_part_valid():
    assert is_part_valid(AttributeAccessor(make_part([2])))
    assert not is_part_valid(AttributeAccessor(make_part([2], zone_shape=False)))

    part = make_part([2], zone_shape=False)
    part.new_attribute(ATTRIB_OUTPUT_ZONE_SHAPE, 'DETAIL', 'INT', [0])
    assert not is_part_valid(AttributeAccessor(part))

    part = make_part([2], zone_shape=False)
    part.new_attribute(ATTRIB_OUTPUT_ZONE_SHAPE, 'DETAIL', 'STRING', ["1"])
    assert not is_part_valid(AttributeAccessor(part))

# ----------------------------------------------------------------------------------------------------
# Decode
# ----------------------------------------------------------------------------------------------------

def test_one_shape_per_curve(registry, graph):
    result = ZoneShapeOutput().update([make_part([3, 2])], registry, graph)

    assert len(result.changed_shapes) == 2
    first, second = result.changed_shapes
    assert len(first.points) == 3
    assert np.allclose(second.positions, [[300, 0, 0], [400, 0, 0]])
    assert first.revision == second.revision == 1
    assert not result.registry_modified
    assert len(graph) == 2

def test_positions_basis(registry, graph):
    part = make_part([2], positions=[[1, 2, 3], [0, 0, 0]])
    shape = ZoneShapeOutput().update([part], registry, graph).changed_shapes[0]
    assert np.allclose(shape.points[0].position, [100, 300, 200])

def test_missing_positions(registry, graph):
    with pytest.raises(StructuralError):
        ZoneShapeOutput().update([CurveBuffer([2])], registry, graph)

def test_curve_counts_mismatch(registry, graph):
    part = make_part([2, 2], cls=ExtraPointBuffer)
    part.extra = 1
    with pytest.raises(StructuralError):
        ZoneShapeOutput().update([part], registry, graph)

def test_failed_run_keeps_previous_shapes(registry, graph):
    output = ZoneShapeOutput()
    shapes = output.update([make_part([2, 2])], registry, graph).changed_shapes
    previous = list(output.outputs)

    bad = make_part([2, 2])
    bad.add_attribute(ATTRIB_ZONE_SHAPE_TAGS, 'PRIM', 'STRING')

    with pytest.raises(TransportError):
        output.update([make_part([3]), bad], registry, graph)

    assert output.outputs == previous
    assert graph.destroyed == []
    assert len(graph) == 2
    assert [shape.revision for shape in shapes] == [1, 1]
    assert len(shapes[0].points) == 2

def test_reused_shape_is_rebuilt(registry, graph):
    output = ZoneShapeOutput()
    shape = output.update([make_part([3])], registry, graph).changed_shapes[0]
    again = output.update([make_part([2])], registry, graph).changed_shapes[0]

    assert again is shape
    assert len(shape.points) == 2
    assert shape.revision == 2

# ----------------------------------------------------------------------------------------------------
# Attributes
# ----------------------------------------------------------------------------------------------------

def test_tags(registry, graph):
    part = make_part([1, 1])
    part.new_attribute(ATTRIB_ZONE_SHAPE_TAGS, 'PRIM', 'STRING', ["Road", "Walk"])

    result = ZoneShapeOutput().update([part], registry, graph)

    assert [shape.tags for shape in result.changed_shapes] == [1, 2]
    assert registry.tag_names(3) == ["Road", "Walk"]
    assert result.registry_modified

def test_tag_array_on_detail(registry, graph):
    part = make_part([1, 1])
    part.new_attribute(ATTRIB_ZONE_SHAPE_TAGS, 'DETAIL', 'STRING_ARRAY', ["Road", "Walk"], counts=[2])

    result = ZoneShapeOutput().update([part], registry, graph)

    assert [shape.tags for shape in result.changed_shapes] == [3, 3]

def test_shape_type_strings(registry, graph):
    part = make_part([1, 1])
    part.new_attribute(ATTRIB_ZONE_SHAPE_TYPE, 'PRIM', 'STRING', ["Polygon", "spline"])

    result = ZoneShapeOutput().update([part], registry, graph)

    assert [shape.shape_type for shape in result.changed_shapes] == [ShapeType.POLYGON, ShapeType.SPLINE]

def test_lane_profiles_are_deduplicated(registry, graph):
    part = make_part([2, 2, 2])
    part.new_attribute(ATTRIB_ZONE_LANE_PROFILE, 'PRIM', 'DICTIONARY_ARRAY', [LANE_CAR, LANE_CAR, LANE_WALK], counts=[1, 1, 1])
    output = ZoneShapeOutput()

    result = output.update([part], registry, graph)

    a, b, c = result.changed_shapes
    assert len(registry.profiles) == 2
    assert a.common_lane_profile == b.common_lane_profile
    assert a.common_lane_profile != c.common_lane_profile
    assert a.get_spline_lane_profile(registry).name.startswith("LP_HE_↑_")
    assert result.registry_modified

    result = output.update([part], registry, graph)

    assert len(registry.profiles) == 2
    assert not result.registry_modified

def test_polygon_point_profiles(registry, graph):
    part = make_part([3])
    part.new_attribute(ATTRIB_ZONE_SHAPE_TYPE, 'PRIM', 'INT', [ShapeType.POLYGON.code])
    part.new_attribute(ATTRIB_ZONE_LANE_PROFILE, 'POINT', 'DICTIONARY_ARRAY', [LANE_CAR, LANE_WALK, LANE_CAR], counts=[1, 1, 1])

    shape = ZoneShapeOutput().update([part], registry, graph).changed_shapes[0]

    assert shape.is_polygon
    assert len(shape.per_point_lane_profiles) == 2
    assert [p.lane_profile for p in shape.points] == [0, 1, 0]
    assert all(p.type == ShapePointType.LANE_PROFILE for p in shape.points)

def test_spline_ignores_point_profiles(registry, graph):
    part = make_part([2])
    part.new_attribute(ATTRIB_ZONE_LANE_PROFILE, 'POINT', 'DICTIONARY_ARRAY', [LANE_CAR, LANE_WALK], counts=[1, 1])

    shape = ZoneShapeOutput().update([part], registry, graph).changed_shapes[0]

    assert shape.per_point_lane_profiles == []
    assert all(p.lane_profile == INHERIT_LANE_PROFILE for p in shape.points)
    assert all(p.type == ShapePointType.SHARP for p in shape.points)

def test_quaternion_rotations(registry, graph):
    part = make_part([2])
    part.new_attribute(ATTRIB_ROT, 'POINT', 'FLOAT', [[0, 0, 0, 1], [0, 0, 0, 1]])

    shape = ZoneShapeOutput().update([part], registry, graph).changed_shapes[0]

    assert np.allclose(shape.rotations, 0)

def test_euler_rotations_on_prim(registry, graph):
    part = make_part([2])
    part.new_attribute(ATTRIB_ROT, 'PRIM', 'FLOAT', [[0, np.pi/2, 0]])

    shape = ZoneShapeOutput().update([part], registry, graph).changed_shapes[0]

    assert np.allclose(shape.rotations, [[0, 0, 90], [0, 0, 90]])

def test_unsupported_rotations_ignored(registry, graph):
    part = make_part([2])
    part.new_attribute(ATTRIB_ROT, 'POINT', 'FLOAT', [[1, 1], [1, 1]])

    shape = ZoneShapeOutput().update([part], registry, graph).changed_shapes[0]

    assert np.allclose(shape.rotations, 0)

def test_properties(registry, graph, caplog):
    part = make_part([2, 1])
    part.new_attribute("unreal_uproperty_PolygonRoutingType", 'PRIM', 'FLOAT', [2, 3])
    part.new_attribute("unreal_uproperty_TangentLength", 'POINT', 'FLOAT', [10, 20, 30])
    part.new_attribute("unreal_uproperty_Unknown", 'DETAIL', 'INT', [1])

    with caplog.at_level(logging.WARNING):
        result = ZoneShapeOutput().update([part], registry, graph)

    first, second = result.changed_shapes
    assert (first.polygon_routing_type, second.polygon_routing_type) == (2, 3)
    assert [p.tangent_length for p in first.points] == [10, 20]
    assert second.points[0].tangent_length == 30

    warnings = [r for r in caplog.records if r.levelno == logging.WARNING and "Unknown" in r.message]
    assert len(warnings) == 1

# ----------------------------------------------------------------------------------------------------
# Split and reuse
# ----------------------------------------------------------------------------------------------------

def test_split_outputs_are_reused(registry, graph):
    output = ZoneShapeOutput()
    output.update([_split_part(["a", "b"])], registry, graph)
    handles = _handles(output)

    output.update([_split_part(["a", "b"])], registry, graph)
    assert _handles(output) == handles
    assert graph.destroyed == []

    output.update([_split_part(["a"])], registry, graph)
    assert _handles(output) == {"a": handles["a"]}
    assert graph.destroyed == [handles["b"]]

def test_partial_update(registry, graph):
    output = ZoneShapeOutput()
    output.update([_split_part(["a", "b", "c"])], registry, graph)
    handles = _handles(output)

    result = output.update([_split_part(["a", "b"], [PartialOutputMode.MODIFY, PartialOutputMode.REMOVE])], registry, graph)

    assert len(result.changed_shapes) == 1
    assert graph.destroyed == [handles["b"]]
    assert _handles(output) == {"a": handles["a"], "c": handles["c"]}

def test_partial_remove_only(registry, graph):
    output = ZoneShapeOutput()
    output.update([_split_part(["a", "b"])], registry, graph)

    result = output.update([_split_part(["a"], [PartialOutputMode.REMOVE])], registry, graph)

    assert result.changed_shapes == []
    assert list(_handles(output)) == ["b"]
    assert len(graph) == 1

def test_split_actors(registry, graph):
    output = ZoneShapeOutput()
    output.update([_split_part(["a", "a", "b"], actors=[1, 0, 0])], registry, graph)

    assert output.collect_split_values() == ({"a"}, set())
    containers = sorted(graph.container(o.handle) for o in output.outputs)
    assert containers == ["", "", "a"]

def test_destroy(registry, graph):
    output = ZoneShapeOutput()
    output.update([make_part([1, 1])], registry, graph)

    output.destroy(graph)

    assert output.outputs == []
    assert len(graph) == 0

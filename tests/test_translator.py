import json

import pytest

from npzone import Translator, RegistryContext, LaneProfile, LaneDesc, ZoneShape
from npzone.constants import LaneDirection, ATTRIB_ZONE_LANE_PROFILE, ATTRIB_ZONE_SHAPE_TAGS

from conftest import make_part, LANE_CAR, LANE_WALK


def _lanes_part():
    part = make_part([2, 2])
    part.new_attribute(ATTRIB_ZONE_LANE_PROFILE, 'PRIM', 'DICTIONARY_ARRAY', [LANE_CAR, LANE_WALK], counts=[1, 1])
    return part


def test_non_zone_shape_parts_are_ignored():
    tr = Translator()
    result = tr.update_output([make_part([2]), make_part([1, 1], zone_shape=False)])
    assert len(result.changed_shapes) == 1
    assert len(tr.graph) == 1

def test_notification():
    tr = Translator()
    assert tr.notification is None

    tr.update_output([])
    assert tr.notification is None

    tr.update_output([make_part([2])])
    assert tr.notification == "pending"

    tr.on_build_done()
    assert tr.notification == "success"

    tr.on_build_cancel()
    assert tr.notification == "success"

    tr.update_output([make_part([2])])
    assert tr.notification == "pending"

    tr.on_build_cancel()
    assert tr.notification == "cancelled"

def test_registry_is_persisted(tmp_path):
    path = tmp_path / "registry.json"
    tr = Translator(registry_path=str(path))

    part = make_part([1])
    part.new_attribute(ATTRIB_ZONE_SHAPE_TAGS, 'PRIM', 'STRING', ["Road"])
    result = tr.update_output([part])

    assert result.registry_modified
    assert json.loads(path.read_text(encoding="utf-8"))['tags'][0] == "Road"

    other = Translator(registry_path=str(path))
    assert other.registry.tag_names(1) == ["Road"]

def test_tag_capacity():
    assert Translator(tag_capacity=4).registry.tag_capacity == 4

def test_cleanup_lane_profiles():
    tr = Translator()
    tr.update_output([_lanes_part()])
    unused = LaneProfile([LaneDesc(100., LaneDirection.NONE, 0)], name="LP_HE_X_1")
    custom = LaneProfile([LaneDesc(100., LaneDirection.NONE, 0)], name="Custom")
    tr.registry.add_profile(unused)
    tr.registry.add_profile(custom)

    assert tr.cleanup_lane_profiles() == 1
    assert len(tr.registry.profiles) == 3
    assert unused not in tr.registry.profiles
    assert not tr.registry.modified

def test_cleanup_after_shapes_removed():
    tr = Translator()
    tr.update_output([_lanes_part()])
    tr.update_output([make_part([2])])

    # The reused shape keeps its profile, the destroyed one releases its own
    assert tr.cleanup_lane_profiles() == 1
    assert len(tr.registry.profiles) == 1

def test_remove_all_lane_profiles():
    tr = Translator()
    tr.update_output([_lanes_part()])
    tr.registry.add_profile(LaneProfile([LaneDesc(100., LaneDirection.NONE, 0)], name="Custom"))

    assert tr.remove_all_lane_profiles() == 2
    assert [p.name for p in tr.registry.profiles] == ["Custom"]

def test_upload_and_destroy():
    tr = Translator()
    shape = ZoneShape()
    tr.update_output([make_part([2])])

    node_id = tr.upload_input([shape])
    assert tr.session.node_exists(node_id)

    tr.destroy()
    assert not tr.session.node_exists(node_id)
    assert len(tr.graph) == 0

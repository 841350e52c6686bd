import json
import logging

import pytest

from npzone import RegistryContext, LaneProfile, LaneDesc
from npzone.constants import LaneDirection, DEFAULT_TAG_MASK


def test_tags_are_allocated_in_first_free_slot():
    registry = RegistryContext(tag_capacity=4)
    masks = [registry.find_or_create_tag(name) for name in ["A", "B", "A", "C"]]

    assert masks == [1, 2, 1, 4]
    assert [info.name for info in registry.tags] == ["A", "B", "C", None]
    assert registry.modified

def test_existing_tag_doesnt_modify():
    registry = RegistryContext(tags=["A"])
    assert registry.find_or_create_tag("A") == 1
    assert not registry.modified

def test_empty_tag_name():
    registry = RegistryContext()
    assert registry.find_or_create_tag("") == 0
    assert not registry.modified

def test_free_slot_after_named_ones():
    registry = RegistryContext(tag_capacity=4, tags=["A", None, "C"])
    assert registry.find_or_create_tag("B") == 2
    assert registry.find_or_create_tag("D") == 8

def test_tag_capacity_exhausted(caplog):
    registry = RegistryContext(tag_capacity=2)
    registry.find_or_create_tag("A")
    registry.find_or_create_tag("B")

    with caplog.at_level(logging.ERROR):
        mask = registry.find_or_create_tag("C")

    assert mask == DEFAULT_TAG_MASK
    assert [info.name for info in registry.tags] == ["A", "B"]
    assert any("'C'" in record.message for record in caplog.records if record.levelno == logging.ERROR)

def test_too_many_initial_tags():
    with pytest.raises(ValueError):
        RegistryContext(tag_capacity=1, tags=["A", "B"])

@pytest.mark.parametrize("capacity", [0, 33, 40])
def test_tag_capacity_bounds(capacity):
    with pytest.raises(ValueError):
        RegistryContext(tag_capacity=capacity)

def test_tag_names_in_slot_order():
    registry = RegistryContext(tags=["A", "B", "C"])
    assert registry.tag_names(0b101) == ["A", "C"]
    assert registry.tag_names(0) == []

# ----------------------------------------------------------------------------------------------------
# Profiles
# ----------------------------------------------------------------------------------------------------

def _profile(name, direction=LaneDirection.FORWARD):
    return LaneProfile([LaneDesc(350., direction, 1)], name=name)

def test_find_profile():
    registry = RegistryContext()
    index = registry.add_profile(_profile("Road"))

    assert index == 0
    assert registry.modified
    assert registry.find_profile_index("Road") == 0
    assert registry.find_profile_index("Walk") == -1
    assert registry.find_profile(registry.profiles[0].ref) is registry.profiles[0]
    assert registry.is_valid_profile_index(0)
    assert not registry.is_valid_profile_index(1)

def test_cleanup_lane_profiles():
    used   = _profile("LP_HE_↑_1")
    unused = _profile("LP_HE_↓_2", LaneDirection.BACKWARD)
    custom = _profile("Custom")
    bare   = _profile("LP_HE_")
    registry = RegistryContext(profiles=[used, unused, custom, bare])

    removed = registry.cleanup_lane_profiles({used.id})

    assert removed == 1
    assert [p.name for p in registry.profiles] == ["LP_HE_↑_1", "Custom", "LP_HE_"]
    assert registry.modified

def test_remove_all_lane_profiles():
    registry = RegistryContext(profiles=[_profile("LP_HE_↑_1"), _profile("Custom"), _profile("LP_HE_")])

    assert registry.remove_all_lane_profiles() == 2
    assert [p.name for p in registry.profiles] == ["Custom"]

def test_nothing_to_remove_doesnt_modify():
    registry = RegistryContext(profiles=[_profile("Custom")])
    assert registry.remove_all_lane_profiles() == 0
    assert not registry.modified

# ----------------------------------------------------------------------------------------------------
# Persistence
# ----------------------------------------------------------------------------------------------------

def test_save_and_load(tmp_path):
    path = str(tmp_path / "zone" / "registry.json")
    registry = RegistryContext(tag_capacity=8, tags=["A", "B"], path=path)
    registry.add_profile(_profile("Road"))
    registry.save()

    loaded = RegistryContext.load(path)
    assert loaded.tag_capacity == 8
    assert loaded.tag_names(3) == ["A", "B"]
    assert loaded.profiles[0].name == "Road"
    assert loaded.profiles[0].id == registry.profiles[0].id
    assert loaded.profiles[0].lanes == registry.profiles[0].lanes
    assert not loaded.modified

def test_load_missing_file(tmp_path):
    path = str(tmp_path / "missing.json")
    registry = RegistryContext.load(path)
    assert registry.path == path
    assert registry.profiles == []

def test_persist_writes_once(tmp_path):
    path = tmp_path / "registry.json"
    registry = RegistryContext(path=str(path))

    assert not registry.persist()
    assert not path.exists()

    registry.find_or_create_tag("A")
    assert registry.persist()
    assert json.loads(path.read_text(encoding="utf-8"))['tags'][0] == "A"
    assert not registry.persist()

def test_persist_without_path():
    registry = RegistryContext()
    registry.find_or_create_tag("A")
    assert registry.persist()
    assert not registry.modified

import json

import numpy as np
import pytest

from npzone import CurveBuffer, RegistryContext, SceneGraph, MemorySession
from npzone.constants import ATTRIB_OUTPUT_ZONE_SHAPE


LANE_CAR  = json.dumps({"Width": 3.5, "Direction": 1, "Tags": ["Vehicles"]})
LANE_BACK = json.dumps({"Width": 3.5, "Direction": 2, "Tags": ["Vehicles"]})
LANE_WALK = json.dumps({"Width": 2.0, "Direction": 0, "Tags": ["Pedestrians"]})


def make_part(curve_counts, positions=None, zone_shape=True, cls=CurveBuffer):
    """Curve part with points along the x axis: point i is at (i, 0, 0)."""
    buf = cls(curve_counts)
    n = buf.point_count
    if positions is None:
        positions = np.zeros((n, 3))
        positions[:, 0] = np.arange(n)
    buf.new_attribute("P", 'POINT', 'FLOAT', positions)
    if zone_shape:
        buf.new_attribute(ATTRIB_OUTPUT_ZONE_SHAPE, 'DETAIL', 'INT', [1])
    return buf


@pytest.fixture
def part_factory():
    return make_part


@pytest.fixture
def registry():
    return RegistryContext()


@pytest.fixture
def graph():
    return SceneGraph()


@pytest.fixture
def session():
    return MemorySession()

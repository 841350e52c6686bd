# MIT License
#
# Copyright (c) 2025 Alain Bernard
#
# Permission is hereby granted, free of charge, to any person obtaining a copy
# of this software and associated documentation files (the \"Software\"), to deal
# in the Software without restriction, including without limitation the rights
# to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
# copies of the Software, and to permit persons to whom the Software is
# furnished to do so, subject to the following conditions:
#
# The above copyright notice and this permission notice shall be included in all
# copies or substantial portions of the Software.
#
# THE SOFTWARE IS PROVIDED \"AS IS\", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
# IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
# FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
# AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
# LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
# OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE
# SOFTWARE.


"""
Module Name: shapes
Author: Alain Bernard
Version: 0.1.0
Created: 2025-09-16
Last updated: 2025-10-02

Summary:
    Zone shape object model.

    A ZoneShape is an ordered list of points with a shape type (spline or polygon),
    tags and a common lane profile. Polygon points can carry their own lane profile,
    stored in the per point profiles of the shape.

    Free-form properties read from the engine (`unreal_uproperty_<Name>`) are applied
    through `set_property`, using the host property names.

Usage example:
    >>> shape = ZoneShape()
    >>> shape.points = [ShapePoint((0, 0, 0)), ShapePoint((100, 0, 0))]
"""

__all__ = ["ShapePoint", "ZoneShape"]

import numpy as np

from .constants import ShapeType, ShapePointType, INHERIT_LANE_PROFILE
from .errors import PropertyError


# =============================================================================================================================
# Properties
# =============================================================================================================================

def _to_float(value):
    if isinstance(value, (tuple, list)):
        if len(value) != 1:
            raise PropertyError(f"a scalar is expected, not {value!r}")
        value = value[0]
    try:
        return float(value)
    except (TypeError, ValueError):
        raise PropertyError(f"can't convert {value!r} to float")

def _to_int(value):
    return int(_to_float(value))

def _to_bool(value):
    if isinstance(value, str):
        if value.lower() in ('true', '1', 'yes'):
            return True
        if value.lower() in ('false', '0', 'no', ''):
            return False
        raise PropertyError(f"can't convert {value!r} to bool")
    return bool(_to_float(value))

def _to_vector(value):
    try:
        v = np.asarray(value, dtype=np.float64).reshape(3)
    except (TypeError, ValueError):
        raise PropertyError(f"can't convert {value!r} to vector")
    return v

def _to_enum(enum_class):
    def convert(value):
        if isinstance(value, str):
            try:
                return enum_class(value)
            except ValueError as e:
                raise PropertyError(str(e))
        try:
            return enum_class(_to_int(value))
        except ValueError as e:
            raise PropertyError(str(e))
    return convert

class PropertyTarget:
    """ Object accepting free-form properties.

    `PROPERTIES` maps the host property names to (attribute, converter).
    """

    PROPERTIES = {}

    def set_property(self, name, value):
        """ Set a property by its host name, the name is case insensitive.

        Raises
        ------
            - PropertyError : unknown property or invalid value
        """
        key = name.lower()
        for prop_name, (attr, convert) in self.PROPERTIES.items():
            if prop_name.lower() == key:
                try:
                    setattr(self, attr, convert(value))
                except PropertyError as e:
                    raise PropertyError(f"{type(self).__name__}.{prop_name}: {str(e)}")
                return

        raise PropertyError(f"{type(self).__name__} has no property '{name}'")

# =============================================================================================================================
# Shape point
# =============================================================================================================================

class ShapePoint(PropertyTarget):

    PROPERTIES = {
        'Position'        : ('position',          _to_vector),
        'Rotation'        : ('rotation',          _to_vector),
        'TangentLength'   : ('tangent_length',    _to_float),
        'InnerTurnRadius' : ('inner_turn_radius', _to_float),
        'Type'            : ('type',              _to_enum(ShapePointType)),
        }

    def __init__(self, position=(0., 0., 0.), rotation=(0., 0., 0.)):
        self.position          = np.asarray(position, dtype=np.float64).reshape(3)
        self.rotation          = np.asarray(rotation, dtype=np.float64).reshape(3)
        self.tangent_length    = 0.
        self.inner_turn_radius = 0.
        self.lane_profile      = INHERIT_LANE_PROFILE
        self.type              = ShapePointType.SHARP

    def __repr__(self):
        lp = "inherit" if self.lane_profile == INHERIT_LANE_PROFILE else self.lane_profile
        return f"<ShapePoint {self.position}, rot {self.rotation}, {self.type}, profile {lp}>"

    @property
    def inherits_lane_profile(self):
        return self.lane_profile == INHERIT_LANE_PROFILE

# =============================================================================================================================
# Zone shape
# =============================================================================================================================

class ZoneShape(PropertyTarget):

    PROPERTIES = {
        'ShapeType'          : ('shape_type',          _to_enum(ShapeType)),
        'PolygonRoutingType' : ('polygon_routing_type', _to_int),
        'bReverseLaneProfile': ('reverse_lane_profile', _to_bool),
        }

    def __init__(self, shape_type=ShapeType.SPLINE):
        self.shape_type              = ShapeType(shape_type)
        self.tags                    = 0
        self.common_lane_profile     = None
        self.points                  = []
        self.per_point_lane_profiles = []
        self.polygon_routing_type    = 0
        self.reverse_lane_profile    = False
        self.revision                = 0

    def __str__(self):
        return f"<ZoneShape {self.shape_type}, {len(self.points)} points, tags {self.tags:#x}>"

    def __repr__(self):
        return str(self)

    @property
    def is_polygon(self):
        return self.shape_type == ShapeType.POLYGON

    # ====================================================================================================
    # Lane profiles
    # ====================================================================================================

    def clear_per_point_lane_profiles(self):
        self.per_point_lane_profiles = []

    def add_unique_per_point_lane_profile(self, ref):
        """ Index of the reference in the per point profiles, appended if needed."""
        for index, r in enumerate(self.per_point_lane_profiles):
            if r.id == ref.id:
                return index
        self.per_point_lane_profiles.append(ref)
        return len(self.per_point_lane_profiles) - 1

    def get_spline_lane_profile(self, registry):
        """ Common lane profile from the registry, None if not found."""
        return registry.find_profile(self.common_lane_profile)

    def get_polygon_lane_profiles(self, registry):
        """ Per point lane profiles from the registry, None for the missing ones."""
        return [registry.find_profile(ref) for ref in self.per_point_lane_profiles]

    def point_lane_profile(self, point, registry):
        """ Lane profile used by a point: its own one or the inherited one."""
        if point.inherits_lane_profile:
            return self.get_spline_lane_profile(registry)

        if 0 <= point.lane_profile < len(self.per_point_lane_profiles):
            return registry.find_profile(self.per_point_lane_profiles[point.lane_profile])

        return None

    def used_profile_ids(self, registry):
        """ Ids of the registry profiles actually used by the shape."""
        ids = set()
        if self.is_polygon:
            for point in self.points:
                profile = self.point_lane_profile(point, registry)
                if profile is not None:
                    ids.add(profile.id)
        else:
            profile = self.get_spline_lane_profile(registry)
            if profile is not None:
                ids.add(profile.id)
        return ids

    # ====================================================================================================
    # Update
    # ====================================================================================================

    def update_shape(self):
        """ Notify the shape that its content changed."""
        self.revision += 1

    @property
    def positions(self):
        if not self.points:
            return np.zeros((0, 3), dtype=np.float64)
        return np.array([p.position for p in self.points])

    @property
    def rotations(self):
        if not self.points:
            return np.zeros((0, 3), dtype=np.float64)
        return np.array([p.rotation for p in self.points])

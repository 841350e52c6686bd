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
Module Name: constants
Author: Alain Bernard
Version: 0.1.0
Created: 2025-09-12
Last updated: 2025-10-02

Summary:
This module defines the constants shared by the `npzone` package to translate
zone shapes to and from the curve buffers of a procedural geometry engine.

It includes:
  - Attribute owners (granularity) and storage types of the engine attributes
  - Attribute names read and written on the curves
  - Unit scales between the engine (metres, Y up) and the host (centimetres, Z up)
  - Zone shape enums: shape type, point type, lane direction, partial output mode
  - Registry defaults: tag capacity, lane profile name prefix, sentinels

Usage example:
    >>> from npzone.constants import AttributeOwner
    >>> AttributeOwner('prim')
    <AttributeOwner.PRIM: (2, 'PRIM')>
"""

__all__ = [
    'bfloat', 'bint',
    'CodeLabelEnum',
    'AttributeOwner', 'StorageType', 'PartialOutputMode',
    'LaneDirection', 'ShapeType', 'ShapePointType',
    'POINT_OWNERS', 'CURVE_OWNERS', 'QUERY_ORDER',
    'ATTRIB_POSITION', 'ATTRIB_ROT',
    'ATTRIB_OUTPUT_ZONE_SHAPE', 'ATTRIB_ZONE_SHAPE_TYPE', 'ATTRIB_ZONE_SHAPE_TAGS',
    'ATTRIB_ZONE_LANE_PROFILE', 'ATTRIB_ZONE_LANE_PROFILE_NAME',
    'ATTRIB_SPLIT_VALUE', 'ATTRIB_PARTIAL_OUTPUT_MODE', 'ATTRIB_SPLIT_ACTORS',
    'PREFIX_UPROPERTY',
    'POSITION_SCALE_TO_UNREAL', 'POSITION_SCALE_TO_HOUDINI',
    'LANE_PROFILE_PREFIX', 'TAG_CAPACITY', 'DEFAULT_TAG_MASK',
    'INHERIT_LANE_PROFILE', 'NO_PROFILE',
    'DIRECTION_GLYPHS',
    ]

import numpy as np
from enum import Enum

# =============================================================================================================================
# np.ndarray dtypes
# =============================================================================================================================

bfloat = np.float32
bint   = np.int32

# =============================================================================================================================
# Enums
# =============================================================================================================================

class CodeLabelEnum(Enum):

    def __init__(self, code, label):
        self.code = code
        self.label = label

    def __str__(self):
        return self.label

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            for member in cls:
                if member.label == value.upper():
                    return member
        elif isinstance(value, (int, np.integer)):
            for member in cls:
                if member.code == value:
                    return member

        raise ValueError(
            f"Invalid value for {cls.__name__!r} : {value!r}. "
            f"Authorized values are : {[m.label for m in cls]}"
            )

# ----------------------------------------------------------------------------------------------------
# Engine side
# ----------------------------------------------------------------------------------------------------

class AttributeOwner(CodeLabelEnum):
    VERTEX = (0, 'VERTEX')
    POINT  = (1, 'POINT')
    PRIM   = (2, 'PRIM')
    DETAIL = (3, 'DETAIL')

class StorageType(CodeLabelEnum):
    INT              = (0, 'INT')
    INT64            = (1, 'INT64')
    FLOAT            = (2, 'FLOAT')
    FLOAT64          = (3, 'FLOAT64')
    STRING           = (4, 'STRING')
    INT_ARRAY        = (5, 'INT_ARRAY')
    FLOAT_ARRAY      = (6, 'FLOAT_ARRAY')
    STRING_ARRAY     = (7, 'STRING_ARRAY')
    DICTIONARY       = (8, 'DICTIONARY')
    DICTIONARY_ARRAY = (9, 'DICTIONARY_ARRAY')

    @property
    def is_array(self):
        return self in (StorageType.INT_ARRAY, StorageType.FLOAT_ARRAY, StorageType.STRING_ARRAY,
                        StorageType.DICTIONARY_ARRAY)

    @property
    def is_int(self):
        return self in (StorageType.INT, StorageType.INT64)

    @property
    def is_float(self):
        return self in (StorageType.FLOAT, StorageType.FLOAT64)

    @property
    def is_string(self):
        return self in (StorageType.STRING, StorageType.DICTIONARY)

class PartialOutputMode(CodeLabelEnum):
    REPLACE = (0, 'REPLACE')
    MODIFY  = (1, 'MODIFY')
    REMOVE  = (2, 'REMOVE')

# ----------------------------------------------------------------------------------------------------
# Zone graph side
# ----------------------------------------------------------------------------------------------------

class LaneDirection(CodeLabelEnum):
    NONE     = (0, 'NONE')
    FORWARD  = (1, 'FORWARD')
    BACKWARD = (2, 'BACKWARD')

class ShapeType(CodeLabelEnum):
    SPLINE  = (0, 'SPLINE')
    POLYGON = (1, 'POLYGON')

class ShapePointType(CodeLabelEnum):
    SHARP        = (0, 'SHARP')
    BEZIER       = (1, 'BEZIER')
    AUTO_BEZIER  = (2, 'AUTO_BEZIER')
    LANE_PROFILE = (3, 'LANE_PROFILE')

# =============================================================================================================================
# Owners
# =============================================================================================================================

# (fine, coarse) pairs
POINT_OWNERS = (AttributeOwner.VERTEX, AttributeOwner.POINT)
CURVE_OWNERS = (AttributeOwner.PRIM, AttributeOwner.DETAIL)

QUERY_ORDER  = POINT_OWNERS + CURVE_OWNERS

# =============================================================================================================================
# Attribute names
# =============================================================================================================================

ATTRIB_POSITION               = "P"
ATTRIB_ROT                    = "rot"

ATTRIB_OUTPUT_ZONE_SHAPE      = "unreal_output_zone_shape"        # i@ on detail
ATTRIB_ZONE_SHAPE_TYPE        = "unreal_zone_shape_type"          # int or string
ATTRIB_ZONE_SHAPE_TAGS        = "unreal_zone_shape_tags"          # string or string array
ATTRIB_ZONE_LANE_PROFILE      = "unreal_zone_lane_profile"        # d[]@, one dict per lane
ATTRIB_ZONE_LANE_PROFILE_NAME = "unreal_zone_lane_profile_name"   # s@, existing or created profile name

ATTRIB_SPLIT_VALUE            = "unreal_split_value"
ATTRIB_PARTIAL_OUTPUT_MODE    = "unreal_partial_output_mode"
ATTRIB_SPLIT_ACTORS           = "unreal_split_actors"

PREFIX_UPROPERTY              = "unreal_uproperty_"

# =============================================================================================================================
# Units
# =============================================================================================================================

POSITION_SCALE_TO_UNREAL  = 100.
POSITION_SCALE_TO_HOUDINI = .01

# =============================================================================================================================
# Registry
# =============================================================================================================================

LANE_PROFILE_PREFIX  = "LP_HE_"
# Tag masks are 32 bits wide, TAG_CAPACITY is also the maximum capacity
TAG_CAPACITY         = 32

# Tag mask of the first slot, used when a tag can't be resolved
DEFAULT_TAG_MASK     = 1

INHERIT_LANE_PROFILE = 0xFF
NO_PROFILE           = -1

DIRECTION_GLYPHS = {
    LaneDirection.FORWARD  : "↑",
    LaneDirection.BACKWARD : "↓",
    LaneDirection.NONE     : "X",
    }

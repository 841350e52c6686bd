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
Module Name: lanes
Author: Alain Bernard
Version: 0.1.0
Created: 2025-09-14
Last updated: 2025-10-02

Summary:
    Lane descriptors, lane profiles and their text codec.

    A lane profile is an ordered list of lanes (width, direction, tags). Profiles
    live in the registry and are shared by the shapes referring to them. When
    decoding curves, profiles are deduplicated by a hash of their lanes: two
    curves with the same lanes always end with the same profile.

    The engine stores one lane per dictionary in a dictionary array attribute:
    {"Width":3.5,"Direction":1,"Tags":["Vehicles"]}
    The width is expressed in engine units (metres).

Usage example:
    >>> cache = LaneProfileCache(registry)
    >>> index = cache.find_or_create([LaneDesc(350., LaneDirection.FORWARD, 1)])
"""

__all__ = [
    "LaneDesc", "LaneProfile", "LaneProfileRef",
    "lane_key", "lanes_hash", "lanes_arrows",
    "encode_lane", "decode_lane",
    "LaneEncoder", "LaneProfileCache",
    "read_lane_profiles",
    ]

import json
import logging
import struct
import uuid
import zlib
from typing import NamedTuple

import numpy as np

from .constants import AttributeOwner, StorageType, LaneDirection
from .constants import POINT_OWNERS, CURVE_OWNERS
from .constants import ATTRIB_ZONE_LANE_PROFILE, ATTRIB_ZONE_LANE_PROFILE_NAME
from .constants import POSITION_SCALE_TO_UNREAL, POSITION_SCALE_TO_HOUDINI
from .constants import LANE_PROFILE_PREFIX, DEFAULT_TAG_MASK, NO_PROFILE, DIRECTION_GLYPHS


# =============================================================================================================================
# Lanes
# =============================================================================================================================

class LaneDesc(NamedTuple):
    """ Immutable lane descriptor.

    width is in host units (centimetres), tags is a tag mask.
    """
    width     : float = 0.
    direction : LaneDirection = LaneDirection.FORWARD
    tags      : int = 0

# Canonical bytes of a lane: float32 width, uint8 direction, uint32 tags
_LANE_STRUCT = struct.Struct("<fBI")

def lane_key(lane):
    """ Canonical bytes of a lane, used for hashing."""
    return _LANE_STRUCT.pack(float(lane.width), LaneDirection(lane.direction).code, int(lane.tags) & 0xFFFFFFFF)

def lanes_hash(lanes):
    """ Hash of a sequence of lanes.

    The hash is computed on the canonical bytes of the lanes, it is stable
    between runs and processes.

    Returns
    -------
        - int : unsigned 32 bits hash
    """
    return zlib.crc32(b"".join(lane_key(lane) for lane in lanes)) & 0xFFFFFFFF

def lanes_arrows(lanes):
    """ Direction glyphs from the last lane to the first one."""
    return "".join(DIRECTION_GLYPHS[LaneDirection(lane.direction)] for lane in reversed(lanes))

# =============================================================================================================================
# Profiles
# =============================================================================================================================

class LaneProfileRef(NamedTuple):
    """Reference to a registry profile, as held by the shapes."""
    name : str = None
    id   : str = None

class LaneProfile:

    def __init__(self, lanes=(), name=None, id=None):
        """ Named list of lanes.

        Arguments
        ---------
            - lanes (list of LaneDesc) : the lanes
            - name (str = None) : profile name
            - id (str = None) : unique identifier, generated if None
        """
        self.name  = name
        self.id    = uuid.uuid4().hex if id is None else id
        self.lanes = tuple(LaneDesc(float(l.width), LaneDirection(l.direction), int(l.tags)) for l in lanes)

    def __str__(self):
        return f"<LaneProfile '{self.name}' {lanes_arrows(self.lanes)}, {len(self.lanes)} lanes>"

    def __repr__(self):
        return str(self)

    @property
    def ref(self):
        return LaneProfileRef(self.name, self.id)

    @property
    def hash(self):
        return lanes_hash(self.lanes)

    def to_dict(self):
        return {
            'name'  : self.name,
            'id'    : self.id,
            'lanes' : [{'width': l.width, 'direction': l.direction.code, 'tags': l.tags} for l in self.lanes],
            }

    @classmethod
    def from_dict(cls, d):
        lanes = [LaneDesc(l['width'], LaneDirection(l['direction']), l['tags']) for l in d['lanes']]
        return cls(lanes, name=d.get('name'), id=d.get('id'))

# =============================================================================================================================
# Text codec
# =============================================================================================================================

def encode_lane(lane, registry):
    """ Canonical dictionary string of a lane.

    Arguments
    ---------
        - lane (LaneDesc) : the lane to encode
        - registry (RegistryContext) : gives the tag names

    Returns
    -------
        - str
    """
    tags = ",".join(json.dumps(name) for name in registry.tag_names(lane.tags))
    width = lane.width * POSITION_SCALE_TO_HOUDINI
    return f'{{"Width":{width:f},"Direction":{LaneDirection(lane.direction).code},"Tags":[{tags}]}}'

def decode_lane(text, registry):
    """ Decode a lane dictionary.

    Unknown or invalid fields keep the default values (width 0, forward, no tags).
    The tags are found or created in the registry.

    Arguments
    ---------
        - text (str) : json dictionary
        - registry (RegistryContext) : tag registry

    Returns
    -------
        - LaneDesc
    """
    width     = 0.
    direction = LaneDirection.FORWARD
    tags      = 0

    try:
        d = json.loads(text)
    except (TypeError, ValueError):
        logging.debug(f"decode_lane> invalid lane dictionary: {text!r}")
        return LaneDesc(width, direction, tags)

    if not isinstance(d, dict):
        logging.debug(f"decode_lane> lane is not a dictionary: {text!r}")
        return LaneDesc(width, direction, tags)

    # ----- Width

    value = d.get("Width")
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        width = float(value) * POSITION_SCALE_TO_UNREAL

    # ----- Direction: int, or legacy names

    value = d.get("Direction")
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            direction = LaneDirection(int(value))
        except ValueError:
            logging.debug(f"decode_lane> unknown direction code {value}")
    elif isinstance(value, str):
        if value in ("None", "Backward"):
            direction = LaneDirection(value)
        else:
            logging.debug(f"decode_lane> unknown direction '{value}', forward is used")

    # ----- Tags: array of names or legacy single tag

    value = d.get("Tags")
    if isinstance(value, list):
        for name in value:
            if isinstance(name, str):
                tags |= registry.find_or_create_tag(name)
        if tags == 0:
            tags = DEFAULT_TAG_MASK

    elif isinstance(d.get("Tag"), str):
        tags = registry.find_or_create_tag(d["Tag"])

    return LaneDesc(width, direction, tags)

# =============================================================================================================================
# Encoding cache
# =============================================================================================================================

class LaneEncoder:
    """ Run scoped cache of lane strings and profile names."""

    def __init__(self, registry):
        self.registry = registry
        self._lanes = {}
        self._names = {}

    def lane(self, lane):
        s = self._lanes.get(lane)
        if s is None:
            s = encode_lane(lane, self.registry)
            self._lanes[lane] = s
        return s

    def lanes(self, lanes):
        return [self.lane(lane) for lane in lanes]

    def name(self, name):
        s = self._names.get(name)
        if s is None:
            s = "" if name is None else str(name)
            self._names[name] = s
        return s

# =============================================================================================================================
# Deduplication cache
# =============================================================================================================================

class LaneProfileCache:

    def __init__(self, registry):
        """ Run scoped profile cache.

        The hash cache is seeded with the profiles already in the registry so that
        identical lanes reuse the existing profile.

        Arguments
        ---------
            - registry (RegistryContext) : the registry to find or create the profiles in
        """
        self.registry = registry
        self.hash_index = {}
        self.name_index = {}

        for index, profile in enumerate(registry.profiles):
            self.hash_index.setdefault(profile.hash, index)

    def find_or_create(self, lanes, name=None):
        """ Index of the profile having these lanes, created if needed.

        Arguments
        ---------
            - lanes (list of LaneDesc) : the lanes
            - name (str = None) : name of the profile if it must be created

        Returns
        -------
            - int : index in the registry profiles
        """
        lanes = tuple(lanes)
        h = lanes_hash(lanes)

        index = self.hash_index.get(h)
        if index is not None:
            return index

        if not name:
            name = f"{LANE_PROFILE_PREFIX}{lanes_arrows(lanes)}_{h}"

        index = self.registry.add_profile(LaneProfile(lanes, name=name))
        self.hash_index[h] = index
        logging.debug(f"LaneProfileCache> profile '{name}' created at index {index}")

        return index

    def find_by_name(self, name):
        """ Index of the registry profile with this name, NO_PROFILE if not found."""
        if not name:
            return NO_PROFILE

        index = self.name_index.get(name)
        if index is None:
            index = self.registry.find_profile_index(name)
            self.name_index[name] = index
        return index

# =============================================================================================================================
# Read the lane profiles of a curve part
# =============================================================================================================================

def read_lane_profiles(accessor, registry, cache, on_points):
    """ Read the lane profiles of a part, find or create them in the registry.

    The lanes are read from the dictionary array attribute `unreal_zone_lane_profile`,
    the profile names from the string attribute `unreal_zone_lane_profile_name`.
    When an element has no lane, its profile is searched by name.

    Arguments
    ---------
        - accessor (AttributeAccessor) : the part
        - registry (RegistryContext) : tags and profiles
        - cache (LaneProfileCache) : run cache
        - on_points (bool) : read on (vertex, point) if True, on (prim, detail) otherwise

    Returns
    -------
        - owner, indices : owner is None if no attribute exists, indices is an array
          of profile indices, one per owner element
    """
    fine, coarse = POINT_OWNERS if on_points else CURVE_OWNERS

    name_owner  = accessor.resolve_owner(ATTRIB_ZONE_LANE_PROFILE_NAME, fine, coarse)
    lanes_owner = accessor.resolve_owner(ATTRIB_ZONE_LANE_PROFILE, fine, coarse)

    if name_owner is None and lanes_owner is None:
        return None, np.zeros(0, dtype=int)

    # ----- Names

    names = []
    if name_owner is not None:
        if accessor.info(ATTRIB_ZONE_LANE_PROFILE_NAME, name_owner).storage == StorageType.STRING:
            names = accessor.get_string(ATTRIB_ZONE_LANE_PROFILE_NAME, name_owner)

    # ----- Lanes

    indices = None
    if lanes_owner is not None and accessor.info(ATTRIB_ZONE_LANE_PROFILE, lanes_owner).storage == StorageType.DICTIONARY_ARRAY:

        dicts, counts = accessor.get_dict_array(ATTRIB_ZONE_LANE_PROFILE, lanes_owner)

        # Decode unique strings once
        lane_map = {}
        for s in dicts:
            if s not in lane_map:
                lane_map[s] = decode_lane(s, registry)

        indices = np.empty(len(counts), dtype=int)
        offset = 0
        for i, count in enumerate(counts):
            name = None
            if names:
                name = names[0] if name_owner == AttributeOwner.DETAIL else names[i]

            if count <= 0:
                indices[i] = cache.find_by_name(name)
                continue

            lanes = [lane_map[s] for s in dicts[offset:offset + count]]
            indices[i] = cache.find_or_create(lanes, name=name)
            offset += count

    # ----- Names only

    if indices is None:
        if not names:
            return None, np.zeros(0, dtype=int)
        indices = np.array([cache.find_by_name(name) for name in names], dtype=int)
        return name_owner, indices

    return lanes_owner, indices

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
Module Name: output
Author: Alain Bernard
Version: 0.1.0
Created: 2025-09-21
Last updated: 2025-10-05

Summary:
    Decode the curve parts produced by the engine into zone shapes.

    Each curve becomes a zone shape. The curves are split into groups by the split
    attribute, and the shapes of the previous run are reused when their split
    identity matches.

    The decode is done in two passes:

    1. all the attributes of all the parts are read, tags and lane profiles are
       resolved in the registry
    2. the shapes are created or updated, the old ones destroyed

    An error in the first pass leaves the current shapes unchanged.

    Read attributes:

    | Attribute                        | Owner          | Content                              |
    |----------------------------------|----------------|--------------------------------------|
    | `P`                              | point          | positions, required                  |
    | `rot`                            | any            | quaternions or euler angles          |
    | `unreal_zone_shape_type`         | any            | int or string ('polygon')            |
    | `unreal_zone_shape_tags`         | any            | tag name or array of tag names       |
    | `unreal_zone_lane_profile`       | any            | lanes, dictionary array              |
    | `unreal_zone_lane_profile_name`  | any            | profile name                         |
    | `unreal_split_value`             | prim, detail   | split value                          |
    | `unreal_partial_output_mode`     | prim, detail   | replace, modify or remove            |
    | `unreal_split_actors`            | any            | shapes in a separate container       |
    | `unreal_uproperty_<Name>`        | any            | properties of the points or shapes   |

Usage example:
    >>> output = ZoneShapeOutput()
    >>> result = output.update([buffer], registry, graph)
"""

__all__ = ["UpdateResult", "ZoneShapeOutput", "is_part_valid", "read_tags"]

import logging
from typing import NamedTuple

import numpy as np

from .constants import AttributeOwner, StorageType, ShapeType, ShapePointType
from .constants import ATTRIB_POSITION, ATTRIB_ROT, ATTRIB_OUTPUT_ZONE_SHAPE
from .constants import ATTRIB_ZONE_SHAPE_TYPE, ATTRIB_ZONE_SHAPE_TAGS, ATTRIB_SPLIT_ACTORS, PREFIX_UPROPERTY
from .errors import StructuralError, PropertyError
from .attributes import AttributeAccessor, entry_index
from .lanes import LaneProfileCache, read_lane_profiles
from .partition import read_split_values, read_partial_modes, partition_curves
from .reconcile import Reconciler
from .shapes import ShapePoint
from .maths import houdini_to_unreal_positions, houdini_to_unreal_quaternions
from .maths import quaternions_to_rotators, houdini_euler_to_rotators


# =============================================================================================================================
# Part validity
# =============================================================================================================================

def is_part_valid(accessor):
    """ A part is a zone shape part if its detail int attribute `unreal_output_zone_shape` is not null."""
    info = accessor.info(ATTRIB_OUTPUT_ZONE_SHAPE, AttributeOwner.DETAIL)
    if not info.exists or info.storage.is_array or not info.storage.is_int:
        return False
    return bool(accessor.get_int(ATTRIB_OUTPUT_ZONE_SHAPE, AttributeOwner.DETAIL)[0, 0])

# =============================================================================================================================
# Tags
# =============================================================================================================================

def read_tags(accessor, registry):
    """ Read the tags attribute and resolve the masks.

    The attribute is either a string (one tag) or a string array (several tags).
    Tags are created in the registry in their order of first appearance.

    Returns
    -------
        - owner, masks : owner is None if there is no usable attribute
    """
    owner = accessor.query_owner(ATTRIB_ZONE_SHAPE_TAGS)
    if owner is None:
        return None, None

    storage = accessor.info(ATTRIB_ZONE_SHAPE_TAGS, owner).storage

    if storage == StorageType.STRING:
        names = accessor.get_string(ATTRIB_ZONE_SHAPE_TAGS, owner)
        counts = np.ones(len(names), dtype=int)
    elif storage == StorageType.STRING_ARRAY:
        names, counts = accessor.get_string_array(ATTRIB_ZONE_SHAPE_TAGS, owner)
    else:
        logging.debug(f"read_tags> unsupported storage {storage} for tags")
        return None, None

    tag_masks = {}
    for name in names:
        if name not in tag_masks:
            tag_masks[name] = registry.find_or_create_tag(name)

    masks = np.zeros(len(counts), dtype=np.int64)
    offset = 0
    for i, count in enumerate(counts):
        for name in names[offset:offset + count]:
            masks[i] |= tag_masks[name]
        offset += count

    return owner, masks

# =============================================================================================================================
# Read pass
# =============================================================================================================================

def _parse_shape_type(value):
    return ShapeType.POLYGON.code if 'polygon' in value.lower() else ShapeType.SPLINE.code

class _PartData:
    """Everything read from one part."""

    def __init__(self, accessor):
        self.accessor         = accessor
        self.partition        = None
        self.positions        = None
        self.rot_owner        = None
        self.rotators         = None
        self.type_owner       = None
        self.shape_types      = None
        self.tag_owner        = None
        self.tags             = None
        self.point_lp_owner   = None
        self.point_lps        = None
        self.curve_lp_owner   = None
        self.curve_lps        = None
        self.actor_owner      = None
        self.split_actors     = None
        self.point_props      = []
        self.shape_props      = []

    def split_actor(self, curve_index):
        if self.actor_owner is None or not len(self.split_actors):
            return False
        start = self.partition.start(curve_index)
        return self.split_actors[entry_index(self.actor_owner, start, curve_index)] >= 1

def _read_part(accessor, registry, cache):

    data = _PartData(accessor)

    # ----- Topology and positions

    counts = accessor.curve_counts()
    if int(np.sum(counts)) != accessor.point_count:
        raise StructuralError(f"ZoneShapeOutput> curve counts sum to {int(np.sum(counts))}, "
                              f"the part has {accessor.point_count} points")

    info = accessor.info(ATTRIB_POSITION, AttributeOwner.POINT)
    if not info.exists:
        raise StructuralError(f"ZoneShapeOutput> the part has no '{ATTRIB_POSITION}' attribute")
    if info.tuple_size != 3:
        raise StructuralError(f"ZoneShapeOutput> '{ATTRIB_POSITION}' must be a vector, not a tuple of {info.tuple_size}")

    data.positions = houdini_to_unreal_positions(accessor.get_float(ATTRIB_POSITION, AttributeOwner.POINT))

    # ----- Split

    keys, split_owner, values = read_split_values(accessor)
    modes, mode_owner = read_partial_modes(accessor) if keys is not None else (None, None)
    data.partition = partition_curves(counts, keys, split_owner, values, modes, mode_owner)

    # ----- Rotations

    owner = accessor.query_owner(ATTRIB_ROT)
    if owner is not None:
        info = accessor.info(ATTRIB_ROT, owner)
        if info.storage.is_float and info.tuple_size in (3, 4):
            rot = accessor.get_float(ATTRIB_ROT, owner)
            if info.tuple_size == 4:
                data.rotators = quaternions_to_rotators(houdini_to_unreal_quaternions(rot))
            else:
                data.rotators = houdini_euler_to_rotators(rot)
            data.rot_owner = owner
        else:
            logging.debug(f"ZoneShapeOutput> '{ATTRIB_ROT}' ignored: {info.storage}[{info.tuple_size}]")

    # ----- Shape types

    data.type_owner  = accessor.query_owner(ATTRIB_ZONE_SHAPE_TYPE)
    data.shape_types = accessor.get_enum(ATTRIB_ZONE_SHAPE_TYPE, data.type_owner, parser=_parse_shape_type)

    # ----- Lane profiles and tags

    data.point_lp_owner, data.point_lps = read_lane_profiles(accessor, registry, cache, on_points=True)
    data.curve_lp_owner, data.curve_lps = read_lane_profiles(accessor, registry, cache, on_points=False)

    data.tag_owner, data.tags = read_tags(accessor, registry)

    # ----- Split actors

    data.actor_owner  = accessor.query_owner(ATTRIB_SPLIT_ACTORS)
    data.split_actors = accessor.get_enum(ATTRIB_SPLIT_ACTORS, data.actor_owner)

    # ----- Properties

    for name, owner in accessor.names_with_prefix(PREFIX_UPROPERTY):
        prop = (name[len(PREFIX_UPROPERTY):], owner, accessor.get_values(name, owner))
        if owner in (AttributeOwner.VERTEX, AttributeOwner.POINT):
            data.point_props.append(prop)
        else:
            data.shape_props.append(prop)

    return data

# =============================================================================================================================
# Result
# =============================================================================================================================

class UpdateResult(NamedTuple):
    changed_shapes    : list
    registry_modified : bool

# =============================================================================================================================
# Zone shapes output
# =============================================================================================================================

class ZoneShapeOutput:

    def __init__(self, outputs=None):
        """ Zone shapes produced by an engine node.

        Arguments
        ---------
            - outputs (list of ShapeOutput = None) : outputs of a previous run
        """
        self.outputs = [] if outputs is None else list(outputs)

    def __str__(self):
        return f"<ZoneShapeOutput: {len(self.outputs)} outputs>"

    # ====================================================================================================
    # Update
    # ====================================================================================================

    def update(self, parts, registry, graph):
        """ Update the shapes from the curve parts.

        Arguments
        ---------
            - parts (list of AttributeStore or AttributeAccessor) : the curve parts
            - registry (RegistryContext) : tags and lane profiles
            - graph (HostObjectGraph) : host objects owning the shapes

        Returns
        -------
            - UpdateResult : changed shapes and whether the registry was modified
        """
        accessors = [part if isinstance(part, AttributeAccessor) else AttributeAccessor(part) for part in parts]

        # ----- Read everything

        cache = LaneProfileCache(registry)
        parts_data = [_read_part(accessor, registry, cache) for accessor in accessors]

        # ----- Reuse strategy

        reconciler = Reconciler(self.outputs, graph)

        if any(data.partition.partial_update for data in parts_data):
            modify_values, remove_values = set(), set()
            for data in parts_data:
                modify_values |= data.partition.modify_values()
                remove_values |= data.partition.remove_values()
            reconciler.partial(modify_values, remove_values)
        else:
            reconciler.full()

        # ----- Build the shapes

        changed = []
        for data in parts_data:
            failed = set()
            for group in data.partition.output_groups():
                for curve_index in group.curve_indices:
                    output = reconciler.acquire(group.split_value, data.split_actor(curve_index))
                    shape = output.create_or_update(graph)
                    self._fill_shape(shape, data, curve_index, registry, failed)
                    changed.append(shape)

        # ----- Post processing

        registry_modified = registry.persist()

        self.outputs = reconciler.finish()

        for shape in changed:
            shape.update_shape()

        logging.info(f"ZoneShapeOutput> {len(changed)} shape(s) updated, {len(self.outputs)} output(s)")

        return UpdateResult(changed, registry_modified)

    @staticmethod
    def _set_property(target, name, value, failed):
        try:
            target.set_property(name, value)
        except PropertyError as e:
            if name not in failed:
                logging.warning(f"ZoneShapeOutput> property '{name}' skipped: {str(e)}")
                failed.add(name)

    def _fill_shape(self, shape, data, curve_index, registry, failed):

        partition = data.partition
        start = partition.start(curve_index)

        # Shape type first: per point profiles depend on it
        if len(data.shape_types):
            code = int(data.shape_types[entry_index(data.type_owner, start, curve_index)])
            shape.shape_type = ShapeType.POLYGON if code == ShapeType.POLYGON.code else ShapeType.SPLINE

        if data.tags is not None:
            shape.tags = int(data.tags[entry_index(data.tag_owner, start, curve_index)])

        if data.curve_lp_owner is not None:
            index = int(data.curve_lps[entry_index(data.curve_lp_owner, start, curve_index)])
            if registry.is_valid_profile_index(index):
                shape.common_lane_profile = registry.profiles[index].ref

        # ----- Points

        shape.clear_per_point_lane_profiles()
        use_point_lps = data.point_lp_owner is not None and shape.is_polygon

        points = []
        for i in range(partition.point_count(curve_index)):
            vertex_index = start + i

            point = ShapePoint(data.positions[vertex_index])
            if data.rotators is not None:
                point.rotation = np.array(data.rotators[entry_index(data.rot_owner, vertex_index, curve_index)])

            if use_point_lps:
                point.type = ShapePointType.LANE_PROFILE
                index = int(data.point_lps[entry_index(data.point_lp_owner, vertex_index, curve_index)])
                if registry.is_valid_profile_index(index):
                    point.lane_profile = shape.add_unique_per_point_lane_profile(registry.profiles[index].ref)

            for name, owner, values in data.point_props:
                self._set_property(point, name, values[entry_index(owner, vertex_index, curve_index)], failed)

            points.append(point)

        shape.points = points

        # ----- Shape properties

        for name, owner, values in data.shape_props:
            self._set_property(shape, name, values[entry_index(owner, start, curve_index)], failed)

    # ====================================================================================================
    # Other operations
    # ====================================================================================================

    def destroy(self, graph):
        """ Destroy all the shapes."""
        for output in self.outputs:
            output.destroy(graph)
        self.outputs = []

    def collect_split_values(self):
        """ Split values of the outputs in separate containers.

        Returns
        -------
            - split_values, editable_split_values (sets of str)
        """
        split_values = {output.split_value for output in self.outputs if output.split_actor}
        return split_values, set()


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
Module Name: input
Author: Alain Bernard
Version: 0.1.0
Created: 2025-09-24
Last updated: 2025-10-05

Summary:
    Encode zone shapes into an engine curve part.

    Each shape becomes a curve. The upload writes:

    - `P` and `rot` on points (engine basis and units)
    - `unreal_zone_shape_type` on prims, as an int
    - lane profiles of polygon shapes on points, one profile per point
    - lane profiles of spline shapes on prims

    The lane profiles are written as a name (`unreal_zone_lane_profile_name`) and
    the list of lanes (`unreal_zone_lane_profile`).

    The input keeps the id of its engine node: the node is created at the first
    upload and reused by the next ones.

Usage example:
    >>> zs_input = ZoneShapeInput()
    >>> zs_input.upload(shapes, session, registry)
"""

__all__ = ["ZoneShapeInput"]

import logging
import time

import numpy as np

from .constants import AttributeOwner, ShapeType
from .constants import ATTRIB_POSITION, ATTRIB_ROT, ATTRIB_ZONE_SHAPE_TYPE
from .constants import ATTRIB_ZONE_LANE_PROFILE, ATTRIB_ZONE_LANE_PROFILE_NAME
from .attributes import AttributeAccessor
from .lanes import LaneEncoder
from .shapes import ZoneShape
from .maths import unreal_to_houdini_positions, unreal_to_houdini_quaternions, rotators_to_quaternions
from .maths import ShapeTransform


class ZoneShapeInput:

    def __init__(self, name="zone_shapes"):
        """ Upload of zone shapes to an engine node.

        Arguments
        ---------
            - name (str = 'zone_shapes') : prefix of the node name
        """
        self.name    = name
        self.node_id = -1

    def __str__(self):
        return f"<ZoneShapeInput '{self.name}', node {self.node_id}>"

    @staticmethod
    def is_valid_input(obj):
        return isinstance(obj, ZoneShape)

    # ====================================================================================================
    # Upload
    # ====================================================================================================

    def upload(self, shapes, session, registry, transforms=None):
        """ Write the shapes in the node part and commit it.

        Arguments
        ---------
            - shapes (list of ZoneShape) : the shapes to upload
            - session (MemorySession) : engine session
            - registry (RegistryContext) : tag names and lane profiles
            - transforms (list of ShapeTransform = None) : host transformation per shape

        Returns
        -------
            - int : node id
        """
        if transforms is None:
            transforms = [None]*len(shapes)
        items = [(shape, ShapeTransform.identity() if transform is None else transform)
                 for shape, transform in zip(shapes, transforms) if self.is_valid_input(shape)]

        if self.node_id < 0:
            self.node_id = session.create_node(f"{self.name}_zone_shape_{time.perf_counter_ns() & 0xFFFFFFFF:08X}")

        encoder = LaneEncoder(registry)

        curve_counts  = []
        shape_types   = []
        positions     = []
        rotations     = []

        point_names   = []
        point_lanes   = []
        point_counts  = []
        spline_names  = []
        spline_lanes  = []
        spline_counts = []

        has_polygon = False
        has_spline  = False

        for shape, transform in items:

            n = len(shape.points)
            curve_counts.append(n)
            shape_types.append(shape.shape_type.code)

            if shape.is_polygon:
                has_polygon = True

                for point in shape.points:
                    profile = shape.point_lane_profile(point, registry)
                    if profile is None:
                        point_names.append("")
                        point_counts.append(0)
                    else:
                        point_names.append(encoder.name(profile.name))
                        point_counts.append(len(profile.lanes))
                        point_lanes.extend(encoder.lanes(profile.lanes))

                spline_names.append("")
                spline_counts.append(0)

            else:
                has_spline = True

                profile = shape.get_spline_lane_profile(registry)
                if profile is None:
                    spline_names.append("")
                    spline_counts.append(0)
                else:
                    spline_names.append(encoder.name(profile.name))
                    spline_counts.append(len(profile.lanes))
                    spline_lanes.extend(encoder.lanes(profile.lanes))

                point_names.extend([""]*n)
                point_counts.extend([0]*n)

            # ----- Transformation

            if n == 0:
                continue

            pos  = shape.positions
            quat = rotators_to_quaternions(shape.rotations)
            pos  = transform.transform_positions(pos)
            quat = transform.transform_rotations(quat)

            positions.append(unreal_to_houdini_positions(pos))
            rotations.append(unreal_to_houdini_quaternions(quat))

        # ----- Write

        store = session.reset(self.node_id)
        store.set_curve_counts(curve_counts)
        acc = AttributeAccessor(store)

        acc.set_float(ATTRIB_POSITION, AttributeOwner.POINT,
                      np.concatenate(positions) if positions else np.zeros((0, 3)), tuple_size=3)
        acc.set_float(ATTRIB_ROT, AttributeOwner.POINT,
                      np.concatenate(rotations) if rotations else np.zeros((0, 4)), tuple_size=4)
        acc.set_int(ATTRIB_ZONE_SHAPE_TYPE, AttributeOwner.PRIM, shape_types)

        if has_polygon:
            acc.set_string(ATTRIB_ZONE_LANE_PROFILE_NAME, AttributeOwner.POINT, point_names)
            acc.set_dict_array(ATTRIB_ZONE_LANE_PROFILE, AttributeOwner.POINT, point_lanes, point_counts)

        if has_spline:
            acc.set_string(ATTRIB_ZONE_LANE_PROFILE_NAME, AttributeOwner.PRIM, spline_names)
            acc.set_dict_array(ATTRIB_ZONE_LANE_PROFILE, AttributeOwner.PRIM, spline_lanes, spline_counts)

        session.commit(self.node_id)

        logging.debug(f"ZoneShapeInput> {len(items)} shape(s) uploaded to node {self.node_id}")

        return self.node_id

    # ====================================================================================================
    # Node
    # ====================================================================================================

    def destroy(self, session):
        """ Delete the engine node."""
        if self.node_id >= 0:
            session.delete_node(self.node_id)
            logging.debug(f"ZoneShapeInput> node {self.node_id} deleted")
        self.node_id = -1

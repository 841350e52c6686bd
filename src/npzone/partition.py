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
Module Name: partition
Author: Alain Bernard
Version: 0.1.0
Created: 2025-09-18
Last updated: 2025-10-02

Summary:
    Split the curves of a part into groups.

    Curves are grouped by the value of the split attribute (constant key 0 when
    the attribute doesn't exist). Each curve can also carry a partial output mode:

    - REPLACE : default, the outputs are fully replaced
    - MODIFY  : only the outputs of the split values in the part are updated
    - REMOVE  : the outputs of the split value are removed

    A REMOVE curve dominates: its group is marked REMOVE and holds no curve,
    whatever the order of the curves.

Usage example:
    >>> keys, owner, values = read_split_values(accessor)
    >>> part = partition_curves(accessor.curve_counts(), keys, owner, values)
"""

__all__ = ["SplitGroup", "Partition", "curve_offsets", "read_split_values", "read_partial_modes", "partition_curves"]

import numpy as np
from numba import njit

from .constants import bint
from .constants import AttributeOwner, StorageType, PartialOutputMode, CURVE_OWNERS
from .constants import ATTRIB_SPLIT_VALUE, ATTRIB_PARTIAL_OUTPUT_MODE
from .attributes import entry_index


# ====================================================================================================
# numba optimized calls
# ====================================================================================================

# ----------------------------------------------------------------------------------------------------
# Offset of the first point of each curve, plus the total number of points
# ----------------------------------------------------------------------------------------------------

@njit(cache=True)
def curve_offsets(curve_counts):

    n = len(curve_counts)
    offsets = np.zeros(n + 1, dtype=np.int64)
    for i in range(n):
        offsets[i + 1] = offsets[i] + curve_counts[i]

    return offsets

# =============================================================================================================================
# Groups
# =============================================================================================================================

class SplitGroup:

    __slots__ = ('key', 'mode', 'split_value', 'curve_indices')

    def __init__(self, key, mode=PartialOutputMode.REPLACE, split_value=""):
        self.key           = key
        self.mode          = PartialOutputMode(mode)
        self.split_value   = split_value
        self.curve_indices = []

    def __repr__(self):
        return f"<SplitGroup {self.key} '{self.split_value}' {self.mode}: {self.curve_indices}>"

    @property
    def is_remove(self):
        return self.mode == PartialOutputMode.REMOVE

class Partition:

    def __init__(self, groups, offsets, partial_update):
        self.groups         = groups
        self.offsets        = offsets
        self.partial_update = partial_update

    def __repr__(self):
        return f"<Partition: {len(self.groups)} groups, partial: {self.partial_update}>"

    @property
    def curve_count(self):
        return len(self.offsets) - 1

    def start(self, curve_index):
        return int(self.offsets[curve_index])

    def point_count(self, curve_index):
        return int(self.offsets[curve_index + 1] - self.offsets[curve_index])

    def output_groups(self):
        """Groups which produce outputs."""
        return [group for group in self.groups.values() if not group.is_remove]

    def modify_values(self):
        return {group.split_value for group in self.groups.values() if not group.is_remove}

    def remove_values(self):
        return {group.split_value for group in self.groups.values() if group.is_remove}

# =============================================================================================================================
# Read split attributes
# =============================================================================================================================

def read_split_values(accessor):
    """ Read the split attribute of a part.

    The split attribute lives on prims or on detail. Int values are used as keys,
    string values are keyed by their order of first appearance.

    Returns
    -------
        - keys (array of ints or None), owner (AttributeOwner or None), values (dict key -> str)
    """
    owner = accessor.resolve_owner(ATTRIB_SPLIT_VALUE, *CURVE_OWNERS)
    if owner is None:
        return None, None, {}

    storage = accessor.info(ATTRIB_SPLIT_VALUE, owner).storage

    if storage == StorageType.STRING:
        strings = accessor.get_string(ATTRIB_SPLIT_VALUE, owner)
        str_keys = {}
        keys = np.empty(len(strings), dtype=bint)
        for i, s in enumerate(strings):
            if s not in str_keys:
                str_keys[s] = len(str_keys)
            keys[i] = str_keys[s]
        return keys, owner, {key: s for s, key in str_keys.items()}

    if storage.is_int:
        keys = accessor.get_int(ATTRIB_SPLIT_VALUE, owner)[:, 0]
        return keys, owner, {int(key): str(int(key)) for key in np.unique(keys)}

    return None, None, {}

def _parse_mode(value):
    try:
        return PartialOutputMode(value).code
    except ValueError:
        try:
            return int(value)
        except ValueError:
            return PartialOutputMode.REPLACE.code

def read_partial_modes(accessor):
    """ Read the partial output modes of a part.

    Returns
    -------
        - modes (array of int8), owner (AttributeOwner or None)
    """
    owner = accessor.resolve_owner(ATTRIB_PARTIAL_OUTPUT_MODE, *CURVE_OWNERS)
    return accessor.get_enum(ATTRIB_PARTIAL_OUTPUT_MODE, owner, parser=_parse_mode), owner

# =============================================================================================================================
# Partition
# =============================================================================================================================

def partition_curves(curve_counts, keys=None, split_owner=None, values=None, modes=None, mode_owner=None):
    """ Split the curves into groups.

    Arguments
    ---------
        - curve_counts (array of ints) : number of points per curve
        - keys (array of ints = None) : split keys, per prim or detail
        - split_owner (AttributeOwner = None) : owner of the keys
        - values (dict = None) : split value string per key
        - modes (array of ints = None) : partial output modes, ignored without keys
        - mode_owner (AttributeOwner = None) : owner of the modes

    Returns
    -------
        - Partition
    """
    curve_counts = np.asarray(curve_counts, dtype=np.int64).reshape(-1)
    offsets = curve_offsets(curve_counts)
    n = len(curve_counts)

    groups = {}

    # ----- No split : all the curves in one REPLACE group

    if keys is None or len(keys) == 0:
        group = SplitGroup(0, PartialOutputMode.REPLACE, "")
        group.curve_indices = list(range(n))
        groups[0] = group
        return Partition(groups, offsets, False)

    values = {} if values is None else values
    has_modes = modes is not None and len(modes) > 0 and mode_owner is not None
    partial_update = False

    for curve_index in range(n):

        vertex_index = int(offsets[curve_index])
        key = int(keys[entry_index(AttributeOwner(split_owner), vertex_index, curve_index)])

        mode = PartialOutputMode.REPLACE.code
        if has_modes:
            mode = int(modes[entry_index(AttributeOwner(mode_owner), vertex_index, curve_index)])
        mode = PartialOutputMode(min(max(mode, PartialOutputMode.REPLACE.code), PartialOutputMode.REMOVE.code))

        if mode != PartialOutputMode.REPLACE:
            partial_update = True

        group = groups.get(key)

        if mode == PartialOutputMode.REMOVE:
            if group is None:
                groups[key] = SplitGroup(key, mode, values.get(key, str(key)))
            elif not group.is_remove:
                group.mode = mode
                group.curve_indices.clear()
            continue

        if group is None:
            group = SplitGroup(key, mode, values.get(key, str(key)))
            groups[key] = group
        elif group.is_remove:
            continue

        group.curve_indices.append(curve_index)

    return Partition(groups, offsets, partial_update)

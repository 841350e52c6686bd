
from .attributes import AttributeInfo, AttributeStore, CurveBuffer, AttributeAccessor, MemorySession
from .attributes import resolve_owner, query_owner, entry_index
from .registry import TagInfo, RegistryContext
from .lanes import LaneDesc, LaneProfile, LaneProfileRef, LaneEncoder, LaneProfileCache
from .lanes import encode_lane, decode_lane, read_lane_profiles
from .partition import SplitGroup, Partition, read_split_values, partition_curves
from .reconcile import ShapeOutput, HostObjectGraph, SceneGraph, Reconciler
from .shapes import ShapePoint, ZoneShape
from .output import ZoneShapeOutput, UpdateResult, is_part_valid
from .input import ZoneShapeInput
from .translator import Translator

from .errors import NpzoneError, TransportError, StructuralError, PropertyError

from . import constants
from . import maths

from .maths import ShapeTransform

VERSION = (0, 1, 0)

__version__ = ".".join(map(str, VERSION))

__all__ = [
    "VERSION",
    "AttributeInfo", "AttributeStore", "CurveBuffer", "AttributeAccessor", "MemorySession",
    "resolve_owner", "query_owner", "entry_index",
    "TagInfo", "RegistryContext",
    "LaneDesc", "LaneProfile", "LaneProfileRef", "LaneEncoder", "LaneProfileCache",
    "encode_lane", "decode_lane", "read_lane_profiles",
    "SplitGroup", "Partition", "read_split_values", "partition_curves",
    "ShapeOutput", "HostObjectGraph", "SceneGraph", "Reconciler",
    "ShapePoint", "ZoneShape",
    "ZoneShapeOutput", "UpdateResult", "is_part_valid",
    "ZoneShapeInput",
    "Translator",
    "NpzoneError", "TransportError", "StructuralError", "PropertyError",
    "constants",
    "maths",
    "ShapeTransform",
]

# ---------------------------------------------------------------------------
# Add from all

from .constants import *
__all__.extend(list(constants.__all__))

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
Module Name: attributes
Author: Alain Bernard
Version: 0.1.0
Created: 2025-09-12
Last updated: 2025-10-02

Summary:
    Owner scoped attribute storage of a curve part and its typed accessor.

    The geometry engine exposes the attributes of a curve part on four owners
    (vertex, point, prim, detail). `AttributeStore` is the contract the translator
    reads and writes through; `CurveBuffer` is an in-memory implementation backed
    by numpy arrays. `AttributeAccessor` offers typed getters and setters and
    resolves on which owner an attribute actually lives.

Usage example:
    >>> buf = CurveBuffer([3, 2])
    >>> buf.new_attribute("P", 'POINT', 'FLOAT', np.zeros((5, 3)))
    >>> acc = AttributeAccessor(buf)
    >>> acc.resolve_owner("P", 'VERTEX', 'POINT')
    <AttributeOwner.POINT: (1, 'POINT')>
"""

__all__ = [
    "AttributeInfo", "AttributeStore", "CurveBuffer", "AttributeAccessor",
    "MemorySession",
    "resolve_owner", "query_owner", "entry_index",
    ]

import logging
import numpy as np

from .constants import bfloat, bint
from .constants import AttributeOwner, StorageType, QUERY_ORDER
from .errors import TransportError


# =============================================================================================================================
# Attribute info
# =============================================================================================================================

class AttributeInfo:

    __slots__ = ('exists', 'owner', 'storage', 'count', 'tuple_size', 'total_array_elements')

    def __init__(self, owner, storage=StorageType.INT, count=0, tuple_size=1, total_array_elements=0, exists=True):
        self.exists     = exists
        self.owner      = AttributeOwner(owner)
        self.storage    = StorageType(storage)
        self.count      = count
        self.tuple_size = tuple_size
        self.total_array_elements = total_array_elements

    @classmethod
    def missing(cls, owner):
        return cls(owner, exists=False)

    def __repr__(self):
        if not self.exists:
            return f"<AttributeInfo {self.owner}: not found>"
        return (f"<AttributeInfo {self.owner}, {self.storage}, count: {self.count}, "
                f"tuple: {self.tuple_size}, array elements: {self.total_array_elements}>")

# =============================================================================================================================
# Store contract
# =============================================================================================================================

class AttributeStore:
    """ Contract of the engine attribute storage of one curve part.

    Every method can raise a `TransportError` which aborts the translation run.
    """

    def curve_counts(self):
        raise NotImplementedError

    def set_curve_counts(self, counts):
        raise NotImplementedError

    @property
    def point_count(self):
        raise NotImplementedError

    def attribute_names(self, owner):
        raise NotImplementedError

    def attribute_info(self, name, owner):
        raise NotImplementedError

    def get_data(self, name, owner):
        raise NotImplementedError

    def add_attribute(self, name, owner, storage, tuple_size=1):
        raise NotImplementedError

    def set_data(self, name, owner, data, counts=None):
        raise NotImplementedError

# =============================================================================================================================
# In memory curve part
# =============================================================================================================================

class CurveBuffer(AttributeStore):

    def __init__(self, curve_counts=None):
        """ Curve part held in memory.

        Arguments
        ---------
            - curve_counts (array of ints = None) : number of vertices per curve
        """
        self._counts = np.zeros(0, dtype=bint)
        self._attributes = {owner: {} for owner in AttributeOwner}

        if curve_counts is not None:
            self.set_curve_counts(curve_counts)

    def __str__(self):
        return f"<CurveBuffer: curves {self.curve_count}, points {self.point_count}>"

    def __repr__(self):
        lines = [str(self)]
        for owner, attrs in self._attributes.items():
            for name, attr in attrs.items():
                lines.append(f"   {str(owner):<6} {name}: {attr['storage']}[{attr['tuple_size']}]")
        return "\n".join(lines)

    # ====================================================================================================
    # Topology
    # ====================================================================================================

    def curve_counts(self):
        return self._counts.copy()

    def set_curve_counts(self, counts):
        counts = np.asarray(counts, dtype=bint).reshape(-1)
        if np.any(counts < 0):
            raise TransportError(f"CurveBuffer> negative curve counts: {counts}")
        self._counts = counts

    @property
    def curve_count(self):
        return len(self._counts)

    @property
    def point_count(self):
        return int(np.sum(self._counts))

    def owner_count(self, owner):
        owner = AttributeOwner(owner)
        if owner in (AttributeOwner.VERTEX, AttributeOwner.POINT):
            return self.point_count
        elif owner == AttributeOwner.PRIM:
            return self.curve_count
        else:
            return 1

    # ====================================================================================================
    # Attributes
    # ====================================================================================================

    def attribute_names(self, owner):
        return list(self._attributes[AttributeOwner(owner)].keys())

    def attribute_info(self, name, owner):
        owner = AttributeOwner(owner)
        attr = self._attributes[owner].get(name)
        if attr is None:
            return AttributeInfo.missing(owner)

        total = int(np.sum(attr['counts'])) if attr['counts'] is not None else 0
        return AttributeInfo(owner, attr['storage'], count=attr['count'], tuple_size=attr['tuple_size'],
                             total_array_elements=total)

    def add_attribute(self, name, owner, storage, tuple_size=1):
        owner = AttributeOwner(owner)
        self._attributes[owner][name] = {
            'storage'    : StorageType(storage),
            'tuple_size' : int(tuple_size),
            'count'      : 0,
            'data'       : None,
            'counts'     : None,
            }

    def get_data(self, name, owner):
        """ Read the content of an attribute.

        Returns
        -------
            - values, counts : counts is None for non array storages
        """
        owner = AttributeOwner(owner)
        attr = self._attributes[owner].get(name)
        if attr is None or attr['data'] is None:
            raise TransportError(f"CurveBuffer> no data for attribute '{name}' on {owner}")

        return attr['data'], attr['counts']

    def set_data(self, name, owner, data, counts=None):
        owner = AttributeOwner(owner)
        attr = self._attributes[owner].get(name)
        if attr is None:
            raise TransportError(f"CurveBuffer> attribute '{name}' not added on {owner}")

        storage = attr['storage']
        count = self.owner_count(owner)

        if storage.is_array:
            if counts is None:
                raise TransportError(f"CurveBuffer> array attribute '{name}' requires counts")
            counts = np.asarray(counts, dtype=bint).reshape(-1)
            if len(counts) != count:
                raise TransportError(f"CurveBuffer> '{name}' on {owner}: {len(counts)} counts, {count} expected")
            if storage == StorageType.INT_ARRAY:
                values = np.asarray(data, dtype=bint).reshape(-1)
            elif storage == StorageType.FLOAT_ARRAY:
                values = np.asarray(data, dtype=bfloat).reshape(-1)
            else:
                values = [str(s) for s in data]
            if len(values) != np.sum(counts):
                raise TransportError(f"CurveBuffer> '{name}' on {owner}: {len(values)} values, {np.sum(counts)} expected")

        elif storage.is_string:
            values = [str(s) for s in data]
            if len(values) != count:
                raise TransportError(f"CurveBuffer> '{name}' on {owner}: {len(values)} values, {count} expected")
            counts = None

        else:
            if storage == StorageType.INT:
                dtype = bint
            elif storage == StorageType.INT64:
                dtype = np.int64
            elif storage == StorageType.FLOAT:
                dtype = bfloat
            else:
                dtype = np.float64
            try:
                values = np.asarray(data, dtype=dtype).reshape(count, attr['tuple_size'])
            except ValueError as e:
                raise TransportError(f"CurveBuffer> '{name}' on {owner}: {str(e)}")
            counts = None

        attr['data']   = values
        attr['counts'] = counts
        attr['count']  = count

    def new_attribute(self, name, owner, storage, data, counts=None, tuple_size=None):
        """ Add an attribute and set its content.

        Arguments
        ---------
            - name (str) : attribute name
            - owner (AttributeOwner or str) : owner of the attribute
            - storage (StorageType or str) : storage type
            - data (array or list) : values
            - counts (array of ints = None) : array sizes for array storages
            - tuple_size (int = None) : tuple size, deduced from the shape of numeric data if None
        """
        storage = StorageType(storage)
        if tuple_size is None:
            tuple_size = 1
            if not storage.is_array and not storage.is_string:
                shape = np.shape(data)
                if len(shape) > 1:
                    tuple_size = int(np.prod(shape[1:]))

        self.add_attribute(name, owner, storage, tuple_size=tuple_size)
        self.set_data(name, owner, data, counts=counts)

    # ====================================================================================================
    # Serialization
    # ====================================================================================================

    def to_dict(self):
        attributes = []
        for owner, attrs in self._attributes.items():
            for name, attr in attrs.items():
                data = attr['data']
                if isinstance(data, np.ndarray):
                    data = data.tolist()
                attributes.append({
                    'name'       : name,
                    'owner'      : owner.label,
                    'storage'    : attr['storage'].label,
                    'tuple_size' : attr['tuple_size'],
                    'data'       : data,
                    'counts'     : None if attr['counts'] is None else attr['counts'].tolist(),
                    })
        return {'curve_counts': self._counts.tolist(), 'attributes': attributes}

    @classmethod
    def from_dict(cls, d):
        buf = cls(d['curve_counts'])
        for attr in d['attributes']:
            buf.add_attribute(attr['name'], attr['owner'], attr['storage'], tuple_size=attr['tuple_size'])
            if attr['data'] is not None:
                buf.set_data(attr['name'], attr['owner'], attr['data'], counts=attr['counts'])
        return buf

# =============================================================================================================================
# In memory session
# =============================================================================================================================

class MemorySession:
    """ Engine session holding one curve part per node."""

    def __init__(self):
        self._nodes   = {}
        self._names   = {}
        self._commits = {}
        self._next_id = 0

    def create_node(self, name):
        node_id = self._next_id
        self._next_id += 1
        self._nodes[node_id]   = CurveBuffer()
        self._names[node_id]   = name
        self._commits[node_id] = 0
        logging.debug(f"Session> node {node_id} '{name}' created")
        return node_id

    def delete_node(self, node_id):
        if node_id not in self._nodes:
            raise TransportError(f"Session> invalid node id {node_id}")
        del self._nodes[node_id]
        del self._names[node_id]
        del self._commits[node_id]

    def node_exists(self, node_id):
        return node_id in self._nodes

    def node_name(self, node_id):
        return self._names[node_id]

    def store(self, node_id):
        if node_id not in self._nodes:
            raise TransportError(f"Session> invalid node id {node_id}")
        return self._nodes[node_id]

    def reset(self, node_id):
        """Empty the part of a node before a new upload."""
        self.store(node_id)
        self._nodes[node_id] = CurveBuffer()
        return self._nodes[node_id]

    def commit(self, node_id):
        self.store(node_id)
        self._commits[node_id] += 1

    def commit_count(self, node_id):
        return self._commits[node_id]

# =============================================================================================================================
# Owner resolution
# =============================================================================================================================

def resolve_owner(names, name, fine, coarse):
    """ Find which of two owners holds an attribute.

    Arguments
    ---------
        - names (dict owner -> names) : attribute names per owner
        - name (str) : attribute name
        - fine (AttributeOwner) : owner checked first
        - coarse (AttributeOwner) : fallback owner

    Returns
    -------
        - AttributeOwner or None
    """
    for owner in (AttributeOwner(fine), AttributeOwner(coarse)):
        if name in names.get(owner, ()):
            return owner
    return None

def query_owner(names, name):
    """ First owner holding the attribute, from vertex to detail."""
    for owner in QUERY_ORDER:
        if name in names.get(owner, ()):
            return owner
    return None

def entry_index(owner, vertex_index, curve_index):
    """ Index of the entry to read for a vertex of a curve."""
    if owner == AttributeOwner.DETAIL:
        return 0
    elif owner == AttributeOwner.PRIM:
        return curve_index
    else:
        return vertex_index

# =============================================================================================================================
# Typed accessor
# =============================================================================================================================

def _default_enum_parser(value):
    try:
        return int(value)
    except ValueError:
        return 0

class AttributeAccessor:

    def __init__(self, store):
        """ Typed access to a store.

        The attribute names are read once at creation. Attributes added through
        the setters are registered.

        Arguments
        ---------
            - store (AttributeStore) : the attribute store
        """
        self.store = store
        self.names = {owner: list(store.attribute_names(owner)) for owner in AttributeOwner}

    def __str__(self):
        return f"<AttributeAccessor {self.store}>"

    # ====================================================================================================
    # Owners
    # ====================================================================================================

    def exists(self, name, owner):
        return name in self.names[AttributeOwner(owner)]

    def resolve_owner(self, name, fine, coarse):
        return resolve_owner(self.names, name, fine, coarse)

    def query_owner(self, name):
        return query_owner(self.names, name)

    def names_with_prefix(self, prefix):
        """ Attributes whose name starts with prefix, on their finest owner.

        Returns
        -------
            - list of (name, owner)
        """
        found = {}
        for owner in QUERY_ORDER:
            for name in self.names[owner]:
                if name.startswith(prefix) and name not in found:
                    found[name] = owner
        return list(found.items())

    def info(self, name, owner):
        return self.store.attribute_info(name, AttributeOwner(owner))

    def curve_counts(self):
        return self.store.curve_counts()

    @property
    def point_count(self):
        return self.store.point_count

    # ====================================================================================================
    # Getters
    # ====================================================================================================

    def _read(self, name, owner, accepted):
        info = self.info(name, owner)
        if not info.exists:
            raise TransportError(f"AttributeAccessor> attribute '{name}' doesn't exist on {AttributeOwner(owner)}")
        if info.storage not in accepted:
            raise TransportError(f"AttributeAccessor> attribute '{name}' on {info.owner} is {info.storage}, "
                                 f"expected one of {[str(s) for s in accepted]}")
        values, counts = self.store.get_data(name, info.owner)
        return info, values, counts

    def get_int(self, name, owner):
        """ Integer values as an array of shape (count, tuple_size)."""
        _, values, _ = self._read(name, owner, (StorageType.INT, StorageType.INT64))
        return np.asarray(values)

    def get_float(self, name, owner):
        """ Float values as an array of shape (count, tuple_size), int storages are converted."""
        _, values, _ = self._read(name, owner, (StorageType.FLOAT, StorageType.FLOAT64, StorageType.INT, StorageType.INT64))
        return np.asarray(values, dtype=bfloat)

    def get_string(self, name, owner):
        _, values, _ = self._read(name, owner, (StorageType.STRING,))
        return list(values)

    def get_string_array(self, name, owner):
        """ Returns the flat list of strings and the number of strings per element."""
        _, values, counts = self._read(name, owner, (StorageType.STRING_ARRAY,))
        return list(values), np.asarray(counts)

    def get_dict_array(self, name, owner):
        """ Returns the flat list of dictionaries (json strings) and the number of dictionaries per element."""
        _, values, counts = self._read(name, owner, (StorageType.DICTIONARY_ARRAY,))
        return list(values), np.asarray(counts)

    def get_enum(self, name, owner, parser=None):
        """ Read an attribute stored either as ints or as strings.

        Arguments
        ---------
            - name (str) : attribute name
            - owner (AttributeOwner or None) : None returns an empty array
            - parser (function = None) : string to int conversion

        Returns
        -------
            - array of int8
        """
        if owner is None:
            return np.zeros(0, dtype=np.int8)

        info = self.info(name, owner)
        if not info.exists:
            raise TransportError(f"AttributeAccessor> attribute '{name}' doesn't exist on {AttributeOwner(owner)}")

        if info.storage == StorageType.STRING:
            if parser is None:
                parser = _default_enum_parser
            values = self.get_string(name, owner)
            cache = {}
            res = np.empty(len(values), dtype=np.int8)
            for i, s in enumerate(values):
                if s not in cache:
                    cache[s] = parser(s)
                res[i] = cache[s]
            return res

        elif info.storage.is_int or info.storage.is_float:
            _, values, _ = self._read(name, owner, (info.storage,))
            return np.asarray(values)[:, 0].astype(np.int8)

        logging.warning(f"AttributeAccessor> enum attribute '{name}' has unsupported storage {info.storage}")
        return np.zeros(0, dtype=np.int8)

    def get_values(self, name, owner):
        """ Generic read: one python value per element.

        Tuples of size 1 are returned as scalars, larger tuples as tuples,
        arrays as lists.
        """
        info = self.info(name, owner)
        if not info.exists:
            raise TransportError(f"AttributeAccessor> attribute '{name}' doesn't exist on {AttributeOwner(owner)}")

        values, counts = self.store.get_data(name, info.owner)

        if info.storage.is_array:
            res = []
            offset = 0
            for count in counts:
                res.append(list(values[offset:offset + count]))
                offset += count
            return res

        if info.storage.is_string:
            return list(values)

        values = np.asarray(values)
        if info.tuple_size == 1:
            return values[:, 0].tolist()
        return [tuple(v) for v in values.tolist()]

    # ====================================================================================================
    # Setters
    # ====================================================================================================

    def _register(self, name, owner):
        if name not in self.names[owner]:
            self.names[owner].append(name)

    def set_int(self, name, owner, values, tuple_size=1):
        owner = AttributeOwner(owner)
        self.store.add_attribute(name, owner, StorageType.INT, tuple_size=tuple_size)
        self.store.set_data(name, owner, np.asarray(values, dtype=bint))
        self._register(name, owner)

    def set_float(self, name, owner, values, tuple_size=1):
        owner = AttributeOwner(owner)
        self.store.add_attribute(name, owner, StorageType.FLOAT, tuple_size=tuple_size)
        self.store.set_data(name, owner, np.asarray(values, dtype=bfloat))
        self._register(name, owner)

    def set_string(self, name, owner, values):
        owner = AttributeOwner(owner)
        self.store.add_attribute(name, owner, StorageType.STRING)
        self.store.set_data(name, owner, list(values))
        self._register(name, owner)

    def set_dict_array(self, name, owner, values, counts):
        owner = AttributeOwner(owner)
        self.store.add_attribute(name, owner, StorageType.DICTIONARY_ARRAY)
        self.store.set_data(name, owner, list(values), counts=counts)
        self._register(name, owner)

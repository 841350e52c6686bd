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
Module Name: reconcile
Author: Alain Bernard
Version: 0.1.0
Created: 2025-09-20
Last updated: 2025-10-04

Summary:
    Reuse of the shapes produced by the previous translation run.

    The shapes live in the host object graph. An output only keeps a handle on its
    shape and the split identity it was created for: (split value, split actor).

    A new run rebuilds its outputs with a `Reconciler` which selects the previous
    outputs which can be reused:

    - full      : all the live previous outputs are reuse candidates
    - partial   : the outputs of the removed split values are destroyed, the ones of the
                  modified split values are candidates, the others are kept unchanged

    A candidate is reused by the first new output with the same identity and leaves
    the pool: a candidate can't be reused twice. The candidates which are not reused
    are destroyed when the run finishes.

Usage example:
    >>> rec = Reconciler(previous_outputs, graph)
    >>> rec.full()
    >>> output = rec.acquire("", False)
    >>> shape = output.create_or_update(graph)
    >>> outputs = rec.finish()
"""

__all__ = ["ShapeOutput", "HostObjectGraph", "SceneGraph", "Reconciler"]

import logging

from .shapes import ZoneShape


# =============================================================================================================================
# Output
# =============================================================================================================================

class ShapeOutput:

    __slots__ = ('handle', 'split_value', 'split_actor')

    def __init__(self, split_value="", split_actor=False, handle=None):
        self.handle      = handle
        self.split_value = split_value
        self.split_actor = bool(split_actor)

    def __repr__(self):
        return f"<ShapeOutput {self.handle}, split: '{self.split_value}', actor: {self.split_actor}>"

    @property
    def identity(self):
        return (self.split_value, self.split_actor)

    def can_reuse(self, split_value, split_actor):
        return self.split_value == split_value and self.split_actor == bool(split_actor)

    def find(self, graph):
        """ The shape in the graph, None if the handle is not live."""
        if self.handle is None:
            return None
        return graph.find(self.handle)

    def create_or_update(self, graph):
        """ The live shape of the output, created if needed."""
        shape = self.find(graph)
        if shape is None:
            self.handle = graph.create(self.split_value, self.split_actor)
            shape = graph.find(self.handle)
        return shape

    def destroy(self, graph):
        if self.handle is not None and graph.find(self.handle) is not None:
            graph.destroy(self.handle)
        self.handle = None

# =============================================================================================================================
# Host object graph
# =============================================================================================================================

class HostObjectGraph:
    """ Contract of the host objects owning the shapes."""

    def create(self, split_value, split_actor):
        raise NotImplementedError

    def find(self, handle):
        raise NotImplementedError

    def destroy(self, handle):
        raise NotImplementedError

    def shapes(self):
        """All the live shapes."""
        raise NotImplementedError

class SceneGraph(HostObjectGraph):

    def __init__(self):
        """ Host object graph held in memory.

        Shapes created for a split actor are put in a container named after the
        split value, the other ones in the main container ("").
        """
        self._shapes    = {}
        self._owners    = {}
        self._next      = 1
        self.destroyed  = []

    def __str__(self):
        return f"<SceneGraph: {len(self._shapes)} shapes>"

    def __len__(self):
        return len(self._shapes)

    def create(self, split_value, split_actor):
        handle = self._next
        self._next += 1
        self._shapes[handle] = ZoneShape()
        self._owners[handle] = split_value if split_actor else ""
        logging.debug(f"SceneGraph> shape {handle} created in '{self._owners[handle]}'")
        return handle

    def find(self, handle):
        return self._shapes.get(handle)

    def destroy(self, handle):
        if handle not in self._shapes:
            raise KeyError(f"SceneGraph> invalid handle {handle}")
        del self._shapes[handle]
        del self._owners[handle]
        self.destroyed.append(handle)
        logging.debug(f"SceneGraph> shape {handle} destroyed")

    def container(self, handle):
        """ Name of the container holding the shape."""
        return self._owners[handle]

    @property
    def handles(self):
        return list(self._shapes.keys())

    def shapes(self):
        return list(self._shapes.values())

# =============================================================================================================================
# Reconciler
# =============================================================================================================================

class Reconciler:

    def __init__(self, outputs, graph):
        """ Selection of the previous outputs to reuse, keep or destroy.

        Call `full()` or `partial()` first, then `acquire()` for each new output
        and finally `finish()`.

        Arguments
        ---------
            - outputs (list of ShapeOutput) : outputs of the previous run
            - graph (HostObjectGraph) : the host objects
        """
        self.graph      = graph
        self.previous   = list(outputs)
        self.candidates = []
        self.carried    = []
        self.doomed     = []
        self.acquired   = []

    def __str__(self):
        return (f"<Reconciler: candidates {len(self.candidates)}, carried {len(self.carried)}, "
                f"doomed {len(self.doomed)}, acquired {len(self.acquired)}>")

    def _live(self):
        return [output for output in self.previous if output.find(self.graph) is not None]

    def full(self):
        """ All the live outputs can be reused."""
        self.candidates = self._live()

    def partial(self, modify_values, remove_values):
        """ Only the outputs of the modified split values can be reused.

        Arguments
        ---------
            - modify_values (set of str) : split values updated by the run
            - remove_values (set of str) : split values removed by the run
        """
        for output in self._live():
            if output.split_value in remove_values:
                self.doomed.append(output)
            elif output.split_value in modify_values:
                self.candidates.append(output)
            else:
                self.carried.append(output)

    def acquire(self, split_value, split_actor):
        """ Output for a split identity: a reused candidate or a new one.

        Returns
        -------
            - ShapeOutput
        """
        for i, output in enumerate(self.candidates):
            if output.can_reuse(split_value, split_actor):
                del self.candidates[i]
                self.acquired.append(output)
                return output

        output = ShapeOutput(split_value, split_actor)
        self.acquired.append(output)
        return output

    def finish(self):
        """ Destroy what is not reused.

        Returns
        -------
            - list of ShapeOutput : the new output collection
        """
        logging.debug(f"Reconciler> finish {self}")

        for output in self.doomed + self.candidates:
            output.destroy(self.graph)

        self.doomed     = []
        self.candidates = []

        return self.carried + self.acquired

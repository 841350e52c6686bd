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
Module Name: translator
Author: Alain Bernard
Version: 0.1.0
Created: 2025-09-26
Last updated: 2025-10-05

Summary:
    Entry point of the translation.

    The translator owns the registry, the host object graph and the engine session.
    It runs the output and input translations and the registry maintenance commands.

    When an output run changes shapes, a "build zone graph" notification is raised.
    It stays pending until the build is done or cancelled.

Usage example:
    >>> tr = Translator(registry_path="registry.json")
    >>> result = tr.update_output([buffer])
    >>> tr.notification
    'pending'
    >>> tr.on_build_done()
"""

__all__ = ["Translator"]

import logging

from .constants import TAG_CAPACITY
from .attributes import AttributeAccessor, MemorySession
from .registry import RegistryContext
from .reconcile import SceneGraph
from .output import ZoneShapeOutput, is_part_valid
from .input import ZoneShapeInput


NOTIFICATION_PENDING   = "pending"
NOTIFICATION_SUCCESS   = "success"
NOTIFICATION_CANCELLED = "cancelled"


class Translator:

    def __init__(self, registry=None, graph=None, session=None, registry_path=None, tag_capacity=TAG_CAPACITY):
        """ Zone shapes translator.

        Arguments
        ---------
            - registry (RegistryContext = None) : tags and profiles, loaded from registry_path if None
            - graph (HostObjectGraph = None) : host objects, a new SceneGraph if None
            - session (MemorySession = None) : engine session, a new one if None
            - registry_path (str = None) : json file of the registry
            - tag_capacity (int = TAG_CAPACITY) : tag slots of a new registry
        """
        if registry is None:
            if registry_path is not None:
                registry = RegistryContext.load(registry_path)
            else:
                registry = RegistryContext(tag_capacity=tag_capacity)

        self.registry     = registry
        self.graph        = SceneGraph() if graph is None else graph
        self.session      = MemorySession() if session is None else session
        self.output       = ZoneShapeOutput()
        self.input        = ZoneShapeInput()
        self.notification = None

    def __str__(self):
        return f"<Translator {self.registry}, {self.output}, {self.input}, notification: {self.notification}>"

    # ====================================================================================================
    # Translation
    # ====================================================================================================

    def update_output(self, parts):
        """ Decode the zone shape parts, the other parts are ignored.

        Returns
        -------
            - UpdateResult
        """
        accessors = [AttributeAccessor(part) for part in parts]
        valid = [acc for acc in accessors if is_part_valid(acc)]
        if len(valid) != len(accessors):
            logging.debug(f"Translator> {len(accessors) - len(valid)} part(s) are not zone shapes")

        result = self.output.update(valid, self.registry, self.graph)

        if result.changed_shapes:
            self.on_output_finish()

        return result

    def upload_input(self, shapes, transforms=None):
        return self.input.upload(shapes, self.session, self.registry, transforms=transforms)

    def destroy(self):
        self.output.destroy(self.graph)
        self.input.destroy(self.session)

    # ====================================================================================================
    # Notification
    # ====================================================================================================

    def on_output_finish(self):
        if self.notification != NOTIFICATION_PENDING:
            self.notification = NOTIFICATION_PENDING
            logging.info("Translator> zone shape output finished, please build zone graph")

    def on_build_done(self):
        if self.notification == NOTIFICATION_PENDING:
            self.notification = NOTIFICATION_SUCCESS

    def on_build_cancel(self):
        if self.notification == NOTIFICATION_PENDING:
            self.notification = NOTIFICATION_CANCELLED
            logging.info("Translator> zone graph build cancelled")

    # ====================================================================================================
    # Maintenance
    # ====================================================================================================

    def used_profile_ids(self):
        """ Ids of the lane profiles used by the shapes of the graph."""
        ids = set()
        for shape in self.graph.shapes():
            ids |= shape.used_profile_ids(self.registry)
        return ids

    def cleanup_lane_profiles(self):
        """ Remove the generated lane profiles no shape uses.

        Returns
        -------
            - int : number of removed profiles
        """
        removed = self.registry.cleanup_lane_profiles(self.used_profile_ids())
        self.registry.persist()
        return removed

    def remove_all_lane_profiles(self):
        """ Remove all the generated lane profiles."""
        removed = self.registry.remove_all_lane_profiles()
        self.registry.persist()
        return removed

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
Module Name: registry
Author: Alain Bernard
Version: 0.1.0
Created: 2025-09-14
Last updated: 2025-10-02

Summary:
    Zone graph registry: tag slots and lane profiles.

    The registry is shared by all the translation runs. It is passed explicitly
    to every function which can read or change it. Changes set the `modified` flag;
    the registry is persisted once at the end of a run with `persist()`.

    Tags are stored in a fixed number of slots. A slot is free when it has no name.
    The mask of slot i is 1 << i.

Usage example:
    >>> registry = RegistryContext(tag_capacity=4)
    >>> registry.find_or_create_tag("Vehicles")
    1
    >>> registry.modified
    True
"""

__all__ = ["TagInfo", "RegistryContext"]

import json
import logging
import os

from .constants import TAG_CAPACITY, DEFAULT_TAG_MASK, LANE_PROFILE_PREFIX, NO_PROFILE
from .lanes import LaneProfile


# =============================================================================================================================
# Tag slot
# =============================================================================================================================

class TagInfo:

    __slots__ = ('name', 'index')

    def __init__(self, index, name=None):
        self.index = index
        self.name  = name

    @property
    def mask(self):
        return 1 << self.index

    @property
    def is_valid(self):
        return self.name is not None

    def __repr__(self):
        return f"<TagInfo {self.index}: {self.name}>"

# =============================================================================================================================
# Registry
# =============================================================================================================================

class RegistryContext:

    def __init__(self, tag_capacity=TAG_CAPACITY, tags=None, profiles=None, path=None):
        """ Tags and lane profiles registry.

        Arguments
        ---------
            - tag_capacity (int = TAG_CAPACITY) : number of tag slots, at most TAG_CAPACITY
            - tags (list of str = None) : initial slot names, None for free slots
            - profiles (list of LaneProfile = None) : initial profiles
            - path (str = None) : json file written by `persist()`
        """
        if not 0 < tag_capacity <= TAG_CAPACITY:
            raise ValueError(f"RegistryContext> tag capacity must be in [1, {TAG_CAPACITY}], not {tag_capacity}")

        self.tags = [TagInfo(i) for i in range(tag_capacity)]
        if tags is not None:
            if len(tags) > tag_capacity:
                raise ValueError(f"RegistryContext> {len(tags)} tags for a capacity of {tag_capacity}")
            for info, name in zip(self.tags, tags):
                info.name = name or None

        self.profiles = list(profiles) if profiles is not None else []
        self.path     = path
        self.modified = False

    def __str__(self):
        return f"<RegistryContext: tags {len([t for t in self.tags if t.is_valid])}/{len(self.tags)}, profiles {len(self.profiles)}>"

    @property
    def tag_capacity(self):
        return len(self.tags)

    # ====================================================================================================
    # Tags
    # ====================================================================================================

    def find_tag(self, name):
        """ Mask of the tag, None if not found."""
        for info in self.tags:
            if info.name == name:
                return info.mask
        return None

    def find_or_create_tag(self, name):
        """ Mask of the tag, created in the first free slot if needed.

        When all the slots are used, an error is logged and DEFAULT_TAG_MASK
        is returned.

        Arguments
        ---------
            - name (str) : tag name

        Returns
        -------
            - int : tag mask, 0 for an empty name
        """
        if not name:
            return 0

        mask = self.find_tag(name)
        if mask is not None:
            return mask

        for info in self.tags:
            if not info.is_valid:
                info.name = name
                self.modified = True
                logging.debug(f"Registry> tag '{name}' created in slot {info.index}")
                return info.mask

        logging.error(f"Registry> cannot create zone graph tag '{name}': the {self.tag_capacity} slots are used")
        return DEFAULT_TAG_MASK

    def tag_names(self, mask):
        """ Names of the tags in the mask, in slot order."""
        return [info.name for info in self.tags if info.is_valid and (mask & info.mask)]

    # ====================================================================================================
    # Lane profiles
    # ====================================================================================================

    def find_profile_index(self, name):
        """ Index of the first profile with this name, NO_PROFILE if not found."""
        for index, profile in enumerate(self.profiles):
            if profile.name == name:
                return index
        return NO_PROFILE

    def find_profile(self, ref):
        """ Profile referenced by a LaneProfileRef, searched by id."""
        if ref is None:
            return None
        for profile in self.profiles:
            if profile.id == ref.id:
                return profile
        return None

    def add_profile(self, profile):
        self.profiles.append(profile)
        self.modified = True
        return len(self.profiles) - 1

    def is_valid_profile_index(self, index):
        return 0 <= index < len(self.profiles)

    # ----------------------------------------------------------------------------------------------------
    # Maintenance
    # ----------------------------------------------------------------------------------------------------

    def cleanup_lane_profiles(self, used_ids):
        """ Remove the generated profiles which are not used.

        Arguments
        ---------
            - used_ids (set of str) : ids of the profiles in use

        Returns
        -------
            - int : number of removed profiles
        """
        def generated_unused(profile):
            name = profile.name or ""
            return name.startswith(LANE_PROFILE_PREFIX) and len(name) > len(LANE_PROFILE_PREFIX) and profile.id not in used_ids

        count = len(self.profiles)
        self.profiles = [profile for profile in self.profiles if not generated_unused(profile)]
        removed = count - len(self.profiles)
        if removed:
            self.modified = True
        logging.info(f"Registry> {removed} unused lane profile(s) removed")
        return removed

    def remove_all_lane_profiles(self):
        """ Remove all the generated profiles."""
        count = len(self.profiles)
        self.profiles = [profile for profile in self.profiles if not (profile.name or "").startswith(LANE_PROFILE_PREFIX)]
        removed = count - len(self.profiles)
        if removed:
            self.modified = True
        logging.info(f"Registry> {removed} generated lane profile(s) removed")
        return removed

    # ====================================================================================================
    # Persistence
    # ====================================================================================================

    def to_dict(self):
        return {
            'tag_capacity' : self.tag_capacity,
            'tags'         : [info.name for info in self.tags],
            'profiles'     : [profile.to_dict() for profile in self.profiles],
            }

    @classmethod
    def from_dict(cls, d, path=None):
        return cls(
            tag_capacity = d.get('tag_capacity', TAG_CAPACITY),
            tags         = d.get('tags'),
            profiles     = [LaneProfile.from_dict(p) for p in d.get('profiles', [])],
            path         = path,
            )

    def save(self, path=None):
        path = self.path if path is None else path
        if path is None:
            raise ValueError("RegistryContext.save> no path")

        folder = os.path.dirname(path)
        if folder:
            os.makedirs(folder, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2, ensure_ascii=False)

    @classmethod
    def load(cls, path):
        """ Load the registry from a json file, an empty registry is returned if the file doesn't exist."""
        if not os.path.exists(path):
            return cls(path=path)
        with open(path, "r", encoding="utf-8") as f:
            return cls.from_dict(json.load(f), path=path)

    def persist(self):
        """ Save the registry if it was modified.

        Returns
        -------
            - bool : True if the registry was modified
        """
        if not self.modified:
            return False

        if self.path is not None:
            self.save()
            logging.info(f"Registry> saved to '{self.path}'")

        self.modified = False
        return True

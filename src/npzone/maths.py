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
Module Name: maths
Author: Alain Bernard
Version: 0.1.0
Created: 2025-09-16
Last updated: 2025-09-30

Summary:
    Unit and basis conversions between the geometry engine and the host.

    - Engine : metres, Y up, quaternions (x, y, z, w), euler angles in radians
    - Host   : centimetres, Z up, rotators (pitch, yaw, roll) in degrees

    Positions swap the Y and Z axis and are scaled. Quaternions swap Y and Z and
    negate W (the handedness changes). All the functions are vectorized.

Usage example:
    >>> rot = quaternions_to_rotators(houdini_to_unreal_quaternions(q))
"""

__all__ = [
    "houdini_to_unreal_positions", "unreal_to_houdini_positions",
    "houdini_to_unreal_quaternions", "unreal_to_houdini_quaternions",
    "houdini_euler_to_rotators",
    "quaternions_to_rotators", "rotators_to_quaternions",
    "quaternion_multiply", "quaternion_rotate",
    "ShapeTransform",
    ]

import numpy as np

from .constants import bfloat
from .constants import POSITION_SCALE_TO_UNREAL, POSITION_SCALE_TO_HOUDINI

# Same threshold as the host to detect gimbal lock
SINGULARITY_THRESHOLD = 0.4999995

# ====================================================================================================
# Positions
# ====================================================================================================

def houdini_to_unreal_positions(positions):
    positions = np.reshape(np.asarray(positions, dtype=np.float64), (-1, 3))
    return positions[:, [0, 2, 1]] * POSITION_SCALE_TO_UNREAL

def unreal_to_houdini_positions(positions):
    positions = np.reshape(np.asarray(positions, dtype=np.float64), (-1, 3))
    return (positions[:, [0, 2, 1]] * POSITION_SCALE_TO_HOUDINI).astype(bfloat)

# ====================================================================================================
# Quaternions
# ====================================================================================================

def houdini_to_unreal_quaternions(quats):
    q = np.reshape(np.asarray(quats, dtype=np.float64), (-1, 4))
    res = q[:, [0, 2, 1, 3]]
    res[:, 3] *= -1
    return res

def unreal_to_houdini_quaternions(quats):
    # The swap is its own inverse
    return houdini_to_unreal_quaternions(quats).astype(bfloat)

def quaternion_multiply(q0, q1):
    """ Hamilton product q0 * q1, (x, y, z, w) convention."""
    q0 = np.asarray(q0, dtype=np.float64)
    q1 = np.asarray(q1, dtype=np.float64)
    x0, y0, z0, w0 = q0[..., 0], q0[..., 1], q0[..., 2], q0[..., 3]
    x1, y1, z1, w1 = q1[..., 0], q1[..., 1], q1[..., 2], q1[..., 3]

    return np.stack((
        w0*x1 + x0*w1 + y0*z1 - z0*y1,
        w0*y1 - x0*z1 + y0*w1 + z0*x1,
        w0*z1 + x0*y1 - y0*x1 + z0*w1,
        w0*w1 - x0*x1 - y0*y1 - z0*z1,
        ), axis=-1)

def quaternion_rotate(q, vectors):
    """ Rotate vectors by unit quaternions."""
    q = np.asarray(q, dtype=np.float64)
    v = np.asarray(vectors, dtype=np.float64)
    u = q[..., :3]
    w = q[..., 3:4]
    t = 2*np.cross(u, v)
    return v + w*t + np.cross(u, t)

# ====================================================================================================
# Rotators
# ====================================================================================================

def _normalize_axis(angles):
    # Degrees in ]-180, 180]
    a = np.mod(angles, 360.)
    return np.where(a > 180., a - 360., a)

def quaternions_to_rotators(quats):
    """ Convert quaternions to rotators.

    Arguments
    ---------
        - quats (array (n, 4)) : quaternions (x, y, z, w) in host basis

    Returns
    -------
        - array (n, 3) : pitch, yaw, roll in degrees
    """
    q = np.reshape(np.asarray(quats, dtype=np.float64), (-1, 4))
    X, Y, Z, W = q[:, 0], q[:, 1], q[:, 2], q[:, 3]

    singularity = Z*X - W*Y
    yaw_y = 2*(W*Z + X*Y)
    yaw_x = 1 - 2*(Y*Y + Z*Z)

    yaw   = np.degrees(np.arctan2(yaw_y, yaw_x))
    pitch = np.degrees(np.arcsin(np.clip(2*singularity, -1., 1.)))
    roll  = np.degrees(np.arctan2(-2*(W*X + Y*Z), 1 - 2*(X*X + Y*Y)))

    # ----- Gimbal lock

    south = singularity < -SINGULARITY_THRESHOLD
    north = singularity > SINGULARITY_THRESHOLD

    pitch[south] = -90.
    roll[south]  = _normalize_axis(-yaw[south] - 2*np.degrees(np.arctan2(X[south], W[south])))

    pitch[north] = 90.
    roll[north]  = _normalize_axis(yaw[north] - 2*np.degrees(np.arctan2(X[north], W[north])))

    return np.stack((pitch, yaw, roll), axis=-1)

def rotators_to_quaternions(rotators):
    """ Convert rotators (pitch, yaw, roll in degrees) to quaternions (x, y, z, w)."""
    r = np.reshape(np.asarray(rotators, dtype=np.float64), (-1, 3))
    half = np.radians(r) / 2

    sp, cp = np.sin(half[:, 0]), np.cos(half[:, 0])
    sy, cy = np.sin(half[:, 1]), np.cos(half[:, 1])
    sr, cr = np.sin(half[:, 2]), np.cos(half[:, 2])

    return np.stack((
         cr*sp*sy - sr*cp*cy,
        -cr*sp*cy - sr*cp*sy,
         cr*cp*sy - sr*sp*cy,
         cr*cp*cy + sr*sp*sy,
        ), axis=-1)

def houdini_euler_to_rotators(euler):
    """ Engine euler angles (radians) to rotators: pitch = x, yaw = z, roll = y."""
    e = np.reshape(np.asarray(euler, dtype=np.float64), (-1, 3))
    return np.degrees(e[:, [0, 2, 1]])

# ====================================================================================================
# Transformation of a shape
# ====================================================================================================

class ShapeTransform:

    def __init__(self, location=(0., 0., 0.), rotation=(0., 0., 0., 1.), scale=(1., 1., 1.)):
        """ Host transformation of a shape component.

        Arguments
        ---------
            - location (vector) : translation, in host units
            - rotation (quaternion) : rotation (x, y, z, w)
            - scale (vector) : scale
        """
        self.location = np.asarray(location, dtype=np.float64)
        self.rotation = np.asarray(rotation, dtype=np.float64)
        self.scale    = np.asarray(scale, dtype=np.float64)

    def __repr__(self):
        return f"<ShapeTransform location: {self.location}, rotation: {self.rotation}, scale: {self.scale}>"

    @classmethod
    def identity(cls):
        return cls()

    def transform_positions(self, positions):
        positions = np.reshape(np.asarray(positions, dtype=np.float64), (-1, 3))
        return quaternion_rotate(self.rotation, positions*self.scale) + self.location

    def transform_rotations(self, quats):
        quats = np.reshape(np.asarray(quats, dtype=np.float64), (-1, 4))
        return quaternion_multiply(self.rotation, quats)

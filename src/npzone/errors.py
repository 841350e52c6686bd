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
Module Name: errors
Author: Alain Bernard
Version: 0.1.0
Created: 2025-09-12
Last updated: 2025-09-20

Summary:
    Exceptions raised by the translation.

    - TransportError and StructuralError abort the current run.
    - PropertyError is caught by the decoder which skips the property.
"""

__all__ = ["NpzoneError", "TransportError", "StructuralError", "PropertyError"]


class NpzoneError(Exception):
    pass

class TransportError(NpzoneError):
    """A call to the attribute store failed."""
    pass

class StructuralError(NpzoneError):
    """The curve buffer can't be decoded (missing positions, inconsistent counts...)."""
    pass

class PropertyError(NpzoneError):
    """A free-form property can't be applied to its target."""
    pass

"""
The mapping between host arrays and grids of 4-channel pixels.

A host array of scalars is stored as elements of four scalars, one element
per pixel, in row-major order: the element with logical index ``i`` sits at
pixel ``(i % width, i // width)``. A kernel invocation derives the index of
the element it computes from its fragment coordinate in the same way.

.. currentmodule:: texcompute.codec

.. autosummary::
    :toctree: codec/
    :template: ../_templates/custom_layout.rst

    Shape
    to_pixel
    to_index
    to_scalar_pixel
    from_scalar_pixel
    from_frag_coord
    pack
    unpack

"""

from collections import namedtuple
from math import ceil, floor, sqrt

import numpy as np

from .errors import SizeMismatchError


class Shape(namedtuple("Shape", ["width", "height"])):
    """The size of a 2D pixel grid. Both dimensions are positive integers."""

    __slots__ = ()

    def __new__(cls, width, height):
        for name, value in (("width", width), ("height", height)):
            if isinstance(value, bool) or int(value) != value:
                raise ValueError(f"Shape {name} must be an integer, not {value!r}")
            if value <= 0:
                raise ValueError(f"Shape {name} must be positive, not {value!r}")
        return super().__new__(cls, int(width), int(height))

    @classmethod
    def from_value(cls, value):
        """Get a Shape from a Shape or a (width, height) tuple."""
        if isinstance(value, cls):
            return value
        width, height = value
        return cls(width, height)

    @classmethod
    def for_elements(cls, n):
        """Get the smallest near-square shape that holds ``n`` scalars.

        The width is the smallest integer with ``width**2 >= pixels``, the
        height is what is then needed to hold all pixels.
        """
        if n <= 0:
            raise ValueError(f"Need a positive number of elements, not {n!r}")
        npixels = ceil(n / 4)
        width = ceil(sqrt(npixels))
        height = ceil(npixels / width)
        return cls(width, height)

    @property
    def npixels(self):
        """The number of pixels (i.e. 4-element groups) in the grid."""
        return self.width * self.height

    @property
    def nscalars(self):
        """The number of scalars that the grid holds."""
        return self.width * self.height * 4


def to_pixel(index, shape):
    """Get the pixel ``(x, y)`` of the element with the given logical index."""
    assert 0 <= index < shape.width * shape.height, f"index {index} out of range"
    y, x = divmod(index, shape.width)
    return x, y


def to_index(x, y, shape):
    """Get the logical index of the element at pixel ``(x, y)``."""
    assert 0 <= x < shape.width and 0 <= y < shape.height, f"({x}, {y}) out of range"
    return x + shape.width * y


def to_scalar_pixel(scalar_index, shape):
    """Get the ``(x, y, channel)`` of a scalar in the flat host array."""
    index, channel = divmod(scalar_index, 4)
    x, y = to_pixel(index, shape)
    return x, y, channel


def from_scalar_pixel(x, y, channel, shape):
    """Get the position in the flat host array of the scalar at ``(x, y, channel)``."""
    assert 0 <= channel < 4, f"channel {channel} out of range"
    return to_index(x, y, shape) * 4 + channel


def from_frag_coord(fx, fy):
    """Get the pixel ``(x, y)`` for a fragment coordinate.

    Fragment coordinates are at pixel centers, e.g. (0.5, 0.5) for the first pixel.
    """
    return floor(fx - 0.5), floor(fy - 0.5)


def pack(values, shape):
    """Pack a host array into a float32 array of shape ``(height, width, 4)``.

    The values are laid out in row-major order, and padded with zeros to
    fill the grid. Raises ``SizeMismatchError`` if they do not fit.
    """
    flat = np.asarray(values, np.float32).ravel()
    if flat.size > shape.nscalars:
        raise SizeMismatchError(shape.nscalars, flat.size, "at most")
    pixels = np.zeros((shape.height, shape.width, 4), np.float32)
    pixels.reshape(-1)[: flat.size] = flat
    return pixels


def unpack(pixels, count=None):
    """Unpack a pixel grid (or flat array read from the device) to a 1D float32 array.

    If ``count`` is given, only the first ``count`` scalars are returned.
    """
    flat = np.asarray(pixels, np.float32).reshape(-1)
    if count is not None:
        if count > flat.size:
            raise SizeMismatchError(flat.size, count, "at most")
        flat = flat[:count]
    return flat

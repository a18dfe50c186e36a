"""
Utility functions for texcompute.

.. currentmodule:: texcompute.utils

.. autosummary::
    :toctree: utils/
    :template: ../_templates/custom_layout.rst

    array_from_shadertype
    assert_type
    enums

"""

import os
import re
import types
import logging
import inspect

import numpy as np

from . import enums  # noqa: F401


logger = logging.getLogger("texcompute")


def _set_log_level():
    # Set default level
    logger.setLevel(logging.WARN)
    # Set user-specified level
    level = os.getenv("TEXCOMPUTE_LOG_LEVEL", "")
    if level:
        try:
            if level.isnumeric():
                logger.setLevel(int(level))
            else:
                logger.setLevel(level.upper())
        except Exception:
            logger.warning(f"Invalid texcompute log level: {level}")


_set_log_level()


PRIMITIVES = {
    "i4": "int32",
    "u4": "uint32",
    "f4": "float32",
}


def parse_shadertype(format):
    """Split a uniform type string like "3xf4" into (primitive, nchannels).

    Only 32 bit scalars and vectors of 2-4 elements are supported.
    """
    match = None
    if isinstance(format, str):
        match = re.fullmatch(r"(?:([2-4])x)?([fiu]4)", format)
    if match is None:
        raise ValueError(
            f"Uniform values must be a 32bit scalar or a vector of 2-4 elements, not {format!r}"
        )
    countstr, primitive = match.groups()
    return PRIMITIVES[primitive], int(countstr or 1)


def array_from_shadertype(shadertype):
    """Get a numpy array object from a dict shadertype.

    The fields are re-ordered and padded as necessary to fulfil the alignment
    rules for uniform structs. See https://www.w3.org/TR/WGSL/#structure-layout-rules

    Vectors of 2 elements are aligned at 8 bytes, vectors of 3 and 4 elements
    at 16 bytes. The fields are placed from big to small alignment, so that
    padding is only needed behind a vec3 and at the end of the struct. The
    padding is explicit, so the offsets match the struct that
    ``generate_uniform_struct()`` produces for the same dtype.

    params:
        shadertype: dict
            A dict mapping field names to types like "f4", "2xu4" or "4xf4".
    """
    assert isinstance(shadertype, dict)

    fields_per_align = {16: [], 8: [], 4: []}
    for name, format in shadertype.items():
        primitive, n = parse_shadertype(format)
        align = {1: 4, 2: 8, 3: 16, 4: 16}[n]
        shape = () if n == 1 else (n,)
        fields_per_align[align].append((name, primitive, shape, 4 * n))

    dtype_fields = []
    pad_index = 0
    nbytes = 0
    struct_alignment = 4

    for align in (16, 8, 4):
        for name, primitive, shape, size in fields_per_align[align]:
            struct_alignment = max(struct_alignment, align)
            too_many_bytes = nbytes % align
            if too_many_bytes:
                # Only happens right behind a vec3
                pad_index += 1
                need_bytes = align - too_many_bytes
                dtype_fields.append((f"__padding{pad_index}", "uint8", (need_bytes,)))
                nbytes += need_bytes
            dtype_fields.append((name, primitive, shape))
            nbytes += size

    # Round the struct up to a multiple of 16, as needed for a uniform
    too_many_bytes = nbytes % 16
    if too_many_bytes:
        pad_index += 1
        need_bytes = 16 - too_many_bytes
        dtype_fields.append((f"__padding{pad_index}", "uint8", (need_bytes,)))
        nbytes += need_bytes

    uniform_data = np.zeros((), dtype=dtype_fields)

    # If this fails we did something wrong above
    assert uniform_data.nbytes == nbytes
    assert uniform_data.nbytes % struct_alignment == 0

    return uniform_data


def assert_type(name, value, *classes):
    """Raise a TypeError if the value is not an instance of the given classes.

    If the first class is None, the value is also allowed to be None. The
    traceback of the error points to the calling code.
    """
    allow_none = False
    if classes[0] is None:
        if value is None:
            return
        allow_none = True
        classes = classes[1:]

    if not isinstance(value, classes):
        # Get traceback object to point of the frame of interest
        f = inspect.currentframe()
        f = f.f_back
        if name:
            # Step back to calling code
            f = f.f_back
            # If this is a constructor that has name as a (kw) argument, take another step back
            if f.f_code.co_name == "__init__" and name in f.f_code.co_varnames:
                f = f.f_back
        tb = types.TracebackType(None, f, f.f_lasti, f.f_lineno)

        # Build error message
        msg = "Expected"
        if name:
            msg += f" '{name}' to be"
        class_strings = [cls.__name__ for cls in classes]
        msg += f" an instance of {' | '.join(class_strings)}"
        if allow_none:
            msg += " or None"
        msg += f", but got {value.__class__.__name__} object."

        # Raise message with alt traceback
        raise TypeError(msg).with_traceback(tb) from None

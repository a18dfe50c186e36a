"""
Utils for the wgpu engine.
"""

import json
import weakref
from collections import namedtuple

import numpy as np
import wgpu

from ..utils.enums import ChannelFormat


FormatInfo = namedtuple(
    "FormatInfo",
    ["name", "bytes_per_pixel", "dtype", "renderable", "filter_feature"],
)
FormatInfo.__doc__ = """Static information on a ChannelFormat.

``dtype`` is the numpy dtype of a channel as stored on the device,
``renderable`` whether the format can be a color attachment, and
``filter_feature`` the device feature needed to sample it with a filtering
sampler (or None).
"""

FORMATS = {
    ChannelFormat.rgba32float: FormatInfo(
        "rgba32float", 16, np.dtype(np.float32), True, "float32-filterable"
    ),
    ChannelFormat.rgba16float: FormatInfo(
        "rgba16float", 8, np.dtype(np.float16), True, None
    ),
    ChannelFormat.rgba8unorm: FormatInfo(
        "rgba8unorm", 4, np.dtype(np.uint8), True, None
    ),
    ChannelFormat.rgba8snorm: FormatInfo(
        "rgba8snorm", 4, np.dtype(np.int8), False, None
    ),
}


def encode_pixels(values, info):
    """Convert float32 host values to the storage representation of a format."""
    values = np.asarray(values, np.float32)
    if info.dtype == np.uint8:
        return np.round(np.clip(values, 0.0, 1.0) * 255).astype(np.uint8)
    elif info.dtype == np.int8:
        return np.round(np.clip(values, -1.0, 1.0) * 127).astype(np.int8)
    else:
        return values.astype(info.dtype)


def decode_pixels(raw, info):
    """Convert raw bytes in the storage representation of a format to float32."""
    values = np.frombuffer(raw, info.dtype)
    if info.dtype == np.uint8:
        return values.astype(np.float32) / 255
    elif info.dtype == np.int8:
        # Both -128 and -127 map to -1.0
        return np.maximum(values.astype(np.float32) / 127, -1.0)
    else:
        return values.astype(np.float32)


def generate_uniform_struct(dtype_struct, structname):
    """Generate wgsl code from a uniform struct defined with a numpy dtype."""
    code = f"""
        struct {structname} {{
    """.rstrip()

    for fieldname, (dtype, offset) in dtype_struct.fields.items():
        if fieldname.startswith("__"):
            continue
        # Resolve primitive type
        primitive_type = dtype.base.name
        primitive_type = primitive_type.replace("float", "f")
        primitive_type = primitive_type.replace("uint", "u")
        primitive_type = primitive_type.replace("int", "i")
        # Resolve actual type (only scalar and vec)
        shape = dtype.shape
        if shape == () or shape == (1,):
            wgsl_type = primitive_type
            alignment = 4
        elif len(shape) == 1 and 2 <= shape[0] <= 4:
            n = shape[0]
            wgsl_type = f"vec{n}<{primitive_type}>"
            alignment = 8 if n == 2 else 16
        else:
            raise TypeError(f"Unsupported uniform type {dtype}")

        if offset % alignment != 0:
            # If this happens, array_from_shadertype() has failed.
            raise TypeError(
                f"Struct alignment error: {structname}.{fieldname} alignment must be {alignment}"
            )

        code += f"\n            {fieldname}: {wgsl_type},"

    code += "\n        };"

    return code


class JsonEncoderWithWgpuSupport(json.JSONEncoder):
    def default(self, ob):
        if isinstance(ob, wgpu.GPUObjectBase):
            return ob.__class__.__name__ + "@" + hex(id(ob))
        return super().default(ob)


jsonencoder = JsonEncoderWithWgpuSupport()


def hash_from_value(value):
    """Simple way to create a hash from a (possibly composite) object.
    Assumes JSON encodable objects and GPU objects.
    """
    return hash(jsonencoder.encode(value))


class GpuCaches:
    """A collection of gpu caches."""

    def get_stats(self):
        """Get a dict mapping cache names to (count, hits, misses)."""
        d = {}
        for name, ob in self.__dict__.items():
            if isinstance(ob, GpuCache):
                d[name] = ob.get_stats()
        return d


gpu_caches = GpuCaches()


class GpuCache:
    """A cache for GPU objects. It does not keep the objects alive."""

    def __init__(self, name):
        assert isinstance(name, str)
        assert not hasattr(gpu_caches, name)
        setattr(gpu_caches, name, self)

        self._objects = weakref.WeakValueDictionary()
        self.hits = 0
        self.misses = 0

    def get_stats(self):
        """Get the number of (alive) objects in the cache, and the hit/miss counts."""
        return len(list(self._objects.values())), self.hits, self.misses

    def get(self, key):
        """Get the cached object or None."""
        try:
            ob = self._objects[key]
        except KeyError:
            self.misses += 1
            return None
        self.hits += 1
        return ob

    def set(self, key, ob):
        """Store the given object under the given key."""
        self._objects[key] = ob

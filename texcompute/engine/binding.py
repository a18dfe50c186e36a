"""
Kernel inputs, and how they map to wgpu bindings.

A kernel declares its inputs by name and kind. The values bound to those
names are one of three variants: a texture (a DeviceBuffer to sample), a
scalar, or a vector of 2-4 elements. Scalars and vectors end up in the
kernel's uniform struct, textures get their own binding.
"""

import numpy as np
import wgpu

from ..utils import parse_shadertype
from .buffer import DeviceBuffer


TEXTURE_KINDS = {
    "texture": "nearest",
    "texture/linear": "linear",
}


# %% Input values


class KernelInput:
    """Base class for the values that can be bound to a kernel input."""

    kind = ""

    def __repr__(self):
        return f"<{self.__class__.__name__} {self.value!r}>"


class TextureInput(KernelInput):
    """A DeviceBuffer to be sampled by the kernel."""

    kind = "texture"

    def __init__(self, buffer):
        if not isinstance(buffer, DeviceBuffer):
            raise TypeError(
                f"TextureInput needs a DeviceBuffer, not {buffer.__class__.__name__}."
            )
        self.value = buffer


class ScalarInput(KernelInput):
    """A single number."""

    kind = "scalar"

    def __init__(self, value):
        if isinstance(value, bool) or not isinstance(value, (int, float, np.number)):
            raise TypeError(f"ScalarInput needs a number, not {value!r}.")
        self.value = value


class VectorInput(KernelInput):
    """A vector of 2, 3 or 4 numbers."""

    kind = "vector"

    def __init__(self, values):
        values = np.asarray(values)
        if values.ndim != 1 or not (2 <= values.size <= 4):
            raise ValueError(
                f"VectorInput needs 2-4 numbers, not an array of shape {values.shape}."
            )
        if not np.issubdtype(values.dtype, np.number):
            raise TypeError(f"VectorInput needs numbers, not {values.dtype}.")
        self.value = tuple(values.tolist())


def as_kernel_input(value):
    """Convert a value to a KernelInput: DeviceBuffer, number, or sequence of numbers."""
    if isinstance(value, KernelInput):
        return value
    elif isinstance(value, DeviceBuffer):
        return TextureInput(value)
    elif isinstance(value, (int, float, np.number)) and not isinstance(value, bool):
        return ScalarInput(value)
    elif isinstance(value, (list, tuple, np.ndarray)):
        return VectorInput(value)
    else:
        raise TypeError(
            f"Cannot bind a {value.__class__.__name__} to a kernel; "
            "expected a DeviceBuffer, a number, or a sequence of numbers."
        )


# %% Declarations

# Representable values of the integer uniform types
INTEGER_RANGES = {
    "int32": (-(2**31), 2**31 - 1),
    "uint32": (0, 2**32 - 1),
}


class InputDeclaration:
    """The declared kind of a kernel input.

    The kind is "texture", "texture/linear", or a uniform type like "f4",
    "i4", "u4", "2xf4" or "4xu4".
    """

    def __init__(self, name, kind):
        if not (isinstance(name, str) and name.isidentifier()):
            raise ValueError(f"Kernel input name must be an identifier, not {name!r}")
        if name.startswith("__") or name in RESERVED_NAMES:
            raise ValueError(f"Kernel input name {name!r} is reserved.")
        self.name = name
        self.kind = kind
        if kind in TEXTURE_KINDS:
            self.filter = TEXTURE_KINDS[kind]
            self.nchannels = 0
        else:
            self.filter = None
            self.primitive, self.nchannels = parse_shadertype(kind)  # raises ValueError

    def __repr__(self):
        return f"<InputDeclaration {self.name}: {self.kind}>"

    @property
    def is_texture(self):
        return self.filter is not None

    def validate(self, kernel_input):
        """Check that the given KernelInput matches this declaration."""
        if self.is_texture:
            if not isinstance(kernel_input, TextureInput):
                raise TypeError(
                    f"Kernel input {self.name!r} needs a DeviceBuffer, not {kernel_input!r}."
                )
            if self.filter == "linear" and not kernel_input.value.filterable:
                raise ValueError(
                    f"Kernel input {self.name!r} uses linear sampling, but the buffer was not created with filterable=True."
                )
        elif self.nchannels == 1:
            if not isinstance(kernel_input, ScalarInput):
                raise TypeError(
                    f"Kernel input {self.name!r} needs a scalar, not {kernel_input!r}."
                )
        else:
            if not isinstance(kernel_input, VectorInput):
                raise TypeError(
                    f"Kernel input {self.name!r} needs a vector, not {kernel_input!r}."
                )
            if len(kernel_input.value) != self.nchannels:
                raise ValueError(
                    f"Kernel input {self.name!r} needs {self.nchannels} elements, not {len(kernel_input.value)}."
                )
        if not self.is_texture:
            self._check_values(kernel_input)

    def _check_values(self, kernel_input):
        if self.primitive not in INTEGER_RANGES:
            return
        values = kernel_input.value
        if isinstance(kernel_input, ScalarInput):
            values = (values,)
        lo, hi = INTEGER_RANGES[self.primitive]
        for value in values:
            if not (lo <= value <= hi):
                raise ValueError(
                    f"Kernel input {self.name!r} is {self.kind}, {value!r} is out of range [{lo}, {hi}]."
                )
            if value % 1:
                raise ValueError(
                    f"Kernel input {self.name!r} is {self.kind}, it cannot hold the fraction {value!r}."
                )


# Names that the composed fragment stage defines itself
RESERVED_NAMES = {
    "u_kernel",
    "target_size",
    "nearest_sampler",
    "linear_sampler",
    "varyings",
    "Varyings",
    "pixel_coord",
    "pixel_index",
    "element_coord",
    "load_element",
    "fs_main",
    "vs_main",
}


# %% Bindings


class Binding:
    """Simple object to hold together some information about a binding, for internal use.

    Parameters:
        name: the name in wgsl
        type: "buffer/uniform", "sampler/filtering", "sampler/non_filtering",
            "texture/float" or "texture/unfilterable_float".
        slot: the binding index in bind group 0.
        structtype: for uniforms, the numpy dtype of the struct.
    """

    visibility = wgpu.ShaderStage.FRAGMENT

    def __init__(self, name, type, slot, structtype=None):
        self.name = name
        self.type = type
        self.slot = slot
        self.structtype = structtype

    def __repr__(self):
        return f"<Binding {self.slot} {self.name} {self.type}>"

    def get_layout_descriptor(self):
        """Get the dict to pass (in a list) to ``create_bind_group_layout()``."""
        subtype = self.type.partition("/")[2]
        if self.type.startswith("buffer/"):
            return {
                "binding": self.slot,
                "visibility": self.visibility,
                "buffer": {
                    "type": getattr(wgpu.BufferBindingType, subtype),
                    "has_dynamic_offset": False,
                    "min_binding_size": self.structtype.itemsize,
                },
            }
        elif self.type.startswith("sampler/"):
            return {
                "binding": self.slot,
                "visibility": self.visibility,
                "sampler": {"type": getattr(wgpu.SamplerBindingType, subtype)},
            }
        elif self.type.startswith("texture/"):
            return {
                "binding": self.slot,
                "visibility": self.visibility,
                "texture": {
                    "sample_type": getattr(wgpu.TextureSampleType, subtype),
                    "view_dimension": wgpu.TextureViewDimension.d2,
                    "multisampled": False,
                },
            }
        else:
            raise RuntimeError(f"Unexpected binding type: '{self.type}'")

    def get_descriptor(self, resource):
        """Get the dict to pass (in a list) to ``create_bind_group()``.

        The resource is a GPUBuffer, GPUSampler or GPUTextureView.
        """
        if self.type.startswith("buffer/"):
            return {
                "binding": self.slot,
                "resource": {"buffer": resource, "offset": 0, "size": resource.size},
            }
        return {"binding": self.slot, "resource": resource}

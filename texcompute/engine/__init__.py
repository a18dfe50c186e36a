"""
The engine of texcompute.

This is the only place in texcompute where we make wgpu function calls.
(Although we may use enums or flags elsewhere.)

----

A kernel invocation involves these objects::

    DeviceContext ──── BindingState (current target, current program)
         │
         ├── DeviceBuffer ◄── RenderTarget  (output)
         ├── DeviceBuffer ◄── TextureInput  (inputs)
         └── Kernel ── uniform buffer, bind group layout, pipeline(s)

The ComputeDispatcher drives the configure, run and read-back steps, and
restores the previous bindings afterwards.

"""

# ruff: noqa: F401

from .shared import (
    DeviceContext,
    get_default_context,
    select_adapter,
    select_power_preference,
    enable_wgpu_features,
)
from .state import BindingState, BindingToken
from .buffer import DeviceBuffer
from .target import RenderTarget, Status
from .binding import KernelInput, TextureInput, ScalarInput, VectorInput
from .kernel import Kernel, GeometryDescriptor, FULL_SCREEN_QUAD, link
from .dispatcher import ComputeDispatcher


__all__ = [
    "DeviceContext",
    "get_default_context",
    "select_adapter",
    "select_power_preference",
    "enable_wgpu_features",
    "BindingState",
    "BindingToken",
    "DeviceBuffer",
    "RenderTarget",
    "Status",
    "KernelInput",
    "TextureInput",
    "ScalarInput",
    "VectorInput",
    "Kernel",
    "GeometryDescriptor",
    "FULL_SCREEN_QUAD",
    "link",
    "ComputeDispatcher",
]

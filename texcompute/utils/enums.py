"""
The enums used in texcompute. The enums are all available from the root ``texcompute`` namespace.

.. currentmodule:: texcompute.utils.enums

.. autosummary::
    :toctree: utils/enums
    :template: ../_templates/custom_layout.rst

    ChannelFormat
    DispatchState
    TickResult

"""

from wgpu.utils import BaseEnum


__all__ = [
    "ChannelFormat",
    "DispatchState",
    "TickResult",
]


class Enum(BaseEnum):
    """Enum base class for texcompute."""


class ChannelFormat(Enum):
    """The pixel formats that a DeviceBuffer can have. All have four channels."""

    rgba32float = None  #: 32 bit float per channel, exact float32 round-trip. The default.
    rgba16float = None  #: 16 bit float per channel.
    rgba8unorm = None  #: 8 bit per channel, representing values in [0, 1].
    rgba8snorm = None  #: 8 bit per channel, representing values in [-1, 1]. Cannot be rendered to.


class DispatchState(Enum):
    """The states of a ComputeDispatcher."""

    idle = None  #: No target bound.
    bound = None  #: Inputs, target and kernel are bound.
    dispatched = None  #: The kernel was invoked; the result can be read back.


class TickResult(Enum):
    """What a tickable object tells the scheduler after a tick."""

    proceed = None  #: Call tick() again on the next frame.
    stop = None  #: Do not call tick() anymore.

"""
The device context: the adapter, device and binding state that the buffers,
targets, kernels and dispatchers of a session share.
"""

import os

import wgpu

from ..errors import UnsupportedFormatError
from ..utils import logger
from .state import BindingState
from .utils import FORMATS


# Formats for which an error or warning has been logged
warned_for = set()


class DeviceContext:
    """An object to hold the wgpu adapter and device, and the state of what
    is currently bound on it.

    All texcompute objects take the context explicitly, there is no implicit
    global device. For convenience, ``get_default_context()`` provides a
    process-wide context.

    Parameters
    ----------
    adapter : wgpu.GPUAdapter | None
        The adapter to use. If None, the adapter set with ``select_adapter()``
        is used, or the one named by the ``TEXCOMPUTE_WGPU_ADAPTER_NAME``
        environment variable, or the one wgpu prefers.
    features : iterable of str | None
        The device features to request. If None, use the ones enabled with
        ``enable_wgpu_features()``. Features that the adapter does not have
        are skipped with a warning.
    """

    _features = set()
    _selected_adapter = None
    _power_preference = None
    _default = None

    def __init__(self, *, adapter=None, features=None):
        # Select adapter to use.
        if adapter is not None:
            if not isinstance(adapter, wgpu.GPUAdapter):
                raise TypeError(
                    f"DeviceContext adapter must be a wgpu.GPUAdapter, not {adapter.__class__.__name__}."
                )
            self._adapter = adapter
        elif DeviceContext._selected_adapter:
            self._adapter = DeviceContext._selected_adapter
        elif adapter_name := os.environ.get("TEXCOMPUTE_WGPU_ADAPTER_NAME"):
            adapters = wgpu.gpu.enumerate_adapters_sync()
            adapters = [a for a in adapters if adapter_name in a.summary]
            if not adapters:
                raise ValueError(f"Adapter with name '{adapter_name}' not found.")
            self._adapter = adapters[0]
        else:
            self._adapter = wgpu.gpu.request_adapter_sync(
                power_preference=DeviceContext._power_preference or "high-performance"
            )
        if self._adapter is None:
            raise RuntimeError("Could not find a GPU adapter.")

        # Only request what the adapter has. Formats that need a missing
        # feature are rejected later, when a buffer asks for them.
        requested = set(DeviceContext._features if features is None else features)
        missing = requested.difference(self._adapter.features)
        if missing:
            logger.warning(
                f"Adapter {self._adapter.summary!r} lacks features {sorted(missing)}."
            )
        self._device = self._adapter.request_device_sync(
            required_features=sorted(requested - missing), required_limits={}
        )
        logger.info(f"texcompute using adapter {self._adapter.summary!r}")

        self._bindings = BindingState()
        self._samplers = {}
        self._format_support = {}

    def __repr__(self):
        return f"<DeviceContext {self._adapter.summary!r} at {hex(id(self))}>"

    @property
    def adapter(self):
        """The wgpu adapter object."""
        return self._adapter

    @property
    def device(self):
        """The wgpu device object."""
        return self._device

    @property
    def features(self):
        """The set of features enabled on the device."""
        return set(self._device.features)

    @property
    def bindings(self):
        """The BindingState, tracking the current target and program."""
        return self._bindings

    def get_format_support(self, format):
        """Get ``(usable, renderable)`` for a channel format on this device.

        The device is asked by creating a small texture, once per format.
        Downlevel devices (e.g. via OpenGL) can sample and copy some float
        formats, but not render to them.
        """
        format = str(format)
        support = self._format_support.get(format)
        if support is None:
            usage = (
                wgpu.TextureUsage.TEXTURE_BINDING
                | wgpu.TextureUsage.COPY_DST
                | wgpu.TextureUsage.COPY_SRC
            )
            usable = self._try_create_texture(format, usage)
            renderable = False
            if usable and FORMATS[format].renderable:
                renderable = self._try_create_texture(
                    format, usage | wgpu.TextureUsage.RENDER_ATTACHMENT
                )
            support = usable, renderable
            self._format_support[format] = support
            logger.debug(f"Support for {format!r}: usable {usable}, renderable {renderable}")
        return support

    def _try_create_texture(self, format, usage):
        try:
            texture = self._device.create_texture(
                label=f"texcompute-check-{format}",
                size=(1, 1, 1),
                format=format,
                usage=usage,
                dimension=wgpu.TextureDimension.d2,
                mip_level_count=1,
                sample_count=1,
            )
        except wgpu.GPUValidationError as err:
            logger.debug(f"Cannot create {format!r} texture: {err}")
            return False
        texture.destroy()
        return True

    def get_renderable_format(self):
        """Get the most precise channel format that this device can render to."""
        for format in FORMATS:
            if self.get_format_support(format)[1]:
                return format
        raise UnsupportedFormatError(
            "any", "the device cannot render to any of the channel formats"
        )

    def check_format(self, format, *, filterable=False):
        """Check that the device supports the given channel format.

        Returns the ``FormatInfo`` for the format, with ``renderable`` set to
        whether this device can render to it. Raises ``UnsupportedFormatError``
        if the format is unknown, if the device cannot use it at all, or if
        ``filterable`` is set and the format needs a feature that this
        device does not have. Errors are logged once per format, as is a
        format that can be used but not rendered to.
        """
        info = FORMATS.get(str(format))
        reason = None
        if info is None:
            reason = f"not one of {sorted(FORMATS)}"
        elif filterable and info.filter_feature:
            if info.filter_feature not in self._device.features:
                reason = f"filtering requires the {info.filter_feature!r} device feature"

        if reason is None:
            usable, renderable = self.get_format_support(info.name)
            if not usable:
                reason = "the device cannot create textures of this format"
            elif info.renderable and not renderable:
                key = info.name, "render"
                if key not in warned_for:
                    warned_for.add(key)
                    logger.warning(
                        f"Channel format {info.name!r} cannot be rendered to on this device; "
                        "buffers of this format can only be kernel inputs."
                    )
                info = info._replace(renderable=False)

        if reason is not None:
            key = str(format), bool(filterable)
            if key not in warned_for:
                warned_for.add(key)
                logger.error(f"Channel format {format!r} is not supported: {reason}")
            raise UnsupportedFormatError(format, reason)

        return info

    def get_sampler(self, filter="nearest"):
        """Get a sampler ("nearest" or "linear") that clamps to the edge."""
        if filter not in ("nearest", "linear"):
            raise ValueError(f"Sampler filter must be 'nearest' or 'linear', not {filter!r}")
        sampler = self._samplers.get(filter)
        if sampler is None:
            sampler = self._device.create_sampler(
                label=f"texcompute-{filter}",
                min_filter=filter,
                mag_filter=filter,
                address_mode_u=wgpu.AddressMode.clamp_to_edge,
                address_mode_v=wgpu.AddressMode.clamp_to_edge,
            )
            self._samplers[filter] = sampler
        return sampler


def get_default_context():
    """Get the default DeviceContext, creating it on first use."""
    if DeviceContext._default is None:
        DeviceContext._default = DeviceContext()
    return DeviceContext._default


def select_power_preference(power_preference):
    """Select whether a powerful or battery-friendly GPU is selected.

    Accepts a value from ``wgpu.PowerPreference``: "high-performance" or "low-power".

    This function must be called before the default context is created.
    """
    if power_preference not in wgpu.PowerPreference:
        raise ValueError(
            f"select_power_preference() received invalid value for {repr(wgpu.PowerPreference)}."
        )
    if DeviceContext._default is not None:
        raise RuntimeError(
            "The select_power_preference() function must be called before creating the default context."
        )
    DeviceContext._power_preference = power_preference


def select_adapter(adapter):
    """Select a specific adapter / GPU.

    Select an adapter as obtained via ``wgpu.gpu.enumerate_adapters_sync()``, which
    can be useful in multi-gpu environments, or to force a software adapter::

        adapters = wgpu.gpu.enumerate_adapters_sync()
        adapters_llvm = [a for a in adapters if "llvmpipe" in a.summary.lower()]
        texcompute.select_adapter(adapters_llvm[0])

    This function must be called before the default context is created.
    """
    if not isinstance(adapter, wgpu.GPUAdapter):
        raise TypeError(
            f"select_adapter() only accepts a wgpu.GPUAdapter object, but got {adapter.__class__.__name__}."
        )
    if DeviceContext._default is not None:
        raise RuntimeError(
            "The select_adapter() function must be called before creating the default context."
        )
    DeviceContext._selected_adapter = adapter


def enable_wgpu_features(*features):
    """Enable specific features (as strings) on the wgpu device.

    For example "float32-filterable", which is needed to sample rgba32float
    buffers with linear interpolation. Features make code less portable: not
    every device has them (mobile GPUs in particular).

    This function must be called before the default context is created.
    It can be called multiple times to enable more features.
    """
    if DeviceContext._default is not None:
        raise RuntimeError(
            "The enable_wgpu_features() function must be called before creating the default context."
        )
    DeviceContext._features.update(str(f) for f in features)

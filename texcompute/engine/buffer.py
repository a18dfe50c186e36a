"""
The DeviceBuffer: a GPU-resident 2D grid of 4-channel pixels.
"""

import numpy as np
import wgpu

from ..codec import Shape, pack
from ..errors import InvalidStateError, SizeMismatchError
from ..utils import assert_type, logger
from ..utils.enums import ChannelFormat
from .shared import DeviceContext
from .utils import decode_pixels, encode_pixels


class DeviceBuffer:
    """A texture holding numeric data on the GPU.

    The buffer has a fixed shape and channel format. It can be initialized
    from host data, or left empty to serve as the output of a kernel. Host data
    is always float32, and is converted to and from the channel format on
    upload and read. Resizing is not possible; destroy the buffer and create
    a new one instead.

    Parameters
    ----------
    ctx : DeviceContext
        The context that provides the device.
    shape : Shape | tuple
        The ``(width, height)`` of the grid.
    format : str | ChannelFormat
        The channel format. Default "rgba32float".
    data : array | None
        The initial contents: ``width * height * 4`` floats in row-major order,
        with the channels interleaved. Any array shape is accepted as long as
        the number of elements matches.
    filterable : bool
        Whether the buffer will be sampled with linear interpolation. Some
        formats need a device feature for that. Default False.
    label : str | None
        A label used for the underlying wgpu object.
    """

    def __init__(
        self,
        ctx,
        shape,
        format=ChannelFormat.rgba32float,
        data=None,
        *,
        filterable=False,
        label=None,
    ):
        assert_type("ctx", ctx, DeviceContext)
        self._ctx = ctx
        self._shape = Shape.from_value(shape)
        self._format = str(format)
        self._filterable = bool(filterable)
        self._label = label or ""

        # Raises UnsupportedFormatError
        self._info = ctx.check_format(self._format, filterable=self._filterable)

        # Check the data before allocating anything
        if data is not None:
            data = self._check_data(data)

        usage = (
            wgpu.TextureUsage.TEXTURE_BINDING
            | wgpu.TextureUsage.COPY_DST
            | wgpu.TextureUsage.COPY_SRC
        )
        if self._info.renderable:
            usage |= wgpu.TextureUsage.RENDER_ATTACHMENT
        self._usage = usage

        self._texture = ctx.device.create_texture(
            label=self._label,
            size=(self._shape.width, self._shape.height, 1),
            format=self._format,
            usage=usage,
            dimension=wgpu.TextureDimension.d2,
            mip_level_count=1,
            sample_count=1,
        )
        self._view = None
        self._has_contents = False

        if data is not None:
            self._write(data)

    @classmethod
    def from_array(cls, ctx, values, shape=None, format=ChannelFormat.rgba32float, **kwargs):
        """Create a buffer holding the given values, padded with zeros.

        If ``shape`` is None, the smallest near-square shape that fits the
        values is used.
        """
        values = np.asarray(values, np.float32)
        if shape is None:
            shape = Shape.for_elements(values.size)
        shape = Shape.from_value(shape)
        return cls(ctx, shape, format, pack(values, shape), **kwargs)

    def __repr__(self):
        status = "destroyed" if self._texture is None else self._format
        return f"<DeviceBuffer {self._label!r} {self._shape.width}x{self._shape.height} {status} at {hex(id(self))}>"

    @property
    def ctx(self):
        """The DeviceContext of this buffer."""
        return self._ctx

    @property
    def shape(self):
        """The ``Shape(width, height)`` of this buffer."""
        return self._shape

    @property
    def format(self):
        """The channel format (a string, e.g. "rgba32float")."""
        return self._format

    @property
    def format_info(self):
        """The ``FormatInfo`` for this buffer's channel format."""
        return self._info

    @property
    def filterable(self):
        """Whether this buffer can be sampled with linear interpolation."""
        return self._filterable

    @property
    def renderable(self):
        """Whether this buffer can be the output of a kernel."""
        return self._info.renderable

    @property
    def usage(self):
        """The wgpu usage flags of the underlying texture."""
        return self._usage

    @property
    def nbytes(self):
        """The number of bytes that the buffer occupies on the device."""
        return self._shape.npixels * self._info.bytes_per_pixel

    @property
    def label(self):
        return self._label

    @property
    def is_destroyed(self):
        """Whether ``destroy()`` has been called."""
        return self._texture is None

    @property
    def has_contents(self):
        """Whether data has been uploaded, or a kernel has written to this buffer."""
        return self._has_contents

    @property
    def texture(self):
        """The underlying wgpu.GPUTexture."""
        self._check_alive()
        return self._texture

    @property
    def view(self):
        """The default wgpu.GPUTextureView on the texture."""
        self._check_alive()
        if self._view is None:
            self._view = self._texture.create_view()
        return self._view

    def upload(self, data):
        """Replace the full contents of the buffer.

        The data must have exactly ``width * height * 4`` elements.
        """
        self._check_alive()
        self._write(self._check_data(data))

    def read(self):
        """Read the contents into a new 1D float32 array.

        This blocks until the device has finished all submitted work that
        writes to this buffer.
        """
        self._check_alive()
        w, h = self._shape
        # Note, with queue.read_texture the bytes_per_row limitation does not apply.
        data = self._ctx.device.queue.read_texture(
            {
                "texture": self._texture,
                "mip_level": 0,
                "origin": (0, 0, 0),
            },
            {
                "offset": 0,
                "bytes_per_row": self._info.bytes_per_pixel * w,
                "rows_per_image": h,
            },
            (w, h, 1),
        )
        return decode_pixels(data, self._info)

    def destroy(self):
        """Release the GPU memory. The buffer cannot be used afterwards."""
        if self._texture is not None:
            logger.debug(f"Destroying {self!r}")
            self._texture.destroy()
            self._texture = None
            self._view = None
            self._has_contents = False

    def _check_alive(self):
        if self._texture is None:
            raise InvalidStateError(f"DeviceBuffer {self._label!r} has been destroyed.")

    def _check_data(self, data):
        flat = np.asarray(data, np.float32).reshape(-1)
        if flat.size != self._shape.nscalars:
            raise SizeMismatchError(self._shape.nscalars, flat.size)
        return flat

    def _write(self, flat):
        w, h = self._shape
        raw = np.ascontiguousarray(encode_pixels(flat, self._info))
        self._ctx.device.queue.write_texture(
            {
                "texture": self._texture,
                "mip_level": 0,
                "origin": (0, 0, 0),
            },
            raw,
            {
                "offset": 0,
                "bytes_per_row": self._info.bytes_per_pixel * w,
                "rows_per_image": h,
            },
            (w, h, 1),
        )
        self._has_contents = True

    def _mark_written(self):
        # Called when a kernel has rendered into this buffer
        self._has_contents = True

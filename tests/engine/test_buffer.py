import numpy as np
import pytest

import texcompute as tc


def test_buffer_size_contract(ctx):
    # A 3x2 grid holds exactly 24 scalars
    with pytest.raises(tc.SizeMismatchError) as err:
        tc.DeviceBuffer(ctx, (3, 2), data=np.zeros(23, np.float32))
    assert err.value.expected == 24
    assert err.value.got == 23

    with pytest.raises(tc.SizeMismatchError):
        tc.DeviceBuffer(ctx, (3, 2), data=np.zeros(25, np.float32))

    buffer = tc.DeviceBuffer(ctx, (3, 2), data=np.zeros(24, np.float32))
    assert buffer.shape == (3, 2)
    assert buffer.nbytes == 6 * 16
    assert buffer.has_contents


def test_buffer_upload_and_read(ctx):
    values = np.random.uniform(-100, 100, 24).astype(np.float32)
    buffer = tc.DeviceBuffer(ctx, (3, 2), data=values)
    result = buffer.read()
    assert result.dtype == np.float32
    assert result.shape == (24,)
    assert np.all(result == values)

    # Reading twice gives the same
    assert np.all(buffer.read() == values)

    # Any array shape with the right number of elements
    buffer.upload(values.reshape(2, 3, 4) * 2)
    assert np.all(buffer.read() == values * 2)

    with pytest.raises(tc.SizeMismatchError):
        buffer.upload(values[:-1])


def test_buffer_from_array(ctx):
    values = np.arange(21, dtype=np.float32)
    buffer = tc.DeviceBuffer.from_array(ctx, values)
    assert buffer.shape == (3, 2)
    result = buffer.read()
    assert np.all(result[:21] == values)
    assert np.all(result[21:] == 0)

    buffer = tc.DeviceBuffer.from_array(ctx, values, (6, 1))
    assert buffer.shape == (6, 1)


def test_buffer_without_data(ctx):
    buffer = tc.DeviceBuffer(ctx, (4, 4), label="output")
    assert not buffer.has_contents
    assert buffer.label == "output"
    assert buffer.renderable == ctx.get_format_support("rgba32float")[1]


def test_buffer_unorm(ctx):
    values = np.array([-1, 0, 0.5, 1, 2, 0.25, 0.75, 1], np.float32)
    buffer = tc.DeviceBuffer(ctx, (2, 1), tc.ChannelFormat.rgba8unorm, values)
    assert buffer.nbytes == 8
    result = buffer.read()
    assert result[0] == 0
    assert result[1] == 0
    assert result[3] == 1
    assert result[4] == 1  # clamped
    assert abs(result[2] - 0.5) < 1 / 255


def test_buffer_unsupported_format(ctx):
    with pytest.raises(tc.UnsupportedFormatError):
        tc.DeviceBuffer(ctx, (2, 2), "rgb9e5ufloat")


def test_buffer_filterable_float32(ctx):
    if "float32-filterable" in ctx.features:
        buffer = tc.DeviceBuffer(ctx, (2, 2), filterable=True)
        assert buffer.filterable
    else:
        with pytest.raises(tc.UnsupportedFormatError) as err:
            tc.DeviceBuffer(ctx, (2, 2), filterable=True)
        assert "float32-filterable" in str(err.value)

    # Other formats can always be filtered
    buffer = tc.DeviceBuffer(ctx, (2, 2), "rgba16float", filterable=True)
    assert buffer.filterable


def test_buffer_destroy(ctx):
    buffer = tc.DeviceBuffer(ctx, (2, 2))
    buffer.destroy()
    assert buffer.is_destroyed
    buffer.destroy()  # no-op

    with pytest.raises(tc.InvalidStateError):
        buffer.read()
    with pytest.raises(tc.InvalidStateError):
        buffer.upload(np.zeros(16))
    with pytest.raises(tc.InvalidStateError):
        buffer.view


def test_buffer_checks_types(ctx):
    with pytest.raises(TypeError):
        tc.DeviceBuffer("not a context", (2, 2))
    with pytest.raises(ValueError):
        tc.DeviceBuffer(ctx, (0, 2))

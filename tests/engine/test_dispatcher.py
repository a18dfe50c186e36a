import numpy as np
import pytest

import texcompute as tc

from ..kernels import IDENTITY, INDEX


# Every test here renders into rgba32float targets
pytestmark = pytest.mark.usefixtures("float32_target")


@pytest.fixture
def setup(ctx):
    values = np.arange(24, dtype=np.float32)
    x = tc.DeviceBuffer(ctx, (3, 2), data=values)
    target = tc.RenderTarget(ctx, tc.DeviceBuffer(ctx, (3, 2)))
    kernel = tc.link(ctx, None, IDENTITY, inputs={"x": "texture"})
    return kernel, x, target, values


def test_dispatcher_cycle(ctx, setup):
    kernel, x, target, values = setup
    dispatcher = tc.ComputeDispatcher(ctx)
    assert dispatcher.state == tc.DispatchState.idle

    before = ctx.bindings.snapshot()
    dispatcher.configure(kernel, {"x": x}, target)
    assert dispatcher.state == tc.DispatchState.bound
    assert ctx.bindings.snapshot() == (target, kernel)

    dispatcher.run()
    assert dispatcher.state == tc.DispatchState.dispatched
    dispatcher.run()  # can run again
    assert dispatcher.state == tc.DispatchState.dispatched

    result = dispatcher.read_back()
    assert np.all(result == values)
    assert dispatcher.state == tc.DispatchState.idle
    assert ctx.bindings.snapshot() == before


def test_dispatcher_state_errors(ctx, setup):
    kernel, x, target, values = setup
    dispatcher = tc.ComputeDispatcher(ctx)

    with pytest.raises(tc.InvalidStateError):
        dispatcher.run()
    with pytest.raises(tc.InvalidStateError):
        dispatcher.read_back()

    dispatcher.configure(kernel, {"x": x}, target)
    with pytest.raises(tc.InvalidStateError):
        dispatcher.configure(kernel, {"x": x}, target)
    with pytest.raises(tc.InvalidStateError):
        dispatcher.read_back()
    assert dispatcher.state == tc.DispatchState.bound

    dispatcher.reset()
    assert dispatcher.state == tc.DispatchState.idle
    dispatcher.reset()  # idempotent
    assert ctx.bindings.snapshot() == (None, None)


def test_dispatcher_restores_outer_bindings(ctx, setup):
    kernel, x, target, values = setup
    display_target = tc.RenderTarget(ctx, tc.DeviceBuffer(ctx, (2, 2)))
    display_kernel = tc.link(ctx, None, INDEX)

    with ctx.bindings.bind_target(display_target):
        with ctx.bindings.bind_program(display_kernel):
            with tc.ComputeDispatcher(ctx) as dispatcher:
                dispatcher.configure(kernel, {"x": x}, target)
                dispatcher.run()
                dispatcher.read_back()
            assert ctx.bindings.snapshot() == (display_target, display_kernel)


def test_dispatcher_configure_failure(ctx, setup):
    kernel, x, target, values = setup
    dispatcher = tc.ComputeDispatcher(ctx)
    before = ctx.bindings.snapshot()

    # Incomplete target
    buffer = tc.DeviceBuffer(ctx, (3, 2), "rgba8snorm", np.zeros(24))
    with pytest.raises(tc.IncompleteTargetError):
        dispatcher.configure(kernel, {"x": x}, tc.RenderTarget(ctx, buffer))
    assert dispatcher.state == tc.DispatchState.idle
    assert ctx.bindings.snapshot() == before

    # Bad input
    with pytest.raises(TypeError):
        dispatcher.configure(kernel, {"x": 3.0}, target)
    assert dispatcher.state == tc.DispatchState.idle
    assert ctx.bindings.snapshot() == before


def test_dispatcher_run_failure(ctx):
    # Unbound input is detected at run time
    kernel = tc.link(ctx, None, IDENTITY, inputs={"x": "texture"})
    target = tc.RenderTarget(ctx, tc.DeviceBuffer(ctx, (2, 2)))
    dispatcher = tc.ComputeDispatcher(ctx)
    before = ctx.bindings.snapshot()

    dispatcher.configure(kernel, {}, target)
    with pytest.raises(tc.UnboundInputError):
        dispatcher.run()
    assert dispatcher.state == tc.DispatchState.idle
    assert ctx.bindings.snapshot() == before


def test_dispatcher_context_manager_resets(ctx, setup):
    kernel, x, target, values = setup
    with pytest.raises(ZeroDivisionError):
        with tc.ComputeDispatcher(ctx) as dispatcher:
            dispatcher.configure(kernel, {"x": x}, target)
            dispatcher.run()
            1 / 0
    assert dispatcher.state == tc.DispatchState.idle
    assert ctx.bindings.snapshot() == (None, None)


def test_readback_observes_latest_run(ctx):
    x = tc.DeviceBuffer(ctx, (2, 2), data=np.ones(16))
    target = tc.RenderTarget(ctx, tc.DeviceBuffer(ctx, (2, 2)))
    kernel = tc.link(ctx, None, IDENTITY, inputs={"x": "texture"})
    dispatcher = tc.ComputeDispatcher(ctx)

    dispatcher.configure(kernel, {"x": x}, target)
    dispatcher.run()
    x.upload(np.full(16, 5))
    dispatcher.run()
    assert np.all(dispatcher.read_back() == 5)


def test_identity_six_pixels(ctx):
    pixels = [
        (0.4, 0.5, 0.6, 1),
        (0.1, 0.3, 0.2, 1),
        (0.9, 0.8, 0.7, 1),
        (0.7, 0.8, 0.9, 1),
        (0.1, 0.5, 0.9, 1),
        (0.9, 0.5, 0.1, 1),
    ]
    data = np.array(pixels, np.float32)
    x = tc.DeviceBuffer(ctx, (3, 2), data=data)
    target = tc.RenderTarget(ctx, tc.DeviceBuffer(ctx, (3, 2)))
    kernel = tc.link(ctx, None, IDENTITY, inputs={"x": "texture"})

    before = ctx.bindings.snapshot()
    with tc.ComputeDispatcher(ctx) as dispatcher:
        dispatcher.configure(kernel, {"x": x}, target)
        dispatcher.run()
        result = dispatcher.read_back()

    assert np.all(result.reshape(6, 4) == data)
    assert ctx.bindings.snapshot() == before


def test_index_derivation(ctx):
    code = """
    @fragment
    fn fs_main(varyings: Varyings) -> @location(0) vec4<f32> {
        let coord = pixel_coord(varyings.position);
        let index = coord.x + u_kernel.target_size.x * coord.y;
        return vec4<f32>(f32(index), 0.0, 0.0, 1.0);
    }
    """
    target = tc.RenderTarget(ctx, tc.DeviceBuffer(ctx, (6, 4)))
    kernel = tc.link(ctx, None, code)
    with tc.ComputeDispatcher(ctx) as dispatcher:
        dispatcher.configure(kernel, {}, target)
        dispatcher.run()
        result = dispatcher.read_back().reshape(4, 6, 4)

    assert result[0, 0].tolist() == [0, 0, 0, 1]
    assert result[3, 5].tolist() == [23, 0, 0, 1]

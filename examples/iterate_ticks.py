"""
Iterate with Ticks
==================

Run a kernel repeatedly via the tick interface, feeding the output of each
tick into the next. An application with a frame loop would call
``task.tick()`` from its draw callback instead of using ``run_ticks()``.
"""

import numpy as np
import texcompute as tc


ctx = tc.get_default_context()

state = tc.DeviceBuffer.from_array(ctx, np.zeros(64, np.float32))
target = tc.RenderTarget(ctx, tc.DeviceBuffer(ctx, state.shape))

kernel = tc.link(
    ctx,
    None,
    """
    @fragment
    fn fs_main(varyings: Varyings) -> @location(0) vec4<f32> {
        let value = load_element(state, pixel_index(varyings.position));
        return value + vec4<f32>(u_kernel.step);
    }
    """,
    inputs={"state": "texture", "step": "f4"},
    label="accumulate",
)


def on_result(result, tick_index):
    print(f"tick {tick_index}: mean {result.mean():.2f}")
    state.upload(result)
    if result.mean() >= 10:
        return tc.TickResult.stop


task = tc.ComputeTask(
    tc.ComputeDispatcher(ctx),
    kernel,
    target,
    {"state": state, "step": 1.5},
    on_result=on_result,
    max_ticks=100,
)


if __name__ == "__main__":
    n = tc.run_ticks(task)
    print(f"Stopped after {n} ticks")

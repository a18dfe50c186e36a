"""
Identity Kernel
===============

Upload 24 numbers into a 3x2 buffer, run a kernel that copies each pixel of
the input to the output, and read the result back.
"""

import numpy as np
import texcompute as tc


ctx = tc.get_default_context()

values = np.arange(1, 25, dtype=np.float32)
x = tc.DeviceBuffer(ctx, (3, 2), data=values, label="x")
target = tc.RenderTarget(ctx, tc.DeviceBuffer(ctx, (3, 2), label="out"))

kernel = tc.link(
    ctx,
    None,
    """
    @fragment
    fn fs_main(varyings: Varyings) -> @location(0) vec4<f32> {
        return textureSample(x, nearest_sampler, varyings.texcoord);
    }
    """,
    inputs={"x": "texture"},
    label="identity",
)

with tc.ComputeDispatcher(ctx) as dispatcher:
    dispatcher.configure(kernel, {"x": x}, target)
    dispatcher.run()
    result = dispatcher.read_back()


if __name__ == "__main__":
    print(result.reshape(2, 3, 4))
    assert np.all(result == values)

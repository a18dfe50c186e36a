"""
Index Kernel
============

Each invocation writes its own logical index, to show how pixels map to
elements: pixel (x, y) computes element ``x + width * y``.
"""

import texcompute as tc


ctx = tc.get_default_context()

target = tc.RenderTarget(ctx, tc.DeviceBuffer(ctx, (6, 4)))

kernel = tc.link(
    ctx,
    None,
    """
    @fragment
    fn fs_main(varyings: Varyings) -> @location(0) vec4<f32> {
        let index = f32(pixel_index(varyings.position));
        return vec4<f32>(index, 0.0, 0.0, 1.0);
    }
    """,
    label="index",
)

with tc.ComputeDispatcher(ctx) as dispatcher:
    dispatcher.configure(kernel, {}, target)
    dispatcher.run()
    result = dispatcher.read_back()


if __name__ == "__main__":
    # Print the first channel as a grid
    print(result[0::4].reshape(4, 6))

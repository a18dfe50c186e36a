"""
Kernels that are shared by the tests.
"""

IDENTITY = """
@fragment
fn fs_main(varyings: Varyings) -> @location(0) vec4<f32> {
    return textureSample(x, nearest_sampler, varyings.texcoord);
}
"""

INDEX = """
@fragment
fn fs_main(varyings: Varyings) -> @location(0) vec4<f32> {
    let index = f32(pixel_index(varyings.position));
    return vec4<f32>(index, index, index, index);
}
"""

AFFINE = """
@fragment
fn fs_main(varyings: Varyings) -> @location(0) vec4<f32> {
    let value = load_element(x, pixel_index(varyings.position));
    return value * u_kernel.scale + u_kernel.offset;
}
"""

CONSTANT = """
@fragment
fn fs_main(varyings: Varyings) -> @location(0) vec4<f32> {
    return vec4<f32>({{ value }});
}
"""

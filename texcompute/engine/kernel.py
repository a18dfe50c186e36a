"""
The Kernel: a vertex/fragment pair that runs once per pixel of a render target.

The kernel author writes the fragment stage. The vertex stage defaults to a
full-screen quad, so that the fragment stage is invoked exactly once for each
pixel of the target. To the author's fragment code, the declarations of the
declared inputs and a small set of helper functions are appended::

    @fragment
    fn fs_main(varyings: Varyings) -> @location(0) vec4<f32> {

        // Available:
        // varyings.position - the fragment coordinate (pixel centers).
        // varyings.texcoord - the normalized coordinate in the target (vec2f).
        // u_kernel.target_size - the (width, height) of the target (vec2u).
        // u_kernel.xx - the declared scalar and vector inputs.
        // xx - the declared texture inputs (texture_2d<f32>).
        // nearest_sampler - a sampler that returns exact pixel values.
        // linear_sampler - an interpolating sampler, for "texture/linear" inputs.
        // pixel_index(varyings.position) - the logical index of this element.
        // load_element(tex, index) - the element with the given index from tex.

        return textureSample(x, nearest_sampler, varyings.texcoord);
    }
"""

import os
import sys
from collections import namedtuple

import wgpu

from ..errors import (
    CompileError,
    IncompleteTargetError,
    InvalidStateError,
    LinkError,
    UnboundInputError,
)
from ..shader.bindings import BindingDefinitions
from ..shader.diagnostics import annotate_source
from ..shader.templating import apply_templating, load_wgsl
from ..utils import array_from_shadertype, assert_type, logger
from .binding import Binding, InputDeclaration, TextureInput, as_kernel_input
from .shared import DeviceContext
from .utils import GpuCache, hash_from_value


# This cache enables sharing shader modules between kernels with the same code
SHADER_CACHE = GpuCache("shader_modules")

PRINT_WGSL_ON_ERROR = os.environ.get(
    "TEXCOMPUTE_PRINT_WGSL_ON_COMPILATION_ERROR", "0"
).lower() not in ["false", "0"]


GeometryDescriptor = namedtuple(
    "GeometryDescriptor", ["name", "vertex_count", "topology"]
)
GeometryDescriptor.__doc__ = "The geometry drawn for a kernel invocation."

FULL_SCREEN_QUAD = GeometryDescriptor(
    "full-screen-quad", 6, wgpu.PrimitiveTopology.triangle_list
)


def get_cached_shader_module(device, stage, code, label):
    """Compile shader code, raising CompileError on failure."""
    key = hash_from_value(["shader", device, code])
    result = SHADER_CACHE.get(key)
    if result is None:
        try:
            result = device.create_shader_module(label=label, code=code)
        except wgpu.GPUValidationError as err:
            log = str(err)
            if PRINT_WGSL_ON_ERROR:
                print(annotate_source(code, log), file=sys.stderr)
            logger.debug(f"Compilation of {stage} stage of {label!r} failed.")
            raise CompileError(stage, log, code) from err
        SHADER_CACHE.set(key, result)
    return result


class Kernel:
    """A compiled and linked kernel, with a table of bound inputs.

    The kernel itself is immutable; inputs can be rebound between
    invocations. Usually created with ``link()``.

    Parameters
    ----------
    ctx : DeviceContext
        The context that provides the device.
    vertex_code : str | None
        WGSL for the vertex stage, with entry point ``vs_main``. If None,
        the builtin full-screen quad is used.
    fragment_code : str
        WGSL for the fragment stage, with entry point ``fs_main``. It is
        rendered as a Jinja2 template first.
    inputs : dict | None
        Maps input names to kinds: "texture", "texture/linear", or a uniform
        type like "f4", "i4", "u4", "2xf4", "4xf4".
    label : str | None
        A label for the underlying wgpu objects and in messages.
    template_vars : dict | None
        Variables for the templating of the shader code.
    """

    def __init__(
        self,
        ctx,
        vertex_code=None,
        fragment_code="",
        *,
        inputs=None,
        label=None,
        template_vars=None,
    ):
        assert_type("ctx", ctx, DeviceContext)
        self._ctx = ctx
        self._label = label or "kernel"
        template_vars = template_vars or {}

        # Declared interface
        self._declarations = {}
        for name, kind in (inputs or {}).items():
            self._declarations[name] = InputDeclaration(name, kind)
        self._bound = {}

        # The uniform struct holds the scalars and vectors
        uniform_type = {
            d.name: d.kind for d in self._declarations.values() if not d.is_texture
        }
        uniform_type["target_size"] = "2xu4"
        self._uniform_data = array_from_shadertype(uniform_type)

        self._bindings = self._create_bindings()

        # Compose the code
        definitions = BindingDefinitions()
        for binding in self._bindings:
            definitions.define_binding(0, binding)
        fragment_wgsl = apply_templating(fragment_code, **template_vars)
        fragment_wgsl += "\n" + definitions.get_code()
        fragment_wgsl += "\n" + load_wgsl("fullquad_fragment.wgsl")
        if vertex_code is None:
            vertex_wgsl = load_wgsl("fullquad_vertex.wgsl")
        else:
            vertex_wgsl = apply_templating(vertex_code, **template_vars)
        self._vertex_wgsl = vertex_wgsl
        self._fragment_wgsl = fragment_wgsl

        # Compile the stages
        device = ctx.device
        self._vertex_module = get_cached_shader_module(
            device, "vertex", vertex_wgsl, self._label
        )
        self._fragment_module = get_cached_shader_module(
            device, "fragment", fragment_wgsl, self._label
        )

        # Create the layouts
        self._bind_group_layout = device.create_bind_group_layout(
            label=self._label,
            entries=[binding.get_layout_descriptor() for binding in self._bindings],
        )
        self._pipeline_layout = device.create_pipeline_layout(
            label=self._label, bind_group_layouts=[self._bind_group_layout]
        )

        self._uniform_buffer = device.create_buffer(
            label=self._label,
            size=self._uniform_data.nbytes,
            usage=wgpu.BufferUsage.UNIFORM | wgpu.BufferUsage.COPY_DST,
        )

        # Link, i.e. create a pipeline for a format the device can render to.
        # This is where mismatches between the stages show up.
        self._pipelines = {}
        self._get_pipeline(ctx.get_renderable_format(), FULL_SCREEN_QUAD.topology)
        logger.debug(f"Linked kernel {self._label!r}")

    @classmethod
    def link(
        cls,
        ctx,
        vertex_code,
        fragment_code,
        *,
        inputs=None,
        label=None,
        template_vars=None,
    ):
        """Compile and link a kernel.

        Raises ``CompileError`` if a stage does not compile, ``LinkError``
        if the stages cannot be combined, and ``UnsupportedFormatError`` if
        the device cannot render to any channel format.
        """
        return cls(
            ctx,
            vertex_code,
            fragment_code,
            inputs=inputs,
            label=label,
            template_vars=template_vars,
        )

    def __repr__(self):
        return f"<Kernel {self._label!r} at {hex(id(self))}>"

    def _create_bindings(self):
        bindings = []
        bindings.append(
            Binding("u_kernel", "buffer/uniform", 0, self._uniform_data.dtype)
        )
        bindings.append(Binding("nearest_sampler", "sampler/non_filtering", 1))
        textures = [d for d in self._declarations.values() if d.is_texture]
        if any(d.filter == "linear" for d in textures):
            bindings.append(Binding("linear_sampler", "sampler/filtering", 2))
        for d in textures:
            if d.filter == "linear":
                type = "texture/float"
            else:
                type = "texture/unfilterable_float"
            bindings.append(Binding(d.name, type, len(bindings)))
        return bindings

    def _get_pipeline(self, format, topology):
        key = str(format), str(topology)
        pipeline = self._pipelines.get(key)
        if pipeline is None:
            if not self._ctx.get_format_support(format)[1]:
                raise IncompleteTargetError(
                    f"attachment format {str(format)!r} is not color-renderable on this device"
                )
            try:
                pipeline = self._ctx.device.create_render_pipeline(
                    label=self._label,
                    layout=self._pipeline_layout,
                    vertex={
                        "module": self._vertex_module,
                        "entry_point": "vs_main",
                        "buffers": [],
                    },
                    primitive={
                        "topology": topology,
                        "front_face": wgpu.FrontFace.ccw,
                        "cull_mode": wgpu.CullMode.none,
                    },
                    depth_stencil=None,
                    multisample=None,
                    fragment={
                        "module": self._fragment_module,
                        "entry_point": "fs_main",
                        "targets": [
                            {
                                "format": str(format),
                                "blend": None,
                                "write_mask": wgpu.ColorWrite.ALL,
                            }
                        ],
                    },
                )
            except wgpu.GPUValidationError as err:
                sources = {"vertex": self._vertex_wgsl, "fragment": self._fragment_wgsl}
                raise LinkError(str(err), sources) from err
            logger.debug(f"Created pipeline for kernel {self._label!r} for {key}")
            self._pipelines[key] = pipeline
        return pipeline

    @property
    def ctx(self):
        """The DeviceContext of this kernel."""
        return self._ctx

    @property
    def label(self):
        return self._label

    @property
    def inputs(self):
        """A dict mapping the declared input names to their kinds."""
        return {name: d.kind for name, d in self._declarations.items()}

    @property
    def bound_inputs(self):
        """A dict mapping input names to the currently bound KernelInput objects."""
        return dict(self._bound)

    @property
    def vertex_source(self):
        """The WGSL code of the vertex stage, as compiled."""
        return self._vertex_wgsl

    @property
    def fragment_source(self):
        """The WGSL code of the fragment stage, as compiled."""
        return self._fragment_wgsl

    def bind(self, name, value):
        """Bind a value to the input with the given name.

        The value can be a DeviceBuffer (for texture inputs), a number, or a
        sequence of 2-4 numbers, or a ``KernelInput``. It is checked against
        the declared kind of the input.
        """
        declaration = self._declarations.get(name)
        if declaration is None:
            raise KeyError(
                f"Kernel {self._label!r} has no input named {name!r}, "
                f"only {sorted(self._declarations)}"
            )
        kernel_input = as_kernel_input(value)
        declaration.validate(kernel_input)
        if isinstance(kernel_input, TextureInput):
            if kernel_input.value.ctx is not self._ctx:
                raise ValueError(
                    f"Kernel input {name!r} is a buffer from another DeviceContext."
                )
        else:
            self._uniform_data[name] = kernel_input.value
        self._bound[name] = kernel_input

    def bind_inputs(self, inputs):
        """Bind multiple inputs from a dict."""
        for name, value in inputs.items():
            self.bind(name, value)

    def invoke(self, geometry=FULL_SCREEN_QUAD):
        """Run the kernel once for every pixel of the current render target.

        The work is submitted to the device; it is complete by the time the
        target's buffer is read.
        """
        if geometry != FULL_SCREEN_QUAD:
            raise TypeError(
                f"Kernel can only be invoked with FULL_SCREEN_QUAD, not {geometry!r}"
            )

        target = self._ctx.bindings.target
        if target is None:
            raise InvalidStateError(
                f"Cannot invoke kernel {self._label!r}: no render target is bound."
            )
        status = target.check()
        if not status:
            raise IncompleteTargetError(status.reason)

        missing = [name for name in self._declarations if name not in self._bound]
        if missing:
            raise UnboundInputError(self._label, missing)

        textures = {}
        for name, kernel_input in self._bound.items():
            if isinstance(kernel_input, TextureInput):
                buffer = kernel_input.value
                if buffer is target.buffer:
                    raise ValueError(
                        f"Kernel input {name!r} is the buffer that is being written to."
                    )
                if not buffer.has_contents:
                    raise InvalidStateError(
                        f"Kernel input {name!r} has never been written to."
                    )
                textures[name] = buffer.view  # raises if destroyed

        device = self._ctx.device
        pipeline = self._get_pipeline(target.format, geometry.topology)

        # Update uniforms
        self._uniform_data["target_size"] = target.shape
        device.queue.write_buffer(
            self._uniform_buffer, 0, self._uniform_data, 0, self._uniform_data.nbytes
        )

        # Create bind group. This is light, and buffers may have been rebound.
        entries = []
        for binding in self._bindings:
            if binding.name == "u_kernel":
                resource = self._uniform_buffer
            elif binding.name == "nearest_sampler":
                resource = self._ctx.get_sampler("nearest")
            elif binding.name == "linear_sampler":
                resource = self._ctx.get_sampler("linear")
            else:
                resource = textures[binding.name]
            entries.append(binding.get_descriptor(resource))
        bind_group = device.create_bind_group(
            label=self._label, layout=self._bind_group_layout, entries=entries
        )

        with self._ctx.bindings.bind_program(self):
            command_encoder = device.create_command_encoder(label=self._label)
            render_pass = command_encoder.begin_render_pass(
                color_attachments=[
                    {
                        "view": target.buffer.view,
                        "resolve_target": None,
                        "clear_value": (0, 0, 0, 0),
                        "load_op": wgpu.LoadOp.clear,
                        "store_op": wgpu.StoreOp.store,
                    }
                ],
                depth_stencil_attachment=None,
            )
            render_pass.set_pipeline(pipeline)
            render_pass.set_bind_group(0, bind_group)
            render_pass.draw(geometry.vertex_count, 1)
            render_pass.end()
            device.queue.submit([command_encoder.finish()])

        target.buffer._mark_written()


def link(ctx, vertex_code, fragment_code, *, inputs=None, label=None, template_vars=None):
    """Compile and link a kernel. See ``Kernel`` for the arguments."""
    return Kernel.link(
        ctx,
        vertex_code,
        fragment_code,
        inputs=inputs,
        label=label,
        template_vars=template_vars,
    )

from ..engine.utils import generate_uniform_struct


class BindingDefinitions:
    """Track definitions of bindings, to produce the wgsl that declares them."""

    def __init__(self):
        self._typedefs = {}
        self._binding_codes = {}

    def get_code(self):
        """Get the wgsl source code for the collected bindings."""
        code = ""
        code += "\n".join(self._typedefs.values())
        code += "\n"
        code += "\n".join(self._binding_codes.values())
        return code

    def define_binding(self, bindgroup, binding):
        """Define a uniform, sampler, or texture. The binding must be a Binding object."""
        if binding.type == "buffer/uniform":
            self._define_uniform(bindgroup, binding)
        elif binding.type.startswith("sampler"):
            self._define_sampler(bindgroup, binding)
        elif binding.type.startswith("texture"):
            self._define_texture(bindgroup, binding)
        else:
            raise RuntimeError(
                f"Unknown binding {binding.name} with type {binding.type}"
            )

    def _define_uniform(self, bindgroup, binding):
        dtype_struct = binding.structtype
        if dtype_struct is None or dtype_struct.fields is None:
            raise TypeError("A uniform binding needs a structured dtype")

        structname = "Struct_" + binding.name
        if structname not in self._typedefs:
            self._typedefs[structname] = generate_uniform_struct(
                dtype_struct, structname
            )

        code = f"""
        @group({bindgroup}) @binding({binding.slot})
        var<uniform> {binding.name}: {structname};
        """.rstrip()
        self._binding_codes[binding.name] = code

    def _define_sampler(self, bindgroup, binding):
        code = f"""
        @group({bindgroup}) @binding({binding.slot})
        var {binding.name}: sampler;
        """.rstrip()
        self._binding_codes[binding.name] = code

    def _define_texture(self, bindgroup, binding):
        # All channel formats are float formats (normalized ints included)
        code = f"""
        @group({bindgroup}) @binding({binding.slot})
        var {binding.name}: texture_2d<f32>;
        """.rstrip()
        self._binding_codes[binding.name] = code

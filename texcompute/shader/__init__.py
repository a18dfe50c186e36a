"""
Composition of kernel shader code, and the handling of compiler diagnostics.

.. currentmodule:: texcompute.shader

.. autosummary::
    :toctree: shader/
    :template: ../_templates/custom_layout.rst

    diagnostics.annotate_source
    diagnostics.parse_diagnostics
    diagnostics.add_line_numbers
    templating.register_wgsl_loader
    templating.apply_templating

"""

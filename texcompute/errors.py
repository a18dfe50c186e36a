"""
The exceptions raised by texcompute.

.. currentmodule:: texcompute.errors

.. autosummary::
    :toctree: errors/
    :template: ../_templates/custom_layout.rst

    TexComputeError
    UnsupportedFormatError
    SizeMismatchError
    CompileError
    LinkError
    IncompleteTargetError
    InvalidStateError
    UnboundInputError

"""

from .shader.diagnostics import annotate_source


class TexComputeError(Exception):
    """Base class for all errors raised by texcompute."""


class UnsupportedFormatError(TexComputeError):
    """The device cannot provide the requested channel format or precision.

    This is fatal for the session; retrying on the same device cannot succeed.
    """

    def __init__(self, format, reason):
        self.format = format
        self.reason = reason
        super().__init__(f"Unsupported channel format {format!r}: {reason}")


class SizeMismatchError(TexComputeError, ValueError):
    """The length of host data does not match the size of the device buffer."""

    def __init__(self, expected, got, qualifier="exactly"):
        self.expected = int(expected)
        self.got = int(got)
        super().__init__(
            f"Expected {qualifier} {self.expected} elements, but got {self.got}."
        )


class CompileError(TexComputeError):
    """A shader stage failed to compile.

    The message contains the diagnostic log as produced by the device,
    followed by the source with line numbers and the errors placed under the
    lines they refer to.
    """

    def __init__(self, stage, log, source):
        self.stage = stage
        self.log = log
        self.source = source
        self.annotated = annotate_source(source, log)
        super().__init__(
            f"Failed to compile the {stage} stage:\n{log}\n\n{self.annotated}"
        )


class LinkError(TexComputeError):
    """The shader stages compiled, but could not be combined into a pipeline.

    ``sources`` maps the stage name to its source, ``annotated`` maps the
    stage name to its annotated source.
    """

    def __init__(self, log, sources):
        self.log = log
        self.sources = dict(sources)
        self.annotated = {
            stage: annotate_source(source, log) for stage, source in self.sources.items()
        }
        parts = [f"Failed to link the kernel:\n{log}"]
        for stage, text in self.annotated.items():
            parts.append(f"{stage} stage:\n{text}")
        super().__init__("\n\n".join(parts))


class IncompleteTargetError(TexComputeError):
    """A render target cannot be used as the output of a kernel."""

    def __init__(self, reason):
        self.reason = reason
        super().__init__(f"Render target is incomplete: {reason}")


class InvalidStateError(TexComputeError, RuntimeError):
    """An operation was called in a state where it is not allowed."""


class UnboundInputError(TexComputeError):
    """A kernel was invoked while some of its declared inputs have no value."""

    def __init__(self, kernel_label, names):
        self.names = tuple(names)
        super().__init__(
            f"Kernel {kernel_label!r} has unbound inputs: {', '.join(self.names)}"
        )

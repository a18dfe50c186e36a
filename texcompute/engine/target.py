"""
The RenderTarget: binds a DeviceBuffer as the output of kernel invocations.
"""

import contextlib

from ..errors import IncompleteTargetError
from ..utils import assert_type
from .buffer import DeviceBuffer
from .shared import DeviceContext


class Status:
    """The completeness of a render target.

    Use ``Status.COMPLETE`` or ``Status.incomplete(reason)``. A status is
    truthy when complete.
    """

    __slots__ = ["_reason"]

    COMPLETE = None  # set below

    def __init__(self, reason=None):
        self._reason = reason

    @classmethod
    def incomplete(cls, reason):
        return cls(str(reason))

    @property
    def complete(self):
        return self._reason is None

    @property
    def reason(self):
        """Why the target is incomplete, or None."""
        return self._reason

    def __bool__(self):
        return self._reason is None

    def __eq__(self, other):
        return isinstance(other, Status) and other._reason == self._reason

    def __hash__(self):
        return hash(self._reason)

    def __repr__(self):
        if self._reason is None:
            return "<Status complete>"
        return f"<Status incomplete: {self._reason}>"


Status.COMPLETE = Status()


class RenderTarget:
    """Makes a DeviceBuffer the color output of kernel invocations.

    The target does not own the buffer. At most one target is current per
    DeviceContext; ``bind()`` makes this one current, and ``unbind()`` puts
    back whatever was current before.

    Parameters
    ----------
    ctx : DeviceContext
        The context, must be the same as the buffer's.
    buffer : DeviceBuffer
        The buffer to write to.
    """

    def __init__(self, ctx, buffer):
        assert_type("ctx", ctx, DeviceContext)
        assert_type("buffer", buffer, DeviceBuffer)
        if buffer.ctx is not ctx:
            raise ValueError("RenderTarget buffer belongs to another DeviceContext.")
        self._ctx = ctx
        self._buffer = buffer
        self._token = None

    def __repr__(self):
        return f"<RenderTarget for {self._buffer!r} at {hex(id(self))}>"

    @property
    def ctx(self):
        """The DeviceContext of this target."""
        return self._ctx

    @property
    def buffer(self):
        """The DeviceBuffer that this target writes to."""
        return self._buffer

    @property
    def shape(self):
        """The shape of the output grid (i.e. of the buffer)."""
        return self._buffer.shape

    @property
    def format(self):
        """The channel format of the buffer."""
        return self._buffer.format

    @property
    def is_bound(self):
        """Whether this target is currently bound by its own ``bind()``."""
        return self._token is not None

    def check(self):
        """Check whether the buffer can be attached, without binding. Returns a Status."""
        buffer = self._buffer
        if buffer.is_destroyed:
            return Status.incomplete("the attached buffer has been destroyed")
        if not buffer.renderable:
            return Status.incomplete(
                f"attachment format {buffer.format!r} is not color-renderable"
            )
        if buffer.shape.width * buffer.shape.height == 0:
            return Status.incomplete("the attachment has zero size")
        return Status.COMPLETE

    def bind(self):
        """Make this target current. Returns a Status.

        If the status is incomplete, nothing is bound, and no kernel must be
        invoked against this target.
        """
        status = self.check()
        if status and self._token is None:
            self._token = self._ctx.bindings.bind_target(self)
        return status

    def unbind(self):
        """Restore the target that was current before ``bind()``.

        Calling this when not bound has no effect.
        """
        token, self._token = self._token, None
        if token is not None:
            token.restore()

    @contextlib.contextmanager
    def bound(self):
        """Context manager to bind this target, and unbind it on exit.

        Raises IncompleteTargetError if the target is incomplete. If the
        target was already bound, it stays bound.
        """
        was_bound = self.is_bound
        status = self.bind()
        if not status:
            raise IncompleteTargetError(status.reason)
        try:
            yield self
        finally:
            if not was_bound:
                self.unbind()

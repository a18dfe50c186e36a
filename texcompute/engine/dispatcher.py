"""
The ComputeDispatcher: drives one configure/run/read-back cycle at a time.
"""

from ..errors import IncompleteTargetError, InvalidStateError
from ..utils import assert_type, logger
from ..utils.enums import DispatchState
from .kernel import Kernel
from .shared import DeviceContext
from .target import RenderTarget


class ComputeDispatcher:
    """Orchestrates running a kernel into a target, and reading the result.

    The dispatcher goes through the states idle, bound and dispatched.
    Whatever target and program were current when ``configure()`` was called
    are current again when the dispatcher returns to idle, also when an error
    occurs. The dispatcher can be used as a context manager, which resets it
    on exit.

    Parameters
    ----------
    ctx : DeviceContext
        The context to dispatch on.
    """

    def __init__(self, ctx):
        assert_type("ctx", ctx, DeviceContext)
        self._ctx = ctx
        self._state = DispatchState.idle
        self._kernel = None
        self._target = None
        self._tokens = []

    def __repr__(self):
        return f"<ComputeDispatcher {self._state} at {hex(id(self))}>"

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.reset()

    @property
    def ctx(self):
        """The DeviceContext of this dispatcher."""
        return self._ctx

    @property
    def state(self):
        """The current ``DispatchState``."""
        return self._state

    @property
    def kernel(self):
        """The configured kernel, or None when idle."""
        return self._kernel

    @property
    def target(self):
        """The configured target, or None when idle."""
        return self._target

    def _check_state(self, action, *allowed):
        if self._state not in allowed:
            raise InvalidStateError(
                f"Cannot {action} while the dispatcher is {self._state}; "
                f"must be {' or '.join(allowed)}."
            )

    def configure(self, kernel, inputs, target):
        """Bind the inputs onto the kernel, and make the target and kernel current.

        Only allowed when idle. On success the state becomes bound. On failure
        the previous bindings are restored and the state stays idle.
        """
        self._check_state("configure", DispatchState.idle)
        assert_type("kernel", kernel, Kernel)
        assert_type("target", target, RenderTarget)
        if kernel.ctx is not self._ctx or target.ctx is not self._ctx:
            raise ValueError("Kernel and target must use the dispatcher's DeviceContext.")

        try:
            kernel.bind_inputs(inputs or {})
            status = target.check()
            if not status:
                raise IncompleteTargetError(status.reason)
            self._tokens.append(self._ctx.bindings.bind_target(target))
            self._tokens.append(self._ctx.bindings.bind_program(kernel))
        except Exception:
            self._release()
            raise

        self._kernel = kernel
        self._target = target
        self._state = DispatchState.bound

    def run(self):
        """Invoke the kernel on the target. The state becomes dispatched.

        Allowed when bound or dispatched, so a kernel can be run multiple
        times before reading back.
        """
        self._check_state("run", DispatchState.bound, DispatchState.dispatched)
        try:
            self._kernel.invoke()
        except Exception:
            self.reset()
            raise
        self._state = DispatchState.dispatched

    def read_back(self):
        """Read the result of the most recent run from the target buffer.

        Only allowed when dispatched. Blocks until the device has finished.
        Returns a 1D float32 array with ``width * height * 4`` elements. The
        previous bindings are restored and the state becomes idle.
        """
        self._check_state("read back", DispatchState.dispatched)
        try:
            return self._target.buffer.read()
        finally:
            self.reset()

    def reset(self):
        """Restore the previous bindings and return to idle, from any state."""
        if self._state != DispatchState.idle:
            logger.debug(f"Resetting dispatcher from {self._state}")
        self._release()
        self._kernel = None
        self._target = None
        self._state = DispatchState.idle

    def _release(self):
        # Restore in reverse order
        while self._tokens:
            self._tokens.pop().restore()

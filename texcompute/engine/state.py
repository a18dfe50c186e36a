"""
The "currently bound" state of a device context.

Which render target is written to, and which kernel is running, is state that
is shared by everything that uses the same device. Code that binds something
gets a token back, and must restore the previous state with it on every exit
path (the tokens are context managers to make that easy). This allows compute
work and e.g. a display path to share a device without corrupting each other.
"""

from ..utils import logger


class BindingToken:
    """Restores a binding slot to the value it had before a bind.

    Calling ``restore()`` more than once has no effect.
    """

    __slots__ = ["_state", "_slot", "_previous", "_value", "_restored"]

    def __init__(self, state, slot, previous, value):
        self._state = state
        self._slot = slot
        self._previous = previous
        self._value = value
        self._restored = False

    def __repr__(self):
        status = "restored" if self._restored else "active"
        return f"<BindingToken {self._slot} {status} at {hex(id(self))}>"

    @property
    def restored(self):
        """Whether this token has been used to restore the previous state."""
        return self._restored

    def restore(self):
        """Put back the value that was bound before this token was created."""
        if self._restored:
            return
        self._restored = True
        current = getattr(self._state, "_" + self._slot)
        if current is not self._value:
            # Someone bound something else on top of us and did not restore
            logger.warning(
                f"Restoring {self._slot} binding while {current!r} is bound on top of {self._value!r}."
            )
        setattr(self._state, "_" + self._slot, self._previous)

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.restore()


class BindingState:
    """The current target and program of a device context."""

    def __init__(self):
        self._target = None
        self._program = None

    @property
    def target(self):
        """The RenderTarget that kernel invocations currently write to, or None."""
        return self._target

    @property
    def program(self):
        """The Kernel that is currently in use, or None."""
        return self._program

    def snapshot(self):
        """Get a (target, program) tuple, e.g. to compare states."""
        return self._target, self._program

    def bind_target(self, target):
        """Make the given target current. Returns a BindingToken."""
        token = BindingToken(self, "target", self._target, target)
        self._target = target
        return token

    def bind_program(self, program):
        """Make the given program current. Returns a BindingToken."""
        token = BindingToken(self, "program", self._program, program)
        self._program = program
        return token

"""
The tick interface: running compute work from a frame loop.

A *tickable* is any object with a ``tick()`` method that returns a
``TickResult``. An application's frame loop (e.g. a canvas draw callback)
calls ``tick()`` once per frame, until it returns ``TickResult.stop``. For
batch compute without a frame loop, ``run_ticks()`` does the calling.

.. currentmodule:: texcompute.scheduler

.. autosummary::
    :toctree: scheduler/
    :template: ../_templates/custom_layout.rst

    ComputeTask
    run_ticks

"""

from .utils import logger
from .utils.enums import TickResult


class ComputeTask:
    """A tickable that does one configure/run/read-back cycle per tick.

    Parameters
    ----------
    dispatcher : ComputeDispatcher
        The dispatcher to use. It must be idle at the start of each tick.
    kernel : Kernel
        The kernel to run.
    target : RenderTarget
        The target to run the kernel into.
    inputs : dict | callable | None
        The inputs to bind before each run. Can also be a callable that
        receives the tick index and returns such a dict.
    on_result : callable | None
        Called with ``(result, tick_index)`` after each read-back. If it
        returns ``TickResult.stop``, the task stops.
    max_ticks : int | None
        Stop after this many ticks.
    """

    def __init__(
        self, dispatcher, kernel, target, inputs=None, *, on_result=None, max_ticks=None
    ):
        if max_ticks is not None and int(max_ticks) < 0:
            raise ValueError("max_ticks must not be negative.")
        self._dispatcher = dispatcher
        self._kernel = kernel
        self._target = target
        self._inputs = inputs
        self._on_result = on_result
        self._max_ticks = None if max_ticks is None else int(max_ticks)
        self._tick_count = 0
        self._stopped = self._max_ticks == 0
        self._last_result = None

    def __repr__(self):
        return f"<ComputeTask {self._tick_count} ticks at {hex(id(self))}>"

    @property
    def tick_count(self):
        """The number of ticks performed so far."""
        return self._tick_count

    @property
    def stopped(self):
        """Whether the task is done; further ticks have no effect."""
        return self._stopped

    @property
    def last_result(self):
        """The result of the most recent tick, or None."""
        return self._last_result

    def tick(self):
        """Perform one cycle. Returns ``TickResult.proceed`` or ``TickResult.stop``."""
        if self._stopped:
            return TickResult.stop

        index = self._tick_count
        inputs = self._inputs
        if callable(inputs):
            inputs = inputs(index)

        dispatcher = self._dispatcher
        dispatcher.configure(self._kernel, inputs, self._target)
        try:
            dispatcher.run()
            result = dispatcher.read_back()
        finally:
            dispatcher.reset()

        self._tick_count += 1
        self._last_result = result

        if self._on_result is not None:
            if self._on_result(result, index) == TickResult.stop:
                self._stopped = True
        if self._max_ticks is not None and self._tick_count >= self._max_ticks:
            self._stopped = True

        return TickResult.stop if self._stopped else TickResult.proceed


def run_ticks(tickable, max_ticks=None):
    """Call ``tickable.tick()`` until it returns ``TickResult.stop``.

    This is the simplest possible frame scheduler, for batch compute. If
    ``max_ticks`` is given, no more than that many ticks are performed.
    Returns the number of times ``tick()`` was called.
    """
    count = 0
    while max_ticks is None or count < max_ticks:
        result = tickable.tick()
        count += 1
        if result == TickResult.stop:
            break
        elif result != TickResult.proceed:
            raise ValueError(f"tick() must return a TickResult, not {result!r}")
    logger.debug(f"run_ticks() performed {count} ticks")
    return count

import numpy as np
import pytest

import texcompute as tc
from texcompute import TickResult

from .kernels import INDEX, AFFINE


class StubDispatcher:
    """Records the calls, and returns the tick index as result."""

    def __init__(self):
        self.calls = []
        self.count = 0

    def configure(self, kernel, inputs, target):
        self.calls.append(("configure", inputs))

    def run(self):
        self.calls.append(("run",))

    def read_back(self):
        self.calls.append(("read_back",))
        self.count += 1
        return self.count - 1

    def reset(self):
        self.calls.append(("reset",))


def test_compute_task_max_ticks():
    dispatcher = StubDispatcher()
    task = tc.ComputeTask(dispatcher, "kernel", "target", {"a": 1}, max_ticks=3)

    assert task.tick() == TickResult.proceed
    assert task.tick() == TickResult.proceed
    assert task.tick() == TickResult.stop
    assert task.stopped
    assert task.tick_count == 3
    assert task.last_result == 2

    # Ticking a stopped task does nothing
    assert task.tick() == TickResult.stop
    assert task.tick_count == 3

    assert dispatcher.calls[:4] == [
        ("configure", {"a": 1}),
        ("run",),
        ("read_back",),
        ("reset",),
    ]


def test_compute_task_on_result_stops():
    results = []

    def on_result(result, index):
        results.append((result, index))
        if index == 4:
            return TickResult.stop

    task = tc.ComputeTask(StubDispatcher(), "kernel", "target", on_result=on_result)
    assert tc.run_ticks(task) == 5
    assert results == [(i, i) for i in range(5)]


def test_compute_task_inputs_callable():
    dispatcher = StubDispatcher()
    task = tc.ComputeTask(
        dispatcher, "kernel", "target", lambda i: {"scale": i * 2}, max_ticks=2
    )
    tc.run_ticks(task)
    configures = [c[1] for c in dispatcher.calls if c[0] == "configure"]
    assert configures == [{"scale": 0}, {"scale": 2}]


def test_compute_task_resets_on_error():
    class FailingDispatcher(StubDispatcher):
        def run(self):
            raise RuntimeError("device lost")

    dispatcher = FailingDispatcher()
    task = tc.ComputeTask(dispatcher, "kernel", "target")
    with pytest.raises(RuntimeError):
        task.tick()
    assert dispatcher.calls[-1] == ("reset",)
    assert task.tick_count == 0


def test_compute_task_zero_ticks():
    task = tc.ComputeTask(StubDispatcher(), "kernel", "target", max_ticks=0)
    assert task.stopped
    assert task.tick() == TickResult.stop

    with pytest.raises(ValueError):
        tc.ComputeTask(StubDispatcher(), "kernel", "target", max_ticks=-1)


def test_run_ticks():
    class Counter:
        def __init__(self, n):
            self.n = n

        def tick(self):
            self.n -= 1
            return TickResult.stop if self.n <= 0 else TickResult.proceed

    assert tc.run_ticks(Counter(3)) == 3
    assert tc.run_ticks(Counter(100), max_ticks=10) == 10
    assert tc.run_ticks(Counter(3), max_ticks=0) == 0

    class Bad:
        def tick(self):
            return None

    with pytest.raises(ValueError):
        tc.run_ticks(Bad())


@pytest.mark.usefixtures("float32_target")
def test_compute_task_on_device(ctx):
    x = tc.DeviceBuffer(ctx, (2, 2), data=np.arange(16))
    target = tc.RenderTarget(ctx, tc.DeviceBuffer(ctx, (2, 2)))
    kernel = tc.link(
        ctx, None, AFFINE, inputs={"x": "texture", "scale": "f4", "offset": "4xf4"}
    )
    results = []
    task = tc.ComputeTask(
        tc.ComputeDispatcher(ctx),
        kernel,
        target,
        lambda i: {"x": x, "scale": float(i), "offset": (0, 0, 0, 0)},
        on_result=lambda result, i: results.append(result),
        max_ticks=3,
    )
    assert tc.run_ticks(task) == 3
    for i, result in enumerate(results):
        assert np.all(result == np.arange(16) * i)
    assert ctx.bindings.snapshot() == (None, None)


@pytest.mark.usefixtures("float32_target")
def test_compute_task_index_kernel(ctx):
    target = tc.RenderTarget(ctx, tc.DeviceBuffer(ctx, (6, 4)))
    task = tc.ComputeTask(
        tc.ComputeDispatcher(ctx), tc.link(ctx, None, INDEX), target, max_ticks=1
    )
    assert tc.run_ticks(task) == 1
    assert task.last_result[0::4].tolist() == list(range(24))

"""Global configuration for pytest"""

import numpy as np
import pytest


@pytest.fixture(autouse=True)
def predictable_random_numbers():
    """
    Called at start of each test, guarantees that calls to random produce the same output over subsequent tests runs,
    see http://docs.scipy.org/doc/numpy-1.10.1/reference/generated/numpy.random.seed.html
    """
    np.random.seed(0)


@pytest.fixture(autouse=True, scope="session")
def numerical_exceptions():
    """
    Ensure any numerical errors raise a warning in our test suite
    The point is that we enforce such cases to be handled explicitly in our code
    Preferably using local `with np.errstate(...)` constructs
    """
    np.seterr(all="raise")


@pytest.fixture(scope="session")
def ctx():
    """A DeviceContext for tests that need a GPU, preferably on LLVMpipe."""
    import wgpu
    import texcompute as tc

    try:
        adapters = wgpu.gpu.enumerate_adapters_sync()
    except Exception as err:
        pytest.skip(reason=f"Cannot use the wgpu lib: {err}")
    if not adapters:
        pytest.skip(reason="No wgpu adapter found")
    adapters_llvm = [a for a in adapters if "llvmpipe" in a.summary.lower()]
    adapter = adapters_llvm[0] if adapters_llvm else adapters[0]
    return tc.DeviceContext(adapter=adapter)


@pytest.fixture
def float32_target(ctx):
    """Skip the test if the device cannot render to rgba32float buffers."""
    if not ctx.get_format_support("rgba32float")[1]:
        pytest.skip(reason=f"rgba32float is not renderable on {ctx.adapter.summary!r}")

import sys
import subprocess

import wgpu
import pytest

import texcompute as tc


def test_default_context_not_created_at_import():
    code = "import texcompute; print(texcompute.DeviceContext._default)"
    p = subprocess.run(
        [
            sys.executable,
            "-c",
            code,
        ],
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        universal_newlines=True,
    )
    result = p.stdout.strip()

    print(result)
    assert result.endswith("None")
    # If this fails, either the test is broken, or texcompute creates a
    # device at import-time somewhere, which we don't want to do.


def test_version():
    assert isinstance(tc.__version__, str)
    assert tc.__version__.count(".") >= 2
    assert isinstance(tc.version_info, tuple)


def test_version_labels():
    from texcompute._version import format_version

    # At the release tag
    assert format_version("0.2.0", "v0.2.0", "1a2b3c4", False) == "0.2.0"
    assert format_version("0.2.0", "v0.2.0", "1a2b3c4", True) == "0.2.0+dirty"
    # Between releases
    assert format_version("0.2.0", None, "1a2b3c4", False) == "0.2.0+g1a2b3c4"
    assert format_version("0.2.0", None, "1a2b3c4", True) == "0.2.0+g1a2b3c4.dirty"
    assert format_version("0.2.0", "v0.1.0", "1a2b3c4", False) == "0.2.0+g1a2b3c4"
    # git not available
    assert format_version("0.2.0", None, None, False) == "0.2.0+unknown"


def test_context(ctx):
    assert isinstance(ctx.adapter, wgpu.GPUAdapter)
    assert isinstance(ctx.device, wgpu.GPUDevice)
    assert ctx.bindings.snapshot() == (None, None)

    # Samplers are cached
    assert ctx.get_sampler("nearest") is ctx.get_sampler("nearest")
    assert ctx.get_sampler("linear") is not ctx.get_sampler("nearest")


def test_default_context(ctx, monkeypatch):
    monkeypatch.setattr(tc.DeviceContext, "_default", ctx)
    assert tc.get_default_context() is ctx

    # Too late to select things
    with pytest.raises(RuntimeError):
        tc.select_adapter(ctx.adapter)
    with pytest.raises(RuntimeError):
        tc.enable_wgpu_features("float32-filterable")


def test_select_functions_check_args():
    with pytest.raises(TypeError):
        tc.select_adapter("llvmpipe")
    with pytest.raises(ValueError):
        tc.select_power_preference("fastest")

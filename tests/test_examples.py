"""
Test that the examples run without error.
"""

from pathlib import Path
import subprocess
import sys

import pytest


ROOT = Path(__file__).parent.parent
examples_dir = ROOT / "examples"

examples_to_test = sorted(path.stem for path in examples_dir.glob("*.py"))


@pytest.mark.parametrize("module", examples_to_test)
@pytest.mark.usefixtures("float32_target")
def test_example_runs(module, ctx):
    # The ctx fixture skips this test if there is no adapter
    result = subprocess.run(
        [sys.executable, str(examples_dir / f"{module}.py")],
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        universal_newlines=True,
        cwd=ROOT,
    )
    print(result.stdout)
    assert result.returncode == 0
    assert "Traceback" not in result.stdout

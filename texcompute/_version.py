"""
The texcompute version.

Releases are made by bumping ``__version__`` below and tagging that commit
as "vX.Y.Z". Running from a git checkout adds the short commit hash as a
local label (e.g. "0.1.0+g1a2b3c4"), unless the checkout is exactly at the
release tag. Uncommitted changes add a "dirty" label.
"""

import logging
import subprocess
from pathlib import Path


__version__ = "0.1.0"


logger = logging.getLogger("texcompute")

# The checkout that this package runs from, or None when installed.
repo_dir = Path(__file__).parents[1]
repo_dir = repo_dir if repo_dir.joinpath(".git").is_dir() else None


def _git(*args):
    try:
        p = subprocess.run(["git", *args], cwd=repo_dir, capture_output=True)
    except OSError as err:
        logger.debug(f"Cannot run git: {err}")
        return None
    if p.returncode:
        return None
    return p.stdout.decode(errors="ignore").strip()


def format_version(release, tag, commit, dirty):
    """Combine the release number with the state of the checkout."""
    labels = []
    if tag != f"v{release}":
        if tag and tag.startswith("v"):
            logger.warning(f"Tag {tag!r} does not match texcompute {release}.")
        labels.append(f"g{commit}" if commit else "unknown")
    if dirty:
        labels.append("dirty")
    if labels:
        return release + "+" + ".".join(labels)
    return release


def get_version():
    """Get the version string, with local labels when running from a checkout."""
    if repo_dir is None:
        return __version__
    tag = _git("describe", "--tags", "--exact-match")
    commit = _git("rev-parse", "--short", "HEAD")
    status = _git("status", "--porcelain", "--untracked-files=no")
    return format_version(__version__, tag, commit, bool(status))


__version__ = get_version()
version_info = tuple(int(i) for i in __version__.split("+")[0].split("."))

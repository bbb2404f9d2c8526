"""Storage inspector: choose the dockerd storage driver.

Tries an overlay mount inside a throwaway user+mount namespace.  The mount
dies with the namespace, so the scratch directory can simply be removed.
"""

from pathlib import Path
from typing import Optional

from ..executor import Executor
from ..schema import StorageDriver
from .._util import debug as _debug_fn, scratch_dir

# Distributions whose stock kernels allow overlay in user namespaces.
_OVERLAY_DISTROS = frozenset({"ubuntu"})


def _debug(msg: str) -> None:
    _debug_fn("storage", msg)


def overlay_probe_cmd(root: Path) -> list:
    lower, upper, work, merged = (root / d for d in ("lower", "upper", "work", "merged"))
    return [
        "unshare", "--user", "--map-root-user", "--mount",
        "mount", "-t", "overlay", "overlay",
        "-o", f"lowerdir={lower},upperdir={upper},workdir={work}",
        str(merged),
    ]


def probe_overlay(executor: Executor) -> Optional[bool]:
    """Return True if a rootless overlay mount works, False if it fails.

    None means the probe could not run (unshare missing).
    """
    with scratch_dir(prefix="homedock-overlay-") as root:
        for d in ("lower", "upper", "work", "merged"):
            (root / d).mkdir()
        result = executor(overlay_probe_cmd(root))
    if result.returncode == 127:
        _debug("overlay probe: unshare not available")
        return None
    if result.returncode != 0:
        _debug(f"overlay probe: mount failed (rc={result.returncode}) {result.stderr.strip()}")
        return False
    _debug("overlay probe: ok")
    return True


def select_driver(executor: Executor, distro_id: str = "") -> StorageDriver:
    """overlay2 when the probe mounts, vfs when it fails; distro heuristic when it cannot run."""
    ok = probe_overlay(executor)
    if ok is None:
        ok = distro_id.lower() in _OVERLAY_DISTROS
        _debug(f"falling back to distro heuristic ({distro_id or '?'}): overlay={ok}")
    return StorageDriver.OVERLAY2 if ok else StorageDriver.VFS

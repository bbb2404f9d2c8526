"""
Inspectors probe the host once at startup.
Each receives host_root (and an executor where it shells out) and returns
HostFacts fields; run_all merges them into one frozen HostFacts.
"""

from pathlib import Path
from typing import Mapping

from ..executor import Executor
from ..schema import HostFacts

from .host import run as run_host
from .userns import run as run_userns


def run_all(
    host_root: Path,
    executor: Executor,
    env: Mapping[str, str],
) -> HostFacts:
    """Run all host probes.  The storage probe is not included: it needs a
    scratch directory and only runs once preflight has passed."""
    host_root = Path(host_root)
    fields = run_host(host_root, executor, env)
    if fields["platform"] == "Linux":
        fields.update(run_userns(host_root, fields["username"], fields["euid"]))
    return HostFacts(**fields)
